"""Core data models shared by the listing store and the search pipeline."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

EARTH_RADIUS_KM = 6371.0088


@dataclass(frozen=True, slots=True)
class GeoPoint:
    """A WGS84 coordinate stored in (longitude, latitude) order."""

    lon: float
    lat: float

    def distance_km(self, other: "GeoPoint") -> float:
        """Great-circle (haversine) distance to ``other`` in kilometers."""
        lat1, lat2 = math.radians(self.lat), math.radians(other.lat)
        dlat = lat2 - lat1
        dlon = math.radians(other.lon - self.lon)
        a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
        return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lon": self.lon}


@dataclass(frozen=True, slots=True)
class ListingRecord:
    """A business listing as stored in the search index."""

    id: str
    name: str
    description: Optional[str] = None
    categories: Tuple[str, ...] = ()
    address: Optional[str] = None
    location: Optional[GeoPoint] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    rating: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "categories": list(self.categories),
            "address": self.address,
            "location": self.location.to_dict() if self.location else None,
            "phone": self.phone,
            "website": self.website,
            "rating": self.rating,
        }


@dataclass(frozen=True, slots=True)
class SearchRequest:
    """Normalized client search parameters."""

    text: Optional[str] = None
    center: Optional[GeoPoint] = None
    radius_km: Optional[float] = None
    page: int = 0
    page_size: int = 10
    sort_by_distance: bool = False


class SortOrder(str, Enum):
    RELEVANCE = "relevance"
    DISTANCE = "distance"


TEXT_FIELDS: Tuple[str, ...] = ("name", "description", "categories")


@dataclass(frozen=True, slots=True)
class TextClause:
    """Disjunction of relevance-scored matches of ``text`` over ``fields``."""

    text: str
    fields: Tuple[str, ...] = TEXT_FIELDS


@dataclass(frozen=True, slots=True)
class GeoClause:
    """Admits records whose location lies within ``radius_km`` of ``center``."""

    center: GeoPoint
    radius_km: float


@dataclass(frozen=True, slots=True)
class QueryPlan:
    """Backend-agnostic query: present clauses are ANDed, absent ones are ``None``."""

    text_clause: Optional[TextClause] = None
    geo_clause: Optional[GeoClause] = None
    sort: SortOrder = SortOrder.RELEVANCE
    sort_origin: Optional[GeoPoint] = None
    page_index: int = 0
    page_size: int = 10

    @property
    def offset(self) -> int:
        return self.page_index * self.page_size

    @property
    def is_unconstrained(self) -> bool:
        return self.text_clause is None and self.geo_clause is None


@dataclass(slots=True)
class SearchHits:
    """One page of raw hits from the index plus the full match count."""

    hits: List[Tuple[ListingRecord, float]] = field(default_factory=list)
    total_hits: int = 0


@dataclass(frozen=True, slots=True)
class ResultPage:
    items: Tuple[ListingRecord, ...]
    total_hits: int
    page_index: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_hits / self.page_size) if self.page_size else 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [item.to_dict() for item in self.items],
            "totalHits": self.total_hits,
            "totalPages": self.total_pages,
            "page": self.page_index,
            "size": self.page_size,
        }

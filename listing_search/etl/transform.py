"""Utilities for turning loosely typed listing payloads into ListingRecord objects."""

import logging
import uuid
from collections.abc import Iterable
from typing import Any, Dict, Optional, Tuple

from listing_search.core.errors import InvalidRequest
from listing_search.models import GeoPoint, ListingRecord

logger = logging.getLogger(__name__)


def _strip_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    value_str = str(value).strip()
    return value_str or None


def parse_float(value: Any, field_name: str) -> Optional[float]:
    """Parse an optional number, rejecting anything non-numeric."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise InvalidRequest(f"{field_name} must be numeric")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidRequest(f"{field_name} must be numeric") from exc


def parse_point(lat: Optional[float], lon: Optional[float]) -> Optional[GeoPoint]:
    """Build a GeoPoint when both components are present and in range."""
    if lat is None or lon is None:
        return None
    if not -90.0 <= lat <= 90.0:
        raise InvalidRequest(f"lat out of range: {lat}")
    if not -180.0 <= lon <= 180.0:
        raise InvalidRequest(f"lon out of range: {lon}")
    return GeoPoint(lon=lon, lat=lat)


def normalize_categories(categories: Any) -> Tuple[str, ...]:
    """Keep non-empty tags in their original order, dropping repeats."""
    if categories is None:
        return ()
    if isinstance(categories, str) or not isinstance(categories, Iterable):
        raise InvalidRequest("categories must be a list of strings")

    seen = []
    for raw in categories:
        tag = _strip_or_none(raw)
        if tag and tag not in seen:
            seen.append(tag)
    return tuple(seen)


def to_listing_record(payload: Dict[str, Any]) -> ListingRecord:
    name = _strip_or_none(payload.get("name"))
    if not name:
        raise InvalidRequest("name is required")

    rating = parse_float(payload.get("rating"), "rating")
    if rating is not None and not 0.0 <= rating <= 5.0:
        raise InvalidRequest(f"rating must be between 0 and 5, got {rating}")

    lat = parse_float(payload.get("lat"), "lat")
    lon = parse_float(payload.get("lon"), "lon")
    if (lat is None) != (lon is None):
        raise InvalidRequest("lat and lon must be provided together")

    listing_id = _strip_or_none(payload.get("id")) or str(uuid.uuid4())

    return ListingRecord(
        id=listing_id,
        name=name,
        description=_strip_or_none(payload.get("description")),
        categories=normalize_categories(payload.get("categories")),
        address=_strip_or_none(payload.get("address")),
        location=parse_point(lat, lon),
        phone=_strip_or_none(payload.get("phone")),
        website=_strip_or_none(payload.get("website")),
        rating=rating,
    )

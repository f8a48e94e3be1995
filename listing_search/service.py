"""Listing service: create/get passthroughs and the search pipeline."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from listing_search.core.config import Settings, get_settings
from listing_search.core.errors import ConfigError, InvalidRequest, NotFound
from listing_search.etl.transform import parse_float, parse_point, to_listing_record
from listing_search.models import ListingRecord, ResultPage, SearchRequest
from listing_search.search import assembler, criteria
from listing_search.search.index import SearchIndex

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


def _parse_int(value: Any, field_name: str, default: int) -> int:
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    try:
        return int(str(value).strip())
    except (TypeError, ValueError) as exc:
        raise InvalidRequest(f"{field_name} must be an integer") from exc


def _parse_bool(value: Any, field_name: str) -> bool:
    if value is None or isinstance(value, bool):
        return bool(value)
    lowered = str(value).strip().lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    raise InvalidRequest(f"{field_name} must be a boolean")


def parse_search_request(
    *,
    q: Optional[str] = None,
    lat: Any = None,
    lon: Any = None,
    radius_km: Any = None,
    page: Any = None,
    size: Any = None,
    sort_by_distance: Any = None,
    default_page_size: int = 10,
) -> SearchRequest:
    """Turn loosely typed query-string values into a SearchRequest."""
    latitude = parse_float(lat, "lat")
    longitude = parse_float(lon, "lon")
    return SearchRequest(
        text=q,
        center=parse_point(latitude, longitude),
        radius_km=parse_float(radius_km, "radius_km"),
        page=_parse_int(page, "page", 0),
        page_size=_parse_int(size, "size", default_page_size),
        sort_by_distance=_parse_bool(sort_by_distance, "sortByDistance"),
    )


def validate_search_request(request: SearchRequest) -> None:
    if request.page < 0:
        raise InvalidRequest("page must be zero or positive")
    if request.page_size < 1:
        raise InvalidRequest("size must be at least 1")
    if request.radius_km is not None and not request.radius_km > 0:
        raise InvalidRequest("radius_km must be positive")
    if request.center is not None:
        parse_point(request.center.lat, request.center.lon)


class ListingService:
    """Orchestrates listing storage and search against a SearchIndex."""

    def __init__(self, index: SearchIndex) -> None:
        self.index = index

    def create(self, payload: Dict[str, Any]) -> ListingRecord:
        record = to_listing_record(payload)
        stored = self.index.save(record)
        logger.info("Created listing id=%s name=%s", stored.id, stored.name)
        return stored

    def get(self, listing_id: str) -> ListingRecord:
        record = self.index.get(listing_id)
        if record is None:
            raise NotFound(listing_id)
        return record

    def search(self, request: SearchRequest) -> ResultPage:
        validate_search_request(request)
        plan = criteria.build(request)
        logger.info(
            "Searching listings text=%s geo=%s sort=%s page=%d size=%d",
            plan.text_clause.text if plan.text_clause else None,
            plan.geo_clause,
            plan.sort.value,
            plan.page_index,
            plan.page_size,
        )
        result = self.index.execute(plan)
        return assembler.assemble_hits(result, plan.page_index, plan.page_size)


def build_index(settings: Optional[Settings] = None) -> SearchIndex:
    """Create the index implementation selected by ``LISTINGS_BACKEND``."""
    settings = settings or get_settings()
    if settings.backend == "memory":
        from listing_search.search.memory_index import InMemoryListingIndex

        return InMemoryListingIndex()
    if settings.backend == "postgres":
        if not settings.database_url:
            raise ConfigError("DATABASE_URL is required for the postgres backend")
        from listing_search.search.postgres_index import PostgresListingIndex

        return PostgresListingIndex(statement_timeout_ms=settings.search_timeout_ms)
    raise ConfigError(f"Unknown listings backend: {settings.backend}")

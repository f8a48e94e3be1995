"""Compose a SearchRequest into a backend-agnostic QueryPlan."""

import logging
from typing import Optional

from listing_search.models import GeoClause, QueryPlan, SearchRequest, SortOrder, TextClause

logger = logging.getLogger(__name__)


def build_text_clause(text: Optional[str]) -> Optional[TextClause]:
    if text is None or not text.strip():
        return None
    return TextClause(text=text.strip())


def build_geo_clause(request: SearchRequest) -> Optional[GeoClause]:
    if request.center is None or request.radius_km is None:
        if request.center is not None or request.radius_km is not None:
            logger.info(
                "Ignoring partial geo filter (center=%s radius_km=%s)", request.center, request.radius_km
            )
        return None
    return GeoClause(center=request.center, radius_km=request.radius_km)


def build(request: SearchRequest) -> QueryPlan:
    """Build the query plan for ``request``.

    Clauses that the request does not ask for are left as ``None`` so that the
    backend only ANDs constraints that exist; a plan without clauses matches
    every listing. Distance ordering needs a center and otherwise falls back
    to relevance.
    """
    if request.sort_by_distance and request.center is not None:
        sort, sort_origin = SortOrder.DISTANCE, request.center
    else:
        sort, sort_origin = SortOrder.RELEVANCE, None

    return QueryPlan(
        text_clause=build_text_clause(request.text),
        geo_clause=build_geo_clause(request),
        sort=sort,
        sort_origin=sort_origin,
        page_index=request.page,
        page_size=request.page_size,
    )

"""PostgreSQL/PostGIS implementation of the listing search index."""

import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Tuple

import psycopg2
from psycopg2 import extras, pool

from listing_search.core.db import get_connection
from listing_search.core.errors import BackendUnavailable
from listing_search.models import GeoPoint, ListingRecord, QueryPlan, SearchHits, SortOrder

logger = logging.getLogger(__name__)

_BACKEND_ERRORS = (psycopg2.OperationalError, psycopg2.InterfaceError, pool.PoolError)

SCHEMA_STATEMENTS = (
    "CREATE EXTENSION IF NOT EXISTS postgis;",
    """
CREATE TABLE IF NOT EXISTS listings (
    id TEXT PRIMARY KEY,
    seq BIGSERIAL NOT NULL,
    name TEXT NOT NULL,
    description TEXT,
    categories TEXT[] NOT NULL DEFAULT '{}',
    address TEXT,
    location GEOGRAPHY(Point, 4326),
    phone TEXT,
    website TEXT,
    rating DOUBLE PRECISION CHECK (rating BETWEEN 0 AND 5),
    name_tsv TSVECTOR GENERATED ALWAYS AS (to_tsvector('simple', coalesce(name, ''))) STORED,
    description_tsv TSVECTOR GENERATED ALWAYS AS (to_tsvector('simple', coalesce(description, ''))) STORED
);
""",
    "CREATE INDEX IF NOT EXISTS listings_name_tsv_idx ON listings USING GIN (name_tsv);",
    "CREATE INDEX IF NOT EXISTS listings_description_tsv_idx ON listings USING GIN (description_tsv);",
    "CREATE INDEX IF NOT EXISTS listings_categories_idx ON listings USING GIN (categories);",
    "CREATE INDEX IF NOT EXISTS listings_location_idx ON listings USING GIST (location);",
)

_UPSERT_LISTING = """
INSERT INTO listings (
    id,
    name,
    description,
    categories,
    address,
    location,
    phone,
    website,
    rating
) VALUES (
    %(id)s,
    %(name)s,
    %(description)s,
    %(categories)s,
    %(address)s,
    CASE WHEN %(lon)s IS NOT NULL AND %(lat)s IS NOT NULL THEN
        ST_SetSRID(ST_MakePoint(%(lon)s, %(lat)s), 4326)::geography
    ELSE NULL END,
    %(phone)s,
    %(website)s,
    %(rating)s
)
ON CONFLICT (id) DO UPDATE SET
    name = EXCLUDED.name,
    description = EXCLUDED.description,
    categories = EXCLUDED.categories,
    address = EXCLUDED.address,
    location = EXCLUDED.location,
    phone = EXCLUDED.phone,
    website = EXCLUDED.website,
    rating = EXCLUDED.rating;
"""

_SELECT_COLUMNS = """
    id,
    name,
    description,
    categories,
    address,
    ST_X(location::geometry) AS lon,
    ST_Y(location::geometry) AS lat,
    phone,
    website,
    rating
"""

# Any query term may match (OR semantics), like a match query on an analyzed field.
# plainto_tsquery renders quoted lexemes joined by " & "; the default parser splits
# on whitespace, so no lexeme contains " & " and only the operators are rewritten.
_TSQUERY = "replace(plainto_tsquery('simple', %(text)s)::text, ' & ', ' | ')::tsquery"
_TEXT_FILTER = (
    f"(name_tsv @@ {_TSQUERY} OR description_tsv @@ {_TSQUERY} OR %(text)s = ANY(categories))"
)
_TEXT_SCORE = (
    f"(ts_rank(name_tsv, {_TSQUERY}) + ts_rank(description_tsv, {_TSQUERY})"
    " + CASE WHEN %(text)s = ANY(categories) THEN 1.0 ELSE 0.0 END)"
)
_GEO_FILTER = (
    "ST_DWithin(location, ST_SetSRID(ST_MakePoint(%(geo_lon)s, %(geo_lat)s), 4326)::geography, %(radius_m)s)"
)
_DISTANCE_ORDER = (
    "ST_Distance(location, ST_SetSRID(ST_MakePoint(%(origin_lon)s, %(origin_lat)s), 4326)::geography)"
    " ASC NULLS LAST, id ASC"
)


def _record_params(record: ListingRecord) -> Dict[str, Any]:
    return {
        "id": record.id,
        "name": record.name,
        "description": record.description,
        "categories": list(record.categories),
        "address": record.address,
        "lon": record.location.lon if record.location else None,
        "lat": record.location.lat if record.location else None,
        "phone": record.phone,
        "website": record.website,
        "rating": record.rating,
    }


def row_to_record(row: Dict[str, Any]) -> ListingRecord:
    location = None
    if row.get("lon") is not None and row.get("lat") is not None:
        location = GeoPoint(lon=float(row["lon"]), lat=float(row["lat"]))
    rating = row.get("rating")
    return ListingRecord(
        id=row["id"],
        name=row["name"],
        description=row.get("description"),
        categories=tuple(row.get("categories") or ()),
        address=row.get("address"),
        location=location,
        phone=row.get("phone"),
        website=row.get("website"),
        rating=float(rating) if rating is not None else None,
    )


def build_search_sql(plan: QueryPlan) -> Tuple[str, str, Dict[str, Any]]:
    """Render ``plan`` into (select_sql, count_sql, params)."""
    conditions: List[str] = []
    params: Dict[str, Any] = {
        "limit": plan.page_size,
        "offset": plan.offset,
    }

    score_sql = "1.0"
    if plan.text_clause is not None:
        conditions.append(_TEXT_FILTER)
        score_sql = _TEXT_SCORE
        params["text"] = plan.text_clause.text

    if plan.geo_clause is not None:
        conditions.append(_GEO_FILTER)
        params["geo_lon"] = plan.geo_clause.center.lon
        params["geo_lat"] = plan.geo_clause.center.lat
        params["radius_m"] = plan.geo_clause.radius_km * 1000.0

    where_sql = f"WHERE {' AND '.join(conditions)}" if conditions else ""

    if plan.sort is SortOrder.DISTANCE and plan.sort_origin is not None:
        order_sql = _DISTANCE_ORDER
        params["origin_lon"] = plan.sort_origin.lon
        params["origin_lat"] = plan.sort_origin.lat
    else:
        order_sql = "score DESC, seq ASC"

    select_sql = (
        f"SELECT {_SELECT_COLUMNS}, {score_sql} AS score FROM listings {where_sql} "
        f"ORDER BY {order_sql} LIMIT %(limit)s OFFSET %(offset)s"
    )
    count_sql = f"SELECT count(*) AS total FROM listings {where_sql}"
    return select_sql, count_sql, params


@contextmanager
def _pooled_connection():
    """Yield a pooled connection that is always returned outside a transaction."""
    with get_connection() as conn:
        try:
            yield conn
        finally:
            # No-op after commit; clears aborted transactions before the pool reuses it.
            conn.rollback()


class PostgresListingIndex:
    """Listing index backed by a PostGIS-enabled ``listings`` table."""

    def __init__(self, statement_timeout_ms: int = 5000) -> None:
        self.statement_timeout_ms = statement_timeout_ms

    def ensure_schema(self) -> None:
        try:
            with _pooled_connection() as conn:
                with conn.cursor() as cur:
                    for statement in SCHEMA_STATEMENTS:
                        cur.execute(statement)
                conn.commit()
        except _BACKEND_ERRORS as exc:
            logger.error("Failed to create listings schema: %s", exc)
            raise BackendUnavailable("listing store is unavailable") from exc
        logger.info("Listings schema is ready")

    def save(self, record: ListingRecord) -> ListingRecord:
        try:
            with _pooled_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(_UPSERT_LISTING, _record_params(record))
                conn.commit()
        except _BACKEND_ERRORS as exc:
            logger.error("Failed to store listing %s: %s", record.id, exc)
            raise BackendUnavailable("listing store is unavailable") from exc
        logger.debug("Upserted listing %s", record.id)
        return record

    def get(self, listing_id: str) -> Optional[ListingRecord]:
        try:
            with _pooled_connection() as conn:
                with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                    cur.execute(f"SELECT {_SELECT_COLUMNS} FROM listings WHERE id = %(id)s", {"id": listing_id})
                    row = cur.fetchone()
        except _BACKEND_ERRORS as exc:
            logger.error("Failed to load listing %s: %s", listing_id, exc)
            raise BackendUnavailable("listing store is unavailable") from exc
        return row_to_record(row) if row else None

    def count(self) -> int:
        try:
            with _pooled_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute("SELECT count(*) FROM listings")
                    (total,) = cur.fetchone()
        except _BACKEND_ERRORS as exc:
            logger.error("Failed to count listings: %s", exc)
            raise BackendUnavailable("listing store is unavailable") from exc
        return int(total)

    def execute(self, plan: QueryPlan) -> SearchHits:
        select_sql, count_sql, params = build_search_sql(plan)
        try:
            with _pooled_connection() as conn:
                with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                    # Page and count read the same snapshot.
                    cur.execute("SET TRANSACTION ISOLATION LEVEL REPEATABLE READ")
                    cur.execute(f"SET LOCAL statement_timeout = {int(self.statement_timeout_ms)}")
                    cur.execute(select_sql, params)
                    rows = cur.fetchall()
                    cur.execute(count_sql, params)
                    total = cur.fetchone()["total"]
        except _BACKEND_ERRORS as exc:
            logger.error("Listing search failed: %s", exc)
            raise BackendUnavailable("listing search backend is unavailable") from exc

        hits = [(row_to_record(row), float(row["score"])) for row in rows]
        return SearchHits(hits=hits, total_hits=int(total))

import contextlib

import psycopg2
import psycopg2.errors
import pytest

from listing_search.core.errors import BackendUnavailable
from listing_search.models import GeoClause, GeoPoint, ListingRecord, QueryPlan, SortOrder, TextClause
from listing_search.search import postgres_index
from listing_search.search.postgres_index import PostgresListingIndex, build_search_sql

CENTER = GeoPoint(lon=77.62, lat=12.97)


class DummyCursor:
    def __init__(self, connection):
        self.connection = connection
        self._results = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def execute(self, sql, params=None):
        if self.connection.error is not None:
            raise self.connection.error
        self.connection.statements.append((" ".join(sql.split()), params))
        self._results = self.connection.results.pop(0) if self.connection.results else []

    def fetchall(self):
        return self._results

    def fetchone(self):
        return self._results[0] if self._results else None


class DummyConnection:
    def __init__(self, results=None, error=None):
        self.results = list(results or [])
        self.error = error
        self.statements = []
        self.commits = 0
        self.rollbacks = 0
        self.cursor_factories = []

    def cursor(self, cursor_factory=None):
        self.cursor_factories.append(cursor_factory)
        return DummyCursor(self)

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1


@pytest.fixture
def use_connection(monkeypatch):
    def install(connection):
        @contextlib.contextmanager
        def fake_get_connection():
            yield connection

        monkeypatch.setattr(postgres_index, "get_connection", fake_get_connection)
        return connection

    return install


def _row(listing_id="biz-1", score=1.0, lon=77.612, lat=12.975):
    return {
        "id": listing_id,
        "name": "Sunrise Cafe",
        "description": "Cozy coffee & brunch spot",
        "categories": ["cafe", "coffee"],
        "address": "MG Road, Bengaluru",
        "lon": lon,
        "lat": lat,
        "phone": "+91-9876543210",
        "website": "https://sunrisecafe.example.com",
        "rating": 4.3,
        "score": score,
    }


def test_unconstrained_plan_has_no_where_clause():
    select_sql, count_sql, params = build_search_sql(QueryPlan(page_index=1, page_size=2))

    assert "WHERE" not in select_sql
    assert "WHERE" not in count_sql
    assert "ORDER BY score DESC, seq ASC" in select_sql
    assert params["limit"] == 2
    assert params["offset"] == 2


def test_text_only_plan():
    select_sql, count_sql, params = build_search_sql(QueryPlan(text_clause=TextClause(text="coffee")))

    assert "name_tsv @@" in select_sql
    assert "description_tsv @@" in select_sql
    assert "%(text)s = ANY(categories)" in select_sql
    assert "ST_DWithin" not in select_sql
    assert "name_tsv @@" in count_sql
    assert params["text"] == "coffee"
    assert "replace(plainto_tsquery('simple', %(text)s)::text, ' & ', ' | ')::tsquery" in select_sql


def test_text_and_geo_are_anded_with_distance_sort():
    plan = QueryPlan(
        text_clause=TextClause(text="cafe"),
        geo_clause=GeoClause(center=CENTER, radius_km=5),
        sort=SortOrder.DISTANCE,
        sort_origin=CENTER,
    )

    select_sql, count_sql, params = build_search_sql(plan)

    assert ") AND ST_DWithin(" in select_sql
    assert ") AND ST_DWithin(" in count_sql
    assert "ORDER BY ST_Distance(" in select_sql
    assert "ASC NULLS LAST, id ASC" in select_sql
    assert "score DESC" not in select_sql
    assert params["radius_m"] == 5000.0
    assert (params["geo_lon"], params["geo_lat"]) == (77.62, 12.97)
    assert (params["origin_lon"], params["origin_lat"]) == (77.62, 12.97)


def test_geo_only_plan_omits_text_filter():
    select_sql, _count_sql, params = build_search_sql(QueryPlan(geo_clause=GeoClause(center=CENTER, radius_km=2)))

    assert "WHERE ST_DWithin(" in select_sql
    assert "tsv @@" not in select_sql
    assert "text" not in params


def test_execute_maps_rows_and_total(use_connection):
    connection = use_connection(DummyConnection(results=[[], [], [_row(score=0.7)], [{"total": 9}]]))
    index = PostgresListingIndex(statement_timeout_ms=1500)

    result = index.execute(QueryPlan(text_clause=TextClause(text="coffee"), page_size=1))

    assert result.total_hits == 9
    record, score = result.hits[0]
    assert record.name == "Sunrise Cafe"
    assert record.categories == ("cafe", "coffee")
    assert record.location == GeoPoint(lon=77.612, lat=12.975)
    assert score == 0.7
    assert connection.statements[0][0] == "SET TRANSACTION ISOLATION LEVEL REPEATABLE READ"
    assert connection.statements[1][0] == "SET LOCAL statement_timeout = 1500"
    assert connection.rollbacks == 1


def test_execute_wraps_backend_failures(use_connection):
    use_connection(DummyConnection(error=psycopg2.OperationalError("canceling statement due to statement timeout")))

    with pytest.raises(BackendUnavailable):
        PostgresListingIndex().execute(QueryPlan())


def test_execute_does_not_mask_programming_errors(use_connection):
    use_connection(DummyConnection(error=psycopg2.ProgrammingError("syntax error")))

    with pytest.raises(psycopg2.ProgrammingError):
        PostgresListingIndex().execute(QueryPlan())


def test_save_upserts_record(use_connection):
    connection = use_connection(DummyConnection())
    record = ListingRecord(id="biz-1", name="Acme", categories=("store",), location=GeoPoint(lon=10.0, lat=20.0))

    assert PostgresListingIndex().save(record) is record

    sql, params = connection.statements[0]
    assert sql.startswith("INSERT INTO listings ( id")
    assert "ON CONFLICT (id) DO UPDATE" in sql
    assert params["categories"] == ["store"]
    assert (params["lon"], params["lat"]) == (10.0, 20.0)
    assert connection.commits == 1


def test_get_returns_none_for_missing_row(use_connection):
    use_connection(DummyConnection(results=[[]]))
    assert PostgresListingIndex().get("nope") is None


def test_get_maps_row_without_location(use_connection):
    use_connection(DummyConnection(results=[[_row(lon=None, lat=None)]]))

    record = PostgresListingIndex().get("biz-1")

    assert record.id == "biz-1"
    assert record.location is None


def test_count(use_connection):
    use_connection(DummyConnection(results=[[(4,)]]))
    assert PostgresListingIndex().count() == 4


def test_ensure_schema_runs_all_statements(use_connection):
    connection = use_connection(DummyConnection())

    PostgresListingIndex().ensure_schema()

    assert len(connection.statements) == len(postgres_index.SCHEMA_STATEMENTS)
    assert connection.statements[0][0] == "CREATE EXTENSION IF NOT EXISTS postgis;"
    assert connection.commits == 1


def test_failed_get_returns_connection_outside_transaction(use_connection):
    connection = use_connection(DummyConnection(error=psycopg2.errors.UndefinedTable("relation does not exist")))

    with pytest.raises(psycopg2.errors.UndefinedTable):
        PostgresListingIndex().get("x")

    assert connection.rollbacks == 1


def test_failed_save_and_count_roll_back(use_connection):
    connection = use_connection(DummyConnection(error=psycopg2.DataError("bad value")))
    index = PostgresListingIndex()

    with pytest.raises(psycopg2.DataError):
        index.save(ListingRecord(id="biz-1", name="Acme"))
    with pytest.raises(psycopg2.DataError):
        index.count()

    assert connection.commits == 0
    assert connection.rollbacks == 2


def test_failed_search_rolls_back_once(use_connection):
    connection = use_connection(DummyConnection(error=psycopg2.OperationalError("server closed the connection")))

    with pytest.raises(BackendUnavailable):
        PostgresListingIndex().execute(QueryPlan())

    assert connection.rollbacks == 1

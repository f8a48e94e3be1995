import argparse

import pytest

from listing_search.core.config import Settings
from listing_search.jobs import seed_sample_data
from listing_search.models import ListingRecord
from listing_search.sample_data import sample_listings, seed_sample_listings
from listing_search.search.memory_index import InMemoryListingIndex


def test_sample_listings_are_the_bengaluru_set():
    records = sample_listings()

    assert [record.name for record in records] == [
        "Sunrise Cafe",
        "TechFix Solutions",
        "Spice Route Restaurant",
        "GreenLeaf Grocers",
    ]
    assert all(record.location is not None for record in records)
    assert len({record.id for record in records}) == 4


def test_seed_skips_populated_store():
    index = InMemoryListingIndex()
    index.save(ListingRecord(id="existing", name="Existing"))

    assert seed_sample_listings(index) == 0
    assert index.count() == 1


def test_seed_force_loads_anyway():
    index = InMemoryListingIndex()
    index.save(ListingRecord(id="existing", name="Existing"))

    assert seed_sample_listings(index, force=True) == 4
    assert index.count() == 5


def test_run_seed_job_ensures_schema(monkeypatch):
    calls = []

    class SchemaIndex(InMemoryListingIndex):
        def ensure_schema(self):
            calls.append("schema")

    index = SchemaIndex()
    monkeypatch.setattr(seed_sample_data, "close_pool", lambda: calls.append("close"))
    monkeypatch.setattr(seed_sample_data, "get_settings", lambda: Settings(backend="postgres", database_url="x"))
    monkeypatch.setattr(seed_sample_data, "build_index", lambda settings: index)

    assert seed_sample_data.run_seed_job(force=False) == 4
    assert calls == ["schema", "close"]
    assert index.count() == 4


def test_build_parser_defaults():
    parser = seed_sample_data.build_parser()
    assert isinstance(parser, argparse.ArgumentParser)
    assert parser.parse_args([]).force is False
    assert parser.parse_args(["--force"]).force is True


def test_run_seed_job_closes_pool_on_failure(monkeypatch):
    calls = []

    class FailingIndex(InMemoryListingIndex):
        def ensure_schema(self):
            raise RuntimeError("schema failed")

    monkeypatch.setattr(seed_sample_data, "get_settings", lambda: Settings(backend="postgres", database_url="x"))
    monkeypatch.setattr(seed_sample_data, "build_index", lambda settings: FailingIndex())
    monkeypatch.setattr(seed_sample_data, "close_pool", lambda: calls.append("close"))

    with pytest.raises(RuntimeError):
        seed_sample_data.run_seed_job(force=False)

    assert calls == ["close"]

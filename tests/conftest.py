import sys
from pathlib import Path

import pytest

# Ensure `listing_search` is importable when running pytest from the repository root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from listing_search.sample_data import sample_listings  # noqa: E402
from listing_search.search.memory_index import InMemoryListingIndex  # noqa: E402
from listing_search.service import ListingService  # noqa: E402


@pytest.fixture
def sample_index():
    index = InMemoryListingIndex()
    for record in sample_listings():
        index.save(record)
    return index


@pytest.fixture
def sample_service(sample_index):
    return ListingService(sample_index)

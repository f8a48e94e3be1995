"""Contract for the document store the listing service searches through."""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from listing_search.models import ListingRecord, QueryPlan, SearchHits


@runtime_checkable
class SearchIndex(Protocol):
    """Document store holding listings keyed by id.

    ``execute`` returns at most ``plan.page_size`` hits for ``plan.page_index``,
    ordered per ``plan.sort``, together with the total match count. Transport
    and availability failures raise ``BackendUnavailable``.
    """

    def save(self, record: ListingRecord) -> ListingRecord:
        ...

    def get(self, listing_id: str) -> Optional[ListingRecord]:
        ...

    def count(self) -> int:
        ...

    def execute(self, plan: QueryPlan) -> SearchHits:
        ...

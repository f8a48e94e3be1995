"""Map raw index hits into the public ResultPage."""

from typing import Iterable, Tuple

from listing_search.models import ListingRecord, ResultPage, SearchHits


def assemble(
    hits: Iterable[Tuple[ListingRecord, float]],
    total_hits: int,
    page_index: int,
    page_size: int,
) -> ResultPage:
    # Scores only drive ranking and are not part of the response.
    items = tuple(record for record, _score in hits)
    return ResultPage(
        items=items,
        total_hits=max(total_hits, 0),
        page_index=page_index,
        page_size=page_size,
    )


def assemble_hits(result: SearchHits, page_index: int, page_size: int) -> ResultPage:
    return assemble(result.hits, result.total_hits, page_index, page_size)

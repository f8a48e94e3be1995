"""In-memory listing index used for local development and tests."""

from __future__ import annotations

import logging
import re
import threading
from typing import Dict, List, Optional, Tuple

from listing_search.models import (
    GeoClause,
    ListingRecord,
    QueryPlan,
    SearchHits,
    SortOrder,
    TextClause,
)

logger = logging.getLogger(__name__)

_TOKEN_REGEX = re.compile(r"\w+", re.UNICODE)

# Score for listings admitted without a text clause, mirroring a match-all query.
_CONSTANT_SCORE = 1.0


def tokenize(text: Optional[str]) -> List[str]:
    if not text:
        return []
    return _TOKEN_REGEX.findall(text.lower())


def _field_score(query_tokens: List[str], value: Optional[str]) -> float:
    field_tokens = set(tokenize(value))
    if not field_tokens:
        return 0.0
    matched = sum(1 for token in query_tokens if token in field_tokens)
    if not matched:
        return 0.0
    # Coverage of the query, boosted when the field is mostly made of query terms.
    coverage = matched / len(query_tokens)
    density = matched / len(field_tokens)
    return coverage * (1.0 + density)


def score_text(clause: TextClause, record: ListingRecord) -> float:
    query_tokens = list(dict.fromkeys(tokenize(clause.text)))
    score = 0.0
    for field_name in clause.fields:
        if field_name == "categories":
            # Keyword field: the whole query has to equal a tag.
            if clause.text in record.categories:
                score += 1.0
        elif query_tokens:
            score += _field_score(query_tokens, getattr(record, field_name))
    return score


def within(clause: GeoClause, record: ListingRecord) -> bool:
    if record.location is None:
        return False
    return record.location.distance_km(clause.center) <= clause.radius_km


class InMemoryListingIndex:
    """Thread-safe dict-backed index keeping listings in insertion order."""

    def __init__(self) -> None:
        self._records: Dict[str, ListingRecord] = {}
        self._sequence: Dict[str, int] = {}
        self._next_sequence = 0
        self._lock = threading.RLock()

    def save(self, record: ListingRecord) -> ListingRecord:
        with self._lock:
            if record.id not in self._sequence:
                self._sequence[record.id] = self._next_sequence
                self._next_sequence += 1
            self._records[record.id] = record
        logger.debug("Stored listing %s", record.id)
        return record

    def get(self, listing_id: str) -> Optional[ListingRecord]:
        with self._lock:
            return self._records.get(listing_id)

    def count(self) -> int:
        with self._lock:
            return len(self._records)

    def execute(self, plan: QueryPlan) -> SearchHits:
        with self._lock:
            snapshot = [(record, self._sequence[record.id]) for record in self._records.values()]

        matches: List[Tuple[ListingRecord, float, int]] = []
        for record, sequence in snapshot:
            score = _CONSTANT_SCORE
            if plan.text_clause is not None:
                score = score_text(plan.text_clause, record)
                if score <= 0.0:
                    continue
            if plan.geo_clause is not None and not within(plan.geo_clause, record):
                continue
            matches.append((record, score, sequence))

        if plan.sort is SortOrder.DISTANCE and plan.sort_origin is not None:
            origin = plan.sort_origin

            def distance_key(match):
                location = match[0].location
                if location is None:
                    return (1, 0.0, match[0].id)
                return (0, location.distance_km(origin), match[0].id)

            matches.sort(key=distance_key)
        else:
            matches.sort(key=lambda match: (-match[1], match[2]))

        page = matches[plan.offset:plan.offset + plan.page_size]
        return SearchHits(hits=[(record, score) for record, score, _ in page], total_hits=len(matches))

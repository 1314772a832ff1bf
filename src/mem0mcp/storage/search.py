"""Naive text search over a user's records.

Every query re-reads records from the store; the summary index is never
consulted.  Matching is a case-insensitive substring test against the
stored memory and its ``originalText``.  The relevance score is the number
of non-overlapping occurrences of the (escaped) query in both fields.
"""

from __future__ import annotations

import logging
import re
from typing import Protocol

from mem0mcp.storage.schemas import MemoryRecord
from mem0mcp.storage.schemas import SearchHit

logger = logging.getLogger(__name__)

SEARCH_SCAN_LIMIT = 1000


class RecordSource(Protocol):
    """Anything that can list a user's records."""

    async def get_all(self, user_id: str, limit: int = 50) -> list[MemoryRecord]:
        """Return up to *limit* records for *user_id*."""


def score_record(record: MemoryRecord, pattern: re.Pattern[str]) -> int:
    combined = f"{record.memory.casefold()} {record.original_text.casefold()}"
    return len(pattern.findall(combined))


def _matches(record: MemoryRecord, needle: str) -> bool:
    return (
        needle in record.memory.casefold()
        or needle in record.original_text.casefold()
    )


class SearchEngine:
    """Substring search with frequency-based ranking."""

    def __init__(self, source: RecordSource, *, scan_limit: int = SEARCH_SCAN_LIMIT) -> None:
        self._source = source
        self._scan_limit = scan_limit

    async def search(self, query: str, user_id: str, limit: int = 10) -> list[SearchHit]:
        records = await self._source.get_all(user_id, self._scan_limit)
        needle = query.casefold()

        if not needle.strip():
            # Empty queries match everything; order by recency only.
            hits = [self._hit(record, 0) for record in records]
        else:
            pattern = re.compile(re.escape(needle))
            hits = [
                self._hit(record, score_record(record, pattern))
                for record in records
                if _matches(record, needle)
            ]

        hits.sort(key=lambda hit: (hit.relevance_score, hit.created_at), reverse=True)
        results = hits[:limit]
        logger.debug(
            "Found %d matching memories for query %r (user: %s)",
            len(results),
            query,
            user_id,
        )
        return results

    @staticmethod
    def _hit(record: MemoryRecord, score: int) -> SearchHit:
        return SearchHit(**record.model_dump(), relevance_score=score)

"""Per-user summary index kept next to the record files.

``index/<userId>.json`` holds ``{"memories": {id: {preview, timestamp,
wordCount}}}``.  The index is an inspection aid only: reads never consult
it, and it is allowed to drift from the records.  Both write operations
return an ``IndexResult`` instead of raising so callers decide what to do
with a failure.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from mem0mcp.storage.schemas import IndexEntry

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 100


@dataclass(frozen=True)
class IndexResult:
    """Outcome of an index write."""

    ok: bool
    error: Exception | None = None

    @classmethod
    def success(cls) -> IndexResult:
        return cls(ok=True)

    @classmethod
    def failure(cls, error: Exception) -> IndexResult:
        return cls(ok=False, error=error)


def build_entry(memory: str, timestamp: str) -> IndexEntry:
    return IndexEntry(
        preview=memory[:PREVIEW_LENGTH],
        timestamp=timestamp,
        word_count=len(memory.split()),
    )


class UserIndex:
    """Maintains ``index/<userId>.json`` files under *index_dir*."""

    def __init__(self, index_dir: Path) -> None:
        self._index_dir = index_dir

    @property
    def index_dir(self) -> Path:
        return self._index_dir

    def path_for(self, user_id: str) -> Path:
        return self._index_dir / f"{user_id}.json"

    async def read(self, user_id: str) -> dict[str, Any]:
        """Return the index for *user_id*, or an empty one."""
        return await asyncio.to_thread(self._load, self.path_for(user_id))

    async def upsert(
        self, user_id: str, memory_id: str, memory: str, timestamp: str
    ) -> IndexResult:
        entry = build_entry(memory, timestamp).model_dump(by_alias=True)
        try:
            await asyncio.to_thread(
                self._upsert, self.path_for(user_id), memory_id, entry
            )
        except (OSError, TypeError, ValueError) as exc:
            return IndexResult.failure(exc)
        return IndexResult.success()

    async def remove(self, user_id: str, memory_id: str) -> IndexResult:
        try:
            await asyncio.to_thread(self._remove, self.path_for(user_id), memory_id)
        except (OSError, TypeError, ValueError) as exc:
            return IndexResult.failure(exc)
        return IndexResult.success()

    # ------------------------------------------------------------------
    # Blocking helpers (run in a worker thread)
    # ------------------------------------------------------------------

    @staticmethod
    def _load(path: Path) -> dict[str, Any]:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return {"memories": {}}
        if not isinstance(data, dict) or not isinstance(data.get("memories"), dict):
            return {"memories": {}}
        return data

    @classmethod
    def _upsert(cls, path: Path, memory_id: str, entry: dict[str, Any]) -> None:
        index = cls._load(path)
        index["memories"][memory_id] = entry
        cls._write(path, index)

    @classmethod
    def _remove(cls, path: Path, memory_id: str) -> None:
        if not path.exists():
            return
        index = cls._load(path)
        if memory_id not in index["memories"]:
            return
        del index["memories"][memory_id]
        cls._write(path, index)

    @staticmethod
    def _write(path: Path, index: dict[str, Any]) -> None:
        path.write_text(json.dumps(index, indent=2), encoding="utf-8")

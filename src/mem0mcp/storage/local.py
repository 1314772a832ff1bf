"""Local file-backed storage provider.

Layout under the resolved base directory::

    users/<userId>/<recordId>.json   one record, pretty-printed JSON
    index/<userId>.json              summary index (see ``storage.index``)

Blocking filesystem calls run through ``asyncio.to_thread``.  There is no
locking between concurrent writers: the last write to a record wins.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import uuid
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from mem0mcp.storage.errors import StorageNotInitializedError
from mem0mcp.storage.index import IndexResult
from mem0mcp.storage.index import UserIndex
from mem0mcp.storage.schemas import MemoryRecord
from mem0mcp.storage.schemas import SearchHit
from mem0mcp.storage.schemas import utc_now_iso
from mem0mcp.storage.search import SearchEngine
from mem0mcp.storage.workspace import WorkspaceEnv
from mem0mcp.storage.workspace import WorkspaceResolver

logger = logging.getLogger(__name__)

_RECORD_SUFFIX = ".json"


def _check_segment(value: str, name: str) -> str:
    """Reject ids that would escape their directory."""
    if not value or value in {".", ".."} or "/" in value or "\\" in value or "\x00" in value:
        raise ValueError(f"Invalid {name}: {value!r}")
    return value


class LocalStorageProvider:
    """Stores each memory as one JSON file under a per-user directory."""

    def __init__(
        self,
        storage_directory: str | None = None,
        *,
        workspace_env: WorkspaceEnv | None = None,
    ) -> None:
        resolver = WorkspaceResolver(
            workspace_env or WorkspaceEnv.from_environ(),
            explicit_dir=storage_directory,
        )
        resolution = resolver.resolve()
        self._base_dir = resolution.base_dir
        self._source = resolution.source
        self._users_dir = self._base_dir / "users"
        self._index = UserIndex(self._base_dir / "index")
        self._search = SearchEngine(self)
        self._initialized = False

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def index(self) -> UserIndex:
        return self._index

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Create ``users/`` and ``index/`` under the base directory."""
        for directory in (self._base_dir, self._users_dir, self._index.index_dir):
            await asyncio.to_thread(directory.mkdir, parents=True, exist_ok=True)
        self._initialized = True
        logger.info(
            "Local storage initialized at %s (source=%s)",
            self._base_dir.resolve(),
            self._source,
        )

    async def cleanup(self) -> None:
        self._initialized = False
        logger.info("Local storage provider cleaned up")

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise StorageNotInitializedError("Local storage provider")

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def user_dir(self, user_id: str) -> Path:
        return self._users_dir / _check_segment(user_id, "user_id")

    def record_path(self, user_id: str, memory_id: str) -> Path:
        return self.user_dir(user_id) / (
            _check_segment(memory_id, "memory_id") + _RECORD_SUFFIX
        )

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    async def save(
        self, user_id: str, memory: str, metadata: dict[str, Any] | None = None
    ) -> str:
        """Persist a new record and return its id."""
        self._require_initialized()
        memory_id = str(uuid.uuid4())
        timestamp = utc_now_iso()
        record = MemoryRecord(
            id=memory_id,
            user_id=user_id,
            memory=memory,
            metadata={**(metadata or {}), "createdAt": timestamp, "updatedAt": timestamp},
        )

        path = self.record_path(user_id, memory_id)
        await asyncio.to_thread(path.parent.mkdir, parents=True, exist_ok=True)
        await asyncio.to_thread(path.write_text, record.to_json(), encoding="utf-8")
        self._log_index_result(
            await self._index.upsert(user_id, memory_id, memory, timestamp), user_id
        )

        logger.debug("Saved memory %s for user %s to %s", memory_id, user_id, path)
        return memory_id

    async def update(
        self,
        memory_id: str,
        user_id: str,
        memory: str,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        """Replace content and merge metadata; ``False`` if the record is missing."""
        self._require_initialized()
        path = self.record_path(user_id, memory_id)
        existing = await asyncio.to_thread(self._read_record, path)
        if existing is None:
            logger.warning("Memory %s not found for user %s", memory_id, user_id)
            return False

        updated_at = utc_now_iso()
        updated = existing.model_copy(
            update={
                "memory": memory,
                "metadata": {
                    **existing.metadata,
                    **(metadata or {}),
                    "createdAt": existing.metadata.get("createdAt"),
                    "updatedAt": updated_at,
                },
            }
        )
        await asyncio.to_thread(path.write_text, updated.to_json(), encoding="utf-8")
        self._log_index_result(
            await self._index.upsert(user_id, memory_id, memory, updated_at), user_id
        )

        logger.debug("Updated memory %s for user %s", memory_id, user_id)
        return True

    async def delete(self, memory_id: str, user_id: str) -> bool:
        """Remove a record; ``False`` if it does not exist."""
        self._require_initialized()
        path = self.record_path(user_id, memory_id)
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            logger.warning("Memory %s not found for user %s", memory_id, user_id)
            return False

        self._log_index_result(await self._index.remove(user_id, memory_id), user_id)
        logger.debug("Deleted memory %s for user %s", memory_id, user_id)
        return True

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get_all(self, user_id: str, limit: int = 50) -> list[MemoryRecord]:
        """Return up to *limit* records, newest first.

        The limit is applied to the directory listing before records are
        sorted, so when a user has more than *limit* records the result is
        a directory-order subset rather than the *limit* most recent ones.
        """
        self._require_initialized()
        user_dir = self.user_dir(user_id)
        if not await asyncio.to_thread(user_dir.is_dir):
            return []

        names = await asyncio.to_thread(os.listdir, user_dir)
        record_files = [n for n in names if n.endswith(_RECORD_SUFFIX)][: max(limit, 0)]

        records: list[MemoryRecord] = []
        for name in record_files:
            record = await asyncio.to_thread(self._read_record, user_dir / name)
            if record is not None:
                records.append(record)

        records.sort(key=lambda r: r.created_at, reverse=True)
        logger.debug("Retrieved %d memories for user %s", len(records), user_id)
        return records

    async def get(self, memory_id: str, user_id: str) -> MemoryRecord | None:
        self._require_initialized()
        return await asyncio.to_thread(
            self._read_record, self.record_path(user_id, memory_id)
        )

    async def search(self, query: str, user_id: str, limit: int = 10) -> list[SearchHit]:
        self._require_initialized()
        return await self._search.search(query, user_id, limit)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _read_record(path: Path) -> MemoryRecord | None:
        """Load one record file; missing or corrupt files yield ``None``."""
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        try:
            return MemoryRecord.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as exc:
            logger.warning("Skipping unreadable memory file %s: %s", path, exc)
            return None

    @staticmethod
    def _log_index_result(result: IndexResult, user_id: str) -> None:
        if not result.ok:
            logger.warning("Failed to update index for user %s: %s", user_id, result.error)

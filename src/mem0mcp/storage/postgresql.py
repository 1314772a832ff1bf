"""PostgreSQL storage provider placeholder.

Kept so ``STORAGE_PROVIDER=postgresql`` fails fast with a clear message
instead of silently falling back to local storage.
"""

from __future__ import annotations

import logging
from typing import Any

from mem0mcp.storage.errors import ProviderNotImplementedError
from mem0mcp.storage.schemas import MemoryRecord
from mem0mcp.storage.schemas import SearchHit

logger = logging.getLogger(__name__)

_NOT_IMPLEMENTED = (
    "PostgreSQL storage provider is not yet implemented. "
    "Please use STORAGE_PROVIDER=local"
)


class PostgreSQLStorageProvider:
    """Storage backend that refuses every operation."""

    def __init__(self, database_url: str | None = None) -> None:
        self._database_url = database_url

    @property
    def initialized(self) -> bool:
        return False

    async def initialize(self) -> None:
        if not self._database_url:
            raise ProviderNotImplementedError(
                "DATABASE_URL environment variable is required for "
                "PostgreSQL storage provider"
            )
        logger.warning("PostgreSQL storage provider is not yet implemented")
        raise ProviderNotImplementedError(_NOT_IMPLEMENTED)

    async def save(
        self, user_id: str, memory: str, metadata: dict[str, Any] | None = None
    ) -> str:
        raise ProviderNotImplementedError(_NOT_IMPLEMENTED)

    async def get_all(self, user_id: str, limit: int = 50) -> list[MemoryRecord]:
        raise ProviderNotImplementedError(_NOT_IMPLEMENTED)

    async def get(self, memory_id: str, user_id: str) -> MemoryRecord | None:
        raise ProviderNotImplementedError(_NOT_IMPLEMENTED)

    async def search(self, query: str, user_id: str, limit: int = 10) -> list[SearchHit]:
        raise ProviderNotImplementedError(_NOT_IMPLEMENTED)

    async def update(
        self,
        memory_id: str,
        user_id: str,
        memory: str,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        raise ProviderNotImplementedError(_NOT_IMPLEMENTED)

    async def delete(self, memory_id: str, user_id: str) -> bool:
        raise ProviderNotImplementedError(_NOT_IMPLEMENTED)

    async def cleanup(self) -> None:
        return None

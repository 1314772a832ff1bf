"""Storage provider protocol shared by all backends."""

from __future__ import annotations

from typing import Any
from typing import Protocol
from typing import runtime_checkable

from mem0mcp.storage.schemas import MemoryRecord
from mem0mcp.storage.schemas import SearchHit


@runtime_checkable
class StorageProvider(Protocol):
    """Persistence contract consumed by ``MemoryService``.

    Not-found conditions are return values (``False``, ``None``, ``[]``);
    exceptions mean the storage itself is broken or not ready.
    """

    @property
    def initialized(self) -> bool: ...

    async def initialize(self) -> None: ...

    async def save(
        self, user_id: str, memory: str, metadata: dict[str, Any] | None = None
    ) -> str: ...

    async def get_all(self, user_id: str, limit: int = 50) -> list[MemoryRecord]: ...

    async def get(self, memory_id: str, user_id: str) -> MemoryRecord | None: ...

    async def search(
        self, query: str, user_id: str, limit: int = 10
    ) -> list[SearchHit]: ...

    async def update(
        self,
        memory_id: str,
        user_id: str,
        memory: str,
        metadata: dict[str, Any] | None = None,
    ) -> bool: ...

    async def delete(self, memory_id: str, user_id: str) -> bool: ...

    async def cleanup(self) -> None: ...

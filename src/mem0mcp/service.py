"""Memory service shared by the MCP tools and the HTTP API.

Sequences "process text -> persist" for writes and "query -> rank ->
slice" for reads.  All persistence is delegated to the storage provider.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from mem0mcp.processing import MemoryProcessor
from mem0mcp.storage import StorageProvider
from mem0mcp.storage.schemas import MemoryRecord
from mem0mcp.storage.schemas import utc_now_iso

logger = logging.getLogger(__name__)

SERVICE_NAME = "mem0-mcp-server"
SERVICE_VERSION = "0.1.0"
MESSAGE_PREVIEW_LENGTH = 100


@dataclass(frozen=True)
class SaveResult:
    """Identifier and human-readable confirmation of a saved memory."""

    id: str
    message: str


def save_message(text: str) -> str:
    if len(text) > MESSAGE_PREVIEW_LENGTH:
        return f"Successfully saved memory: {text[:MESSAGE_PREVIEW_LENGTH]}..."
    return f"Successfully saved memory: {text}"


class MemoryService:
    """Business logic for memory operations."""

    def __init__(
        self,
        storage: StorageProvider,
        processor: MemoryProcessor | None = None,
    ) -> None:
        self.storage = storage
        self.processor = processor

    async def _process(self, text: str) -> str:
        if self.processor is None:
            return text
        return await self.processor.process(text)

    async def save_memory(
        self, text: str, user_id: str, metadata: dict[str, Any] | None = None
    ) -> SaveResult:
        processed = await self._process(text)
        memory_id = await self.storage.save(
            user_id,
            processed,
            {"timestamp": utc_now_iso(), **(metadata or {}), "originalText": text},
        )
        logger.info("Saved memory %s for user %s", memory_id, user_id)
        return SaveResult(id=memory_id, message=save_message(text))

    async def get_all_memories(self, user_id: str, limit: int = 50) -> list[MemoryRecord]:
        memories = await self.storage.get_all(user_id, limit)
        logger.info("Retrieved %d memories for user %s", len(memories), user_id)
        return memories

    async def search_memories(
        self, query: str, user_id: str, limit: int = 3
    ) -> list[MemoryRecord]:
        memories: list[MemoryRecord] | None = None
        if self.processor is not None:
            memories = await self.processor.search(query, user_id, limit)
        if memories is None:
            memories = await self.storage.search(query, user_id, limit)
        memories = list(memories or [])
        logger.info(
            "Found %d memories for query %r (user: %s)", len(memories), query, user_id
        )
        return memories

    async def get_memory_by_id(self, memory_id: str, user_id: str) -> MemoryRecord | None:
        memory = await self.storage.get(memory_id, user_id)
        if memory is None:
            logger.warning("Memory %s not found for user %s", memory_id, user_id)
        return memory

    async def update_memory(
        self,
        memory_id: str,
        user_id: str,
        text: str,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        processed = await self._process(text)
        success = await self.storage.update(
            memory_id, user_id, processed, {**(metadata or {}), "originalText": text}
        )
        if success:
            logger.info("Updated memory %s for user %s", memory_id, user_id)
        else:
            logger.warning("Failed to update memory %s for user %s", memory_id, user_id)
        return success

    async def delete_memory(self, memory_id: str, user_id: str) -> bool:
        success = await self.storage.delete(memory_id, user_id)
        if success:
            logger.info("Deleted memory %s for user %s", memory_id, user_id)
        else:
            logger.warning("Failed to delete memory %s for user %s", memory_id, user_id)
        return success

    def health_info(self) -> dict[str, Any]:
        initialized = bool(getattr(self.storage, "initialized", False))
        return {
            "status": "healthy" if initialized else "unhealthy",
            "timestamp": utc_now_iso(),
            "storage": {
                "provider": type(self.storage).__name__,
                "initialized": initialized,
            },
            "processor": {
                "enabled": self.processor is not None,
                "status": "connected" if self.processor is not None else "disabled",
            },
        }

    def server_info(self) -> dict[str, Any]:
        return {
            "name": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "description": "MCP server for long term memory storage and retrieval",
            "capabilities": {
                "tools": [
                    "save_memory",
                    "get_all_memories",
                    "search_memories",
                    "update_memory",
                    "delete_memory",
                ],
                "transports": ["stdio", "sse", "streamable-http", "http"],
                "storage": type(self.storage).__name__,
                "processor": self.processor is not None,
            },
            "timestamp": utc_now_iso(),
        }

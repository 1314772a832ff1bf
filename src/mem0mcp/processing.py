"""Memory-processing client.

The processing step sits between the caller's text and storage.  The
shipped ``PassthroughProcessor`` stores text unchanged and defers every
search to the storage provider by returning ``None``.
"""

from __future__ import annotations

import logging
from typing import Protocol
from typing import runtime_checkable

from mem0mcp.storage.schemas import MemoryRecord

logger = logging.getLogger(__name__)


@runtime_checkable
class MemoryProcessor(Protocol):
    """Contract for text processing and optional semantic search."""

    async def process(self, text: str) -> str:
        """Return the text that should be stored for *text*."""

    async def search(
        self, query: str, user_id: str, limit: int = 10
    ) -> list[MemoryRecord] | None:
        """Return ranked results, or ``None`` to defer to storage search."""


class PassthroughProcessor:
    """Identity processor used until an LLM-backed one is wired in."""

    def __init__(self) -> None:
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        self._initialized = True
        logger.info("Memory processor initialized (passthrough mode)")

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError("Memory processor not initialized. Call initialize() first.")

    async def process(self, text: str) -> str:
        self._require_initialized()
        logger.debug("Processing memory (passthrough)")
        return text

    async def search(
        self, query: str, user_id: str, limit: int = 10
    ) -> list[MemoryRecord] | None:
        self._require_initialized()
        return None


async def create_processor() -> PassthroughProcessor:
    """Build and initialize the default processor."""
    processor = PassthroughProcessor()
    await processor.initialize()
    return processor

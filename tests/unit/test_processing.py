"""Unit tests for the memory processor."""

from __future__ import annotations

import pytest

from mem0mcp.processing import MemoryProcessor
from mem0mcp.processing import PassthroughProcessor
from mem0mcp.processing import create_processor


class TestPassthroughProcessor:
    async def test_requires_initialize(self):
        processor = PassthroughProcessor()
        with pytest.raises(RuntimeError, match="not initialized"):
            await processor.process("text")
        with pytest.raises(RuntimeError, match="not initialized"):
            await processor.search("q", "alice")

    async def test_process_is_identity(self):
        processor = await create_processor()
        assert processor.initialized
        assert await processor.process("  keep me  ") == "  keep me  "

    async def test_search_defers_to_storage(self):
        processor = await create_processor()
        assert await processor.search("q", "alice", 5) is None

    def test_satisfies_protocol(self):
        assert isinstance(PassthroughProcessor(), MemoryProcessor)

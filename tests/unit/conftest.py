"""Unit test fixtures: FastMCP client wired to tmp_path storage."""

from __future__ import annotations

import pytest
from fastmcp import Client

from mem0mcp.config import ServerConfig
from mem0mcp.config import StorageConfig


@pytest.fixture()
async def mcp_client(workspace_env):
    """Yield a FastMCP Client wired to the memory server."""
    from mem0mcp.server import configure
    from mem0mcp.server import mcp
    from mem0mcp.server import shutdown

    await configure(ServerConfig(storage=StorageConfig(workspace_env=workspace_env)))

    async with Client(mcp) as client:
        yield client

    await shutdown()

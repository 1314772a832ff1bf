"""Root conftest: suite markers and isolated storage fixtures.

Every test gets its own storage tree under ``tmp_path``; nothing reads the
real process environment for workspace discovery.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from mem0mcp.processing import PassthroughProcessor
from mem0mcp.service import MemoryService
from mem0mcp.storage import LocalStorageProvider
from mem0mcp.storage.workspace import WorkspaceEnv


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """Attach suite markers from test path.

    - `tests/unit/*` -> `unit`
    - `tests/integration/*` -> `integration`
    """
    root = Path(__file__).resolve().parents[1]
    for item in items:
        item_path = Path(str(item.fspath)).resolve()
        try:
            rel = item_path.relative_to(root)
        except ValueError:
            continue

        parts = rel.parts
        if len(parts) < 2 or parts[0] != "tests":
            continue
        if parts[1] == "unit":
            item.add_marker(pytest.mark.unit)
        elif parts[1] == "integration":
            item.add_marker(pytest.mark.integration)


@pytest.fixture()
def storage_root(tmp_path) -> Path:
    """Absolute storage directory handed to providers via LOCAL_STORAGE_DIR."""
    return tmp_path / "memories"


@pytest.fixture()
def workspace_env(tmp_path, storage_root) -> WorkspaceEnv:
    return WorkspaceEnv(cwd=str(tmp_path), storage_dir=str(storage_root))


@pytest.fixture()
async def storage(workspace_env) -> LocalStorageProvider:
    """Yield an initialized LocalStorageProvider rooted in tmp_path."""
    provider = LocalStorageProvider(workspace_env=workspace_env)
    await provider.initialize()
    yield provider
    await provider.cleanup()


@pytest.fixture()
async def service(storage) -> MemoryService:
    processor = PassthroughProcessor()
    await processor.initialize()
    return MemoryService(storage, processor)

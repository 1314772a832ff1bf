"""Unit tests for storage provider selection."""

from __future__ import annotations

import pytest

from mem0mcp.config import StorageConfig
from mem0mcp.storage import LocalStorageProvider
from mem0mcp.storage import PostgreSQLStorageProvider
from mem0mcp.storage import ProviderNotImplementedError
from mem0mcp.storage import StorageError
from mem0mcp.storage import build_storage_provider
from mem0mcp.storage import create_storage_provider


class TestBuildStorageProvider:
    def test_local(self, workspace_env):
        provider = build_storage_provider(StorageConfig(workspace_env=workspace_env))
        assert isinstance(provider, LocalStorageProvider)

    def test_provider_name_is_case_insensitive(self, workspace_env):
        cfg = StorageConfig(provider=" LOCAL ", workspace_env=workspace_env)
        assert isinstance(build_storage_provider(cfg), LocalStorageProvider)

    def test_postgresql(self, workspace_env):
        cfg = StorageConfig(provider="postgresql", workspace_env=workspace_env)
        assert isinstance(build_storage_provider(cfg), PostgreSQLStorageProvider)

    def test_unknown(self, workspace_env):
        cfg = StorageConfig(provider="mongo", workspace_env=workspace_env)
        with pytest.raises(ValueError, match="Unknown storage provider: mongo"):
            build_storage_provider(cfg)


class TestCreateStorageProvider:
    async def test_local_is_initialized(self, workspace_env, storage_root):
        provider = await create_storage_provider(StorageConfig(workspace_env=workspace_env))
        assert provider.initialized
        assert (storage_root / "users").is_dir()

    async def test_postgresql_without_url(self, workspace_env):
        cfg = StorageConfig(provider="postgresql", workspace_env=workspace_env)
        with pytest.raises(ProviderNotImplementedError, match="DATABASE_URL"):
            await create_storage_provider(cfg)

    async def test_postgresql_with_url(self, workspace_env):
        cfg = StorageConfig(
            provider="postgresql",
            database_url="postgresql://localhost/mem0",
            workspace_env=workspace_env,
        )
        with pytest.raises(ProviderNotImplementedError, match="not yet implemented"):
            await create_storage_provider(cfg)


class TestPostgreSQLStorageProvider:
    async def test_every_operation_refuses(self):
        provider = PostgreSQLStorageProvider("postgresql://localhost/mem0")
        assert provider.initialized is False
        with pytest.raises(StorageError):
            await provider.save("alice", "text")
        with pytest.raises(StorageError):
            await provider.search("q", "alice")
        with pytest.raises(StorageError):
            await provider.delete("id", "alice")
        await provider.cleanup()

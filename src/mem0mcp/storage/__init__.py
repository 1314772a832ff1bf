"""Storage domain: providers, workspace discovery, search and index."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from mem0mcp.storage.base import StorageProvider
from mem0mcp.storage.errors import ProviderNotImplementedError
from mem0mcp.storage.errors import StorageError
from mem0mcp.storage.errors import StorageNotInitializedError
from mem0mcp.storage.local import LocalStorageProvider
from mem0mcp.storage.postgresql import PostgreSQLStorageProvider
from mem0mcp.storage.schemas import MemoryRecord
from mem0mcp.storage.schemas import SearchHit

if TYPE_CHECKING:
    from mem0mcp.config import StorageConfig

logger = logging.getLogger(__name__)

__all__ = [
    "LocalStorageProvider",
    "MemoryRecord",
    "PostgreSQLStorageProvider",
    "ProviderNotImplementedError",
    "SearchHit",
    "StorageError",
    "StorageNotInitializedError",
    "StorageProvider",
    "build_storage_provider",
    "create_storage_provider",
]


def build_storage_provider(config: StorageConfig) -> StorageProvider:
    """Construct (without initializing) the provider named by *config*."""
    provider_type = config.provider.strip().lower()
    if provider_type == "local":
        return LocalStorageProvider(
            config.storage_directory,
            workspace_env=config.workspace_env,
        )
    if provider_type == "postgresql":
        return PostgreSQLStorageProvider(config.database_url)
    raise ValueError(f"Unknown storage provider: {config.provider}")


async def create_storage_provider(config: StorageConfig) -> StorageProvider:
    """Construct and initialize the provider named by *config*."""
    provider = build_storage_provider(config)
    await provider.initialize()
    logger.info("Created and initialized %s storage provider", config.provider)
    return provider

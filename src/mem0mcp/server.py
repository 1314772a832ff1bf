"""mem0mcp: FastMCP server exposing memory tools.

Tools delegate to ``MemoryService`` for storage and search.  Call
``configure(...)`` before using the server.
"""

from __future__ import annotations

import logging
from time import perf_counter
from typing import Any

from fastmcp import FastMCP
from pydantic import ValidationError

from mem0mcp.auth import create_mcp_auth
from mem0mcp.config import DEFAULT_SERVER_NAME
from mem0mcp.config import ServerConfig
from mem0mcp.observability import record_latency
from mem0mcp.processing import create_processor
from mem0mcp.processing import MemoryProcessor
from mem0mcp.schemas import DeleteMemoryInput
from mem0mcp.schemas import GetAllMemoriesInput
from mem0mcp.schemas import MemoryListResult
from mem0mcp.schemas import MemoryMutationResult
from mem0mcp.schemas import SaveMemoryInput
from mem0mcp.schemas import SaveMemoryResult
from mem0mcp.schemas import SearchMemoriesInput
from mem0mcp.schemas import UpdateMemoryInput
from mem0mcp.service import MemoryService
from mem0mcp.storage import create_storage_provider
from mem0mcp.storage import StorageError
from mem0mcp.storage import StorageProvider

logger = logging.getLogger(__name__)

mcp = FastMCP(DEFAULT_SERVER_NAME)

# ---------------------------------------------------------------------------
# Service instance (set via configure())
# ---------------------------------------------------------------------------

_config: ServerConfig = ServerConfig()
_service: MemoryService | None = None


async def configure(
    config: ServerConfig | None = None,
    *,
    storage: StorageProvider | None = None,
    processor: MemoryProcessor | None = None,
) -> MemoryService:
    """Initialize storage and the memory service.

    Must be called before the MCP tools can function.  A pre-built
    *storage* is used as is (it must already be initialized).
    """
    global _config, _service
    await shutdown()

    _config = config or ServerConfig()
    _apply_identity(_config)
    if storage is None:
        storage = await create_storage_provider(_config.storage)
    if processor is None:
        processor = await create_processor()

    _service = MemoryService(storage, processor)
    logger.info("Memory server %r configured", _config.name)
    return _service


def _apply_identity(config: ServerConfig) -> None:
    """Give the MCP server the configured name and bearer-token verifier."""
    # FastMCP exposes ``name`` read-only; the low-level server owns it.
    mcp._mcp_server.name = config.name
    mcp.auth = create_mcp_auth(config.mcp_auth_key)
    if mcp.auth is None:
        logger.info("MCP auth disabled (MCP_AUTH_KEY not set)")


async def shutdown() -> None:
    """Release the storage provider."""
    global _service
    if _service is not None:
        await _service.storage.cleanup()
        _service = None


def get_service() -> MemoryService:
    """Return the configured service or raise."""
    if _service is None:
        raise RuntimeError("Memory service not configured. Call configure() first.")
    return _service


def get_config() -> ServerConfig:
    return _config


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _validation_message(exc: ValidationError) -> str:
    err = exc.errors()[0] if exc.errors() else {}
    loc = ".".join(str(part) for part in err.get("loc", ()))
    msg = str(err.get("msg", "Invalid input"))
    return f"{loc}: {msg}" if loc else msg


def _failure(exc: Exception) -> tuple[str, str]:
    """Map an exception escaping the service to ``(error_code, message)``."""
    if isinstance(exc, ValidationError):
        return "validation_error", _validation_message(exc)
    if isinstance(exc, ValueError):
        return "validation_error", str(exc)
    logger.error("Storage operation failed: %s", exc)
    return "storage_error", str(exc)


def _dump(records: list[Any]) -> list[dict[str, Any]]:
    return [record.model_dump(by_alias=True) for record in records]


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


@mcp.tool
async def save_memory(
    text: str,
    user_id: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> SaveMemoryResult:
    """Save information to long-term memory.

    Store any information that might be useful later. It is indexed for
    retrieval with search_memories.

    Args:
        text: The content to store, including relevant details and context.
        user_id: User ID for memory isolation (defaults to the configured user).
        metadata: Optional extra key-value metadata.
    """
    start = perf_counter()
    ok = False
    try:
        service = get_service()
        try:
            validated = SaveMemoryInput.model_validate(
                {
                    "text": text,
                    "user_id": user_id or _config.default_user_id,
                    "metadata": metadata or {},
                }
            )
            result = await service.save_memory(
                validated.text, validated.user_id, validated.metadata
            )
        except (ValueError, StorageError, OSError) as exc:
            code, message = _failure(exc)
            return SaveMemoryResult(status="error", error_code=code, message=message)

        ok = True
        return SaveMemoryResult(
            memory_id=result.id,
            user_id=validated.user_id,
            message=result.message,
        )
    finally:
        record_latency(
            operation="mcp.save_memory",
            duration_ms=(perf_counter() - start) * 1000,
            ok=ok,
        )


@mcp.tool
async def get_all_memories(
    user_id: str | None = None,
    limit: int = 50,
) -> MemoryListResult:
    """Get all stored memories for the user, newest first.

    Args:
        user_id: User ID for memory isolation (defaults to the configured user).
        limit: Maximum number of memories to return (1-1000).
    """
    start = perf_counter()
    ok = False
    try:
        service = get_service()
        try:
            validated = GetAllMemoriesInput.model_validate(
                {"user_id": user_id or _config.default_user_id, "limit": limit}
            )
            memories = await service.get_all_memories(validated.user_id, validated.limit)
        except (ValueError, StorageError, OSError) as exc:
            code, message = _failure(exc)
            return MemoryListResult(status="error", error_code=code, message=message)

        ok = True
        return MemoryListResult(
            user_id=validated.user_id,
            count=len(memories),
            memories=_dump(memories),
        )
    finally:
        record_latency(
            operation="mcp.get_all_memories",
            duration_ms=(perf_counter() - start) * 1000,
            ok=ok,
        )


@mcp.tool
async def search_memories(
    query: str,
    user_id: str | None = None,
    limit: int | None = None,
) -> MemoryListResult:
    """Search memories by text. Results are ranked by relevance.

    Always search memories before making decisions so existing knowledge
    is taken into account.

    Args:
        query: Text describing what you are looking for.
        user_id: User ID for memory isolation (defaults to the configured user).
        limit: Maximum number of results (defaults to the configured value).
    """
    start = perf_counter()
    ok = False
    try:
        service = get_service()
        try:
            validated = SearchMemoriesInput.model_validate(
                {
                    "query": query.strip(),
                    "user_id": user_id or _config.default_user_id,
                    "limit": limit if limit is not None else _config.max_search_results,
                }
            )
            memories = await service.search_memories(
                validated.query, validated.user_id, validated.limit
            )
        except (ValueError, StorageError, OSError) as exc:
            code, message = _failure(exc)
            return MemoryListResult(
                status="error", query=query, error_code=code, message=message
            )

        ok = True
        return MemoryListResult(
            user_id=validated.user_id,
            query=validated.query,
            count=len(memories),
            memories=_dump(memories),
        )
    finally:
        record_latency(
            operation="mcp.search_memories",
            duration_ms=(perf_counter() - start) * 1000,
            ok=ok,
        )


@mcp.tool
async def update_memory(
    memory_id: str,
    text: str,
    user_id: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> MemoryMutationResult:
    """Replace the content of an existing memory.

    Args:
        memory_id: ID of the memory to update.
        text: Replacement content.
        user_id: User ID for memory isolation (defaults to the configured user).
        metadata: Metadata merged over the existing metadata.
    """
    start = perf_counter()
    ok = False
    try:
        service = get_service()
        try:
            validated = UpdateMemoryInput.model_validate(
                {
                    "memory_id": memory_id,
                    "text": text,
                    "user_id": user_id or _config.default_user_id,
                    "metadata": metadata or {},
                }
            )
            updated = await service.update_memory(
                validated.memory_id,
                validated.user_id,
                validated.text,
                validated.metadata,
            )
        except (ValueError, StorageError, OSError) as exc:
            code, message = _failure(exc)
            return MemoryMutationResult(
                status="error", memory_id=memory_id, error_code=code, message=message
            )

        ok = True
        if not updated:
            return MemoryMutationResult(
                status="not_found",
                memory_id=validated.memory_id,
                user_id=validated.user_id,
                message=f"Memory {validated.memory_id} not found",
            )
        return MemoryMutationResult(
            memory_id=validated.memory_id,
            user_id=validated.user_id,
            message="Memory updated successfully",
        )
    finally:
        record_latency(
            operation="mcp.update_memory",
            duration_ms=(perf_counter() - start) * 1000,
            ok=ok,
        )


@mcp.tool
async def delete_memory(
    memory_id: str,
    user_id: str | None = None,
) -> MemoryMutationResult:
    """Delete a memory permanently.

    Args:
        memory_id: ID of the memory to delete.
        user_id: User ID for memory isolation (defaults to the configured user).
    """
    start = perf_counter()
    ok = False
    try:
        service = get_service()
        try:
            validated = DeleteMemoryInput.model_validate(
                {"memory_id": memory_id, "user_id": user_id or _config.default_user_id}
            )
            deleted = await service.delete_memory(validated.memory_id, validated.user_id)
        except (ValueError, StorageError, OSError) as exc:
            code, message = _failure(exc)
            return MemoryMutationResult(
                status="error", memory_id=memory_id, error_code=code, message=message
            )

        ok = True
        if not deleted:
            return MemoryMutationResult(
                status="not_found",
                memory_id=validated.memory_id,
                user_id=validated.user_id,
                message=f"Memory {validated.memory_id} not found",
            )
        return MemoryMutationResult(
            memory_id=validated.memory_id,
            user_id=validated.user_id,
            message="Memory deleted successfully",
        )
    finally:
        record_latency(
            operation="mcp.delete_memory",
            duration_ms=(perf_counter() - start) * 1000,
            ok=ok,
        )

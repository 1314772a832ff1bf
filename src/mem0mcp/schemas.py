"""Pydantic models for the MCP tool interface.

Input models validate tool arguments; output models shape responses.
FastMCP serializes the output models automatically.
"""

from __future__ import annotations

from typing import Any
from typing import Literal

from pydantic import BaseModel
from pydantic import Field

ToolStatus = Literal["ok", "not_found", "error"]

# ---------------------------------------------------------------------------
# Input models
# ---------------------------------------------------------------------------


class SaveMemoryInput(BaseModel):
    """Input for save_memory tool."""

    text: str = Field(
        min_length=1,
        description="The content to store, including any relevant details and context.",
    )
    user_id: str = Field(min_length=1, description="User ID for memory isolation.")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Extra key-value metadata stored alongside the memory.",
    )


class GetAllMemoriesInput(BaseModel):
    """Input for get_all_memories tool."""

    user_id: str = Field(min_length=1, description="User ID for memory isolation.")
    limit: int = Field(
        default=50, ge=1, le=1000, description="Maximum number of memories to return."
    )


class SearchMemoriesInput(BaseModel):
    """Input for search_memories tool."""

    query: str = Field(
        min_length=1,
        description="Text to look for; matched case-insensitively.",
    )
    user_id: str = Field(min_length=1, description="User ID for memory isolation.")
    limit: int = Field(default=3, ge=1, le=100, description="Maximum number of results.")


class UpdateMemoryInput(BaseModel):
    """Input for update_memory tool."""

    memory_id: str = Field(min_length=1, description="ID of the memory to update.")
    text: str = Field(min_length=1, description="Replacement memory content.")
    user_id: str = Field(min_length=1, description="User ID for memory isolation.")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Metadata merged over the existing metadata.",
    )


class DeleteMemoryInput(BaseModel):
    """Input for delete_memory tool."""

    memory_id: str = Field(min_length=1, description="ID of the memory to delete.")
    user_id: str = Field(min_length=1, description="User ID for memory isolation.")


# ---------------------------------------------------------------------------
# Output models
# ---------------------------------------------------------------------------


class SaveMemoryResult(BaseModel):
    """Output of save_memory tool."""

    status: ToolStatus = "ok"
    memory_id: str = ""
    user_id: str = ""
    message: str = ""
    error_code: str | None = None


class MemoryListResult(BaseModel):
    """Output of get_all_memories and search_memories tools."""

    status: ToolStatus = "ok"
    user_id: str = ""
    query: str | None = None
    count: int = 0
    memories: list[dict[str, Any]] = Field(default_factory=list)
    error_code: str | None = None
    message: str | None = None


class MemoryMutationResult(BaseModel):
    """Output of update_memory and delete_memory tools."""

    status: ToolStatus = "ok"
    memory_id: str = ""
    user_id: str = ""
    message: str = ""
    error_code: str | None = None

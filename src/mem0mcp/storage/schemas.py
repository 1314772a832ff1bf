"""Storage data models.

Records are persisted with camelCase keys (``userId``, ``createdAt``...)
so the on-disk layout stays compatible with existing ``.Mem0-Files``
trees.  Python code uses snake_case attributes through field aliases.
"""

from __future__ import annotations

from datetime import datetime
from datetime import timezone
from typing import Any

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utc_now_iso() -> str:
    """Return the current UTC time as ISO-8601 with a ``Z`` suffix."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: object) -> datetime:
    """Parse an ISO timestamp for sorting; unparsable values sort last."""
    if not isinstance(value, str) or not value:
        return _EPOCH
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return _EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class MemoryRecord(BaseModel):
    """One persisted memory, stored as ``users/<userId>/<id>.json``."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(description="UUID assigned at creation.")
    user_id: str = Field(alias="userId", description="Owning user.")
    memory: str = Field(description="Stored (processed) content.")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Open mapping; always holds originalText, createdAt, updatedAt.",
    )

    @property
    def original_text(self) -> str:
        value = self.metadata.get("originalText")
        return value if isinstance(value, str) else ""

    @property
    def created_at(self) -> datetime:
        return parse_timestamp(self.metadata.get("createdAt"))

    def to_json(self) -> str:
        """Pretty-printed on-disk representation."""
        return self.model_dump_json(by_alias=True, indent=2)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class SearchHit(MemoryRecord):
    """A record returned from text search, with its relevance score."""

    relevance_score: int = Field(default=0, alias="relevanceScore")


class IndexEntry(BaseModel):
    """Denormalized summary of one record inside ``index/<userId>.json``."""

    model_config = ConfigDict(populate_by_name=True)

    preview: str
    timestamp: str
    word_count: int = Field(alias="wordCount")

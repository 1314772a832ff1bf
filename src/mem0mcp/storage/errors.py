"""Storage error taxonomy.

Not-found is never an exception: providers return ``False``, ``None`` or
an empty list.  Raw ``OSError`` from the filesystem propagates untouched.
"""

from __future__ import annotations


class StorageError(RuntimeError):
    """Base class for storage provider failures."""


class StorageNotInitializedError(StorageError):
    """Raised when a data operation runs before ``initialize()``."""

    def __init__(self, provider: str = "Storage provider") -> None:
        super().__init__(f"{provider} not initialized. Call initialize() first.")


class ProviderNotImplementedError(StorageError):
    """Raised by storage backends that exist only as placeholders."""

# src/storage/base_record_store.py - v1
"""Abstract small-object (key-value) store interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class BaseRecordStore(ABC):
    """Unified interface for small-object store backends.

    Implementations replace a record wholesale on ``set`` and raise
    ``StoreError`` on backend failures.
    """

    @abstractmethod
    async def get(self, path: str) -> dict[str, Any] | None:
        """Return the record at ``path``, or None if absent."""

    @abstractmethod
    async def set(self, path: str, record: dict[str, Any]) -> None:
        """Replace the record at ``path``."""

    async def close(self) -> None:
        """Release backend resources."""

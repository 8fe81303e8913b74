# src/storage/base_blob_store.py - v1
"""Abstract blob (large-object) store interface."""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseBlobStore(ABC):
    """Unified interface for blob store backends."""

    @abstractmethod
    async def upload(self, path: str, content: bytes | str) -> None:
        """Write ``content`` at ``path``, replacing any existing object."""

    @abstractmethod
    async def get_download_url(self, path: str) -> str:
        """Return a durable URL from which the object can be fetched."""

# src/storage/local_blob_store.py - v1
"""Local filesystem blob store (default BLOB_BACKEND=local).

Download URLs are ``file://`` URIs, resolved by ``UrlFetcher``.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

from doccache.core.errors import StoreError
from doccache.storage.base_blob_store import BaseBlobStore

logger = logging.getLogger(__name__)


class LocalBlobStore(BaseBlobStore):
    """Write blobs to the local filesystem."""

    def __init__(self, root: Path | str) -> None:
        """Initialize with the root directory for all blobs."""
        self._root = Path(root).expanduser().resolve()
        self._root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        """Resolve a blob path relative to the root."""
        return self._root / path

    async def upload(self, path: str, content: bytes | str) -> None:
        """Write content to a local file, replacing it atomically."""
        body = content.encode("utf-8") if isinstance(content, str) else content
        await asyncio.to_thread(self._write, path, body)

    async def get_download_url(self, path: str) -> str:
        """Return the ``file://`` URI of an uploaded blob."""
        p = self._resolve(path)
        if not p.exists():
            raise StoreError(f"Blob not found: {path}", path=path, transient=False)
        return p.as_uri()

    def _write(self, path: str, body: bytes) -> None:
        p = self._resolve(path)
        tmp = p.with_name(f"{p.name}.tmp")
        try:
            p.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_bytes(body)
            os.replace(tmp, p)
        except OSError as e:
            raise StoreError(f"Failed to write blob {path}: {e}", path=path, original=e) from e
        logger.debug("Blob written: %s (%d bytes)", p, len(body))

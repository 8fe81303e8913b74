# src/storage/fetcher.py - v1
"""Resolve the download URL held by a reference record.

``http(s)://`` URLs go through an ``httpx.AsyncClient``; ``file://`` URLs
(LocalBlobStore) are read from disk.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from urllib.parse import urlparse
from urllib.request import url2pathname

import httpx

from doccache.core.errors import FetchError

logger = logging.getLogger(__name__)

_TRANSIENT_STATUS = {408, 425, 429}


def build_http_client(timeout_s: float = 30.0) -> httpx.AsyncClient:
    """Create the shared HTTP client used for reference fetches."""
    return httpx.AsyncClient(timeout=timeout_s, follow_redirects=True)


class UrlFetcher:
    """Fetch the body behind a blob download URL as UTF-8 text."""

    def __init__(self, client: httpx.AsyncClient | None = None, timeout_s: float = 30.0) -> None:
        self._owns_client = client is None
        self._client = client or build_http_client(timeout_s)

    async def fetch(self, url: str) -> str:
        """Return the decoded body at ``url``.

        Raises:
            FetchError: On any retrieval failure. 5xx, 408/425/429, timeouts
                and connection errors are marked transient.
        """
        scheme = urlparse(url).scheme
        if scheme == "file":
            body = await self._read_file(url)
        elif scheme in ("http", "https"):
            body = await self._get(url)
        else:
            raise FetchError(f"Unsupported URL scheme: {scheme!r}", url=url)

        try:
            return body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise FetchError(f"Body at {url} is not UTF-8: {e}", url=url, original=e) from e

    async def aclose(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._owns_client:
            await self._client.aclose()

    async def _get(self, url: str) -> bytes:
        try:
            response = await self._client.get(url)
        except httpx.TransportError as e:
            raise FetchError(
                f"Network error fetching {url}: {e}", url=url, transient=True, original=e,
            ) from e

        if response.status_code != 200:
            status = response.status_code
            raise FetchError(
                f"HTTP {status} fetching {url}",
                url=url,
                status_code=status,
                transient=status >= 500 or status in _TRANSIENT_STATUS,
            )
        logger.debug("Fetched %s (%d bytes)", url, len(response.content))
        return response.content

    async def _read_file(self, url: str) -> bytes:
        path = Path(url2pathname(urlparse(url).path))
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError as e:
            raise FetchError(f"Blob file missing: {path}", url=url, original=e) from e
        except OSError as e:
            raise FetchError(
                f"Failed to read {path}: {e}", url=url, transient=True, original=e,
            ) from e

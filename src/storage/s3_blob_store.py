# src/storage/s3_blob_store.py - v2
"""S3-compatible blob store (BLOB_BACKEND=s3).

Supports AWS S3, MinIO, and other S3-compatible storage. boto3 is
synchronous, so uploads run in a worker thread.

Download URLs are built from a public base URL (bucket website, CDN or
reverse proxy) so they stay valid for as long as the record that holds
them. Presigned URLs expire and are not used.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from urllib.parse import quote

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from doccache.core.errors import StoreError
from doccache.storage.base_blob_store import BaseBlobStore

logger = logging.getLogger(__name__)

_CONTENT_TYPE = "text/html; charset=utf-8"
_PERMANENT_ERROR_CODES = {"AccessDenied", "NoSuchBucket", "InvalidAccessKeyId", "NoSuchKey"}


class S3BlobStore(BaseBlobStore):
    """Store blobs in S3-compatible object storage."""

    def __init__(
        self,
        bucket: str,
        public_base_url: str,
        prefix: str = "doccache/",
        region: str | None = None,
        endpoint_url: str | None = None,
    ) -> None:
        """Initialize S3 blob store.

        Args:
            bucket: S3 bucket name.
            public_base_url: Base URL serving the bucket's objects; download
                URLs are ``{base}/{quoted key}``.
            prefix: Key prefix for all objects (e.g. "doccache/").
            region: AWS region (optional, uses boto3 default if not set).
            endpoint_url: Custom endpoint for MinIO/compatible storage.

        Raises:
            ValueError: If ``public_base_url`` is empty.
        """
        if not public_base_url:
            raise ValueError("S3BlobStore requires a public_base_url for durable download URLs")

        kwargs: dict[str, Any] = {}
        if region:
            kwargs["region_name"] = region
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url

        self._s3 = boto3.client("s3", **kwargs)
        self._bucket = bucket
        self._prefix = prefix.rstrip("/") + "/" if prefix else ""
        self._public_base_url = public_base_url.rstrip("/")

    def _full_key(self, path: str) -> str:
        """Build the full S3 key from a relative path."""
        return f"{self._prefix}{path}"

    async def upload(self, path: str, content: bytes | str) -> None:
        """Upload content to S3."""
        key = self._full_key(path)
        body = content.encode("utf-8") if isinstance(content, str) else content
        try:
            await asyncio.to_thread(
                self._s3.put_object,
                Bucket=self._bucket, Key=key, Body=body, ContentType=_CONTENT_TYPE,
            )
        except (BotoCoreError, ClientError) as e:
            raise _store_error("upload", path, e) from e
        logger.debug("S3 upload: s3://%s/%s (%d bytes)", self._bucket, key, len(body))

    async def get_download_url(self, path: str) -> str:
        """Return the public GET URL for the object.

        Encoded keys contain literal ``%`` sequences, so the key is quoted
        once more to reach the server unchanged.
        """
        return f"{self._public_base_url}/{quote(self._full_key(path), safe='/')}"


def _store_error(action: str, path: str, error: Exception) -> StoreError:
    """Map a botocore error to StoreError, flagging permanent failures."""
    code = ""
    if isinstance(error, ClientError):
        code = error.response.get("Error", {}).get("Code", "")
    return StoreError(
        f"S3 {action} failed for {path}: {error}",
        path=path,
        transient=code not in _PERMANENT_ERROR_CODES,
        original=error,
    )

# src/storage/gateway.py - v1
"""Tiered store gateway: size-based placement across record and blob stores.

Content below the inline threshold lives directly in the small-object record.
Larger content is uploaded to the blob store and the record holds its
download URL. The record at ``processedDocuments/{key}`` is the single source
of truth for the tier and is always replaced wholesale.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from pydantic import ValidationError

from doccache.core.errors import StoreError
from doccache.core.models import (
    InlineArtifact,
    InlineRecord,
    ReferenceArtifact,
    ReferenceRecord,
    StoredArtifact,
    StoredContent,
    StoredRecord,
    now_ms,
    parse_record,
)
from doccache.core.retry import STORE_RETRY_CONFIG, RetryConfig, is_transient, with_retry
from doccache.storage import layout
from doccache.storage.base_blob_store import BaseBlobStore
from doccache.storage.base_record_store import BaseRecordStore
from doccache.storage.fetcher import UrlFetcher

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_INLINE_THRESHOLD_BYTES = 100 * 1024


@dataclass(frozen=True)
class TieringConfig:
    """Placement parameters for the gateway."""

    inline_threshold_bytes: int = DEFAULT_INLINE_THRESHOLD_BYTES
    record_prefix: str = layout.RECORD_PREFIX
    blob_prefix: str = layout.BLOB_PREFIX
    blob_suffix: str = layout.BLOB_SUFFIX


class TieredStoreGateway:
    """Write and read processed documents across the two store tiers."""

    def __init__(
        self,
        record_store: BaseRecordStore,
        blob_store: BaseBlobStore,
        fetcher: UrlFetcher | None = None,
        tiering: TieringConfig | None = None,
        retry_config: RetryConfig | None = None,
    ) -> None:
        self._records = record_store
        self._blobs = blob_store
        self._fetcher = fetcher or UrlFetcher()
        self._tiering = tiering or TieringConfig()
        self._retry_config = retry_config or STORE_RETRY_CONFIG

    @property
    def tiering(self) -> TieringConfig:
        return self._tiering

    def record_path(self, key: str) -> str:
        return layout.record_path(key, self._tiering.record_prefix)

    def blob_path(self, key: str) -> str:
        return layout.blob_path(key, self._tiering.blob_prefix, self._tiering.blob_suffix)

    async def write(
        self,
        key: str,
        content: str,
        source_last_modified: int | None = None,
        last_accessed: int | None = None,
    ) -> StoredArtifact:
        """Store ``content`` under an encoded ``key`` in the appropriate tier."""
        size = len(content.encode("utf-8"))
        path = self.record_path(key)
        processed_at = now_ms()

        if size < self._tiering.inline_threshold_bytes:
            record = InlineRecord(
                html=content,
                last_processed=processed_at,
                source_last_modified=source_last_modified,
                last_accessed=last_accessed,
            )
            await self._set_record(path, record)
            logger.info("Stored %s inline (%d bytes)", key, size)
            return InlineArtifact(path=path)

        blob = self.blob_path(key)
        await self._retry(lambda: self._blobs.upload(blob, content), f"blob upload {blob}")
        url = await self._retry(
            lambda: self._blobs.get_download_url(blob), f"blob url {blob}",
        )
        reference = ReferenceRecord(
            html_url=url,
            last_processed=processed_at,
            source_last_modified=source_last_modified,
            last_accessed=last_accessed,
        )
        await self._set_record(path, reference)
        logger.info("Stored %s as blob reference (%d bytes)", key, size)
        return ReferenceArtifact(url=url, path=path)

    async def read(self, key: str) -> StoredContent | None:
        """Resolve the content stored under ``key``, or None if absent.

        Raises:
            StoreError: Record unreadable after retries, or corrupt.
            FetchError: The blob behind a reference could not be fetched.
        """
        record = await self.read_record(key)
        if record is None:
            return None
        return await self.resolve(record)

    async def read_record(self, key: str) -> StoredRecord | None:
        """Return the validated record under ``key`` without fetching any blob."""
        return await self._get_record(key)

    async def resolve(self, record: StoredRecord) -> StoredContent:
        """Load the content a record points to, fetching the blob if needed."""
        if isinstance(record, InlineRecord):
            content = record.html
            tier = "inline"
        else:
            url = record.html_url
            content = await self._retry(lambda: self._fetcher.fetch(url), f"fetch {url}")
            tier = "reference"

        return StoredContent(
            content=content,
            tier=tier,
            last_processed=record.last_processed,
            source_last_modified=record.source_last_modified,
            last_accessed=record.last_accessed,
        )

    async def touch(
        self,
        key: str,
        last_accessed: int | None = None,
        record: StoredRecord | None = None,
    ) -> bool:
        """Rewrite the record under ``key`` with a new ``lastAccessed``.

        When ``record`` is given it is written back as-is with the new
        timestamp, with no re-read. Otherwise the current record is read
        first. Returns False if no record exists. The tier is never changed.
        """
        if record is None:
            record = await self._get_record(key)
            if record is None:
                return False
        updated = record.model_copy(update={"last_accessed": last_accessed or now_ms()})
        await self._set_record(self.record_path(key), updated)
        return True

    async def aclose(self) -> None:
        await self._fetcher.aclose()
        await self._records.close()

    async def _get_record(self, key: str) -> StoredRecord | None:
        path = self.record_path(key)
        data = await self._retry(lambda: self._records.get(path), f"record get {path}")
        if data is None:
            return None
        try:
            return parse_record(data)
        except ValidationError as e:
            raise StoreError(
                f"Corrupt record {path}: {e}", path=path, transient=False, original=e,
            ) from e

    async def _set_record(self, path: str, record: StoredRecord) -> None:
        payload = record.to_record()
        await self._retry(lambda: self._records.set(path, payload), f"record set {path}")

    async def _retry(self, op: Callable[[], Awaitable[T]], operation: str) -> T:
        return await with_retry(
            op, config=self._retry_config, operation=operation, should_retry=is_transient,
        )

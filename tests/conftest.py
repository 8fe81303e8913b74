# tests/conftest.py - v3
"""Shared test fixtures for all unit and integration tests.

Provides in-memory record/blob store fakes, a fetcher resolving fake blob
URLs, fast retry policies and sample documents. No external services.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import pytest

from doccache.cache.orchestrator import CacheAsideOrchestrator
from doccache.core.errors import FetchError, StoreError
from doccache.core.models import SourceDocument
from doccache.core.retry import RetryConfig
from doccache.storage.base_blob_store import BaseBlobStore
from doccache.storage.base_record_store import BaseRecordStore
from doccache.storage.gateway import TieredStoreGateway, TieringConfig

FAKE_BLOB_HOST = "https://blobs.test/"


# === Store fakes ===


class FakeRecordStore(BaseRecordStore):
    """Dict-backed record store that can fail a set number of times.

    ``get_delay`` models read latency: the record is captured when the read
    is issued and returned after the delay.
    """

    def __init__(self) -> None:
        self.records: dict[str, dict[str, Any]] = {}
        self.get_calls = 0
        self.set_calls = 0
        self.fail_gets = 0
        self.fail_sets = 0
        self.get_delay = 0.0

    async def get(self, path: str) -> dict[str, Any] | None:
        self.get_calls += 1
        if self.fail_gets > 0:
            self.fail_gets -= 1
            raise StoreError("simulated read failure", path=path)
        record = self.records.get(path)
        snapshot = dict(record) if record is not None else None
        if self.get_delay:
            await asyncio.sleep(self.get_delay)
        return snapshot

    async def set(self, path: str, record: dict[str, Any]) -> None:
        self.set_calls += 1
        if self.fail_sets > 0:
            self.fail_sets -= 1
            raise StoreError("simulated write failure", path=path)
        self.records[path] = dict(record)


class FakeBlobStore(BaseBlobStore):
    """Dict-backed blob store handing out https://blobs.test/ URLs."""

    def __init__(self) -> None:
        self.blobs: dict[str, bytes] = {}
        self.upload_calls = 0
        self.fail_uploads = 0

    async def upload(self, path: str, content: bytes | str) -> None:
        self.upload_calls += 1
        if self.fail_uploads > 0:
            self.fail_uploads -= 1
            raise StoreError("simulated upload failure", path=path)
        self.blobs[path] = content.encode("utf-8") if isinstance(content, str) else content

    async def get_download_url(self, path: str) -> str:
        if path not in self.blobs:
            raise StoreError(f"Blob not found: {path}", path=path, transient=False)
        return f"{FAKE_BLOB_HOST}{path}"


class FakeFetcher:
    """Resolves FakeBlobStore URLs without any network."""

    def __init__(self, blob_store: FakeBlobStore) -> None:
        self._blobs = blob_store
        self.fetch_calls = 0
        self.fail_fetches = 0

    async def fetch(self, url: str) -> str:
        self.fetch_calls += 1
        if self.fail_fetches > 0:
            self.fail_fetches -= 1
            raise FetchError("simulated outage", url=url, status_code=503, transient=True)
        path = url.removeprefix(FAKE_BLOB_HOST)
        if path not in self._blobs.blobs:
            raise FetchError(f"HTTP 404 fetching {url}", url=url, status_code=404)
        return self._blobs.blobs[path].decode("utf-8")

    async def aclose(self) -> None:
        return None


# === FIXTURES: Stores and components ===


@pytest.fixture
def fast_retry() -> RetryConfig:
    """Retry policy with no backoff delay."""
    return RetryConfig(max_retries=3, base_delay_s=0.0, max_delay_s=0.0, jitter=0.0)


@pytest.fixture
def record_store() -> FakeRecordStore:
    return FakeRecordStore()


@pytest.fixture
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def fetcher(blob_store: FakeBlobStore) -> FakeFetcher:
    return FakeFetcher(blob_store)


@pytest.fixture
def small_tiering() -> TieringConfig:
    """Tiering with a 64-byte inline threshold so tests stay small."""
    return TieringConfig(inline_threshold_bytes=64)


@pytest.fixture
def gateway(
    record_store: FakeRecordStore,
    blob_store: FakeBlobStore,
    fetcher: FakeFetcher,
    small_tiering: TieringConfig,
    fast_retry: RetryConfig,
) -> TieredStoreGateway:
    return TieredStoreGateway(
        record_store=record_store,
        blob_store=blob_store,
        fetcher=fetcher,  # type: ignore[arg-type]
        tiering=small_tiering,
        retry_config=fast_retry,
    )


@pytest.fixture
def orchestrator(gateway: TieredStoreGateway) -> CacheAsideOrchestrator:
    return CacheAsideOrchestrator(gateway)


# === FIXTURES: Sample data ===


@pytest.fixture
def sample_source() -> SourceDocument:
    """The report.docx document used throughout the examples."""
    return SourceDocument(id="report.docx", last_modified=1000, payload=b"docx-bytes")


# === FIXTURES: Temp dirs ===


@pytest.fixture
def tmp_record_dir(tmp_path: Path) -> Path:
    records = tmp_path / "records"
    records.mkdir()
    return records


@pytest.fixture
def tmp_blob_dir(tmp_path: Path) -> Path:
    blobs = tmp_path / "blobs"
    blobs.mkdir()
    return blobs

# tests/unit/storage/test_unit_store_factory.py - v1
"""Tests for storage/store_factory.py."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from doccache.config.settings import Settings
from doccache.storage.gateway import TieredStoreGateway
from doccache.storage.json_record_store import JsonRecordStore
from doccache.storage.local_blob_store import LocalBlobStore
from doccache.storage.redis_record_store import RedisRecordStore
from doccache.storage.store_factory import (
    create_blob_store,
    create_gateway,
    create_record_store,
)


def _settings(tmp_path, **overrides) -> Settings:
    return Settings(
        _env_file=None,
        record_root=tmp_path / "records",
        blob_root=tmp_path / "blobs",
        **overrides,
    )


class TestCreateRecordStore:
    def test_json_default(self, tmp_path):
        store = create_record_store(_settings(tmp_path))
        assert isinstance(store, JsonRecordStore)
        assert (tmp_path / "records").is_dir()

    def test_redis(self, tmp_path):
        settings = _settings(tmp_path, record_backend="redis", record_redis_url="redis://r:6379")
        with patch("doccache.storage.redis_record_store.aioredis.Redis.from_url"):
            store = create_record_store(settings)
        assert isinstance(store, RedisRecordStore)

    def test_unknown_backend(self):
        settings = MagicMock(record_backend="mongo")
        with pytest.raises(ValueError, match="Unsupported record backend"):
            create_record_store(settings)

    def test_redis_without_url(self):
        settings = MagicMock(record_backend="redis", record_redis_url="")
        with pytest.raises(ValueError, match="RECORD_REDIS_URL"):
            create_record_store(settings)


class TestCreateBlobStore:
    def test_local_default(self, tmp_path):
        assert isinstance(create_blob_store(_settings(tmp_path)), LocalBlobStore)

    def test_s3(self, tmp_path):
        settings = _settings(
            tmp_path,
            blob_backend="s3",
            blob_s3_bucket="bkt",
            blob_public_base_url="https://cdn.test",
        )
        with patch("doccache.storage.s3_blob_store.boto3") as mock_boto3:
            store = create_blob_store(settings)
        mock_boto3.client.assert_called_once_with("s3")
        assert store._bucket == "bkt"
        assert store._public_base_url == "https://cdn.test"

    def test_unknown_backend(self):
        settings = MagicMock(blob_backend="gcs")
        with pytest.raises(ValueError, match="Unsupported blob backend"):
            create_blob_store(settings)

    def test_s3_without_bucket(self):
        settings = MagicMock(blob_backend="s3", blob_s3_bucket="")
        with pytest.raises(ValueError, match="BLOB_S3_BUCKET"):
            create_blob_store(settings)

    def test_s3_without_public_base_url(self):
        settings = MagicMock(blob_backend="s3", blob_s3_bucket="bkt", blob_public_base_url="")
        with pytest.raises(ValueError, match="BLOB_PUBLIC_BASE_URL"):
            create_blob_store(settings)


class TestCreateGateway:
    def test_applies_settings(self, tmp_path):
        settings = _settings(tmp_path, inline_threshold_bytes=2048, store_max_retries=1)
        gateway = create_gateway(settings)
        assert isinstance(gateway, TieredStoreGateway)
        assert gateway.tiering.inline_threshold_bytes == 2048
        assert gateway._retry_config.max_retries == 1

    def test_injected_stores(self, tmp_path, record_store, blob_store, fetcher):
        gateway = create_gateway(
            _settings(tmp_path), record_store=record_store, blob_store=blob_store, fetcher=fetcher,
        )
        assert gateway._records is record_store
        assert gateway._blobs is blob_store

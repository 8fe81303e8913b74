# src/storage/store_factory.py - v1
"""Factories: instantiate record store, blob store and gateway from configuration."""

from __future__ import annotations

from doccache.config.settings import Settings
from doccache.storage.base_blob_store import BaseBlobStore
from doccache.storage.base_record_store import BaseRecordStore
from doccache.storage.fetcher import UrlFetcher
from doccache.storage.gateway import TieredStoreGateway


def create_record_store(settings: Settings | None = None) -> BaseRecordStore:
    """Instantiate the configured small-object store backend.

    Args:
        settings: Application settings. Defaults to the JSON backend.

    Raises:
        ValueError: If the backend is unknown or misconfigured.
    """
    settings = settings or Settings()
    backend = settings.record_backend

    if backend == "json":
        from doccache.storage.json_record_store import JsonRecordStore
        return JsonRecordStore(root=settings.record_root)

    if backend == "redis":
        from doccache.storage.redis_record_store import RedisRecordStore
        if not settings.record_redis_url:
            raise ValueError("RECORD_REDIS_URL must be set when RECORD_BACKEND=redis")
        return RedisRecordStore(
            redis_url=settings.record_redis_url,
            key_prefix=settings.record_redis_prefix,
        )

    raise ValueError(f"Unsupported record backend: {backend!r}")


def create_blob_store(settings: Settings | None = None) -> BaseBlobStore:
    """Instantiate the configured blob store backend.

    Raises:
        ValueError: If the backend is unknown or misconfigured.
    """
    settings = settings or Settings()
    backend = settings.blob_backend

    if backend == "local":
        from doccache.storage.local_blob_store import LocalBlobStore
        return LocalBlobStore(root=settings.blob_root)

    if backend == "s3":
        from doccache.storage.s3_blob_store import S3BlobStore
        if not settings.blob_s3_bucket:
            raise ValueError("BLOB_S3_BUCKET must be set when BLOB_BACKEND=s3")
        if not settings.blob_public_base_url:
            raise ValueError("BLOB_PUBLIC_BASE_URL must be set when BLOB_BACKEND=s3")
        return S3BlobStore(
            bucket=settings.blob_s3_bucket,
            public_base_url=settings.blob_public_base_url,
            prefix=settings.blob_s3_prefix,
            region=settings.blob_s3_region or None,
            endpoint_url=settings.blob_s3_endpoint_url or None,
        )

    raise ValueError(f"Unsupported blob backend: {backend!r}")


def create_gateway(
    settings: Settings | None = None,
    record_store: BaseRecordStore | None = None,
    blob_store: BaseBlobStore | None = None,
    fetcher: UrlFetcher | None = None,
) -> TieredStoreGateway:
    """Build a TieredStoreGateway, creating any store not supplied."""
    settings = settings or Settings()
    return TieredStoreGateway(
        record_store=record_store or create_record_store(settings),
        blob_store=blob_store or create_blob_store(settings),
        fetcher=fetcher or UrlFetcher(timeout_s=settings.fetch_timeout_s),
        tiering=settings.tiering_config(),
        retry_config=settings.store_retry_config(),
    )

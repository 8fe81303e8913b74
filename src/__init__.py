"""doccache - cache-aside layer for expensive document conversions."""

from doccache.cache.keys import decode_key, encode_key
from doccache.cache.orchestrator import CacheAsideOrchestrator, get_document
from doccache.core.errors import (
    ComputeError,
    DocCacheError,
    EncodingError,
    FetchError,
    StoreError,
)
from doccache.core.models import CacheEntry, LookupResult, SourceDocument
from doccache.core.retry import RetryConfig, with_retry
from doccache.session.controller import DocumentSession
from doccache.storage.gateway import TieredStoreGateway, TieringConfig
from doccache.version import __version__

__all__ = [
    "CacheAsideOrchestrator",
    "CacheEntry",
    "ComputeError",
    "DocCacheError",
    "DocumentSession",
    "EncodingError",
    "FetchError",
    "LookupResult",
    "RetryConfig",
    "SourceDocument",
    "StoreError",
    "TieredStoreGateway",
    "TieringConfig",
    "__version__",
    "decode_key",
    "encode_key",
    "get_document",
    "with_retry",
]

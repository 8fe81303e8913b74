# src/storage/layout.py - v2
"""Persisted path conventions for records and blobs.

Keys passed here must already be encoded with ``cache.keys.encode_key``.
"""

from __future__ import annotations

RECORD_PREFIX = "processedDocuments"
BLOB_PREFIX = "processed"
BLOB_SUFFIX = ".html"


def record_path(key: str, prefix: str = RECORD_PREFIX) -> str:
    """Small-object store path: ``processedDocuments/{key}``."""
    return f"{prefix}/{key}"


def blob_path(key: str, prefix: str = BLOB_PREFIX, suffix: str = BLOB_SUFFIX) -> str:
    """Blob store path: ``processed/{key}.html``."""
    return f"{prefix}/{key}{suffix}"

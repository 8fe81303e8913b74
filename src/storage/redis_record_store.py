# src/storage/redis_record_store.py - v1
"""Redis-based record store (RECORD_BACKEND=redis).

Suitable for distributed/multi-instance deployments. Each record is a JSON
string under ``{prefix}{path}``; ``SET`` replaces it wholesale.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from doccache.core.errors import StoreError
from doccache.storage.base_record_store import BaseRecordStore

logger = logging.getLogger(__name__)

_KEY_PREFIX = "doccache:"


class RedisRecordStore(BaseRecordStore):
    """Redis-backed record store."""

    def __init__(self, redis_url: str, key_prefix: str = _KEY_PREFIX) -> None:
        self._client = aioredis.Redis.from_url(redis_url, decode_responses=True)
        self._prefix = key_prefix

    async def get(self, path: str) -> dict[str, Any] | None:
        """Retrieve the record at ``path``."""
        try:
            data = await self._client.get(self._full_key(path))
        except RedisError as e:
            raise StoreError(f"Redis GET failed for {path}: {e}", path=path, original=e) from e
        if data is None:
            return None
        try:
            record = json.loads(data)
        except json.JSONDecodeError as e:
            raise StoreError(
                f"Corrupt record {path}: {e}", path=path, transient=False, original=e,
            ) from e
        if not isinstance(record, dict):
            raise StoreError(f"Corrupt record {path}: not an object", path=path, transient=False)
        return record

    async def set(self, path: str, record: dict[str, Any]) -> None:
        """Replace the record at ``path``."""
        try:
            await self._client.set(self._full_key(path), json.dumps(record))
        except RedisError as e:
            raise StoreError(f"Redis SET failed for {path}: {e}", path=path, original=e) from e
        logger.debug("Redis record written: %s", path)

    async def close(self) -> None:
        """Close the Redis connection."""
        await self._client.aclose()

    def _full_key(self, path: str) -> str:
        return f"{self._prefix}{path}"

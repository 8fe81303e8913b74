# src/cache/orchestrator.py - v3
"""Cache-aside orchestration over the tiered store gateway.

Two entry points:
  - ``get_document``: full get-or-compute with staleness detection.
  - ``get_document_with_status``: lookup only, never computes, so a caller
    can race the lookup against its own optimistic computation.

Staleness is decided from the record alone, so a stale reference never
costs a blob fetch.

A cache hit refreshes ``lastAccessed`` in the background by writing back
the record it read. Writes through this orchestrator take precedence: a
touch is skipped once its key has been rewritten since the read, and a
write waits for touches already in flight on the same key.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from doccache.cache.keys import encode_key
from doccache.core.models import (
    CacheEntry,
    InlineRecord,
    LookupResult,
    SourceDocument,
    StoredArtifact,
    StoredRecord,
    now_ms,
)
from doccache.storage.gateway import TieredStoreGateway

logger = logging.getLogger(__name__)

ComputeFn = Callable[[Any], Awaitable[str]]

_STATUS_BY_TIER = {"inline": "cached-db", "reference": "cached-storage"}


class CacheAsideOrchestrator:
    """Get-or-compute semantics against a TieredStoreGateway."""

    def __init__(self, gateway: TieredStoreGateway) -> None:
        self._gateway = gateway
        self._background: set[asyncio.Task[Any]] = set()
        self._write_epochs: dict[str, int] = {}
        self._touching: dict[str, set[asyncio.Task[Any]]] = {}

    @property
    def gateway(self) -> TieredStoreGateway:
        return self._gateway

    async def get_document(self, source: SourceDocument, compute: ComputeFn) -> str:
        """Return processed content for ``source``, computing it on a miss.

        Raises:
            StoreError / FetchError: Gateway failures after retry exhaustion.
            Any exception raised by ``compute``, unmodified.
        """
        key = encode_key(source.id)
        epoch = self._write_epochs.get(key, 0)
        record = await self._gateway.read_record(key)

        if record is not None and record.source_last_modified == source.last_modified:
            stored = await self._gateway.resolve(record)
            logger.info("Cache hit for %s (%s)", source.id, stored.tier)
            self._spawn(self._touch(key, record, epoch), f"touch {key}")
            return stored.content

        logger.info(
            "Cache %s for %s: processing", "miss" if record is None else "stale", source.id,
        )
        processed = await compute(source.payload)
        new_entry = CacheEntry(
            processed_content=processed,
            source_last_modified=source.last_modified,
            last_accessed=now_ms(),
        )
        await self._write(
            key,
            new_entry.processed_content,
            source_last_modified=new_entry.source_last_modified,
            last_accessed=new_entry.last_accessed,
        )
        return new_entry.processed_content

    async def get_document_with_status(
        self, key: str, source_last_modified: int | None = None,
    ) -> LookupResult:
        """Look up an encoded ``key`` without computing anything.

        When ``source_last_modified`` is given and the record was produced
        from a different source version, the status is ``stale`` and the
        content is left empty unless it is held inline.
        """
        record = await self._gateway.read_record(key)
        if record is None:
            return LookupResult(status="new")

        tier = "inline" if isinstance(record, InlineRecord) else "reference"
        if (
            source_last_modified is not None
            and record.source_last_modified is not None
            and record.source_last_modified != source_last_modified
        ):
            return LookupResult(
                content=record.html if isinstance(record, InlineRecord) else "",
                status="stale",
                tier=tier,
                source_last_modified=record.source_last_modified,
            )

        stored = await self._gateway.resolve(record)
        return LookupResult(
            content=stored.content,
            status=_STATUS_BY_TIER[stored.tier],
            tier=stored.tier,
            source_last_modified=stored.source_last_modified,
        )

    async def cache_processed_document(
        self, key: str, content: str, source_last_modified: int | None = None,
    ) -> StoredArtifact:
        """Persist already-computed content under an encoded ``key``."""
        return await self._write(
            key, content, source_last_modified=source_last_modified, last_accessed=now_ms(),
        )

    async def drain(self) -> None:
        """Wait for pending fire-and-forget work (e.g. access-time updates)."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    async def aclose(self) -> None:
        """Drain background work, then release the gateway's connections."""
        await self.drain()
        await self._gateway.aclose()

    async def _write(
        self,
        key: str,
        content: str,
        source_last_modified: int | None,
        last_accessed: int,
    ) -> StoredArtifact:
        self._write_epochs[key] = self._write_epochs.get(key, 0) + 1
        in_flight = self._touching.get(key)
        if in_flight:
            await asyncio.gather(*list(in_flight), return_exceptions=True)
        return await self._gateway.write(
            key, content, source_last_modified=source_last_modified, last_accessed=last_accessed,
        )

    async def _touch(self, key: str, record: StoredRecord, epoch: int) -> None:
        if self._write_epochs.get(key, 0) != epoch:
            logger.debug("Skipping touch of %s: rewritten since read", key)
            return
        task = asyncio.current_task()
        pending = self._touching.setdefault(key, set())
        pending.add(task)
        try:
            await self._gateway.touch(key, now_ms(), record=record)
        finally:
            pending.discard(task)
            if not pending and self._touching.get(key) is pending:
                del self._touching[key]

    def _spawn(self, coro: Awaitable[Any], label: str) -> None:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(lambda t: self._finish_background(t, label))

    def _finish_background(self, task: asyncio.Task[Any], label: str) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Background %s failed: %s", label, exc)


async def get_document(
    source: SourceDocument, gateway: TieredStoreGateway, compute: ComputeFn,
) -> str:
    """Functional form of ``CacheAsideOrchestrator.get_document``.

    The gateway stays owned by the caller; the access-time update is
    awaited before returning.
    """
    orchestrator = CacheAsideOrchestrator(gateway)
    try:
        return await orchestrator.get_document(source, compute)
    finally:
        await orchestrator.drain()

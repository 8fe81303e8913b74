# src/session/controller.py - v2
"""Speculative race controller for consumer-facing document loads.

Each run starts the cache lookup and an optimistic compute as two tasks.
A cache hit is served as soon as the lookup returns; the compute task is
left to finish and its result dropped. On a miss the already-running
compute is awaited, served, then cached.

State flow::

    idle -> loading-cached -> processing-background -> caching -> idle
                           \\-> processing-foreground -/
                           \\-> idle (cache hit)
    any in-flight state -> error (compute or run failed, nothing served)

Every state write carries the generation it was started under. Loading a
different (id, last_modified) pair, or closing the session, bumps the
generation so writes from the previous run are dropped.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import Any, Awaitable, Callable

from doccache.cache.keys import encode_key
from doccache.cache.orchestrator import CacheAsideOrchestrator, ComputeFn
from doccache.core.models import LookupResult, SourceDocument
from doccache.core.retry import SESSION_RETRY_CONFIG, RetryConfig, compute_delay
from doccache.logging.context import set_phase, set_session_context
from doccache.session.models import ProcessingSession, SessionError, SessionMetrics

logger = logging.getLogger(__name__)

ChangeListener = Callable[[ProcessingSession], None]


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000.0


class DocumentSession:
    """Load one document at a time, racing cache lookup against compute."""

    def __init__(
        self,
        orchestrator: CacheAsideOrchestrator,
        compute: ComputeFn,
        retry_config: RetryConfig | None = None,
        on_change: ChangeListener | None = None,
        session_id: str | None = None,
        owns_orchestrator: bool = False,
    ) -> None:
        self._orchestrator = orchestrator
        self._owns_orchestrator = owns_orchestrator
        self._compute = compute
        self._retry_config = retry_config or SESSION_RETRY_CONFIG
        self._on_change = on_change
        self._session_id = session_id or uuid.uuid4().hex[:12]

        self._generation = 0
        self._source: SourceDocument | None = None
        self._state = ProcessingSession()
        self._run_task: asyncio.Task[None] | None = None
        self._abandoned: set[asyncio.Task[Any]] = set()

    @property
    def snapshot(self) -> ProcessingSession:
        return self._state

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def max_retries(self) -> int:
        return self._retry_config.max_retries

    async def load(self, source: SourceDocument | None) -> ProcessingSession:
        """Observe ``source`` and wait for its current run to settle.

        A new or changed (id, last_modified) pair resets the session and
        starts a run. Loading the same pair again only waits for the run
        already in flight. ``None`` resets the session to idle.
        """
        if source is None:
            self._supersede(None)
            return self._state

        if self._source is None or _pair(source) != _pair(self._source):
            self._supersede(source)
            self._start_run()

        if self._run_task is not None:
            await asyncio.shield(self._run_task)
        return self._state

    async def retry(self) -> bool:
        """Re-run the full protocol after one backoff interval.

        Returns False without doing anything once ``max_retries`` retries
        have been used, while a run is in flight, or when nothing is loaded.
        """
        source = self._source
        if source is None:
            return False
        if self._run_task is not None and not self._run_task.done():
            logger.debug("Retry ignored for %s: run in flight", source.id)
            return False
        if self._state.retry_count >= self.max_retries:
            logger.warning(
                "Max retries (%d) exceeded for %s", self.max_retries, source.id,
            )
            return False

        gen = self._generation
        retry_count = self._state.retry_count + 1
        self._commit(gen, retry_count=retry_count, error=None, loading_state="idle")

        delay = compute_delay(self._retry_config, retry_count)
        logger.info(
            "Retrying %s in %.2fs (attempt %d/%d)",
            source.id, delay, retry_count, self.max_retries,
        )
        await asyncio.sleep(delay)
        if gen != self._generation:
            return False

        self._start_run()
        await asyncio.shield(self._run_task)
        return True

    def close(self) -> None:
        """Stop observing. Results of in-flight work are ignored from now on."""
        self._supersede(None)

    async def aclose(self) -> None:
        """Close, wait for in-flight and abandoned work, then release an owned orchestrator."""
        run_task = self._run_task
        self.close()
        if run_task is not None:
            await asyncio.gather(run_task, return_exceptions=True)
        await self.drain()
        if self._owns_orchestrator:
            await self._orchestrator.aclose()

    # ------------------------------------------------------------------
    # Run protocol
    # ------------------------------------------------------------------

    def _start_run(self) -> None:
        assert self._source is not None
        self._run_task = asyncio.create_task(self._process(self._generation, self._source))

    async def _process(self, gen: int, source: SourceDocument) -> None:
        set_session_context(source.id, self._session_id)
        started = time.perf_counter()
        if not self._commit(gen, loading_state="loading-cached", error=None):
            return

        key = encode_key(source.id)
        lookup_task = asyncio.create_task(
            self._orchestrator.get_document_with_status(key, source.last_modified)
        )
        compute_task = asyncio.create_task(self._timed_compute(source.payload))

        try:
            await self._race(gen, source, key, started, lookup_task, compute_task)
        except Exception as e:
            logger.exception("Unexpected failure loading %s", source.id)
            self._abandon(lookup_task)
            self._abandon(compute_task)
            self._fail(gen, e, SessionMetrics(total_ms=_elapsed_ms(started)))

    async def _race(
        self,
        gen: int,
        source: SourceDocument,
        key: str,
        started: float,
        lookup_task: asyncio.Task[LookupResult],
        compute_task: asyncio.Task[tuple[str, float]],
    ) -> None:
        lookup: LookupResult | None
        try:
            lookup = await lookup_task
        except Exception as e:
            logger.warning("Cache lookup failed for %s: %s", source.id, e)
            lookup = None
        retrieve_ms = _elapsed_ms(started)

        if gen != self._generation:
            self._abandon(compute_task)
            return

        if lookup is not None and lookup.is_hit:
            self._abandon(compute_task)
            self._commit(
                gen,
                content=lookup.content,
                cache_status=lookup.status,
                loading_state="idle",
                metrics=SessionMetrics(retrieve_ms=retrieve_ms, total_ms=_elapsed_ms(started)),
            )
            logger.info("Cache hit for %s (%s), served immediately", source.id, lookup.status)
            return

        if lookup is None:
            next_state = "processing-foreground"
        else:
            next_state = "processing-background"
            if lookup.status == "stale":
                logger.info("Cached copy of %s is stale, awaiting recompute", source.id)
        self._commit(gen, loading_state=next_state)

        try:
            content, process_ms = await compute_task
        except Exception as e:
            logger.error("Processing failed for %s: %s", source.id, e)
            self._fail(
                gen, e, SessionMetrics(retrieve_ms=retrieve_ms, total_ms=_elapsed_ms(started)),
            )
            return

        if not self._commit(gen, content=content, cache_status="new", loading_state="caching"):
            return

        cache_started = time.perf_counter()
        cache_ms: float | None = None
        try:
            await self._orchestrator.cache_processed_document(key, content, source.last_modified)
            cache_ms = _elapsed_ms(cache_started)
        except Exception as e:
            # Content is already served; a failed write only costs a recompute later
            logger.warning("Caching failed for %s: %s", source.id, e, exc_info=True)

        self._commit(
            gen,
            loading_state="idle",
            metrics=SessionMetrics(
                retrieve_ms=retrieve_ms,
                process_ms=process_ms,
                cache_ms=cache_ms,
                total_ms=_elapsed_ms(started),
                cache_failed=cache_ms is None,
            ),
        )
        logger.info("Processed and cached %s", source.id)

    def _fail(self, gen: int, error: Exception, metrics: SessionMetrics) -> None:
        retry_count = self._state.retry_count
        self._commit(
            gen,
            loading_state="error",
            error=SessionError(
                type="processing",
                message=str(error) or type(error).__name__,
                retryable=retry_count < self.max_retries,
                retry_count=retry_count,
                exception=error,
            ),
            metrics=metrics,
        )

    async def _timed_compute(self, payload: Any) -> tuple[str, float]:
        started = time.perf_counter()
        content = await self._compute(payload)
        return content, _elapsed_ms(started)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def _supersede(self, source: SourceDocument | None) -> None:
        self._generation += 1
        self._source = source
        self._run_task = None
        self._state = ProcessingSession(
            document_id=source.id if source else None,
            last_modified=source.last_modified if source else None,
        )
        self._notify()

    def _commit(self, gen: int, **changes: Any) -> bool:
        """Apply ``changes`` if ``gen`` is still current."""
        if gen != self._generation:
            return False
        self._state = self._state.model_copy(update=changes)
        if "loading_state" in changes:
            set_phase(changes["loading_state"])
        self._notify()
        return True

    def _notify(self) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(self._state)
        except Exception:
            logger.exception("Session change listener failed")

    def _abandon(self, task: asyncio.Task[Any]) -> None:
        """Let ``task`` run to completion and drop its outcome."""
        self._abandoned.add(task)
        task.add_done_callback(self._drop_abandoned)

    def _drop_abandoned(self, task: asyncio.Task[Any]) -> None:
        self._abandoned.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.debug("Abandoned speculative work failed: %s", exc)

    async def drain(self) -> None:
        """Wait for abandoned speculative work to finish."""
        if self._abandoned:
            await asyncio.gather(*list(self._abandoned), return_exceptions=True)


def _pair(source: SourceDocument) -> tuple[str, int]:
    return (source.id, source.last_modified)


async def run_with_session(
    orchestrator: CacheAsideOrchestrator,
    compute: Callable[[Any], Awaitable[str]],
    source: SourceDocument,
    retry_config: RetryConfig | None = None,
) -> ProcessingSession:
    """Load ``source`` in a one-shot session, retrying while retryable."""
    session = DocumentSession(orchestrator, compute, retry_config=retry_config)
    state = await session.load(source)
    while state.error is not None and state.error.retryable:
        if not await session.retry():
            break
        state = session.snapshot
    await session.aclose()
    return state

# src/api/facade.py - v3
"""Public API facade: wire settings, stores and components together.

Usage:
    from doccache.api.facade import create_orchestrator, open_session

    orchestrator = create_orchestrator()
    html = await orchestrator.get_document(source, convert)

    session = open_session(convert, orchestrator=orchestrator)
    state = await session.load(source)
"""

from __future__ import annotations

import logging

from doccache.cache.orchestrator import CacheAsideOrchestrator, ComputeFn
from doccache.config.settings import Settings
from doccache.core.models import SourceDocument
from doccache.logging.logger import setup_logging
from doccache.session.controller import ChangeListener, DocumentSession
from doccache.storage.gateway import TieredStoreGateway
from doccache.storage.store_factory import create_gateway

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings | None = None) -> None:
    """Apply the logging section of ``settings`` to the doccache logger."""
    settings = settings or Settings()
    setup_logging(
        level=settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )


def create_orchestrator(
    settings: Settings | None = None,
    gateway: TieredStoreGateway | None = None,
) -> CacheAsideOrchestrator:
    """Build a CacheAsideOrchestrator over the configured stores."""
    settings = settings or Settings()
    gateway = gateway or create_gateway(settings)
    logger.debug(
        "Orchestrator ready: record=%s blob=%s threshold=%d",
        settings.record_backend, settings.blob_backend, settings.inline_threshold_bytes,
    )
    return CacheAsideOrchestrator(gateway)


def open_session(
    compute: ComputeFn,
    settings: Settings | None = None,
    orchestrator: CacheAsideOrchestrator | None = None,
    on_change: ChangeListener | None = None,
) -> DocumentSession:
    """Open a DocumentSession for a UI-style observer.

    When no orchestrator is passed, the session owns the one it creates and
    ``await session.aclose()`` releases its connections.
    """
    settings = settings or Settings()
    return DocumentSession(
        orchestrator or create_orchestrator(settings),
        compute,
        retry_config=settings.session_retry_config(),
        on_change=on_change,
        owns_orchestrator=orchestrator is None,
    )


async def get_document(
    source: SourceDocument,
    compute: ComputeFn,
    settings: Settings | None = None,
    orchestrator: CacheAsideOrchestrator | None = None,
) -> str:
    """One-shot cache-aside load of ``source``.

    An orchestrator built here is drained and closed before returning.
    """
    if orchestrator is not None:
        return await orchestrator.get_document(source, compute)

    owned = create_orchestrator(settings)
    try:
        return await owned.get_document(source, compute)
    finally:
        await owned.aclose()

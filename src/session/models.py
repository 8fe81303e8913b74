# src/session/models.py - v1
"""Document session models: loading states, metrics, errors, snapshot."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from doccache.core.models import CacheStatus

LoadingState = Literal[
    "idle",
    "loading-cached",  # Cache lookup and optimistic compute in flight
    "processing-background",  # Lookup missed, awaiting the speculative compute
    "processing-foreground",  # Lookup failed, compute is the only path left
    "caching",  # Persisting freshly computed content
    "error",
]

ErrorType = Literal["processing", "caching", "retrieval", "network"]


class SessionMetrics(BaseModel):
    """Per-run timings in milliseconds. Phases not reached stay None."""

    retrieve_ms: float | None = None
    process_ms: float | None = None
    cache_ms: float | None = None
    total_ms: float | None = None
    cache_failed: bool = False


class SessionError(BaseModel):
    """Fatal session error surfaced to the caller."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    type: ErrorType = "processing"
    message: str
    retryable: bool
    retry_count: int
    exception: BaseException | None = Field(default=None, exclude=True, repr=False)


class ProcessingSession(BaseModel):
    """Observable snapshot of a document session."""

    document_id: str | None = None
    last_modified: int | None = None
    content: str = ""
    loading_state: LoadingState = "idle"
    cache_status: CacheStatus = "new"
    metrics: SessionMetrics = Field(default_factory=SessionMetrics)
    error: SessionError | None = None
    retry_count: int = 0

    @property
    def is_busy(self) -> bool:
        return self.loading_state not in ("idle", "error")

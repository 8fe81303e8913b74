# src/core/errors.py - v1
"""Exception hierarchy for doccache.

StoreError and FetchError carry a ``transient`` flag read by the retry
executor; every other failure is propagated as-is.
"""

from __future__ import annotations


class DocCacheError(Exception):
    """Base exception for all doccache errors."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class EncodingError(DocCacheError):
    """Key encoding failure. Never raised: encoding is total."""


class StoreError(DocCacheError):
    """A small-object or blob store call failed.

    Examples: connection refused, disk full, throttled request, corrupt record.
    """

    def __init__(
        self,
        message: str = "",
        path: str | None = None,
        transient: bool = True,
        original: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.path = path
        self.transient = transient
        self.original = original


class ComputeError(DocCacheError):
    """The document conversion routine failed."""

    def __init__(self, message: str = "", original: Exception | None = None) -> None:
        super().__init__(message)
        self.original = original


class FetchError(DocCacheError):
    """The URL held by a reference record could not be retrieved."""

    def __init__(
        self,
        message: str = "",
        url: str = "",
        status_code: int | None = None,
        transient: bool = False,
        original: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.transient = transient
        self.original = original
# src/core/models.py - v1
"""Core domain models: SourceDocument, CacheEntry, stored records and artifacts.

Timestamps are integer milliseconds since the Unix epoch, the unit used by
the persisted records.
"""

from __future__ import annotations

import time
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

Tier = Literal["inline", "reference"]
CacheStatus = Literal["new", "cached-db", "cached-storage", "stale"]


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class SourceDocument(BaseModel):
    """A source document as handed over by the caller."""

    model_config = ConfigDict(frozen=True)

    id: str
    last_modified: int
    payload: Any = None


class CacheEntry(BaseModel):
    """Processed output of one source document version."""

    processed_content: str
    source_last_modified: int
    last_accessed: int

    def is_fresh_for(self, source: SourceDocument) -> bool:
        return self.source_last_modified == source.last_modified


# === Small-object store records ===


class _StoredRecordBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    last_processed: int = Field(alias="lastProcessed")
    source_last_modified: int | None = Field(default=None, alias="sourceLastModified")
    last_accessed: int | None = Field(default=None, alias="lastAccessed")

    def to_record(self) -> dict[str, Any]:
        """Serialize to the wire shape written to the small-object store."""
        return self.model_dump(by_alias=True, exclude_none=True)


class InlineRecord(_StoredRecordBase):
    """Processed content held directly in the small-object store."""

    html: str


class ReferenceRecord(_StoredRecordBase):
    """Pointer to processed content held in the blob store."""

    html_url: str = Field(alias="htmlUrl")


StoredRecord = Union[InlineRecord, ReferenceRecord]


def parse_record(data: dict[str, Any]) -> StoredRecord:
    """Validate a raw small-object record.

    A record carrying both ``html`` and ``htmlUrl`` is rejected.

    Raises:
        pydantic.ValidationError: If the record has neither or both shapes.
    """
    if "htmlUrl" in data or "html_url" in data:
        return ReferenceRecord.model_validate(data)
    return InlineRecord.model_validate(data)


# === Gateway results ===


class InlineArtifact(BaseModel):
    """Write result for content stored inline."""

    kind: Literal["inline"] = "inline"
    path: str


class ReferenceArtifact(BaseModel):
    """Write result for content uploaded to the blob store."""

    kind: Literal["reference"] = "reference"
    url: str
    path: str


StoredArtifact = Annotated[
    Union[InlineArtifact, ReferenceArtifact], Field(discriminator="kind")
]


class StoredContent(BaseModel):
    """Content resolved by the gateway, whichever tier holds it."""

    content: str
    tier: Tier
    last_processed: int
    source_last_modified: int | None = None
    last_accessed: int | None = None


class LookupResult(BaseModel):
    """Outcome of a lookup-only cache query."""

    content: str = ""
    status: CacheStatus = "new"
    tier: Tier | None = None
    source_last_modified: int | None = None

    @property
    def is_hit(self) -> bool:
        return self.status in ("cached-db", "cached-storage")

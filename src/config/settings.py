# src/config/settings.py - v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for deployment-specific settings. Components never
read Settings directly: the helpers below build the frozen config objects
passed into their constructors.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from doccache.core.errors import DocCacheError
from doccache.core.retry import RetryConfig
from doccache.storage.gateway import DEFAULT_INLINE_THRESHOLD_BYTES, TieringConfig


class ConfigurationError(DocCacheError):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Small-object store ===
    record_backend: Literal["json", "redis"] = "json"
    record_root: Path = Path("~/.doccache/records")
    record_redis_url: str = ""
    record_redis_prefix: str = "doccache:"

    # === Blob store ===
    blob_backend: Literal["local", "s3"] = "local"
    blob_root: Path = Path("~/.doccache/blobs")
    blob_s3_bucket: str = ""
    blob_s3_prefix: str = "doccache/"
    blob_s3_region: str = ""
    blob_s3_endpoint_url: str = ""
    blob_public_base_url: str = ""

    # === Tiering ===
    inline_threshold_bytes: int = DEFAULT_INLINE_THRESHOLD_BYTES

    # === Retry ===
    store_max_retries: int = 3
    store_base_delay_s: float = 0.5
    store_max_delay_s: float = 5.0
    session_max_retries: int = 3
    session_base_delay_s: float = 1.0
    session_max_delay_s: float = 10.0
    retry_jitter: float = 0.2

    # === Reference fetch ===
    fetch_timeout_s: float = 30.0

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.inline_threshold_bytes <= 0:
            errors.append("INLINE_THRESHOLD_BYTES must be > 0")

        if self.store_max_retries < 0 or self.session_max_retries < 0:
            errors.append("*_MAX_RETRIES must be >= 0")

        if self.store_base_delay_s > self.store_max_delay_s:
            errors.append("STORE_BASE_DELAY_S must be <= STORE_MAX_DELAY_S")

        if self.session_base_delay_s > self.session_max_delay_s:
            errors.append("SESSION_BASE_DELAY_S must be <= SESSION_MAX_DELAY_S")

        if not 0.0 <= self.retry_jitter < 1.0:
            errors.append("RETRY_JITTER must be in [0, 1)")

        if self.record_backend == "redis" and not self.record_redis_url:
            errors.append("RECORD_REDIS_URL must be set when RECORD_BACKEND=redis")

        if self.blob_backend == "s3" and not self.blob_s3_bucket:
            errors.append("BLOB_S3_BUCKET must be set when BLOB_BACKEND=s3")

        if self.blob_backend == "s3" and not self.blob_public_base_url:
            errors.append("BLOB_PUBLIC_BASE_URL must be set when BLOB_BACKEND=s3")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    def store_retry_config(self) -> RetryConfig:
        """Retry policy wrapped around every store call."""
        return RetryConfig(
            max_retries=self.store_max_retries,
            base_delay_s=self.store_base_delay_s,
            max_delay_s=self.store_max_delay_s,
            jitter=self.retry_jitter,
        )

    def session_retry_config(self) -> RetryConfig:
        """Retry policy for user-triggered session retries."""
        return RetryConfig(
            max_retries=self.session_max_retries,
            base_delay_s=self.session_base_delay_s,
            max_delay_s=self.session_max_delay_s,
            jitter=self.retry_jitter,
        )

    def tiering_config(self) -> TieringConfig:
        return TieringConfig(inline_threshold_bytes=self.inline_threshold_bytes)


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]

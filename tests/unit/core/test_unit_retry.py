# tests/unit/core/test_unit_retry.py - v1
"""Tests for core/retry.py - bounded exponential backoff."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from doccache.core.errors import FetchError, StoreError
from doccache.core.retry import (
    SESSION_RETRY_CONFIG,
    STORE_RETRY_CONFIG,
    RetryConfig,
    compute_delay,
    is_transient,
    with_retry,
)

_NO_DELAY = RetryConfig(max_retries=3, base_delay_s=0.0, max_delay_s=0.0, jitter=0.0)


class TestComputeDelay:
    def test_exponential_without_jitter(self):
        cfg = RetryConfig(base_delay_s=1.0, max_delay_s=100.0, jitter=0.0)
        assert [compute_delay(cfg, a) for a in range(4)] == [1.0, 2.0, 4.0, 8.0]

    def test_capped_at_max(self):
        cfg = RetryConfig(base_delay_s=1.0, max_delay_s=10.0, jitter=0.0)
        assert compute_delay(cfg, 10) == 10.0

    def test_jitter_bounds(self):
        cfg = RetryConfig(base_delay_s=1.0, max_delay_s=10.0, jitter=0.2)
        for _ in range(200):
            d = compute_delay(cfg, 1)
            assert 1.6 <= d <= 2.4

    def test_never_negative(self):
        cfg = RetryConfig(base_delay_s=0.0, max_delay_s=0.0, jitter=0.5)
        assert compute_delay(cfg, 0) == 0.0

    def test_presets(self):
        assert STORE_RETRY_CONFIG.max_retries == 3
        assert STORE_RETRY_CONFIG.base_delay_s == 0.5
        assert SESSION_RETRY_CONFIG.base_delay_s == 1.0
        assert SESSION_RETRY_CONFIG.max_delay_s == 10.0


class TestIsTransient:
    def test_store_error_flag(self):
        assert is_transient(StoreError("x")) is True
        assert is_transient(StoreError("x", transient=False)) is False

    def test_fetch_error_flag(self):
        assert is_transient(FetchError("x")) is False
        assert is_transient(FetchError("x", transient=True)) is True

    def test_other_errors_retried(self):
        assert is_transient(RuntimeError("boom")) is True


class TestWithRetry:
    @pytest.mark.asyncio
    async def test_success_first_try(self):
        op = AsyncMock(return_value="ok")
        assert await with_retry(op, config=_NO_DELAY) == "ok"
        assert op.await_count == 1

    @pytest.mark.asyncio
    async def test_success_on_third_attempt(self):
        op = AsyncMock(side_effect=[StoreError("a"), StoreError("b"), "ok"])
        assert await with_retry(op, config=_NO_DELAY) == "ok"
        assert op.await_count == 3

    @pytest.mark.asyncio
    async def test_four_attempts_then_last_error(self):
        errors = [StoreError(f"fail {i}") for i in range(4)]
        op = AsyncMock(side_effect=errors)
        with pytest.raises(StoreError, match="fail 3"):
            await with_retry(op, 3, config=_NO_DELAY)
        assert op.await_count == 4

    @pytest.mark.asyncio
    async def test_zero_retries_single_attempt(self):
        op = AsyncMock(side_effect=ValueError("nope"))
        with pytest.raises(ValueError):
            await with_retry(op, 0, config=_NO_DELAY)
        assert op.await_count == 1

    @pytest.mark.asyncio
    async def test_should_retry_rejects(self):
        op = AsyncMock(side_effect=StoreError("corrupt", transient=False))
        with pytest.raises(StoreError, match="corrupt"):
            await with_retry(op, config=_NO_DELAY, should_retry=is_transient)
        assert op.await_count == 1

    @pytest.mark.asyncio
    async def test_sleeps_between_attempts(self):
        cfg = RetryConfig(max_retries=2, base_delay_s=1.0, max_delay_s=10.0, jitter=0.0)
        op = AsyncMock(side_effect=[RuntimeError("a"), RuntimeError("b"), "ok"])
        with patch("doccache.core.retry.asyncio.sleep", new=AsyncMock()) as sleep:
            assert await with_retry(op, config=cfg) == "ok"
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_logs_final_failure(self, caplog):
        op = AsyncMock(side_effect=RuntimeError("down"))
        with caplog.at_level("ERROR", logger="doccache.core.retry"):
            with pytest.raises(RuntimeError):
                await with_retry(op, 1, config=_NO_DELAY, operation="record get")
        assert "record get failed after 2 attempt(s)" in caplog.text

"""Tests for the retry policy and the sleep providers."""

from __future__ import annotations

import asyncio

import pytest

from esplora.client.retry import RETRYABLE_STATUS_CODES, Backoff, is_status_retryable
from esplora.client.sleeper import (
    AsyncInstantSleeper,
    AsyncioSleeper,
    AsyncSleeper,
    BlockingSleeper,
    InstantSleeper,
    Sleeper,
)


class TestRetryableStatus:
    @pytest.mark.parametrize("status", [429, 500, 503])
    def test_retryable(self, status: int) -> None:
        assert is_status_retryable(status)

    @pytest.mark.parametrize("status", [200, 204, 400, 403, 404, 502, 504])
    def test_not_retryable(self, status: int) -> None:
        assert not is_status_retryable(status)

    def test_set_is_exact(self) -> None:
        assert RETRYABLE_STATUS_CODES == {429, 500, 503}


class TestBackoff:
    def test_delays_double(self) -> None:
        backoff = Backoff(max_retries=4, base_delay=0.256)
        delays = [backoff.advance() for _ in range(4)]
        assert delays == pytest.approx([0.256, 0.512, 1.024, 2.048])

    def test_budget_exhausted(self) -> None:
        backoff = Backoff(max_retries=2, base_delay=1.0)
        assert backoff.should_retry(503)
        backoff.advance()
        assert backoff.should_retry(503)
        backoff.advance()
        assert not backoff.should_retry(503)
        assert backoff.attempt == 2

    def test_zero_retries(self) -> None:
        assert not Backoff(max_retries=0, base_delay=1.0).should_retry(429)

    def test_non_retryable_status_ignores_budget(self) -> None:
        backoff = Backoff(max_retries=5, base_delay=1.0)
        assert not backoff.should_retry(400)
        assert backoff.attempt == 0


class TestSleepers:
    def test_instant_records_delays(self) -> None:
        sleeper = InstantSleeper()
        sleeper.sleep(0.5)
        sleeper.sleep(1.0)
        assert sleeper.delays == [0.5, 1.0]

    def test_async_instant_records_delays(self) -> None:
        sleeper = AsyncInstantSleeper()

        async def _run() -> None:
            await sleeper.sleep(0.25)
            await sleeper.sleep(0.5)

        asyncio.run(_run())
        assert sleeper.delays == [0.25, 0.5]

    def test_asyncio_sleeper_zero_delay(self) -> None:
        asyncio.run(AsyncioSleeper().sleep(0))

    def test_blocking_sleeper_zero_delay(self) -> None:
        BlockingSleeper().sleep(0)

    def test_protocols(self) -> None:
        assert isinstance(BlockingSleeper(), Sleeper)
        assert isinstance(InstantSleeper(), Sleeper)
        assert isinstance(AsyncioSleeper(), AsyncSleeper)
        assert isinstance(AsyncInstantSleeper(), AsyncSleeper)

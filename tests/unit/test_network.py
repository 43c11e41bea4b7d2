"""
tests/unit/test_network.py - Tests for chains/network.py

Retry/backoff, timeouts, the connectivity gate and the in-loop breaker.
"""

import asyncio
import random

import httpx
import pytest

from chains.network import (
    ConnectivityBreaker,
    ConnectivityChecker,
    NetworkExhaustedError,
    RetryPolicy,
    backoff_delay,
    call_with_retry,
    fetch_with_retry,
)
from core.constants import ErrorCode


class SleepRecorder:
    """Drop-in for asyncio.sleep that records delays instead of waiting."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestRetryPolicy:
    def test_max_attempts(self):
        assert RetryPolicy(max_retries=0).max_attempts == 1
        assert RetryPolicy(max_retries=3).max_attempts == 4

    def test_negative_retries_rejected(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_retries=-1)


class TestBackoffDelay:
    def test_exponential_with_bounded_jitter(self):
        policy = RetryPolicy(base_delay=1.0, max_delay=100.0)
        rng = random.Random(7)
        for attempt in (1, 2, 3):
            delay = backoff_delay(attempt, policy, rng)
            floor = 1.0 * 2 ** (attempt - 1)
            assert floor <= delay <= floor + 1.0

    def test_capped_at_max_delay(self):
        policy = RetryPolicy(base_delay=1.0, max_delay=5.0)
        assert backoff_delay(10, policy, random.Random(1)) == 5.0


class TestCallWithRetry:
    @pytest.mark.asyncio
    async def test_first_success_no_sleep(self):
        sleep = SleepRecorder()

        async def target():
            return "ok"

        assert await call_with_retry(target, RetryPolicy(max_retries=3), sleep=sleep) == "ok"
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_recovers_after_failures(self):
        sleep = SleepRecorder()
        calls = {"n": 0}

        async def target():
            calls["n"] += 1
            if calls["n"] < 3:
                raise ConnectionError("boom")
            return calls["n"]

        result = await call_with_retry(target, RetryPolicy(max_retries=3), sleep=sleep)
        assert result == 3
        assert len(sleep.delays) == 2

    @pytest.mark.asyncio
    async def test_exhaustion_carries_last_cause(self):
        sleep = SleepRecorder()

        async def target():
            raise ConnectionError("down")

        with pytest.raises(NetworkExhaustedError) as exc_info:
            await call_with_retry(target, RetryPolicy(max_retries=1), label="probe", sleep=sleep)

        err = exc_info.value
        assert err.attempts == 2
        assert isinstance(err.last_error, ConnectionError)
        assert err.code == ErrorCode.INFRA_NETWORK_EXHAUSTED
        # No sleep after the final attempt
        assert len(sleep.delays) == 1

    @pytest.mark.asyncio
    async def test_timeout_counts_as_failure(self):
        sleep = SleepRecorder()

        async def target():
            await asyncio.sleep(1)

        with pytest.raises(NetworkExhaustedError) as exc_info:
            await call_with_retry(target, RetryPolicy(max_retries=0, timeout=0.01), sleep=sleep)

        assert isinstance(exc_info.value.last_error, asyncio.TimeoutError)


class TestFetchWithRetry:
    @pytest.mark.asyncio
    async def test_three_attempts_for_two_retries(self):
        """max_retries=2 -> 3 attempts, total sleep <= 2 * max_delay."""
        sleep = SleepRecorder()
        calls = {"n": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            calls["n"] += 1
            return httpx.Response(503)

        policy = RetryPolicy(max_retries=2, base_delay=1.0, max_delay=3.0, timeout=1.0)
        async with mock_client(handler) as client:
            with pytest.raises(NetworkExhaustedError) as exc_info:
                await fetch_with_retry(client, "GET", "https://example.test/x", policy, sleep=sleep)

        assert calls["n"] == 3
        assert len(sleep.delays) == 2
        assert sum(sleep.delays) <= 2 * policy.max_delay
        assert isinstance(exc_info.value.last_error, httpx.HTTPStatusError)

    @pytest.mark.asyncio
    async def test_three_consecutive_timeouts_for_two_retries(self):
        """Every attempt hangs past the timeout: 3 attempts, 2 bounded sleeps."""
        sleep = SleepRecorder()
        calls = {"n": 0}

        async def handler(request: httpx.Request) -> httpx.Response:
            calls["n"] += 1
            await asyncio.sleep(1)
            return httpx.Response(200)

        policy = RetryPolicy(max_retries=2, base_delay=1.0, max_delay=3.0, timeout=0.01)
        async with mock_client(handler) as client:
            with pytest.raises(NetworkExhaustedError) as exc_info:
                await fetch_with_retry(client, "GET", "https://example.test/x", policy, sleep=sleep)

        assert calls["n"] == 3
        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.last_error, asyncio.TimeoutError)
        assert len(sleep.delays) == 2
        assert sum(sleep.delays) <= 2 * policy.max_delay

    @pytest.mark.asyncio
    async def test_returns_response_on_success(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["a"] == "1"
            return httpx.Response(200, json={"ok": True})

        async with mock_client(handler) as client:
            response = await fetch_with_retry(
                client, "GET", "https://example.test/x", RetryPolicy(max_retries=0),
                sleep=SleepRecorder(), params={"a": "1"},
            )

        assert response.json() == {"ok": True}


class TestConnectivityChecker:
    @pytest.mark.asyncio
    async def test_all_reachable(self):
        async with mock_client(lambda request: httpx.Response(200)) as client:
            checker = ConnectivityChecker(client, ["https://a.test", "https://b.test"], sleep=SleepRecorder())
            assert await checker.check() is True

    @pytest.mark.asyncio
    async def test_any_failure_fails_and_stops(self):
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.host)
            return httpx.Response(500 if request.url.host == "a.test" else 200)

        async with mock_client(handler) as client:
            checker = ConnectivityChecker(client, ["https://a.test", "https://b.test"], sleep=SleepRecorder())
            assert await checker.check() is False

        # Tight policy: one retry on a.test, b.test never probed
        assert seen == ["a.test", "a.test"]


class TestConnectivityBreaker:
    def test_every_n_is_deterministic(self):
        breaker = ConnectivityBreaker(every=3)
        assert [breaker.should_probe() for _ in range(6)] == [False, False, True, False, False, True]

    def test_seeded_probability_is_reproducible(self):
        first = ConnectivityBreaker(probability=0.5, seed=42)
        second = ConnectivityBreaker(probability=0.5, seed=42)
        assert [first.should_probe() for _ in range(20)] == [second.should_probe() for _ in range(20)]

    def test_probability_extremes(self):
        never = ConnectivityBreaker(probability=0.0, seed=1)
        always = ConnectivityBreaker(probability=1.0, seed=1)
        assert not any(never.should_probe() for _ in range(50))
        assert all(always.should_probe() for _ in range(50))

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            ConnectivityBreaker(every=0)
        with pytest.raises(ValueError):
            ConnectivityBreaker(probability=1.5)

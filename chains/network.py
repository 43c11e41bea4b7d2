"""
chains/network.py - Network resilience layer.

Provides:
- Bounded retry with exponential backoff and jitter
- Timeout-bounded HTTP calls (httpx)
- Connectivity probe used as a startup gate and in-loop circuit breaker

RETRY CONTRACT:
  attempts 1..max_retries+1, each bounded by policy.timeout
  sleep between failed attempts (never after the last):
      min(base_delay * 2^(attempt-1) + uniform(0, 1s), max_delay)
  exhaustion raises NetworkExhaustedError carrying the last cause

NetworkExhaustedError is an infrastructure failure. Callers must not treat
it as "no data".
"""

import asyncio
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Optional, TypeVar

import httpx

from core.constants import (
    BACKOFF_JITTER_SECONDS,
    DEFAULT_BASE_DELAY_SECONDS,
    DEFAULT_CONNECTIVITY_ENDPOINTS,
    DEFAULT_CONNECTIVITY_PROBABILITY,
    DEFAULT_MAX_DELAY_SECONDS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_TIMEOUT_SECONDS,
    ErrorCode,
)
from core.exceptions import InfraError
from core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

Sleeper = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class RetryPolicy:
    """Retry/backoff/timeout settings for one call. Durations in seconds."""
    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay: float = DEFAULT_BASE_DELAY_SECONDS
    max_delay: float = DEFAULT_MAX_DELAY_SECONDS
    timeout: float = DEFAULT_TIMEOUT_SECONDS

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1


DEFAULT_RETRY_POLICY = RetryPolicy()

# Tight single-retry policy for connectivity probes
CONNECTIVITY_POLICY = RetryPolicy(max_retries=1, base_delay=1.0, max_delay=5.0, timeout=5.0)


class NetworkExhaustedError(InfraError):
    """All attempts of a network call failed."""

    def __init__(
        self,
        message: str,
        last_error: Optional[BaseException] = None,
        attempts: int = 0,
    ):
        super().__init__(
            message,
            ErrorCode.INFRA_NETWORK_EXHAUSTED,
            details={"attempts": attempts, "last_error": repr(last_error)},
        )
        self.last_error = last_error
        self.attempts = attempts


def backoff_delay(
    attempt: int,
    policy: RetryPolicy,
    rng: Optional[random.Random] = None,
) -> float:
    """
    Delay to sleep after failed attempt number `attempt` (1-indexed).
    """
    jitter = (rng or random).uniform(0, BACKOFF_JITTER_SECONDS)
    delay = policy.base_delay * (2 ** (attempt - 1))
    return min(delay + jitter, policy.max_delay)


async def call_with_retry(
    target: Callable[[], Awaitable[T]],
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    label: str = "call",
    sleep: Sleeper = asyncio.sleep,
    rng: Optional[random.Random] = None,
) -> T:
    """
    Run an async call with per-attempt timeout and exponential backoff.

    Args:
        target: Zero-argument coroutine factory, invoked once per attempt
        policy: Retry policy
        label: Name used in logs and the exhaustion message
        sleep: Sleep coroutine (injectable for tests)
        rng: Random source for jitter

    Returns:
        Whatever target returns on the first successful attempt

    Raises:
        NetworkExhaustedError: If every attempt failed or timed out
    """
    last_error: Optional[BaseException] = None

    for attempt in range(1, policy.max_attempts + 1):
        logger.debug(
            f"[Network] Attempting {label} (attempt {attempt})",
            extra={"context": {"label": label, "attempt": attempt}},
        )
        try:
            result = await asyncio.wait_for(target(), timeout=policy.timeout)
            logger.debug(
                f"[Network] Success {label} (attempt {attempt})",
                extra={"context": {"label": label, "attempt": attempt}},
            )
            return result

        except asyncio.TimeoutError as e:
            last_error = e
            logger.warning(
                f"[Network] Timeout {label} after {policy.timeout}s (attempt {attempt})",
                extra={"context": {"label": label, "attempt": attempt, "timeout": policy.timeout}},
            )

        except Exception as e:
            last_error = e
            logger.warning(
                f"[Network] Failed {label} (attempt {attempt}): {e}",
                extra={"context": {"label": label, "attempt": attempt, "error": str(e)}},
            )

        if attempt < policy.max_attempts:
            delay = backoff_delay(attempt, policy, rng)
            logger.debug(
                f"[Network] Retrying {label} in {delay:.2f}s",
                extra={"context": {"label": label, "delay": round(delay, 3)}},
            )
            await sleep(delay)

    raise NetworkExhaustedError(
        f"Failed {label} after {policy.max_attempts} attempts",
        last_error=last_error,
        attempts=policy.max_attempts,
    )


async def fetch_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    sleep: Sleeper = asyncio.sleep,
    rng: Optional[random.Random] = None,
    **request_kwargs: Any,
) -> httpx.Response:
    """
    HTTP request with retry. A non-2xx response counts as a failed attempt.

    Raises:
        NetworkExhaustedError: If every attempt failed
    """
    async def attempt() -> httpx.Response:
        response = await client.request(method, url, timeout=policy.timeout, **request_kwargs)
        response.raise_for_status()
        return response

    return await call_with_retry(attempt, policy, label=f"{method} {url}", sleep=sleep, rng=rng)


class ConnectivityChecker:
    """
    Pass/fail reachability check of the critical external endpoints.

    Probes run sequentially; the first failing endpoint fails the check.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        endpoints: Iterable[str] = DEFAULT_CONNECTIVITY_ENDPOINTS,
        policy: RetryPolicy = CONNECTIVITY_POLICY,
        sleep: Sleeper = asyncio.sleep,
    ):
        self.client = client
        self.endpoints = list(endpoints)
        self.policy = policy
        self.sleep = sleep

    async def check(self) -> bool:
        """Return True only if every endpoint answered with a 2xx."""
        logger.info(
            "[Network] Validating connectivity to critical APIs...",
            extra={"context": {"endpoints": len(self.endpoints)}},
        )

        for endpoint in self.endpoints:
            try:
                await fetch_with_retry(self.client, "GET", endpoint, self.policy, sleep=self.sleep)
            except NetworkExhaustedError as e:
                logger.error(
                    f"[Network] Connectivity check failed for {endpoint}",
                    extra={"context": {"endpoint": endpoint, "last_error": repr(e.last_error)}},
                )
                return False
            logger.info(f"[Network] {endpoint} is reachable", extra={"context": {"endpoint": endpoint}})

        logger.info("[Network] All critical APIs are reachable")
        return True


class ConnectivityBreaker:
    """
    Decides when the detector runs an in-loop connectivity probe.

    With `every=N` the probe runs on every Nth evaluation. Otherwise each
    evaluation probes with `probability`, drawn from a private seeded RNG.
    """

    def __init__(
        self,
        every: Optional[int] = None,
        probability: float = DEFAULT_CONNECTIVITY_PROBABILITY,
        seed: Optional[int] = None,
    ):
        if every is not None and every <= 0:
            raise ValueError(f"every must be positive, got {every}")
        if not 0.0 <= probability <= 1.0:
            raise ValueError(f"probability must be in [0, 1], got {probability}")
        self.every = every
        self.probability = probability
        self._rng = random.Random(seed)
        self._calls = 0

    def should_probe(self) -> bool:
        self._calls += 1
        if self.every is not None:
            return self._calls % self.every == 0
        return self._rng.random() < self.probability

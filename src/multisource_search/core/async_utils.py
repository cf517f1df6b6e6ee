"""
Async Utilities for Fan-Out Provider Calls.

Provides:
- All-settled parallel execution that preserves input order
- Circuit breaker for repeatedly failing providers
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from .exceptions import RateLimitError

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# All-Settled Gather
# =============================================================================

@dataclass(frozen=True, slots=True)
class Settled(Generic[T]):
    """Outcome of one awaited coroutine: either a value or an error."""

    value: T | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def gather_settled(
    coros: Sequence[Awaitable[T]],
    timeout: float | None = None,
) -> list[Settled[T]]:
    """
    Run coroutines concurrently and wait for every one of them to settle.

    Unlike ``asyncio.gather`` a failing coroutine never cancels its
    siblings. When ``timeout`` expires, still-pending tasks are cancelled
    and reported as ``TimeoutError``.

    Args:
        coros: Coroutines to execute
        timeout: Overall wall-clock budget in seconds (None = unbounded)

    Returns:
        One ``Settled`` per input, in input order.

    Example:
        outcomes = await gather_settled(
            [pubmed.search(q, 15), crossref.search(q, 15)],
            timeout=30.0,
        )
    """
    if not coros:
        return []

    tasks = [asyncio.ensure_future(coro) for coro in coros]
    try:
        _, pending = await asyncio.wait(tasks, timeout=timeout)
    except asyncio.CancelledError:
        for task in tasks:
            task.cancel()
        raise

    if pending:
        logger.warning(f"{len(pending)} task(s) still pending after {timeout}s, cancelling")
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    outcomes: list[Settled[T]] = []
    for task in tasks:
        if task in pending:
            outcomes.append(Settled(error=TimeoutError(f"Timed out after {timeout}s")))
        elif task.cancelled():
            outcomes.append(Settled(error=asyncio.CancelledError()))
        elif task.exception() is not None:
            outcomes.append(Settled(error=task.exception()))
        else:
            outcomes.append(Settled(value=task.result()))
    return outcomes


# =============================================================================
# Circuit Breaker Pattern
# =============================================================================

@dataclass
class CircuitBreaker:
    """
    Circuit breaker for fault tolerance.

    States:
    - CLOSED: Normal operation
    - OPEN: Failing, reject requests immediately
    - HALF_OPEN: Testing if service recovered

    Example:
        breaker = CircuitBreaker(failure_threshold=5)

        async with breaker:
            result = await risky_api_call()
    """
    failure_threshold: int = 5
    recovery_timeout: float = 30.0
    half_open_max_calls: int = 3

    _failure_count: int = field(init=False, default=0)
    _last_failure_time: float | None = field(init=False, default=None)
    _state: str = field(init=False, default="closed")
    _half_open_calls: int = field(init=False, default=0)
    _lock: asyncio.Lock = field(init=False, default_factory=asyncio.Lock)

    @property
    def state(self) -> str:
        return self._state

    @property
    def is_open(self) -> bool:
        """Check if circuit is open (rejecting requests)."""
        if self._state == "open":
            if self._last_failure_time is not None:
                if time.monotonic() - self._last_failure_time > self.recovery_timeout:
                    return False  # Move to half-open
            return True
        return False

    async def __aenter__(self) -> CircuitBreaker:
        async with self._lock:
            if self.is_open:
                raise RateLimitError(
                    "Circuit breaker is open",
                    retry_after=self.recovery_timeout,
                )

            if self._state == "open":
                self._state = "half_open"
                self._half_open_calls = 0

            if self._state == "half_open":
                if self._half_open_calls >= self.half_open_max_calls:
                    raise RateLimitError(
                        "Circuit breaker is half-open (max calls reached)",
                        retry_after=self.recovery_timeout / 2,
                    )
                self._half_open_calls += 1

        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        async with self._lock:
            if exc_val is not None:
                self._failure_count += 1
                self._last_failure_time = time.monotonic()

                if self._failure_count >= self.failure_threshold:
                    self._state = "open"
                    logger.warning(
                        f"Circuit breaker opened after {self._failure_count} failures"
                    )
            else:
                if self._state == "half_open":
                    self._state = "closed"
                    self._failure_count = 0
                    logger.info("Circuit breaker closed (recovered)")
                elif self._state == "closed":
                    self._failure_count = max(0, self._failure_count - 1)


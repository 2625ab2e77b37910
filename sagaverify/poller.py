# ============================================
# FILE: sagaverify/poller.py
# ============================================

"""
Retry/poll engine for convergence checks.

A convergence check is an async callable that reads remote state and raises
when that state does not match the expectation yet. The poller keeps calling
it on a fixed interval until it passes or ``max_wait`` runs out:

    >>> poller = RetryPoller(max_wait=10, interval=0.5)
    >>> outcome = await poller.poll_until("order approved", check_order_approved)
    >>> outcome.converged
    True

Rules:
- The first attempt runs immediately; a system that is already consistent
  pays no delay.
- A pass returns at once, with no trailing sleep.
- ``CheckFailure`` and ``AssertionError`` are "not yet" and are retried.
  Any other exception (TransportError first of all) propagates untouched.
- The interval is fixed; there is no backoff.
- Attempts must be read-only. Mutating actions are never polled.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any

from sagaverify.core.exceptions import CheckFailure, PollTimeoutError
from sagaverify.core.logger import get_logger
from sagaverify.core.types import PollOutcome

Attempt = Callable[[], Awaitable[Any]]

# Exceptions that mean "remote state does not match yet"
RETRYABLE_FAILURES: tuple[type[BaseException], ...] = (CheckFailure, AssertionError)


class RetryPoller:
    """
    Fixed-interval poller.

    Args:
        max_wait: Seconds to keep polling before giving up
        interval: Seconds to wait between two attempts
        sleep: Awaitable sleep function (injectable for tests)
        clock: Monotonic clock in seconds (injectable for tests)
    """

    def __init__(
        self,
        max_wait: float,
        interval: float,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_wait < 0:
            msg = f"max_wait must not be negative, got {max_wait}"
            raise ValueError(msg)
        if interval <= 0:
            msg = f"interval must be positive, got {interval}"
            raise ValueError(msg)
        self.max_wait = max_wait
        self.interval = interval
        self._sleep = sleep
        self._clock = clock

    def with_timing(self, max_wait: float | None = None, interval: float | None = None) -> "RetryPoller":
        """Return a poller sharing this one's clock and sleep, with other timings."""
        if max_wait is None and interval is None:
            return self
        return RetryPoller(
            max_wait=self.max_wait if max_wait is None else max_wait,
            interval=self.interval if interval is None else interval,
            sleep=self._sleep,
            clock=self._clock,
        )

    async def poll_until(self, description: str, attempt: Attempt) -> PollOutcome:
        """
        Poll ``attempt`` until it passes or ``max_wait`` elapses.

        Returns:
            PollOutcome.converged_after(...) or PollOutcome.timed_out(...)
        """
        log = get_logger(__name__)
        started = self._clock()
        attempts = 0
        last_failure: BaseException | None = None

        while True:
            attempts += 1
            try:
                await attempt()
            except RETRYABLE_FAILURES as e:
                last_failure = e
                log.debug(f"'{description}' attempt {attempts} not converged: {e}")
            else:
                elapsed = self._clock() - started
                if attempts > 1:
                    log.debug(f"'{description}' converged after {attempts} attempts")
                return PollOutcome.converged_after(attempts, elapsed)

            if self._clock() - started >= self.max_wait:
                break
            await self._sleep(self.interval)
            if self._clock() - started >= self.max_wait:
                break

        elapsed = self._clock() - started
        log.warning(
            f"'{description}' timed out after {attempts} attempts ({elapsed:.2f}s): {last_failure}"
        )
        return PollOutcome.timed_out(attempts, elapsed, last_failure)

    async def eventually(self, description: str, attempt: Attempt) -> PollOutcome:
        """Like poll_until, but raise PollTimeoutError when convergence is not reached."""
        outcome = await self.poll_until(description, attempt)
        if outcome.is_timed_out:
            raise PollTimeoutError(
                description, outcome.last_failure, outcome.attempts, outcome.elapsed
            )
        return outcome

    def __repr__(self) -> str:
        return f"RetryPoller(max_wait={self.max_wait}, interval={self.interval})"

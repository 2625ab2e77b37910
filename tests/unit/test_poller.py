"""
Tests for RetryPoller timing and retry semantics (fake clock, no real sleeps)
"""

import pytest
from fakes import FakeClock

from sagaverify import (
    AssertionMismatch,
    PollTimeoutError,
    RetryPoller,
    TransportError,
    UnexpectedStatusError,
)


def make_poller(clock: FakeClock, max_wait: float = 0.5, interval: float = 0.1) -> RetryPoller:
    return RetryPoller(max_wait, interval, sleep=clock.sleep, clock=clock.now)


class FlakyCheck:
    """Fails ``failures`` times with ``error`` before passing."""

    def __init__(self, failures: int, error=None):
        self.failures = failures
        self.error = error or AssertionMismatch("order state", "APPROVED", "PENDING")
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error


class TestConvergence:
    @pytest.mark.asyncio
    async def test_first_attempt_pass_has_no_delay(self):
        clock = FakeClock()
        check = FlakyCheck(failures=0)

        outcome = await make_poller(clock).poll_until("order approved", check)

        assert outcome.converged
        assert outcome.attempts == 1
        assert outcome.elapsed == 0
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_passes_on_third_attempt(self):
        clock = FakeClock()
        check = FlakyCheck(failures=2)

        outcome = await make_poller(clock).poll_until("order approved", check)

        assert outcome.converged
        assert outcome.attempts == 3
        assert clock.sleeps == [0.1, 0.1]
        assert outcome.last_failure is None

    @pytest.mark.asyncio
    async def test_no_sleep_after_pass(self):
        clock = FakeClock()
        await make_poller(clock).poll_until("x", FlakyCheck(failures=1))

        assert len(clock.sleeps) == 1

    @pytest.mark.asyncio
    async def test_plain_assertion_error_is_retried(self):
        clock = FakeClock()
        check = FlakyCheck(failures=1, error=AssertionError("not yet"))

        outcome = await make_poller(clock).poll_until("plain assert", check)

        assert outcome.converged
        assert outcome.attempts == 2

    @pytest.mark.asyncio
    async def test_unexpected_status_is_retried(self):
        clock = FakeClock()
        error = UnexpectedStatusError((200,), 404, "http://ftgo.test:8081/accounts/1")
        check = FlakyCheck(failures=3, error=error)

        outcome = await make_poller(clock).poll_until("account exists", check)

        assert outcome.converged
        assert outcome.attempts == 4


class TestTimeout:
    @pytest.mark.asyncio
    async def test_attempt_count_and_elapsed_bound(self):
        """max_wait=0.5 with interval=0.1: attempts at 0, .1, .2, .3, .4"""
        clock = FakeClock()
        check = FlakyCheck(failures=100)

        outcome = await make_poller(clock).poll_until("never converges", check)

        assert outcome.is_timed_out
        assert outcome.attempts == 5
        assert check.calls == 5
        assert outcome.elapsed <= 0.5 + 0.1
        assert isinstance(outcome.last_failure, AssertionMismatch)
        assert outcome.last_failure.observed == "PENDING"

    @pytest.mark.asyncio
    async def test_last_failure_is_from_final_attempt(self):
        clock = FakeClock()
        seen = []

        async def check():
            error = AssertionMismatch("state", "APPROVED", f"PENDING#{len(seen)}")
            seen.append(error)
            raise error

        outcome = await make_poller(clock, max_wait=0.3).poll_until("state", check)

        assert outcome.last_failure is seen[-1]

    @pytest.mark.asyncio
    async def test_zero_max_wait_means_single_attempt(self):
        clock = FakeClock()
        check = FlakyCheck(failures=1)

        outcome = await make_poller(clock, max_wait=0).poll_until("once", check)

        assert outcome.is_timed_out
        assert outcome.attempts == 1
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_eventually_raises_poll_timeout(self):
        clock = FakeClock()

        with pytest.raises(PollTimeoutError) as exc_info:
            await make_poller(clock).eventually("order approved", FlakyCheck(failures=100))

        error = exc_info.value
        assert error.description == "order approved"
        assert error.attempts == 5
        assert "did not converge after 5 attempt(s)" in str(error)
        assert "'PENDING'" in str(error)

    @pytest.mark.asyncio
    async def test_eventually_returns_outcome_on_success(self):
        outcome = await make_poller(FakeClock()).eventually("ok", FlakyCheck(failures=0))
        assert outcome.converged


class TestFatalErrors:
    @pytest.mark.asyncio
    async def test_transport_error_propagates_immediately(self):
        clock = FakeClock()
        error = TransportError("GET", "http://ftgo.test:8081/orders/1", OSError("refused"))
        check = FlakyCheck(failures=100, error=error)

        with pytest.raises(TransportError):
            await make_poller(clock).poll_until("order approved", check)

        assert check.calls == 1
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_programming_error_propagates(self):
        check = FlakyCheck(failures=1, error=ValueError("bug in check"))

        with pytest.raises(ValueError, match="bug in check"):
            await make_poller(FakeClock()).poll_until("buggy", check)


class TestConstruction:
    def test_negative_max_wait_rejected(self):
        with pytest.raises(ValueError, match="max_wait"):
            RetryPoller(-1, 0.1)

    @pytest.mark.parametrize("interval", [0, -0.5])
    def test_non_positive_interval_rejected(self, interval):
        with pytest.raises(ValueError, match="interval"):
            RetryPoller(1, interval)

    def test_with_timing_overrides_and_shares_clock(self):
        clock = FakeClock()
        poller = make_poller(clock)

        tuned = poller.with_timing(max_wait=30)

        assert tuned.max_wait == 30
        assert tuned.interval == 0.1
        assert tuned._clock == clock.now
        assert tuned._sleep == clock.sleep

    def test_with_timing_without_overrides_returns_same(self):
        poller = RetryPoller(1, 0.1)
        assert poller.with_timing() is poller

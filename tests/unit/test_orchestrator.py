"""
Tests for WorkflowOrchestrator: actions, convergence checks and whole runs
"""

import asyncio
import logging

import pytest

from sagaverify import (
    Assertion,
    AssertionMismatch,
    HarnessConfig,
    MissingEntityRefError,
    PollTimeoutError,
    RetryPoller,
    RunContext,
    RunDeadlineExceededError,
    RunStatus,
    ScenarioScript,
    ScriptValidationError,
    StepFailedError,
    StepKind,
    StepStatus,
    TransportError,
    UnexpectedStatusError,
    WorkflowOrchestrator,
)
from sagaverify.monitoring import RunMetrics


class Remote:
    """Tiny eventually-consistent store: a write becomes visible after ``lag`` reads."""

    def __init__(self, lag: int = 2):
        self.lag = lag
        self.state = "PENDING"
        self._pending: list[tuple[int, str]] = []
        self.reads = 0
        self.writes = 0

    def write(self, state: str) -> None:
        self.writes += 1
        self._pending.append((self.lag, state))

    def read(self) -> str:
        self.reads += 1
        still_pending = []
        for countdown, state in self._pending:
            if countdown <= 1:
                self.state = state
            else:
                still_pending.append((countdown - 1, state))
        self._pending = still_pending
        return self.state


def state_is(remote: Remote, expected: str) -> Assertion:
    async def check(ctx: RunContext) -> None:
        observed = ctx.observe("state", remote.read())
        if observed != expected:
            raise AssertionMismatch("state", expected, observed)

    return Assertion(f"state is {expected}", check)


@pytest.fixture
def orchestrator(probe, config, poller) -> WorkflowOrchestrator:
    return WorkflowOrchestrator(probe, config, poller=poller)


class TestRunAction:
    @pytest.mark.asyncio
    async def test_stores_produced_ref(self, orchestrator):
        async def create(ctx):
            return 42

        ref = await orchestrator.run_action("create_order", create, produces="order_id")

        assert ref == 42
        assert orchestrator.context.ref("order_id") == 42
        result = orchestrator.results[0]
        assert result.status == StepStatus.PASSED
        assert result.kind == StepKind.ACTION
        assert result.attempts == 1
        assert result.produced == 42

    @pytest.mark.asyncio
    async def test_failure_is_wrapped_and_not_retried(self, orchestrator):
        calls = []

        async def create(ctx):
            calls.append(1)
            raise UnexpectedStatusError((200,), 500, "http://ftgo.test:8081/orders")

        with pytest.raises(StepFailedError) as exc_info:
            await orchestrator.run_action("create_order", create, produces="order_id")

        assert len(calls) == 1
        assert exc_info.value.step_name == "create_order"
        assert isinstance(exc_info.value.cause, UnexpectedStatusError)
        assert "got 500" in str(exc_info.value)
        assert orchestrator.results[0].status == StepStatus.FAILED
        assert not orchestrator.context.has_ref("order_id")

    @pytest.mark.asyncio
    async def test_missing_produced_value_fails(self, orchestrator):
        async def create(ctx):
            return None

        with pytest.raises(StepFailedError, match="no value for 'order_id'"):
            await orchestrator.run_action("create_order", create, produces="order_id")

    @pytest.mark.asyncio
    async def test_unknown_ref_fails_the_action(self, orchestrator):
        async def cancel(ctx):
            ctx.ref("order_id")

        with pytest.raises(StepFailedError) as exc_info:
            await orchestrator.run_action("cancel_order", cancel)

        assert isinstance(exc_info.value.cause, MissingEntityRefError)


class TestRunConvergenceCheck:
    @pytest.mark.asyncio
    async def test_converges_after_lag(self, orchestrator, clock):
        remote = Remote(lag=3)
        remote.write("APPROVED")

        result = await orchestrator.run_convergence_check(
            "verify_order_approved", state_is(remote, "APPROVED")
        )

        assert result.status == StepStatus.PASSED
        assert result.kind == StepKind.CONVERGENCE_CHECK
        assert result.attempts == 3
        assert len(clock.sleeps) == 2
        assert result.observations == {"state": "APPROVED"}

    @pytest.mark.asyncio
    async def test_failed_attempts_are_logged(self, orchestrator, caplog):
        remote = Remote(lag=3)
        remote.write("APPROVED")

        with caplog.at_level(logging.DEBUG, logger="sagaverify.run"):
            await orchestrator.run_convergence_check("verify", state_is(remote, "APPROVED"))

        attempts = [r.attempt for r in caplog.records if hasattr(r, "attempt")]
        assert attempts == [1, 2]

    @pytest.mark.asyncio
    async def test_assertions_polled_in_order(self, orchestrator):
        remote = Remote(lag=1)
        remote.write("APPROVED")
        seen = []

        async def first(ctx):
            seen.append("first")

        async def second(ctx):
            seen.append("second")

        await orchestrator.run_convergence_check(
            "verify", Assertion("first", first), Assertion("second", second)
        )

        assert seen == ["first", "second"]

    @pytest.mark.asyncio
    async def test_timeout_names_step_assertion_and_observation(self, orchestrator):
        remote = Remote()

        with pytest.raises(PollTimeoutError) as exc_info:
            await orchestrator.run_convergence_check(
                "verify_order_approved",
                state_is(remote, "APPROVED"),
                max_wait=0.5,
                interval=0.1,
            )

        error = exc_info.value
        assert error.step_name == "verify_order_approved"
        assert error.attempts == 5
        message = str(error)
        assert "verify_order_approved" in message
        assert "state is APPROVED" in message
        assert "'PENDING'" in message
        assert orchestrator.results[0].status == StepStatus.FAILED

    @pytest.mark.asyncio
    async def test_transport_error_aborts_without_retry(self, orchestrator, clock):
        calls = []

        async def check(ctx):
            calls.append(1)
            raise TransportError("GET", "http://ftgo.test:8081/orders/1", OSError("refused"))

        with pytest.raises(TransportError):
            await orchestrator.run_convergence_check("verify", Assertion("reachable", check))

        assert len(calls) == 1
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_wrapped(self, orchestrator):
        async def check(ctx):
            raise KeyError("state")

        with pytest.raises(StepFailedError) as exc_info:
            await orchestrator.run_convergence_check("verify", Assertion("buggy", check))

        assert isinstance(exc_info.value.cause, KeyError)


class TestRun:
    def script(self, remote: Remote) -> ScenarioScript:
        async def create(ctx):
            remote.write("APPROVED")
            return 7

        async def cancel(ctx):
            ctx.ref("order_id")
            remote.write("CANCELLED")

        return (
            ScenarioScript("order-flow")
            .add_action("create_order", create, produces="order_id")
            .add_check("verify_order_approved", state_is(remote, "APPROVED"))
            .add_action("cancel_order", cancel, requires=["order_id"])
            .add_check("verify_order_cancelled", state_is(remote, "CANCELLED"))
        )

    @pytest.mark.asyncio
    async def test_successful_run(self, orchestrator):
        remote = Remote()

        result = await orchestrator.run(self.script(remote))

        assert result.status == RunStatus.FINISHED
        assert result.success
        assert result.error is None
        assert result.completed_steps == result.total_steps == 4
        assert result.scenario_name == "order-flow"
        assert result.run_id == orchestrator.context.run_id
        assert result.step("verify_order_approved").observations == {"state": "APPROVED"}
        assert result.step("verify_order_cancelled").observations == {"state": "CANCELLED"}
        assert remote.writes == 2
        assert result.raise_for_status() is result

    @pytest.mark.asyncio
    async def test_failed_check_aborts_and_skips_rest(self, probe, config, clock):
        poller = RetryPoller(0.5, 0.1, sleep=clock.sleep, clock=clock.now)
        orchestrator = WorkflowOrchestrator(probe, config, poller=poller)
        remote = Remote(lag=100)

        result = await orchestrator.run(self.script(remote))

        assert result.status == RunStatus.ABORTED
        assert result.is_aborted
        assert isinstance(result.error, PollTimeoutError)
        assert [s.status for s in result.steps] == [
            StepStatus.PASSED,
            StepStatus.FAILED,
            StepStatus.SKIPPED,
            StepStatus.SKIPPED,
        ]
        assert result.failed_step.name == "verify_order_approved"
        assert remote.writes == 1
        with pytest.raises(PollTimeoutError):
            result.raise_for_status()

    @pytest.mark.asyncio
    async def test_failed_action_aborts(self, orchestrator):
        async def create(ctx):
            raise UnexpectedStatusError((200,), 500, "http://ftgo.test:8081/orders")

        script = (
            ScenarioScript("s")
            .add_action("create_order", create, produces="order_id")
            .add_check("verify", Assertion("never reached", create))
        )

        result = await orchestrator.run(script)

        assert isinstance(result.error, StepFailedError)
        assert result.step("create_order").status == StepStatus.FAILED
        assert result.step("verify").status == StepStatus.SKIPPED

    @pytest.mark.asyncio
    async def test_invalid_script_raises_before_running(self, orchestrator):
        calls = []

        async def cancel(ctx):
            calls.append(1)

        script = ScenarioScript("s").add_action("cancel", cancel, requires=["order_id"])

        with pytest.raises(ScriptValidationError):
            await orchestrator.run(script)

        assert calls == []
        assert orchestrator.status == RunStatus.PENDING

    @pytest.mark.asyncio
    async def test_orchestrator_is_single_use(self, orchestrator):
        await orchestrator.run(ScenarioScript("once"))

        with pytest.raises(RuntimeError, match="already used"):
            await orchestrator.run(ScenarioScript("twice"))

    @pytest.mark.asyncio
    async def test_run_deadline(self, probe):
        config = HarnessConfig(run_deadline=0.05, default_max_wait=5, default_interval=0.01)
        orchestrator = WorkflowOrchestrator(probe, config)
        remote = Remote(lag=10_000)

        result = await orchestrator.run(self.script(remote))

        assert result.status == RunStatus.ABORTED
        assert isinstance(result.error, RunDeadlineExceededError)
        assert result.error.step_name == "verify_order_approved"
        assert result.step("verify_order_approved").status == StepStatus.FAILED
        assert result.step("cancel_order").status == StepStatus.SKIPPED

    @pytest.mark.asyncio
    async def test_run_deadline_times_interrupted_step_from_its_own_start(self, probe):
        config = HarnessConfig(run_deadline=0.15, default_max_wait=5, default_interval=0.01)
        orchestrator = WorkflowOrchestrator(probe, config)
        remote = Remote(lag=10_000)

        async def slow_create(ctx):
            await asyncio.sleep(0.08)
            remote.write("APPROVED")
            return 7

        script = (
            ScenarioScript("slow")
            .add_action("create_order", slow_create, produces="order_id")
            .add_check("verify_order_approved", state_is(remote, "APPROVED"))
        )

        result = await orchestrator.run(script)

        create = result.step("create_order")
        verify = result.step("verify_order_approved")
        assert isinstance(verify.error, RunDeadlineExceededError)
        assert create.elapsed >= 0.08
        assert verify.elapsed < result.execution_time - 0.05

    @pytest.mark.asyncio
    async def test_scenario_name_set_on_context(self, orchestrator):
        await orchestrator.run(ScenarioScript("named"))
        assert orchestrator.context.scenario_name == "named"

    @pytest.mark.asyncio
    async def test_metrics_recorded(self, probe, config, poller):
        metrics = RunMetrics()
        orchestrator = WorkflowOrchestrator(probe, config, poller=poller, metrics=metrics)

        await orchestrator.run(self.script(Remote(lag=2)))

        data = metrics.get_metrics()
        assert data["total_runs"] == 1
        assert data["total_finished"] == 1
        assert data["success_rate"] == "100.00%"
        assert data["average_attempts"]["verify_order_approved:state is APPROVED"] == 2

    @pytest.mark.asyncio
    async def test_concurrent_runs_are_isolated(self, probe, config, clock):
        def make():
            poller = RetryPoller(5, 0.1, sleep=clock.sleep, clock=clock.now)
            return WorkflowOrchestrator(probe, config, poller=poller)

        first, second = make(), make()
        remote_a, remote_b = Remote(lag=1), Remote(lag=3)

        result_a, result_b = await asyncio.gather(
            first.run(self.script(remote_a)), second.run(self.script(remote_b))
        )

        assert result_a.success and result_b.success
        assert result_a.run_id != result_b.run_id
        assert first.context is not second.context
        assert remote_a.writes == remote_b.writes == 2

"""
Workflow orchestrator for verification scenarios.

Runs the steps of one scenario strictly in order against a live,
eventually-consistent backend:

- Actions execute once. Any failure (bad status, missing field, transport
  error) aborts the run; actions are never retried.
- Convergence checks are delegated to the RetryPoller. Mismatches are retried
  until ``max_wait``; a timeout aborts the run.

Quick Start:
    >>> async with HTTPProbe(config) as probe:
    ...     orchestrator = WorkflowOrchestrator(probe, config)
    ...     result = await orchestrator.run(script)
    >>> result.raise_for_status()

The orchestrator can also be driven step by step, which is handy inside a
plain pytest test:

    >>> consumer_id = await orchestrator.run_action(
    ...     "create_consumer", create_consumer, produces="consumer_id"
    ... )
    >>> await orchestrator.run_convergence_check(
    ...     "verify_account_created", Assertion("account exists", check_account)
    ... )

The harness never compensates: the services under test run their own sagas,
and a failed run simply stops where it failed.
"""

import asyncio
import time
from typing import Any

from sagaverify.core.config import HarnessConfig
from sagaverify.core.context import RunContext
from sagaverify.core.exceptions import (
    HarnessError,
    PollTimeoutError,
    RunDeadlineExceededError,
    StepFailedError,
)
from sagaverify.core.types import EntityRef, RunResult, RunStatus, StepKind, StepResult, StepStatus
from sagaverify.monitoring.logging import RunLogger
from sagaverify.monitoring.metrics import RunMetrics
from sagaverify.poller import RETRYABLE_FAILURES, RetryPoller
from sagaverify.probe import HTTPProbe
from sagaverify.script import (
    Action,
    ActionFn,
    Assertion,
    ConvergenceCheck,
    ScenarioScript,
    Step,
)


class WorkflowOrchestrator:
    """
    Sequences actions and convergence checks over one RunContext.

    Args:
        probe: HTTP probe shared by all steps of the run
        config: Harness configuration (default poll timings, run deadline)
        poller: Poller used by convergence checks; built from config if omitted
        context: Run context; a fresh one is created if omitted
        metrics: Optional RunMetrics collector
    """

    def __init__(
        self,
        probe: HTTPProbe,
        config: HarnessConfig,
        poller: RetryPoller | None = None,
        context: RunContext | None = None,
        metrics: RunMetrics | None = None,
    ):
        self.probe = probe
        self.config = config
        self.poller = poller or RetryPoller(config.default_max_wait, config.default_interval)
        self.context = context or RunContext()
        self.metrics = metrics
        self.status = RunStatus.PENDING
        self._log = RunLogger()
        self._results: list[StepResult] = []
        self._current_step: str | None = None

    @property
    def results(self) -> list[StepResult]:
        return list(self._results)

    # =========================================================================
    # Step primitives
    # =========================================================================

    async def run_action(
        self, name: str, fn: ActionFn, produces: str | None = None
    ) -> EntityRef | None:
        """
        Execute a mutating step once.

        Returns:
            The entity reference returned by ``fn`` (stored under ``produces``)

        Raises:
            StepFailedError: wrapping whatever ``fn`` raised
        """
        result = self._begin(name, StepKind.ACTION)
        result.attempts = 1

        try:
            ref = await fn(self.context)
            if produces is not None:
                if ref is None:
                    msg = f"action returned no value for '{produces}'"
                    raise ValueError(msg)
                self.context.set_ref(produces, ref)
        except StepFailedError as e:
            self._fail(result, e)
            raise
        except Exception as e:
            error = StepFailedError(name, e)
            self._fail(result, error)
            raise error from e

        result.produced = ref
        self._pass(result)
        return ref

    async def run_convergence_check(
        self,
        name: str,
        *assertions: Assertion,
        max_wait: float | None = None,
        interval: float | None = None,
    ) -> StepResult:
        """
        Poll each assertion in turn until it holds.

        Raises:
            PollTimeoutError: the first assertion that does not converge in
                time, with its last observed mismatch
            TransportError: immediately, without retrying
            StepFailedError: wrapping any other error raised by a check
        """
        result = self._begin(name, StepKind.CONVERGENCE_CHECK)
        poller = self.poller.with_timing(max_wait, interval)

        try:
            for assertion in assertions:
                outcome = await poller.poll_until(
                    assertion.description, self._bind(name, assertion)
                )
                result.attempts += outcome.attempts
                if self.metrics is not None:
                    self.metrics.record_check(
                        f"{name}:{assertion.description}", outcome.attempts, outcome.converged
                    )
                if outcome.is_timed_out:
                    raise PollTimeoutError(
                        assertion.description,
                        outcome.last_failure,
                        outcome.attempts,
                        outcome.elapsed,
                        step_name=name,
                    )
        except HarnessError as e:
            self._fail(result, e)
            raise
        except Exception as e:
            error = StepFailedError(name, e)
            self._fail(result, error)
            raise error from e

        self._pass(result)
        return result

    def _bind(self, step_name: str, assertion: Assertion):
        attempts = 0

        async def attempt() -> Any:
            nonlocal attempts
            attempts += 1
            try:
                return await assertion.check(self.context)
            except RETRYABLE_FAILURES as e:
                self._log.attempt_failed(step_name, assertion.description, attempts, e)
                raise

        return attempt

    # =========================================================================
    # Scenario execution
    # =========================================================================

    async def run(self, script: ScenarioScript) -> RunResult:
        """
        Execute a whole scenario.

        Never raises for step failures: the returned RunResult is ABORTED and
        carries the fatal error. Call ``raise_for_status()`` to re-raise it.

        Raises:
            ScriptValidationError: if the script is structurally invalid
        """
        script.validate()
        if self.status != RunStatus.PENDING:
            msg = f"Orchestrator already used for run {self.context.run_id}"
            raise RuntimeError(msg)

        if not self.context.scenario_name:
            self.context.scenario_name = script.name
        self.status = RunStatus.RUNNING
        started = time.monotonic()
        self._log.run_started(self.context.run_id, script.name, len(script))

        error: BaseException | None = None
        try:
            if self.config.run_deadline is None:
                await self._execute_all_steps(script)
            else:
                await asyncio.wait_for(
                    self._execute_all_steps(script), timeout=self.config.run_deadline
                )
        except TimeoutError:
            error = RunDeadlineExceededError(
                script.name, self.config.run_deadline, self._current_step
            )
            self._mark_interrupted(error)
        except HarnessError as e:
            error = e

        self.status = RunStatus.FINISHED if error is None else RunStatus.ABORTED
        duration = time.monotonic() - started
        run_result = RunResult(
            scenario_name=script.name,
            run_id=self.context.run_id,
            status=self.status,
            steps=self._collect_results(script),
            error=error,
            execution_time=duration,
            context=self.context,
        )

        self._log.run_finished(
            self.context.run_id,
            script.name,
            self.status,
            duration * 1000,
            run_result.completed_steps,
            run_result.total_steps,
        )
        if self.metrics is not None:
            self.metrics.record_run(script.name, self.status, duration)
        return run_result

    async def _execute_all_steps(self, script: ScenarioScript) -> None:
        for step in script:
            await self._execute_step(step)

    async def _execute_step(self, step: Step) -> None:
        if isinstance(step, Action):
            await self.run_action(step.name, step.fn, produces=step.produces)
        elif isinstance(step, ConvergenceCheck):
            await self.run_convergence_check(
                step.name, *step.assertions, max_wait=step.max_wait, interval=step.interval
            )
        else:
            msg = f"Unknown step type: {type(step).__name__}"
            raise TypeError(msg)

    def _collect_results(self, script: ScenarioScript) -> list[StepResult]:
        """One result per scripted step; steps never reached are SKIPPED."""
        by_name = {r.name: r for r in self._results}
        collected = []
        for step in script:
            collected.append(
                by_name.get(step.name)
                or StepResult(name=step.name, kind=step.kind, status=StepStatus.SKIPPED)
            )
        return collected

    # =========================================================================
    # Bookkeeping
    # =========================================================================

    def _begin(self, name: str, kind: StepKind) -> StepResult:
        self._current_step = name
        result = StepResult(
            name=name, kind=kind, status=StepStatus.RUNNING, started_at=time.monotonic()
        )
        self._results.append(result)
        self._log.step_started(self.context.run_id, self.context.scenario_name, name, kind.value)
        return result

    def _pass(self, result: StepResult) -> None:
        result.status = StepStatus.PASSED
        result.elapsed = time.monotonic() - result.started_at
        result.observations = dict(self.context.observations)
        self._log.step_passed(result.name, result.elapsed * 1000, result.attempts)

    def _fail(self, result: StepResult, error: BaseException) -> None:
        result.status = StepStatus.FAILED
        result.error = error
        result.elapsed = time.monotonic() - result.started_at
        result.observations = dict(self.context.observations)
        self._log.step_failed(result.name, error, result.attempts)

    def _mark_interrupted(self, error: BaseException) -> None:
        """Fail the step that was running when the run deadline hit."""
        for result in self._results:
            if result.status == StepStatus.RUNNING:
                self._fail(result, error)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(run_id={self.context.run_id}, "
            f"status={self.status.value}, steps={len(self._results)})"
        )

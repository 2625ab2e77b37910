# ============================================
# FILE: sagaverify/core/types.py
# ============================================

"""
All type definitions, enums, and dataclasses
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# Opaque identifier returned by a creation action
EntityRef = int | str


class RunStatus(Enum):
    """Overall scenario run status: PENDING -> RUNNING -> FINISHED | ABORTED"""

    PENDING = "pending"
    RUNNING = "running"
    FINISHED = "finished"
    ABORTED = "aborted"


class StepStatus(Enum):
    """Status of an individual step"""

    PENDING = "pending"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"

    SKIPPED = "skipped"
    """Step was never attempted because an earlier step aborted the run."""


class StepKind(Enum):
    ACTION = "action"
    CONVERGENCE_CHECK = "convergence_check"


@dataclass(frozen=True)
class PollOutcome:
    """
    Result of one RetryPoller run.

    Either converged (the assertion eventually passed) or timed out, in which
    case ``last_failure`` holds the mismatch observed by the final attempt.
    """

    converged: bool
    attempts: int
    elapsed: float
    last_failure: BaseException | None = None

    @classmethod
    def converged_after(cls, attempts: int, elapsed: float) -> "PollOutcome":
        return cls(converged=True, attempts=attempts, elapsed=elapsed)

    @classmethod
    def timed_out(
        cls, attempts: int, elapsed: float, last_failure: BaseException | None
    ) -> "PollOutcome":
        return cls(converged=False, attempts=attempts, elapsed=elapsed, last_failure=last_failure)

    @property
    def is_timed_out(self) -> bool:
        return not self.converged


@dataclass
class StepResult:
    """Outcome of one scenario step"""

    name: str
    kind: StepKind
    status: StepStatus = StepStatus.PENDING
    attempts: int = 0
    elapsed: float = 0.0
    error: BaseException | None = None
    produced: Any = None
    """Entity reference returned by an action, if any."""
    observations: dict[str, Any] = field(default_factory=dict)
    """Snapshot of the run context observations when the step ended."""
    started_at: float = field(default=0.0, repr=False, compare=False)
    """Monotonic clock reading when the step began."""

    @property
    def passed(self) -> bool:
        return self.status == StepStatus.PASSED


@dataclass
class RunResult:
    """
    Result of a scenario run.

    A failed run keeps the fatal error, whose message names the step, the
    unmet assertion and the last observed value.
    """

    scenario_name: str
    run_id: str
    status: RunStatus
    steps: list[StepResult] = field(default_factory=list)
    error: BaseException | None = None
    execution_time: float = 0.0
    context: Any = None

    @property
    def success(self) -> bool:
        return self.status == RunStatus.FINISHED

    @property
    def is_aborted(self) -> bool:
        return self.status == RunStatus.ABORTED

    @property
    def completed_steps(self) -> int:
        return sum(1 for s in self.steps if s.status == StepStatus.PASSED)

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    @property
    def failed_step(self) -> StepResult | None:
        for step in self.steps:
            if step.status == StepStatus.FAILED:
                return step
        return None

    def step(self, name: str) -> StepResult:
        for s in self.steps:
            if s.name == name:
                return s
        msg = f"No step named '{name}' in run of '{self.scenario_name}'"
        raise KeyError(msg)

    def raise_for_status(self) -> "RunResult":
        """Re-raise the fatal error of an aborted run; return self otherwise."""
        if self.error is not None:
            raise self.error
        return self

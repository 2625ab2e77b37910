# ============================================
# FILE: sagaverify/__init__.py
# ============================================

"""
sagaverify - convergence testing for saga-driven microservices

Drives a multi-step business transaction across services that are only
eventually consistent, and asserts that it converges to the expected state:

- Actions: one mutating HTTP call each, never retried
- Convergence checks: read-only assertions polled on a fixed interval until
  they hold or a deadline expires
- Entity ids returned by actions are threaded into later steps through a
  per-run RunContext

Usage:
    >>> from sagaverify import HarnessConfig, HTTPProbe, WorkflowOrchestrator
    >>> from sagaverify import Assertion, ScenarioScript
    >>>
    >>> script = (
    ...     ScenarioScript("order-saga")
    ...     .add_action("create_order", create_order, produces="order_id")
    ...     .add_check("verify_order_approved", Assertion("order approved", check_approved))
    ... )
    >>> config = HarnessConfig.from_env()
    >>> async with HTTPProbe(config) as probe:
    ...     result = await WorkflowOrchestrator(probe, config).run(script)
    >>> result.raise_for_status()

The bundled FTGO order saga runs in one call:
    >>> from sagaverify.scenarios.ftgo import run_order_saga
    >>> result = await run_order_saga(HarnessConfig(host="10.0.0.5"))
"""

from sagaverify.core import (
    AssertionMismatch,
    CheckFailure,
    ConfigurationError,
    EntityRef,
    HarnessConfig,
    HarnessError,
    MissingEntityRefError,
    MissingFieldError,
    ParseError,
    PollOutcome,
    PollTimeoutError,
    RunContext,
    RunDeadlineExceededError,
    RunResult,
    RunStatus,
    ScriptValidationError,
    StepFailedError,
    StepKind,
    StepResult,
    StepStatus,
    TransportError,
    UnexpectedStatusError,
)
from sagaverify.money import Money
from sagaverify.orchestrator import WorkflowOrchestrator
from sagaverify.poller import RetryPoller
from sagaverify.probe import HTTPProbe, ProbeResponse
from sagaverify.script import Action, Assertion, ConvergenceCheck, ScenarioScript

__version__ = "0.1.0"

__all__ = [
    "Action",
    "Assertion",
    "AssertionMismatch",
    "CheckFailure",
    "ConfigurationError",
    "ConvergenceCheck",
    "EntityRef",
    "HTTPProbe",
    "HarnessConfig",
    "HarnessError",
    "MissingEntityRefError",
    "MissingFieldError",
    "Money",
    "ParseError",
    "PollOutcome",
    "PollTimeoutError",
    "ProbeResponse",
    "RetryPoller",
    "RunContext",
    "RunDeadlineExceededError",
    "RunResult",
    "RunStatus",
    "ScenarioScript",
    "ScriptValidationError",
    "StepFailedError",
    "StepKind",
    "StepResult",
    "StepStatus",
    "TransportError",
    "UnexpectedStatusError",
    "WorkflowOrchestrator",
    "__version__",
]

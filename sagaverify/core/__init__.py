# ============================================
# FILE: sagaverify/core/__init__.py
# ============================================
"""
Core module for sagaverify - configuration, context, errors and types.
"""

from sagaverify.core.config import HarnessConfig
from sagaverify.core.context import RunContext
from sagaverify.core.env import EnvManager
from sagaverify.core.exceptions import (
    AssertionMismatch,
    CheckFailure,
    ConfigurationError,
    HarnessError,
    MissingEntityRefError,
    MissingFieldError,
    ParseError,
    PollTimeoutError,
    RunDeadlineExceededError,
    ScriptValidationError,
    StepFailedError,
    TransportError,
    UnexpectedStatusError,
)
from sagaverify.core.logger import NullLogger, get_logger, set_logger
from sagaverify.core.types import (
    EntityRef,
    PollOutcome,
    RunResult,
    RunStatus,
    StepKind,
    StepResult,
    StepStatus,
)

__all__ = [
    # Config
    "EnvManager",
    "HarnessConfig",
    # Context
    "RunContext",
    # Exceptions
    "AssertionMismatch",
    "CheckFailure",
    "ConfigurationError",
    "HarnessError",
    "MissingEntityRefError",
    "MissingFieldError",
    "ParseError",
    "PollTimeoutError",
    "RunDeadlineExceededError",
    "ScriptValidationError",
    "StepFailedError",
    "TransportError",
    "UnexpectedStatusError",
    # Logger
    "NullLogger",
    "get_logger",
    "set_logger",
    # Types
    "EntityRef",
    "PollOutcome",
    "RunResult",
    "RunStatus",
    "StepKind",
    "StepResult",
    "StepStatus",
]

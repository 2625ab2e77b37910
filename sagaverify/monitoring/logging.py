"""
Structured logging for scenario runs

Every record emitted while a run is active carries the run id, scenario
name and current step, so interleaved logs of concurrent runs can be told
apart.
"""

import json
import logging
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

from sagaverify.core.logger import HarnessLogger, get_logger
from sagaverify.core.types import RunStatus

# Context variables for propagating run context
run_context: ContextVar[dict[str, Any]] = ContextVar("run_context", default={})


class RunJsonFormatter(logging.Formatter):
    """JSON formatter for harness logs with structured fields"""

    _EXTRA_FIELDS = (
        "run_id",
        "scenario_name",
        "step_name",
        "step_kind",
        "attempt",
        "attempts",
        "duration_ms",
        "status",
        "error_type",
    )

    def format(self, record: logging.LogRecord) -> str:
        log_entry = self._build_base_entry(record)
        self._add_run_context(log_entry)
        self._add_record_extras(log_entry, record)
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)

    def _build_base_entry(self, record: logging.LogRecord) -> dict[str, Any]:
        return {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

    def _add_run_context(self, log_entry: dict[str, Any]) -> None:
        context = run_context.get()
        if context:
            log_entry.update(
                {
                    "run_id": context.get("run_id"),
                    "scenario_name": context.get("scenario_name"),
                    "step_name": context.get("step_name"),
                }
            )

    def _add_record_extras(self, log_entry: dict[str, Any], record: logging.LogRecord) -> None:
        for name in self._EXTRA_FIELDS:
            if hasattr(record, name):
                log_entry[name] = getattr(record, name)


class RunContextFilter(logging.Filter):
    """Adds run context to log records so plain formatters can reference it"""

    def filter(self, record: logging.LogRecord) -> bool:
        context = run_context.get()
        if not hasattr(record, "run_id"):
            record.run_id = context.get("run_id", "-")
        if not hasattr(record, "step_name"):
            record.step_name = context.get("step_name") or "-"
        return True


class RunLogger:
    """Run-aware logger used by the orchestrator"""

    def __init__(self, name: str = "sagaverify.run"):
        self.name = name

    @property
    def logger(self) -> HarnessLogger:
        # looked up per event so set_logger() applies to running orchestrators
        return get_logger(self.name)

    def set_run_context(
        self, run_id: str, scenario_name: str, step_name: str | None = None
    ) -> None:
        run_context.set(
            {"run_id": run_id, "scenario_name": scenario_name, "step_name": step_name}
        )

    def clear_run_context(self) -> None:
        run_context.set({})

    def run_started(self, run_id: str, scenario_name: str, total_steps: int) -> None:
        self.set_run_context(run_id, scenario_name)
        self.logger.info(
            f"Run started: {scenario_name} ({total_steps} steps)",
            extra={"run_id": run_id, "scenario_name": scenario_name},
        )

    def run_finished(
        self,
        run_id: str,
        scenario_name: str,
        status: RunStatus,
        duration_ms: float,
        completed_steps: int,
        total_steps: int,
    ) -> None:
        log_level = logging.INFO if status == RunStatus.FINISHED else logging.ERROR
        self.logger.log(
            log_level,
            f"Run {status.value}: {scenario_name} - {completed_steps}/{total_steps} steps passed",
            extra={
                "run_id": run_id,
                "scenario_name": scenario_name,
                "status": status.value,
                "duration_ms": duration_ms,
            },
        )
        self.clear_run_context()

    def step_started(self, run_id: str, scenario_name: str, step_name: str, kind: str) -> None:
        self.set_run_context(run_id, scenario_name, step_name)
        self.logger.info(
            f"Step started: {step_name}",
            extra={"step_name": step_name, "step_kind": kind},
        )

    def step_passed(self, step_name: str, duration_ms: float, attempts: int = 1) -> None:
        self.logger.info(
            f"Step passed: {step_name}",
            extra={"step_name": step_name, "duration_ms": duration_ms, "attempts": attempts},
        )

    def attempt_failed(
        self, step_name: str, description: str, attempt: int, reason: BaseException
    ) -> None:
        self.logger.debug(
            f"Not converged yet: {step_name} / {description} (attempt {attempt}): {reason}",
            extra={"step_name": step_name, "attempt": attempt},
        )

    def step_failed(self, step_name: str, error: BaseException, attempts: int = 1) -> None:
        self.logger.error(
            f"Step failed: {step_name} - {error!s}",
            extra={
                "step_name": step_name,
                "error_type": type(error).__name__,
                "attempts": attempts,
            },
        )


def setup_run_logging(log_level: str = "INFO", json_format: bool = False) -> RunLogger:
    """
    Set up console logging for the harness.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_format: Emit one JSON object per line instead of plain text
    """
    root_logger = logging.getLogger("sagaverify")
    root_logger.setLevel(getattr(logging, log_level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    if json_format:
        console_handler.setFormatter(RunJsonFormatter())
    else:
        console_handler.addFilter(RunContextFilter())
        console_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(levelname)s - [%(run_id).8s:%(step_name)s] - %(message)s"
            )
        )
    root_logger.addHandler(console_handler)

    return RunLogger()

"""
Harness monitoring and observability utilities

Quick Start:
    >>> from sagaverify.monitoring import setup_run_logging, RunMetrics
    >>> setup_run_logging(json_format=True)
    >>> metrics = RunMetrics()
"""

from .logging import RunContextFilter, RunJsonFormatter, RunLogger, run_context, setup_run_logging
from .metrics import RunMetrics

__all__ = [
    "RunContextFilter",
    "RunJsonFormatter",
    "RunLogger",
    "RunMetrics",
    "run_context",
    "setup_run_logging",
]

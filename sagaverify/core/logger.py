"""
Logger lookup shared by every harness component.

Harness components emit through ``get_logger`` rather than holding a
``logging.Logger``, so a test suite can redirect all harness output at once:

    from sagaverify.core.logger import get_logger
    get_logger(__name__).info("Message")

    # e.g. send run events to the logger of a CI reporter
    from sagaverify.core.logger import set_logger
    set_logger(reporter_logger)
    ...
    set_logger(None)  # back to the standard 'sagaverify.*' loggers

The lookup happens when a component logs, not when it is built, so
``set_logger`` also affects orchestrators that already exist.
"""

import logging
from typing import Any, Protocol

_custom_logger: Any = None


class HarnessLogger(Protocol):
    """What a replacement logger must offer; ``logging.Logger`` qualifies."""

    def debug(self, msg: Any, *args: Any, **kwargs: Any) -> Any: ...
    def info(self, msg: Any, *args: Any, **kwargs: Any) -> Any: ...
    def warning(self, msg: Any, *args: Any, **kwargs: Any) -> Any: ...
    def error(self, msg: Any, *args: Any, **kwargs: Any) -> Any: ...
    def exception(self, msg: Any, *args: Any, **kwargs: Any) -> Any: ...
    def log(self, level: int, msg: Any, *args: Any, **kwargs: Any) -> Any: ...


class NullLogger:
    """Discards everything; ``set_logger(NullLogger())`` silences the harness."""

    def debug(self, *args, **kwargs): pass
    def info(self, *args, **kwargs): pass
    def warning(self, *args, **kwargs): pass
    def error(self, *args, **kwargs): pass
    def exception(self, *args, **kwargs): pass
    def log(self, *args, **kwargs): pass


def set_logger(logger: HarnessLogger | None) -> None:
    """Route all harness logging to ``logger``; ``None`` restores the default."""
    global _custom_logger
    _custom_logger = logger


def get_logger(name: str = "sagaverify") -> HarnessLogger:
    """
    Return the logger a harness component should write to right now.

    Args:
        name: Standard logger name used when no custom logger is set

    Returns:
        The logger given to ``set_logger``, or ``logging.getLogger(name)``
        with a NullHandler attached so libraries stay quiet by default
    """
    if _custom_logger is not None:
        return _custom_logger

    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.addHandler(logging.NullHandler())
    return logger

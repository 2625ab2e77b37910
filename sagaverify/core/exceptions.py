# ============================================
# FILE: sagaverify/core/exceptions.py
# ============================================

"""
All harness exceptions.

Two families matter to the orchestrator:

- ``CheckFailure`` and its subclasses describe remote state that does not
  (yet) match an expectation. Inside a convergence check they are retried by
  the poller; inside an action they are fatal.
- Everything else (transport errors, poll timeouts, step failures, deadline
  overruns) aborts the run.
"""

from typing import Any


class HarnessError(Exception):
    """Base harness error"""


class ConfigurationError(HarnessError):
    """Invalid harness configuration"""


class ParseError(HarnessError, ValueError):
    """Malformed value (e.g. a money amount that is not a decimal string)"""


class TransportError(HarnessError):
    """Connection, DNS or socket timeout failure while sending a request"""

    def __init__(self, method: str, url: str, cause: Exception):
        self.method = method
        self.url = url
        self.cause = cause
        super().__init__(f"{method} {url} failed: {type(cause).__name__}: {cause}")


class CheckFailure(HarnessError):
    """Remote state does not match an expectation"""


class UnexpectedStatusError(CheckFailure):
    """HTTP status code differs from the expected one(s)"""

    def __init__(self, expected: tuple[int, ...], observed: int, url: str, body: str = ""):
        self.expected = expected
        self.observed = observed
        self.url = url
        self.body = body
        wanted = " or ".join(str(code) for code in expected)
        message = f"expected status {wanted} from {url}, got {observed}"
        if body:
            message += f" (body: {body[:200]})"
        super().__init__(message)


class MissingFieldError(CheckFailure):
    """Expected JSON field absent from a response body"""

    def __init__(self, path: str, url: str):
        self.path = path
        self.url = url
        super().__init__(f"field '{path}' missing from response of {url}")


class AssertionMismatch(CheckFailure):
    """Value present but different from the expected one"""

    def __init__(self, description: str, expected: Any, observed: Any):
        self.description = description
        self.expected = expected
        self.observed = observed
        super().__init__(f"{description}: expected {expected!r}, observed {observed!r}")


class PollTimeoutError(HarnessError):
    """Convergence was not reached within the allotted wait"""

    def __init__(
        self,
        description: str,
        last_failure: BaseException | None,
        attempts: int,
        elapsed: float,
        step_name: str | None = None,
    ):
        self.description = description
        self.last_failure = last_failure
        self.attempts = attempts
        self.elapsed = elapsed
        self.step_name = step_name

        where = f"step '{step_name}': " if step_name else ""
        message = (
            f"{where}'{description}' did not converge after {attempts} attempt(s) "
            f"in {elapsed:.2f}s"
        )
        if last_failure is not None:
            message += f"; last observed: {last_failure}"
        super().__init__(message)


class StepFailedError(HarnessError):
    """An action step failed; actions are never retried"""

    def __init__(self, step_name: str, cause: BaseException):
        self.step_name = step_name
        self.cause = cause
        super().__init__(f"step '{step_name}' failed: {cause}")


class RunDeadlineExceededError(HarnessError):
    """The overall run deadline elapsed before the scenario finished"""

    def __init__(self, scenario_name: str, deadline: float, step_name: str | None = None):
        self.scenario_name = scenario_name
        self.deadline = deadline
        self.step_name = step_name
        where = f" during step '{step_name}'" if step_name else ""
        super().__init__(
            f"scenario '{scenario_name}' exceeded its run deadline of {deadline}s{where}"
        )


class MissingEntityRefError(HarnessError, KeyError):
    """A step asked for an entity reference no earlier step produced"""

    def __init__(self, name: str, available: list[str]):
        self.name = name
        self.available = available
        self.args = (f"no entity reference '{name}' in run context (have: {available})",)

    def __str__(self) -> str:
        return self.args[0]


class ScriptValidationError(HarnessError):
    """Scenario script is structurally invalid"""

"""
Declarative scenario scripts.

A scenario is an ordered list of steps of two kinds:

- ``Action``: one mutating request that must succeed on the first try.
  It may return an entity reference, stored in the run context under
  ``produces``.
- ``ConvergenceCheck``: one or more read-only assertions polled until they
  hold, because the backend is only eventually consistent.

Example:
    >>> script = ScenarioScript("order-saga")
    >>> script.add_action("create_order", create_order, produces="order_id")
    >>> script.add_check(
    ...     "verify_order_approved",
    ...     Assertion("order approved", check_order_approved),
    ... )
    >>> script.add_action("cancel_order", cancel_order, requires=["order_id"])

``validate()`` refuses a script where an action consumes an entity whose
last mutation has not been confirmed by a convergence check yet.
"""

from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from sagaverify.core.context import RunContext
from sagaverify.core.exceptions import ScriptValidationError
from sagaverify.core.types import EntityRef, StepKind

ActionFn = Callable[[RunContext], Awaitable[EntityRef | None]]
CheckFn = Callable[[RunContext], Awaitable[Any]]


@dataclass(frozen=True)
class Assertion:
    """A description plus a read-only check, re-invoked on every poll attempt."""

    description: str
    check: CheckFn


@dataclass(frozen=True)
class Action:
    name: str
    fn: ActionFn
    produces: str | None = None
    requires: tuple[str, ...] = ()
    description: str | None = None

    @property
    def kind(self) -> StepKind:
        return StepKind.ACTION

    def describe(self) -> str:
        return self.description or f"Execute {self.name}"


@dataclass(frozen=True)
class ConvergenceCheck:
    name: str
    assertions: tuple[Assertion, ...]
    max_wait: float | None = None
    interval: float | None = None
    verifies: tuple[str, ...] | None = None
    """Entity refs whose pending mutations this check confirms (None = all)."""

    @property
    def kind(self) -> StepKind:
        return StepKind.CONVERGENCE_CHECK

    def describe(self) -> str:
        return "; ".join(a.description for a in self.assertions)


Step = Action | ConvergenceCheck


@dataclass
class ScenarioScript:
    name: str
    steps: list[Step] = field(default_factory=list)

    def add_action(
        self,
        name: str,
        fn: ActionFn,
        produces: str | None = None,
        requires: Iterable[str] = (),
        description: str | None = None,
    ) -> "ScenarioScript":
        self._check_unique(name)
        self.steps.append(Action(name, fn, produces, tuple(requires), description))
        return self

    def add_check(
        self,
        name: str,
        *assertions: Assertion,
        max_wait: float | None = None,
        interval: float | None = None,
        verifies: Iterable[str] | None = None,
    ) -> "ScenarioScript":
        self._check_unique(name)
        self.steps.append(
            ConvergenceCheck(
                name,
                tuple(assertions),
                max_wait=max_wait,
                interval=interval,
                verifies=tuple(verifies) if verifies is not None else None,
            )
        )
        return self

    def _check_unique(self, name: str) -> None:
        if any(s.name == name for s in self.steps):
            msg = f"Step '{name}' already exists in scenario '{self.name}'"
            raise ScriptValidationError(msg)

    def step_names(self) -> list[str]:
        return [s.name for s in self.steps]

    def validate(self) -> None:
        """
        Check the script's structure.

        Raises:
            ScriptValidationError: on duplicate names, empty checks, an action
                requiring a ref no earlier action produces, or an action
                consuming an entity whose last mutation is unverified.
        """
        seen: set[str] = set()
        produced: set[str] = set()
        # ref name -> action that mutated it last, not yet confirmed by a check
        unverified: dict[str, str] = {}

        for step in self.steps:
            if step.name in seen:
                msg = f"Duplicate step name '{step.name}' in scenario '{self.name}'"
                raise ScriptValidationError(msg)
            seen.add(step.name)

            if isinstance(step, ConvergenceCheck):
                if not step.assertions:
                    msg = f"Convergence check '{step.name}' has no assertions"
                    raise ScriptValidationError(msg)
                if step.verifies is None:
                    unverified.clear()
                else:
                    for ref in step.verifies:
                        unverified.pop(ref, None)
                continue

            for ref in step.requires:
                if ref not in produced:
                    msg = (
                        f"Action '{step.name}' requires '{ref}', "
                        f"which no earlier action produces"
                    )
                    raise ScriptValidationError(msg)
                if ref in unverified:
                    msg = (
                        f"Action '{step.name}' consumes '{ref}' right after "
                        f"'{unverified[ref]}' changed it; add a convergence check in between"
                    )
                    raise ScriptValidationError(msg)

            # An action mutates what it creates and what it operates on
            for ref in (*step.requires, *((step.produces,) if step.produces else ())):
                unverified[ref] = step.name
            if step.produces:
                produced.add(step.produces)

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self):
        return iter(self.steps)

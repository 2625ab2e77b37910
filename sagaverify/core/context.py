# ============================================
# FILE: sagaverify/core/context.py
# ============================================

"""
Run Context

Per-execution state threaded between the steps of one scenario run:

1. Entity references returned by actions (consumer id, order id, ...)
2. Fixed scenario inputs (menu item, prices, quantities)
3. Observations recorded by convergence checks, kept for diagnosis

A RunContext is created at scenario start and dropped at scenario end. It is
owned by exactly one orchestrator and never shared between concurrent runs.
"""

import uuid
from dataclasses import dataclass, field
from typing import Any

from sagaverify.core.exceptions import MissingEntityRefError
from sagaverify.core.types import EntityRef


@dataclass
class RunContext:
    scenario_name: str = ""
    inputs: Any = None
    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    refs: dict[str, EntityRef] = field(default_factory=dict)
    observations: dict[str, Any] = field(default_factory=dict)

    def ref(self, name: str) -> EntityRef:
        """Return the entity reference stored under ``name``."""
        try:
            return self.refs[name]
        except KeyError:
            raise MissingEntityRefError(name, sorted(self.refs)) from None

    def set_ref(self, name: str, value: EntityRef) -> None:
        if value is None:
            msg = f"Entity reference '{name}' cannot be None"
            raise ValueError(msg)
        self.refs[name] = value

    def has_ref(self, name: str) -> bool:
        return name in self.refs

    def observe(self, key: str, value: Any) -> Any:
        """Record the latest value seen by a check and return it."""
        self.observations[key] = value
        return value

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "scenario_name": self.scenario_name,
            "refs": dict(self.refs),
            "observations": {k: str(v) for k, v in self.observations.items()},
        }

"""
Metrics collection for scenario runs
"""

from typing import Any

from sagaverify.core.types import RunStatus


class RunMetrics:
    """Collect and expose run metrics"""

    def __init__(self):
        self.metrics = {
            "total_runs": 0,
            "total_finished": 0,
            "total_aborted": 0,
            "average_execution_time": 0.0,
            "by_scenario": {},
            "checks": {},
        }

    def record_run(self, scenario_name: str, status: RunStatus, duration: float) -> None:
        """Record a completed run"""
        self.metrics["total_runs"] += 1
        if status == RunStatus.FINISHED:
            self.metrics["total_finished"] += 1
        elif status == RunStatus.ABORTED:
            self.metrics["total_aborted"] += 1
        self._update_average_time(duration)
        self._update_scenario_stats(scenario_name, status)

    def record_check(self, check_name: str, attempts: int, converged: bool) -> None:
        """Record how many attempts a convergence check needed"""
        stats = self.metrics["checks"].setdefault(
            check_name, {"count": 0, "total_attempts": 0, "timeouts": 0}
        )
        stats["count"] += 1
        stats["total_attempts"] += attempts
        if not converged:
            stats["timeouts"] += 1

    def _update_average_time(self, duration: float) -> None:
        total_time = self.metrics["average_execution_time"] * (self.metrics["total_runs"] - 1)
        self.metrics["average_execution_time"] = (total_time + duration) / self.metrics[
            "total_runs"
        ]

    def _update_scenario_stats(self, scenario_name: str, status: RunStatus) -> None:
        stats = self.metrics["by_scenario"].setdefault(
            scenario_name, {"count": 0, "finished": 0, "aborted": 0}
        )
        stats["count"] += 1
        if status == RunStatus.FINISHED:
            stats["finished"] += 1
        else:
            stats["aborted"] += 1

    def get_metrics(self) -> dict[str, Any]:
        """Get all metrics"""
        success_rate = (
            self.metrics["total_finished"] / self.metrics["total_runs"] * 100
            if self.metrics["total_runs"] > 0
            else 0
        )
        average_attempts = {
            name: stats["total_attempts"] / stats["count"]
            for name, stats in self.metrics["checks"].items()
        }
        return {
            **self.metrics,
            "success_rate": f"{success_rate:.2f}%",
            "average_attempts": average_attempts,
        }

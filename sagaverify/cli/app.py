"""
sagaverify CLI Application - Built with Click.

Commands:
    sagaverify run      Run the FTGO order saga against a live deployment
    sagaverify show     Print the steps of the order saga without running it
"""

import asyncio
import sys

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from sagaverify import __version__
from sagaverify.core.config import HarnessConfig
from sagaverify.core.exceptions import ConfigurationError
from sagaverify.core.types import RunResult, StepStatus
from sagaverify.monitoring.logging import setup_run_logging
from sagaverify.scenarios.ftgo.order_saga import SCENARIO_NAME, build_order_saga, run_order_saga

console = Console()

_STATUS_STYLE = {
    StepStatus.PASSED: "[green]passed[/green]",
    StepStatus.FAILED: "[red]failed[/red]",
    StepStatus.SKIPPED: "[dim]skipped[/dim]",
    StepStatus.PENDING: "[dim]pending[/dim]",
    StepStatus.RUNNING: "[yellow]running[/yellow]",
}


class OrderedGroup(click.Group):
    """Click Group that lists commands in the order they were added."""

    def list_commands(self, ctx):
        return list(self.commands.keys())


@click.group(cls=OrderedGroup)
@click.version_option(version=__version__, prog_name="sagaverify")
def cli():
    """
    sagaverify - convergence tests for saga-driven services.

    \b
    Commands:
      run     Run the FTGO order saga against a live deployment
      show    Print the order saga steps
    """


@cli.command("run")
@click.option("--config", "config_file", type=click.Path(exists=True, dir_okay=False),
              help="YAML configuration file")
@click.option("--host", help="Target host (default: $SAGAVERIFY_HOST / $DOCKER_HOST_IP)")
@click.option("--port", type=int, help="Application port (default: 8081)")
@click.option("--max-wait", type=float, help="Seconds a convergence check may poll")
@click.option("--interval", type=float, help="Seconds between poll attempts")
@click.option("--run-deadline", type=float, help="Seconds the whole run may take")
@click.option("--json-logs", is_flag=True, help="Emit JSON log lines")
@click.option("--log-level", default="INFO", show_default=True,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False))
def run_cmd(config_file, host, port, max_wait, interval, run_deadline, json_logs, log_level):
    """
    Run the FTGO order saga and report each step.

    \b
    Example:
        sagaverify run --host 192.168.99.100 --max-wait 30
    """
    setup_run_logging(log_level=log_level, json_format=json_logs)

    try:
        base = HarnessConfig.from_file(config_file) if config_file else HarnessConfig.from_env()
        config = base.with_overrides(
            host=host,
            port=port,
            default_max_wait=max_wait,
            default_interval=interval,
            run_deadline=run_deadline,
        )
    except ConfigurationError as e:
        raise click.BadParameter(str(e)) from e

    console.print(
        Panel.fit(
            f"[bold blue]{SCENARIO_NAME}[/bold blue]\n"
            f"target: {config.scheme}://{config.host}:{config.port}  "
            f"max-wait: {config.default_max_wait}s  interval: {config.default_interval}s",
            border_style="blue",
        )
    )

    result = asyncio.run(run_order_saga(config))
    _print_result(result)
    sys.exit(0 if result.success else 1)


@cli.command("show")
def show_cmd():
    """Print the steps of the FTGO order saga."""
    script = build_order_saga(api=None)

    table = Table(title=SCENARIO_NAME)
    table.add_column("#", justify="right")
    table.add_column("Step")
    table.add_column("Kind")
    table.add_column("Description")

    for index, step in enumerate(script, start=1):
        table.add_row(str(index), step.name, step.kind.value, step.describe())

    console.print(table)


def _print_result(result: RunResult) -> None:
    table = Table(title=f"{result.scenario_name} [{result.run_id[:8]}]")
    table.add_column("Step")
    table.add_column("Status")
    table.add_column("Attempts", justify="right")
    table.add_column("Time", justify="right")

    for step in result.steps:
        table.add_row(
            step.name,
            _STATUS_STYLE[step.status],
            str(step.attempts) if step.attempts else "-",
            f"{step.elapsed:.2f}s" if step.attempts else "-",
        )

    console.print(table)

    if result.success:
        console.print(f"[green]✓ {result.completed_steps}/{result.total_steps} steps passed "
                      f"in {result.execution_time:.2f}s[/green]")
    else:
        console.print(f"[red]✗ Run aborted: {escape(str(result.error))}[/red]")

"""Main CLI interface using Typer."""

import asyncio
import os
import signal
import threading
from pathlib import Path
from typing import Optional

import typer
import yaml
from rich.console import Console
from rich.table import Table

from .. import __version__
from ..constants import LOG_LEVEL_ENV
from ..controller import Controller
from ..daemon import Daemon
from ..errors import ConfigError, KubeUpgradeError, PlanValidationError
from ..k8s import K8sClient
from ..model.plan import (
    PLAN_STATUS_COMPLETE,
    PLAN_STATUS_ERROR,
    PLAN_STATUS_PROGRESSING,
    PLAN_STATUS_WAITING,
    Plan,
)
from ..model.validation import validate_plan
from ..utils.logger import get_logger, set_log_level

# Create CLI app
app = typer.Typer(
    name="kube-upgrade",
    help="Rolling OS and Kubernetes upgrades for immutable-OS clusters",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)

STATUS_STYLES = {
    PLAN_STATUS_COMPLETE: "green",
    PLAN_STATUS_PROGRESSING: "yellow",
    PLAN_STATUS_WAITING: "cyan",
    PLAN_STATUS_ERROR: "red",
}


def _styled_status(status: str) -> str:
    """Color a status by its leading keyword."""
    keyword = status.split(":", 1)[0]
    style = STATUS_STYLES.get(keyword)
    return f"[{style}]{status}[/{style}]" if style else status


@app.command()
def version():
    """Show the version."""
    console.print(f"kube-upgrade {__version__}")


@app.command()
def controller(
    context: Optional[str] = typer.Option(None, "--context", "-c", help="Kubernetes context to use"),
    kubeconfig: Optional[str] = typer.Option(None, "--kubeconfig", help="Path to the kubeconfig"),
    requeue_interval: float = typer.Option(
        60.0, "--requeue-interval", help="Seconds after which every plan is reconciled again"
    ),
    poll_interval: float = typer.Option(
        5.0, "--poll-interval", help="Seconds between checks for changed plans or nodes"
    ),
):
    """Run the plan controller."""
    level = os.environ.get(LOG_LEVEL_ENV, "info")
    try:
        set_log_level(level)
    except ConfigError as e:
        logger.warning(f"{e}, falling back to info")
        set_log_level("info")

    try:
        client = K8sClient(context=context, kubeconfig=kubeconfig)
    except RuntimeError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    stop = threading.Event()

    def _handle_signal(signum, frame):
        logger.info(f"Received signal {signal.Signals(signum).name}, shutting down")
        stop.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    Controller(client, requeue_interval=requeue_interval, poll_interval=poll_interval).run(stop)


@app.command()
def daemon(
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to the daemon config file"
    ),
):
    """Run the node daemon."""
    try:
        node_daemon = Daemon.from_config_file(str(config) if config else None)
    except (KubeUpgradeError, OSError, RuntimeError) as e:
        logger.error(f"Failed to create daemon: {e}")
        raise typer.Exit(1)

    try:
        asyncio.run(node_daemon.run())
    except KubeUpgradeError as e:
        logger.error(f"Daemon failed: {e}")
        raise typer.Exit(1)


@app.command()
def status(
    context: Optional[str] = typer.Option(None, "--context", "-c", help="Kubernetes context to use"),
    kubeconfig: Optional[str] = typer.Option(None, "--kubeconfig", help="Path to the kubeconfig"),
):
    """Show the status of every KubeUpgradePlan."""
    try:
        client = K8sClient(context=context, kubeconfig=kubeconfig)
        plans = client.list_plans()
    except (KubeUpgradeError, RuntimeError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if not plans:
        console.print("[yellow]No KubeUpgradePlans found[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Plan", style="cyan")
    table.add_column("Version", style="green")
    table.add_column("Group", style="white")
    table.add_column("Status", style="white")

    for plan in plans:
        table.add_row(
            plan.name, plan.spec.kubernetes_version, "", _styled_status(plan.status.summary)
        )
        for group, group_status in sorted(plan.status.groups.items()):
            table.add_row("", "", group, _styled_status(group_status))

    console.print(table)


@app.command()
def validate(
    file: Path = typer.Argument(..., help="KubeUpgradePlan manifest to check"),
):
    """Check a KubeUpgradePlan manifest before applying it."""
    try:
        with open(file) as f:
            manifest = yaml.safe_load(f) or {}
        plan = Plan.from_manifest(manifest)
        validate_plan(plan)
    except PlanValidationError as e:
        console.print(f"[red]Plan {file} is invalid:[/red]")
        for problem in e.problems:
            console.print(f"  - {problem}")
        raise typer.Exit(1)
    except (OSError, yaml.YAMLError, ValueError) as e:
        console.print(f"[red]Failed to read plan {file}: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]Plan {plan.name or file} is valid[/green]")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()

"""Command line entry point for kubemend.

Usage::

    kubemend node <name> [--max-concurrency N] [--dry-run] [--no-cordon]
    kubemend pod <name> [--namespace NS] [--dry-run]
    kubemend watch

Exit codes: 0 when every eviction succeeded (or the pod was already gone),
1 on partial failure or an unresolvable target, 2 on fatal errors: startup
failures, or the cluster observer stopping under the control loop.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
from collections.abc import Callable, Sequence
from typing import Any

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from kubemend.constants.enums import EvictionResult
from kubemend.constants.values import (
    APP_NAME,
    EXIT_FATAL,
    EXIT_OK,
    EXIT_PARTIAL_FAILURE,
    HEALTHY,
    UNHEALTHY,
)
from kubemend.controllers.cluster.client import ClusterClient, KubernetesClusterClient
from kubemend.controllers.errors import FatalError, TargetNotFoundError
from kubemend.controllers.remediation.controller import (
    RemediationController,
    RemediationReport,
)
from kubemend.models.eviction.outcome import EvictionOutcome
from kubemend.models.eviction.plan import RemediationRequest
from kubemend.models.state.app_settings import ConfigError, RemediationSettings
from kubemend.models.state.config_manager import ConfigManager

logger = logging.getLogger(__name__)

console = Console()
err_console = Console(stderr=True)

_RESULT_MARKUP = {
    EvictionResult.EVICTED: "[green]Evicted[/green]",
    EvictionResult.DENIED_BUDGET: "[yellow]Denied(budget)[/yellow]",
    EvictionResult.RETRYING: "[yellow]Retrying[/yellow]",
    EvictionResult.DENIED_API_ERROR: "[red]Denied(apiError)[/red]",
    EvictionResult.ABANDONED: "[red]Abandoned[/red]",
}


# ============================================================================
# Arguments
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Drain nodes and evict pods without violating PodDisruptionBudgets.",
    )
    parser.add_argument("--kubeconfig", help="Path to a kubeconfig file")
    parser.add_argument("--context", help="Kubeconfig context to use")
    parser.add_argument("--config", help="YAML settings file")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    node = subparsers.add_parser("node", help="Cordon and drain a node")
    node.add_argument("name", help="Node name")
    node.add_argument(
        "--max-concurrency",
        type=int,
        default=None,
        help="Budget groups evicted in parallel",
    )
    node.add_argument(
        "--dry-run", action="store_true", help="Print the plan without evicting"
    )
    node.add_argument(
        "--no-cordon",
        action="store_true",
        help="Do not mark the node unschedulable before draining",
    )

    pod = subparsers.add_parser("pod", help="Evict a single pod")
    pod.add_argument("name", help="Pod name")
    pod.add_argument("-n", "--namespace", help="Pod namespace when the name is ambiguous")
    pod.add_argument(
        "--dry-run", action="store_true", help="Print the plan without evicting"
    )

    subparsers.add_parser("watch", help="Run the remediation control loop")
    return parser


def settings_overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Settings given on the command line; None means "not given"."""
    return {
        "kubeconfig": args.kubeconfig,
        "context": args.context,
        "max_concurrency": getattr(args, "max_concurrency", None),
        "dry_run": True if getattr(args, "dry_run", False) else None,
        "cordon_before_drain": False if getattr(args, "no_cordon", False) else None,
    }


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=verbose, show_path=verbose)],
        force=True,
    )
    if not verbose:
        # The kubernetes client is chatty at DEBUG/INFO.
        logging.getLogger("kubernetes").setLevel(logging.WARNING)
        logging.getLogger("urllib3").setLevel(logging.WARNING)


# ============================================================================
# Rendering
# ============================================================================


def render_plan(report: RemediationReport) -> None:
    if not report.plan:
        console.print(f"Nothing to evict for: {escape(report.request.reason)}")
        return

    title = "Eviction Plan (dry run)" if report.dry_run else "Eviction Plan"
    table = Table(title=title, box=box.ROUNDED, header_style="bold", expand=False)
    table.add_column("#", justify="right", style="dim", no_wrap=True)
    table.add_column("Namespace/Pod", no_wrap=False)
    table.add_column("Node", no_wrap=True)
    table.add_column("Budget group", no_wrap=True)
    table.add_column("Ready", no_wrap=True)
    table.add_column("Restarts", justify="right", no_wrap=True)
    table.add_column("Priority", justify="right", style="dim", no_wrap=True)

    for index, entry in enumerate(report.plan, start=1):
        pod = entry.pod
        table.add_row(
            str(index),
            escape(pod.key),
            escape(pod.node or "-"),
            escape(entry.group),
            "[green]yes[/green]" if pod.ready else "[red]no[/red]",
            str(pod.restart_count),
            str(entry.priority),
        )
    console.print(table)


def _outcome_row(outcome: EvictionOutcome) -> tuple[str, ...]:
    status = "-" if outcome.status_code is None else str(outcome.status_code)
    return (
        escape(outcome.pod.key),
        _RESULT_MARKUP.get(outcome.result, escape(outcome.result.value)),
        str(outcome.attempt),
        status,
        escape(outcome.detail),
    )


def render_summary(report: RemediationReport) -> None:
    summary = report.summary
    if not summary.final:
        return

    table = Table(title="Eviction Results", box=box.ROUNDED, header_style="bold")
    table.add_column("Namespace/Pod", no_wrap=False)
    table.add_column("Result", no_wrap=True)
    table.add_column("Attempts", justify="right", no_wrap=True)
    table.add_column("HTTP", justify="right", no_wrap=True)
    table.add_column("Detail", no_wrap=False)
    for entry in report.plan:
        outcome = summary.final.get(entry.pod.key)
        if outcome is not None:
            table.add_row(*_outcome_row(outcome))
    console.print(table)

    counts = ", ".join(f"{result}={count}" for result, count in sorted(summary.counts.items()))
    verdict = HEALTHY if summary.succeeded else UNHEALTHY
    console.print(f"{verdict} {escape(counts)}")


# ============================================================================
# Commands
# ============================================================================


_STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def _install_signal_handlers(on_signal: Callable[[], None]) -> None:
    loop = asyncio.get_running_loop()
    for sig in _STOP_SIGNALS:
        # Not supported on every platform; Ctrl+C then raises KeyboardInterrupt.
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, on_signal)


def _remove_signal_handlers() -> None:
    loop = asyncio.get_running_loop()
    for sig in _STOP_SIGNALS:
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.remove_signal_handler(sig)


def build_request(
    args: argparse.Namespace, controller: RemediationController
) -> RemediationRequest:
    """Turn a ``node``/``pod`` command into a request.

    Raises:
        TargetNotFoundError: The node or pod is not in the observed state.
    """
    if args.command == "node":
        controller.require_node(args.name)
        return RemediationRequest.drain_node(args.name)
    pod = controller.resolve_pod(args.name, args.namespace)
    return RemediationRequest.evict_pods([pod.key], reason=f"evict pod {pod.key}")


async def _watch(controller: RemediationController) -> int:
    """Run the control loop until a stop signal or a fatal error.

    Raises:
        FatalError: The cluster observer stopped underneath the loop.
    """
    await controller.start()
    logger.info("Control loop stopped")
    return EXIT_OK


async def run(
    args: argparse.Namespace,
    settings: RemediationSettings,
    cluster_client: ClusterClient | None = None,
) -> int:
    """Run one command against the cluster and return its exit code.

    Raises:
        FatalError: Credentials or the API server are unusable, or the
            observer stopped mid-run.
    """
    if cluster_client is None:
        cluster_client = KubernetesClusterClient.from_config(settings.kubeconfig, settings.context)
    controller = RemediationController(cluster_client, settings)
    _install_signal_handlers(controller.request_stop)

    try:
        await controller.startup()
        if args.command == "watch":
            return await _watch(controller)

        try:
            request = build_request(args, controller)
        except TargetNotFoundError as exc:
            err_console.print(f"[red]Error:[/red] {escape(str(exc))}")
            return EXIT_PARTIAL_FAILURE

        report = await controller.remediate(request, dry_run=settings.dry_run)
        render_plan(report)
        render_summary(report)
        return EXIT_OK if report.succeeded else EXIT_PARTIAL_FAILURE
    finally:
        await controller.shutdown()
        _remove_signal_handlers()


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        settings = ConfigManager.load(args.config, overrides=settings_overrides(args))
    except ConfigError as exc:
        err_console.print(f"[red]Configuration error:[/red] {escape(str(exc))}")
        return EXIT_FATAL

    try:
        return asyncio.run(run(args, settings))
    except FatalError as exc:
        err_console.print(f"[red]Fatal:[/red] {escape(str(exc))}")
        return EXIT_FATAL
    except KeyboardInterrupt:
        err_console.print("[yellow]Interrupted[/yellow]")
        return EXIT_PARTIAL_FAILURE


if __name__ == "__main__":
    sys.exit(main())

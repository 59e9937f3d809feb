#!/usr/bin/env python3
"""
aflsync - AFL sync directory replication for Kubernetes fuzzing pods

CLI interface using Click for command-line interaction.
"""

import json
import sys
from typing import List, NoReturn, Optional

import click
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from aflsync import __version__
from aflsync.core.errors import AflSyncError
from aflsync.core.models import Pod, StatusReport, SyncReport
from aflsync.utils.config import Config
from aflsync.utils.logging import SyncLogger, console, setup_logging

log = SyncLogger(__name__)


def _abort(error: AflSyncError) -> NoReturn:
    """Print a fatal error and exit non-zero."""
    console.print(f"\n[error]Error:[/error] {escape(str(error))}")
    sys.exit(1)


def _connect_and_list(config: Config):
    """Build the API handle and list the campaign pods."""
    from aflsync.kube.client import KubeClient
    from aflsync.kube.inventory import Inventory

    kube = KubeClient.connect(config.kubeconfig)
    inventory = Inventory(kube, config.coordinator_prefix, config.worker_prefix)
    try:
        found = inventory.list_pods(config.label_selector, config.namespace)
    except AflSyncError:
        kube.close()
        raise
    return kube, found


def _print_pods(pods: List[Pod], namespace: str) -> None:
    console.print(f"There are {len(pods)} pods in the {namespace} namespace:")
    for pod in pods:
        log.pod(escape(f"{pod.name} ({pod.role.value})"))
    console.print()


def _print_status(reports: List[StatusReport]) -> None:
    for report in reports:
        body = escape(report.text.rstrip()) or "(no output)"
        if report.error:
            body += f"\n\n[error]Error:[/error]\n{escape(report.error)}"
        console.print(Panel(body, title=f"Stats on {report.pod}"))


def _print_summary(report: SyncReport) -> None:
    table = Table(title=f"Sync Summary ({report.mode.value})")
    table.add_column("Operation", style="cyan")
    table.add_column("Total", justify="right")
    table.add_column("Failed", justify="right", style="red")

    failed = {}
    for result in report.failures:
        failed[result.kind] = failed.get(result.kind, 0) + 1

    for kind, total in report.counts().items():
        table.add_row(kind, str(total), str(failed.get(kind, 0)))

    console.print(table)

    for result in report.failures:
        pair = result.source if not result.target else f"{result.source} -> {result.target}"
        console.print(f"  [warning]{result.kind}[/warning] {escape(pair)}: {escape(result.error)}")


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", count=True, help="Increase verbosity")
@click.option("-c", "--config", "config_path", type=click.Path(), help="Path to JSON config file")
@click.option("--log-file", type=click.Path(), help="Also write logs to this file")
@click.pass_context
def cli(ctx, verbose, config_path, log_file):
    """aflsync - replicate AFL sync directories across fuzzing pods"""
    ctx.ensure_object(dict)

    config = Config.load(config_path)
    config.expand_paths()
    config.verbose += verbose
    ctx.obj["config"] = config

    setup_logging(verbosity=config.verbose, log_file=log_file)


@cli.command()
@click.option("--stats-only/--full", default=None, help="Sync only fuzzer_stats (default: $SYNC_STATS_ONLY)")
@click.option("-n", "--namespace", help="Namespace of the fuzzing pods")
@click.option("-l", "--selector", help="Label selector of the fuzzing pods")
@click.option("--grace-period", type=float, help="Seconds to wait before the status report")
@click.pass_context
def sync(ctx, stats_only, namespace, selector, grace_period):
    """Replicate sync directories (or only fuzzer_stats) between all pods."""
    from aflsync.core.models import SyncMode
    from aflsync.kube.executor import RemoteExecutor
    from aflsync.sync.archive import ArchiveTransfer
    from aflsync.sync.orchestrator import SyncOrchestrator
    from aflsync.sync.status import StatusReporter

    config: Config = ctx.obj["config"]
    if stats_only is not None:
        config.stats_only = stats_only
    if namespace:
        config.namespace = namespace
    if selector:
        config.label_selector = selector
    if grace_period is not None:
        config.grace_period = grace_period

    try:
        kube, pods = _connect_and_list(config)
    except AflSyncError as e:
        _abort(e)

    try:
        _print_pods(pods, config.namespace)
        console.print("Starting sync ...")

        executor = RemoteExecutor(kube)
        transfer = ArchiveTransfer(
            executor,
            sync_dir=config.sync_dir,
            staging_dir=config.staging_dir,
            stats_file=config.stats_file,
        )
        orchestrator = SyncOrchestrator(transfer)

        if config.stats_only:
            console.print(f"Syncing only '{config.stats_file}'! (SYNC_STATS_ONLY)\n")
            report = orchestrator.run(pods, SyncMode.STATS_ONLY)
        else:
            console.print()
            report = orchestrator.run(pods, SyncMode.FULL_DIRECTORY)
            reporter = StatusReporter(
                executor,
                sync_dir=config.sync_dir,
                status_command=config.status_command,
                grace_period=config.grace_period,
            )
            _print_status(reporter.report(pods))

        console.print()
        _print_summary(report)
    finally:
        kube.close()

    console.print()
    log.success("Sync finished!")


@cli.command()
@click.option("-n", "--namespace", help="Namespace of the fuzzing pods")
@click.option("--wait/--no-wait", default=False, help="Sleep for the grace period first")
@click.pass_context
def status(ctx, namespace, wait):
    """Show the afl-whatsup report of every coordinator pod."""
    from aflsync.kube.executor import RemoteExecutor
    from aflsync.sync.status import StatusReporter

    config: Config = ctx.obj["config"]
    if namespace:
        config.namespace = namespace

    try:
        kube, pods = _connect_and_list(config)
    except AflSyncError as e:
        _abort(e)

    try:
        reporter = StatusReporter(
            RemoteExecutor(kube),
            sync_dir=config.sync_dir,
            status_command=config.status_command,
            grace_period=config.grace_period,
        )
        reports = reporter.report(pods, wait=wait)
    finally:
        kube.close()

    if not reports:
        console.print("[warning]No coordinator pods found[/warning]")
    _print_status(reports)


@cli.command()
@click.option("-n", "--namespace", help="Namespace of the fuzzing pods")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def pods(ctx, namespace, json_output):
    """List the fuzzing pods and their roles."""
    config: Config = ctx.obj["config"]
    if namespace:
        config.namespace = namespace

    try:
        kube, found = _connect_and_list(config)
    except AflSyncError as e:
        _abort(e)
    kube.close()

    if json_output:
        console.print_json(json.dumps([
            {
                "name": pod.name,
                "namespace": pod.namespace,
                "container": pod.container,
                "role": pod.role.value,
            }
            for pod in found
        ]))
        return

    table = Table(title=f"Fuzzing pods in {config.namespace}")
    table.add_column("Pod", style="cyan")
    table.add_column("Role", style="magenta")
    table.add_column("Container")
    for pod in found:
        table.add_row(pod.name, pod.role.value, pod.container)
    console.print(table)


@cli.command("config")
@click.option("--save", "save_path", type=click.Path(), default=None, help="Write the effective config to this file")
@click.pass_context
def show_config(ctx, save_path: Optional[str]):
    """Show the effective configuration."""
    config: Config = ctx.obj["config"]
    console.print_json(json.dumps(config.to_dict(), indent=2))

    if save_path:
        config.save(save_path)
        console.print(f"[green]Config saved to: {save_path}[/green]")


def main():
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()

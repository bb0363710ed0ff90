"""CLI interface for dmsctl."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.text import Text

from dmsctl import __version__
from dmsctl.config import DmsCtlConfig, configure_logging
from dmsctl.exceptions import ConfigError, DmsCtlError, GatewayConstructionError
from dmsctl.executor import ExecutionSummary, ExecutorConfig, FanOutExecutor, Operation
from dmsctl.gateway import DmsGateway, FleetGateway
from dmsctl.models import StartType, task_name_from_arn
from dmsctl.resolver import Resolution, resolve
from dmsctl.ui import (
    Theme,
    render_context_header,
    render_outcome_line,
    render_table_stats,
    render_task_detail,
    render_task_table,
)

app = typer.Typer(
    name="dmsctl",
    help="Manage AWS DMS replication tasks: list, describe, start, stop, resume and reload.",
    no_args_is_help=True,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"dmsctl version {__version__}")
        raise typer.Exit()


def create_gateway(config: DmsCtlConfig) -> FleetGateway:
    """Build the gateway used by every command."""
    return DmsGateway.from_config(config)


def _fail(message: str) -> typer.Exit:
    console.print(Text(f"Error: {message}", style="red"))
    return typer.Exit(1)


def _config(ctx: typer.Context) -> DmsCtlConfig:
    if isinstance(ctx.obj, DmsCtlConfig):
        return ctx.obj
    return DmsCtlConfig()


def _gateway(config: DmsCtlConfig) -> FleetGateway:
    try:
        return create_gateway(config)
    except GatewayConstructionError as e:
        raise _fail(str(e)) from None


def _print_warnings(resolution: Resolution, theme: Theme) -> None:
    for warning in resolution.warnings:
        console.print(Text(f"Warning: {warning}", style=theme.WARNING))


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
    profile: Annotated[
        str | None, typer.Option("--profile", "-p", help="AWS profile to use")
    ] = None,
    region: Annotated[str | None, typer.Option("--region", "-r", help="AWS region")] = None,
    endpoint_url: Annotated[
        str | None,
        typer.Option("--endpoint-url", help="Custom DMS endpoint (defaults to $AWS_ENDPOINT_URL)"),
    ] = None,
    config_file: Annotated[
        Path | None, typer.Option("--config", "-c", help="Config file (TOML)")
    ] = None,
    log_level: Annotated[
        str | None, typer.Option("--log-level", help="Log level (debug, info, warning, error)")
    ] = None,
) -> None:
    """Manage AWS DMS replication tasks."""
    try:
        config = DmsCtlConfig.from_file(config_file or DmsCtlConfig.default_path())
        config = config.with_overrides(
            profile=profile,
            region=region,
            endpoint_url=endpoint_url,
            log_level=log_level,
        )
    except ConfigError as e:
        raise _fail(str(e)) from None

    configure_logging(config)
    ctx.obj = config


# ---------------------------------------------------------------------------
# Read-only commands
# ---------------------------------------------------------------------------


@app.command("list")
def list_tasks(
    ctx: typer.Context,
    stats: Annotated[
        bool, typer.Option("--stats", "-s", help="Show detailed statistics for each task")
    ] = False,
) -> None:
    """List all replication tasks."""
    config = _config(ctx)
    theme = Theme.named(config.ui_theme)
    gateway = _gateway(config)

    try:
        tasks = asyncio.run(gateway.list_tasks())
    except DmsCtlError as e:
        raise _fail(f"failed to list tasks: {e}") from None

    console.print(render_context_header(gateway.region, gateway.profile, theme))
    console.print()

    if not tasks:
        console.print("No DMS replication tasks found.")
        return

    if stats:
        for task in tasks:
            console.print(render_task_detail(task, theme))
    else:
        console.print(render_task_table(tasks, theme))
    console.print(f"Total tasks: {len(tasks)}")


@app.command("describe")
def describe(
    ctx: typer.Context,
    identifiers: Annotated[
        list[str], typer.Argument(help="Task names, ARNs, glob patterns, or 'all'")
    ],
    tables: Annotated[
        bool, typer.Option("--tables", help="Include per-table statistics")
    ] = False,
) -> None:
    """Describe one or more replication tasks."""
    config = _config(ctx)
    theme = Theme.named(config.ui_theme)
    gateway = _gateway(config)

    async def describe_all() -> None:
        resolution = await resolve(gateway, identifiers)
        _print_warnings(resolution, theme)
        targets = resolution.require_targets()

        for arn in targets:
            try:
                task = await gateway.describe_task(arn)
            except DmsCtlError as e:
                console.print(
                    Text(f"Error describing {task_name_from_arn(arn)}: {e}", style=theme.ERROR)
                )
                continue
            console.print(render_task_detail(task, theme))

            if tables:
                try:
                    table_stats = await gateway.get_table_statistics(arn)
                except DmsCtlError as e:
                    console.print(
                        Text(f"Error loading table statistics: {e}", style=theme.ERROR)
                    )
                    continue
                console.print(render_table_stats(table_stats, theme))
            console.print()

    try:
        asyncio.run(describe_all())
    except DmsCtlError as e:
        raise _fail(str(e)) from None


# ---------------------------------------------------------------------------
# Fleet operations
# ---------------------------------------------------------------------------


def _run_batch(
    ctx: typer.Context,
    identifiers: list[str],
    operation: Operation,
    progress_verb: str,
    *,
    wait_for_stop: bool | None = None,
) -> None:
    """Resolve identifiers, fan the operation out, and print one line per target.

    Exits 1 only when nothing could be targeted; partial failure exits 0.
    """
    config = _config(ctx)
    if wait_for_stop is not None:
        config = config.with_overrides(wait_for_stop=wait_for_stop)
    theme = Theme.named(config.ui_theme)
    gateway = _gateway(config)
    executor = FanOutExecutor(gateway, ExecutorConfig.from_config(config))

    async def run() -> ExecutionSummary:
        resolution = await resolve(gateway, identifiers)
        _print_warnings(resolution, theme)
        targets = resolution.require_targets()

        console.print(f"{progress_verb} {len(targets)} task(s) in parallel...")
        outcomes = await executor.execute(targets, operation)

        console.print()
        for outcome in outcomes:
            console.print(render_outcome_line(outcome, theme))
        return ExecutionSummary.from_outcomes(outcomes)

    try:
        summary = asyncio.run(run())
    except DmsCtlError as e:
        raise _fail(str(e)) from None

    console.print()
    style = theme.SUCCESS if summary.all_succeeded else theme.WARNING
    console.print(Text(str(summary), style=style))


IdentifiersArg = Annotated[
    list[str], typer.Argument(help="Task names, ARNs, glob patterns, or 'all'")
]


@app.command("start")
def start(
    ctx: typer.Context,
    identifiers: IdentifiersArg,
    start_type: Annotated[
        str,
        typer.Option(
            "--type",
            "-t",
            help="Start type: start-replication, resume-processing, reload-target",
        ),
    ] = StartType.START_REPLICATION.value,
) -> None:
    """Start replication tasks."""
    try:
        parsed = StartType(start_type)
    except ValueError:
        valid = ", ".join(t.value for t in StartType)
        raise _fail(f"invalid start type '{start_type}'. Valid: {valid}") from None

    _run_batch(ctx, identifiers, Operation.start(parsed), "Starting")


@app.command("stop")
def stop(ctx: typer.Context, identifiers: IdentifiersArg) -> None:
    """Stop replication tasks."""
    _run_batch(ctx, identifiers, Operation.stop(), "Stopping")


@app.command("resume")
def resume(ctx: typer.Context, identifiers: IdentifiersArg) -> None:
    """Resume replication tasks where they left off."""
    _run_batch(ctx, identifiers, Operation.resume(), "Resuming")


@app.command("reload")
def reload(
    ctx: typer.Context,
    identifiers: IdentifiersArg,
    wait_for_stop: Annotated[
        bool | None,
        typer.Option(
            "--wait-for-stop/--no-wait-for-stop",
            help="Poll until each task has stopped before starting it again",
        ),
    ] = None,
) -> None:
    """Stop tasks, then start them again reloading all target tables."""
    _run_batch(ctx, identifiers, Operation.reload(), "Reloading", wait_for_stop=wait_for_stop)


# ---------------------------------------------------------------------------
# Interactive
# ---------------------------------------------------------------------------


@app.command("tui")
def tui(
    ctx: typer.Context,
    refresh_interval: Annotated[
        float | None,
        typer.Option("--refresh-interval", help="Auto-refresh period in seconds"),
    ] = None,
    auto_refresh: Annotated[
        bool | None,
        typer.Option("--auto-refresh/--no-auto-refresh", help="Start with auto-refresh on/off"),
    ] = None,
) -> None:
    """Start the interactive task browser."""
    from dmsctl.tui import run_tui

    try:
        config = _config(ctx).with_overrides(
            refresh_interval=refresh_interval,
            auto_refresh=auto_refresh,
        )
    except ConfigError as e:
        raise _fail(str(e)) from None

    gateway = _gateway(config)
    asyncio.run(run_tui(gateway, config))

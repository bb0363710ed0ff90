"""Rich rendering helpers for the fleet TUI.

Everything here is a pure function of a ``FleetView`` and a ``Theme``.
"""

import io
from typing import Iterable

# NOTE: Avoid __future__.annotations for standalone import in tests (Python 3.14
# dataclasses resolves string annotations via sys.modules).
from rich.box import SIMPLE_HEAD
from rich.console import Console, Group, RenderableType
from rich.table import Table
from rich.text import Text

from dmsctl.ui import (
    Icons,
    Theme,
    render_context_header,
    render_table_stats,
    render_task_detail,
    status_text,
)

from .state import FleetView, LoadingReason, ViewState

__all__ = [
    "render_to_ansi",
    "render_header",
    "render_task_list",
    "render_body",
    "render_footer",
    "render_screen",
]


def render_to_ansi(
    renderable: RenderableType,
    *,
    width: int | None = None,
    force_terminal: bool = True,
) -> str:
    """
    Render a Rich renderable to ANSI escape codes.

    This is useful for prompt_toolkit integration where we need
    ANSI-formatted strings.
    """
    console = Console(
        file=io.StringIO(),
        width=width or 120,
        force_terminal=force_terminal,
        color_system="truecolor",
        legacy_windows=False,
    )
    console.print(renderable, end="")
    return console.file.getvalue()


def render_header(view: FleetView, theme: Theme) -> Text:
    text = Text()
    text.append("DMS Replication Tasks", style=theme.HEADER)
    text.append("  ")
    text.append_text(render_context_header(view.region, view.profile, theme))
    text.append(" | ", style=theme.BORDER)
    text.append("Auto-refresh: ", style=theme.MUTED)
    if view.auto_refresh:
        text.append("on", style=theme.SUCCESS)
    else:
        text.append("off", style=theme.WARNING)
    if view.selected:
        text.append(" | ", style=theme.BORDER)
        text.append(f"{len(view.selected)} selected", style=theme.SELECTED)
    return text


def render_task_list(view: FleetView, theme: Theme) -> RenderableType:
    if not view.tasks:
        return Text("No DMS replication tasks found.", style=theme.MUTED)

    table = Table(box=SIMPLE_HEAD, header_style=theme.SUBHEADER, expand=True)
    table.add_column("", width=3, no_wrap=True)
    table.add_column("NAME", no_wrap=True, ratio=3)
    table.add_column("STATUS", no_wrap=True, ratio=1)
    table.add_column("TYPE", no_wrap=True, ratio=1, style=theme.MUTED)
    table.add_column("PROGRESS", no_wrap=True, justify="right", ratio=1)

    for index, task in enumerate(view.tasks):
        focused = index == view.focus
        marker = Text()
        marker.append(Icons.CURSOR if focused else " ", style=theme.PRIMARY)
        if view.is_selected(task.arn):
            marker.append(Icons.SELECTED, style=theme.SELECTED)
        else:
            marker.append(Icons.UNSELECTED, style=theme.MUTED)

        progress = f"{task.stats.percent_complete}%" if task.stats else "-"
        table.add_row(
            marker,
            Text(task.name, style=theme.SELECTED if view.is_selected(task.arn) else theme.MESSAGE),
            status_text(task, theme),
            task.migration_type,
            progress,
            style=theme.FOCUS if focused else None,
        )
    return table


def _render_loading(view: FleetView, theme: Theme) -> Text:
    if view.loading_reason == LoadingReason.TABLE_STATS:
        return Text("Loading table statistics...", style=theme.INFO)
    return Text("Loading tasks...", style=theme.INFO)


def _render_error(view: FleetView, theme: Theme) -> RenderableType:
    return Group(
        Text(f"{Icons.ERROR} {view.error_message or 'Unknown error'}", style=theme.ERROR),
        Text(""),
        Text("Press 'r' to retry or 'q' to quit", style=theme.MUTED),
    )


def _render_table_stats_screen(view: FleetView, theme: Theme) -> RenderableType:
    title = Text()
    title.append("Table Statistics", style=theme.HEADER)
    task = view.find_task(view.stats_arn)
    if task is not None:
        title.append(f"  {task.name}", style=theme.MUTED)
    return Group(title, Text(""), render_table_stats(view.table_stats, theme))


def render_body(view: FleetView, theme: Theme) -> RenderableType:
    if view.view == ViewState.LOADING:
        return _render_loading(view, theme)
    if view.view == ViewState.ERROR:
        return _render_error(view, theme)
    if view.view == ViewState.TASK_DETAILS:
        task = view.detail_task
        if task is None:
            return Text("Task no longer present.", style=theme.WARNING)
        return render_task_detail(task, theme, show_mappings=view.show_mappings)
    if view.view == ViewState.TABLE_STATS:
        return _render_table_stats_screen(view, theme)
    return render_task_list(view, theme)


def _render_outcome_failures(view: FleetView, theme: Theme) -> Iterable[Text]:
    for outcome in view.last_outcomes:
        if not outcome.success:
            yield Text(f"  {Icons.ERROR} {outcome.task_name}: {outcome.message}", style=theme.ERROR)


def render_footer(view: FleetView, theme: Theme, help_items: list[tuple[str, str]]) -> RenderableType:
    """Status line, failed outcomes of the last batch, and key hints."""
    lines: list[RenderableType] = []
    if view.status_message:
        lines.append(Text(view.status_message, style=theme.INFO))
        if not view.pending_operations:
            lines.extend(_render_outcome_failures(view, theme))

    hints = Text()
    for index, (keys, description) in enumerate(help_items):
        if index:
            hints.append("  ")
        hints.append(keys, style=theme.SUBHEADER)
        hints.append(f" {description}", style=theme.MUTED)
    lines.append(hints)
    return Group(*lines)


def render_screen(
    view: FleetView,
    theme: Theme,
    help_items: list[tuple[str, str]],
    *,
    width: int | None = None,
) -> str:
    """The whole screen as ANSI text."""
    screen = Group(
        render_header(view, theme),
        Text(""),
        render_body(view, theme),
        Text(""),
        render_footer(view, theme, help_items),
    )
    return render_to_ansi(screen, width=width)

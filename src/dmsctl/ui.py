"""Terminal styling and Rich renderables shared by the CLI and the TUI.

Styles live on a ``Theme`` value chosen once at startup and handed to every
renderer, so two consoles can render with different themes side by side.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime

from rich.box import ROUNDED, SIMPLE_HEAD
from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from dmsctl.models import (
    OperationOutcome,
    StatusClass,
    TableStatRecord,
    TaskRecord,
    ValidationState,
)


@dataclass(frozen=True)
class Theme:
    """Color theme for the UI."""

    PRIMARY: str = "cyan"
    ACCENT: str = "magenta"

    SUCCESS: str = "green"
    WARNING: str = "yellow"
    ERROR: str = "red"
    INFO: str = "cyan"

    MESSAGE: str = "default"
    MUTED: str = "dim"
    BORDER: str = "bright_black"
    HEADER: str = "bold cyan"
    SUBHEADER: str = "bold"
    FOCUS: str = "reverse"
    SELECTED: str = "bold magenta"

    @classmethod
    def default(cls) -> Theme:
        return cls()

    @classmethod
    def mono(cls) -> Theme:
        return cls(
            PRIMARY="bold",
            ACCENT="bold",
            SUCCESS="bold",
            WARNING="italic",
            ERROR="bold underline",
            INFO="default",
            BORDER="default",
            HEADER="bold",
            SELECTED="bold",
        )

    @classmethod
    def named(cls, name: str) -> Theme:
        if name == "mono":
            return cls.mono()
        return cls.default()

    def status_style(self, status_class: StatusClass) -> str:
        if status_class is StatusClass.ACTIVE:
            return self.SUCCESS
        if status_class is StatusClass.INACTIVE:
            return self.ERROR
        return self.WARNING

    def validation_style(self, state: ValidationState) -> str:
        if state is ValidationState.VALIDATED:
            return self.SUCCESS
        if state is ValidationState.FAILED:
            return self.ERROR
        if state is ValidationState.PENDING:
            return self.MUTED
        return self.WARNING


class Icons:
    """Unicode icons for the UI."""

    DONE = "✓"
    ERROR = "✗"
    WARNING = "⚠"
    INFO = "ℹ"
    ARROW_RIGHT = "→"
    BULLET = "•"
    SELECTED = "◉"
    UNSELECTED = "○"
    CURSOR = "▸"
    CLOCK = "⏱"


def _fmt_time(value: datetime | None) -> str:
    if value is None:
        return "-"
    return value.strftime("%Y-%m-%d %H:%M:%S")


def status_text(task: TaskRecord, theme: Theme) -> Text:
    return Text(task.status.raw, style=theme.status_style(task.status.status_class))


def render_context_header(region: str | None, profile: str | None, theme: Theme) -> Text:
    """The "Region: ... | Profile: ..." line shown above task listings."""
    text = Text()
    text.append("Region: ", style=theme.MUTED)
    text.append(region or "default", style=theme.PRIMARY)
    text.append(" | ", style=theme.BORDER)
    text.append("Profile: ", style=theme.MUTED)
    text.append(profile or "default", style=theme.PRIMARY)
    return text


def render_task_table(tasks: list[TaskRecord], theme: Theme) -> Table:
    table = Table(box=SIMPLE_HEAD, header_style=theme.SUBHEADER, expand=False)
    table.add_column("NAME", style=theme.MESSAGE, no_wrap=True)
    table.add_column("STATUS", no_wrap=True)
    table.add_column("TYPE", style=theme.MUTED, no_wrap=True)
    table.add_column("ARN", style=theme.MUTED, overflow="fold")
    for task in tasks:
        table.add_row(task.name, status_text(task, theme), task.migration_type, task.arn)
    return table


def render_task_detail(task: TaskRecord, theme: Theme, *, show_mappings: bool = False) -> Panel:
    """Full description of one task, optionally with its table mappings."""
    grid = Table.grid(padding=(0, 2))
    grid.add_column(style=theme.MUTED, no_wrap=True)
    grid.add_column()

    grid.add_row("ARN", task.arn)
    grid.add_row("Status", status_text(task, theme))
    grid.add_row("Migration Type", task.migration_type or "-")
    grid.add_row("Replication Instance", task.replication_instance_arn or "-")
    grid.add_row("Source Endpoint", task.source_endpoint_arn or "-")
    grid.add_row("Target Endpoint", task.target_endpoint_arn or "-")
    grid.add_row("Created", _fmt_time(task.created_at))
    grid.add_row("Started", _fmt_time(task.started_at))
    if task.stopped_at is not None:
        grid.add_row("Stopped", _fmt_time(task.stopped_at))
    if task.last_failure_message:
        grid.add_row("Last Failure", Text(task.last_failure_message, style=theme.ERROR))

    parts: list[RenderableType] = [grid]

    stats = task.stats
    if stats is not None:
        stat_grid = Table.grid(padding=(0, 2))
        stat_grid.add_column(style=theme.MUTED, no_wrap=True)
        stat_grid.add_column()
        stat_grid.add_row("Full Load Progress", f"{stats.percent_complete}%")
        stat_grid.add_row("Elapsed Time", stats.elapsed)
        stat_grid.add_row("Tables Loaded", str(stats.tables_loaded))
        stat_grid.add_row("Tables Loading", str(stats.tables_loading))
        stat_grid.add_row("Tables Queued", str(stats.tables_queued))
        errored_style = theme.ERROR if stats.tables_errored else theme.MESSAGE
        stat_grid.add_row("Tables Errored", Text(str(stats.tables_errored), style=errored_style))
        if stats.stop_reason:
            stat_grid.add_row("Stop Reason", stats.stop_reason)
        parts.append(Text(""))
        parts.append(Text("Statistics", style=theme.SUBHEADER))
        parts.append(stat_grid)

    if show_mappings:
        parts.append(Text(""))
        parts.append(Text("Table Mappings", style=theme.SUBHEADER))
        parts.append(Text(_pretty_mappings(task.table_mappings), style=theme.MUTED))

    return Panel(
        Group(*parts),
        title=Text(task.name, style=theme.HEADER),
        title_align="left",
        border_style=theme.BORDER,
        padding=(0, 1),
        box=ROUNDED,
    )


def _pretty_mappings(raw: str) -> str:
    if not raw:
        return "(none)"
    try:
        return json.dumps(json.loads(raw), indent=2)
    except ValueError:
        return raw


def render_table_stats(stats: list[TableStatRecord], theme: Theme) -> RenderableType:
    if not stats:
        return Text("Table Statistics: None", style=theme.MUTED)

    table = Table(box=SIMPLE_HEAD, header_style=theme.SUBHEADER, title_style=theme.SUBHEADER)
    table.add_column("TABLE", no_wrap=True)
    table.add_column("INSERTS", justify="right")
    table.add_column("UPDATES", justify="right")
    table.add_column("DELETES", justify="right")
    table.add_column("DDLS", justify="right")
    table.add_column("FULL LOAD ROWS", justify="right")
    table.add_column("VALIDATION", no_wrap=True)
    table.add_column("LAST UPDATED", style=theme.MUTED, no_wrap=True)
    for stat in stats:
        table.add_row(
            stat.qualified_name,
            str(stat.inserts),
            str(stat.updates),
            str(stat.deletes),
            str(stat.ddls),
            str(stat.full_load_rows),
            Text(stat.validation_state_raw or "-", style=theme.validation_style(stat.validation_state)),
            _fmt_time(stat.last_updated),
        )
    return table


def render_outcome_line(outcome: OperationOutcome, theme: Theme) -> Text:
    text = Text()
    if outcome.success:
        text.append(f"{Icons.DONE} ", style=theme.SUCCESS)
    else:
        text.append(f"{Icons.ERROR} ", style=theme.ERROR)
    text.append(f"{outcome.task_name}: ", style=theme.SUBHEADER)
    text.append(outcome.message)
    return text

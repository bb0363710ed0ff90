"""State machine for the fleet TUI.

``FleetView`` is a pure reducer: ``handle(event)`` folds one input or result
event into the view and returns the effects the application must run. It
performs no I/O and never awaits, so every transition is a single atomic step.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from dmsctl.executor import ExecutionSummary, Operation
from dmsctl.models import OperationOutcome, TableStatRecord, TaskRecord

from .keymap import Action

# NOTE: Avoid __future__.annotations for standalone import in tests (Python 3.14
# dataclasses resolves string annotations via sys.modules).


class ViewState(str, Enum):
    """Which screen the TUI is showing."""

    LOADING = "loading"
    TASK_LIST = "task_list"
    TASK_DETAILS = "task_details"
    TABLE_STATS = "table_stats"
    ERROR = "error"


class LoadingReason(str, Enum):
    """What a LOADING screen is waiting for."""

    FLEET = "fleet"
    TABLE_STATS = "table_stats"


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UserInput:
    """A key press, already mapped to an action."""

    action: Action


@dataclass(frozen=True)
class Tick:
    """The auto-refresh timer fired."""


@dataclass(frozen=True)
class SnapshotLoaded:
    """A fleet listing finished (``error`` set on failure)."""

    token: int
    tasks: tuple[TaskRecord, ...] = ()
    error: str | None = None


@dataclass(frozen=True)
class TableStatsLoaded:
    """A table statistics fetch finished (``error`` set on failure)."""

    token: int
    arn: str
    stats: tuple[TableStatRecord, ...] = ()
    error: str | None = None


@dataclass(frozen=True)
class OperationCompleted:
    """A fan-out batch finished."""

    token: int
    operation: Operation
    outcomes: tuple[OperationOutcome, ...] = ()


Event = Union[UserInput, Tick, SnapshotLoaded, TableStatsLoaded, OperationCompleted]


# ---------------------------------------------------------------------------
# Effects
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FetchSnapshot:
    token: int


@dataclass(frozen=True)
class FetchTableStats:
    token: int
    arn: str


@dataclass(frozen=True)
class RunOperation:
    token: int
    operation: Operation
    targets: tuple[str, ...]


@dataclass(frozen=True)
class Quit:
    pass


Effect = Union[FetchSnapshot, FetchTableStats, RunOperation, Quit]


_OPERATION_ACTIONS: dict[Action, tuple[Operation, str]] = {
    Action.START: (Operation.start(), "Starting tasks..."),
    Action.STOP: (Operation.stop(), "Stopping tasks..."),
    Action.RESUME: (Operation.resume(), "Resuming tasks..."),
    Action.RELOAD: (Operation.reload(), "Reloading tasks..."),
}


_KEY_CONTEXTS: dict[ViewState, str] = {
    ViewState.LOADING: "loading",
    ViewState.TASK_LIST: "list",
    ViewState.TASK_DETAILS: "details",
    ViewState.TABLE_STATS: "stats",
    ViewState.ERROR: "error",
}


def move_focus(current: int, delta: int, size: int) -> int:
    """Move an index by delta, clamped to [0, size - 1]."""
    if size <= 0:
        return 0
    return max(0, min(current + delta, size - 1))


@dataclass
class FleetView:
    """Everything the TUI shows, plus the bookkeeping for in-flight work."""

    auto_refresh: bool = True
    region: str | None = None
    profile: str | None = None

    view: ViewState = ViewState.LOADING
    loading_reason: LoadingReason = LoadingReason.FLEET
    tasks: list[TaskRecord] = field(default_factory=list)
    focus: int = 0
    selected: set[str] = field(default_factory=set)
    detail_arn: str | None = None
    show_mappings: bool = False
    stats_arn: str | None = None
    table_stats: list[TableStatRecord] = field(default_factory=list)
    status_message: str = ""
    error_message: str = ""
    last_outcomes: list[OperationOutcome] = field(default_factory=list)
    pending_operations: int = 0

    _last_token: int = 0
    _applied_snapshot_token: int = 0
    _pending_snapshot_token: int = 0
    _stats_token: int = 0

    # -- derived ---------------------------------------------------------------

    @property
    def timer_armed(self) -> bool:
        return self.auto_refresh and self.view == ViewState.TASK_LIST

    @property
    def key_context(self) -> str:
        """The keymap context for the current screen."""
        return _KEY_CONTEXTS[self.view]

    @property
    def focused_task(self) -> TaskRecord | None:
        if 0 <= self.focus < len(self.tasks):
            return self.tasks[self.focus]
        return None

    @property
    def detail_task(self) -> TaskRecord | None:
        return self.find_task(self.detail_arn)

    @property
    def refresh_in_flight(self) -> bool:
        return self._pending_snapshot_token > self._applied_snapshot_token

    def is_selected(self, arn: str) -> bool:
        return arn in self.selected

    def operation_targets(self) -> list[str]:
        """Selected ARNs in fleet order, else the focused task, else nothing."""
        if self.selected:
            return [task.arn for task in self.tasks if task.arn in self.selected]
        task = self.focused_task
        return [task.arn] if task is not None else []

    # -- entry points ----------------------------------------------------------

    def start(self) -> list[Effect]:
        """Effects to run when the application starts."""
        self.view = ViewState.LOADING
        self.loading_reason = LoadingReason.FLEET
        return [self._fetch_snapshot()]

    def handle(self, event: Event) -> list[Effect]:
        if isinstance(event, UserInput):
            return self._on_input(event.action)
        if isinstance(event, Tick):
            return self._on_tick()
        if isinstance(event, SnapshotLoaded):
            return self._on_snapshot(event)
        if isinstance(event, TableStatsLoaded):
            return self._on_table_stats(event)
        if isinstance(event, OperationCompleted):
            return self._on_operation_completed(event)
        raise TypeError(f"Unknown event: {event!r}")

    # -- helpers ---------------------------------------------------------------

    def _next_token(self) -> int:
        self._last_token += 1
        return self._last_token

    def _fetch_snapshot(self) -> FetchSnapshot:
        token = self._next_token()
        self._pending_snapshot_token = token
        return FetchSnapshot(token)

    def find_task(self, arn: str | None) -> TaskRecord | None:
        if arn is None:
            return None
        return next((task for task in self.tasks if task.arn == arn), None)

    def _index_of(self, arn: str | None) -> int | None:
        for index, task in enumerate(self.tasks):
            if task.arn == arn:
                return index
        return None

    # -- input -----------------------------------------------------------------

    def _on_input(self, action: Action) -> list[Effect]:
        if action == Action.QUIT:
            return [Quit()]
        if action == Action.REFRESH:
            self.status_message = ""
            return [self._fetch_snapshot()]
        if action == Action.TOGGLE_AUTO_REFRESH:
            self.auto_refresh = not self.auto_refresh
            return []

        if self.view == ViewState.TASK_LIST:
            return self._on_task_list_input(action)
        if self.view == ViewState.TASK_DETAILS:
            return self._on_details_input(action)
        if self.view == ViewState.TABLE_STATS:
            if action == Action.BACK:
                self.view = ViewState.TASK_DETAILS if self.detail_task else ViewState.TASK_LIST
            return []
        if self.view == ViewState.ERROR:
            if action == Action.RETRY:
                self.status_message = ""
                return [self._fetch_snapshot()]
            return []
        if self.view == ViewState.LOADING and self.loading_reason == LoadingReason.TABLE_STATS:
            if action == Action.BACK:
                self.view = ViewState.TASK_DETAILS
            return []
        return []

    def _on_task_list_input(self, action: Action) -> list[Effect]:
        size = len(self.tasks)
        if action == Action.UP:
            self.focus = move_focus(self.focus, -1, size)
        elif action == Action.DOWN:
            self.focus = move_focus(self.focus, 1, size)
        elif action == Action.TOGGLE_SELECT:
            task = self.focused_task
            if task is not None:
                if task.arn in self.selected:
                    self.selected.discard(task.arn)
                else:
                    self.selected.add(task.arn)
        elif action == Action.CLEAR_SELECTION:
            self.selected.clear()
        elif action == Action.OPEN_DETAILS:
            task = self.focused_task
            if task is not None:
                self.detail_arn = task.arn
                self.show_mappings = False
                self.view = ViewState.TASK_DETAILS
        elif action in _OPERATION_ACTIONS:
            return self._dispatch_operation(action)
        return []

    def _dispatch_operation(self, action: Action) -> list[Effect]:
        targets = self.operation_targets()
        if not targets:
            return []
        operation, message = _OPERATION_ACTIONS[action]
        self.status_message = message
        self.pending_operations += 1
        return [RunOperation(self._next_token(), operation, tuple(targets))]

    def _on_details_input(self, action: Action) -> list[Effect]:
        if action == Action.BACK:
            index = self._index_of(self.detail_arn)
            if index is not None:
                self.focus = index
            self.view = ViewState.TASK_LIST
        elif action == Action.TOGGLE_MAPPINGS:
            self.show_mappings = not self.show_mappings
        elif action == Action.TABLE_STATS and self.detail_arn is not None:
            token = self._next_token()
            self._stats_token = token
            self.stats_arn = self.detail_arn
            self.view = ViewState.LOADING
            self.loading_reason = LoadingReason.TABLE_STATS
            return [FetchTableStats(token, self.detail_arn)]
        return []

    # -- timer -----------------------------------------------------------------

    def _on_tick(self) -> list[Effect]:
        if not self.timer_armed or self.refresh_in_flight:
            return []
        return [self._fetch_snapshot()]

    # -- results ---------------------------------------------------------------

    def _on_snapshot(self, event: SnapshotLoaded) -> list[Effect]:
        if event.token < self._applied_snapshot_token:
            return []
        self._applied_snapshot_token = event.token

        waiting_for_stats = (
            self.view == ViewState.LOADING and self.loading_reason == LoadingReason.TABLE_STATS
        )

        if event.error is not None:
            if waiting_for_stats:
                self.status_message = f"Refresh failed: {event.error}"
            else:
                self.error_message = f"Failed to load tasks: {event.error}"
                self.view = ViewState.ERROR
            return []

        self.tasks = list(event.tasks)
        present = {task.arn for task in self.tasks}
        self.selected &= present
        self.focus = move_focus(self.focus, 0, len(self.tasks))

        if self.view in (ViewState.LOADING, ViewState.ERROR) and not waiting_for_stats:
            self.view = ViewState.TASK_LIST
            self.error_message = ""
        elif self.view == ViewState.TASK_DETAILS and self.detail_arn not in present:
            self.view = ViewState.TASK_LIST
        return []

    def _on_table_stats(self, event: TableStatsLoaded) -> list[Effect]:
        if event.token != self._stats_token:
            return []

        waiting = self.view == ViewState.LOADING and self.loading_reason == LoadingReason.TABLE_STATS
        if event.error is not None:
            if waiting:
                self.error_message = f"Failed to load table statistics: {event.error}"
                self.view = ViewState.ERROR
            else:
                self.status_message = f"Failed to load table statistics: {event.error}"
            return []

        self.stats_arn = event.arn
        self.table_stats = list(event.stats)
        if waiting:
            self.view = ViewState.TABLE_STATS
        return []

    def _on_operation_completed(self, event: OperationCompleted) -> list[Effect]:
        self.pending_operations = max(0, self.pending_operations - 1)
        summary = ExecutionSummary.from_outcomes(event.outcomes)
        self.status_message = (
            f"Completed {summary.succeeded}/{summary.total} operations successfully"
        )
        self.last_outcomes = list(event.outcomes)
        return [self._fetch_snapshot()]

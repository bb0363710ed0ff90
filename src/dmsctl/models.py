"""Core data types for replication tasks and operation results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class StatusClass(str, Enum):
    """Coarse classification of a task status, used for styling and polling."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    OTHER = "other"


_ACTIVE_STATUSES = frozenset({"running", "starting", "replicating"})
_INACTIVE_STATUSES = frozenset({"stopped", "stopping", "failed"})
_SETTLED_STATUSES = frozenset({"stopped", "failed", "ready"})


@dataclass(frozen=True)
class TaskStatus:
    """A remote status string, classified once when the record is built.

    The raw value is kept verbatim for display; ``status_class`` is the closed
    variant every consumer branches on.
    """

    raw: str
    status_class: StatusClass

    @classmethod
    def parse(cls, value: str | None) -> TaskStatus:
        raw = (value or "").strip()
        normalized = raw.lower()
        if normalized in _ACTIVE_STATUSES:
            status_class = StatusClass.ACTIVE
        elif normalized in _INACTIVE_STATUSES:
            status_class = StatusClass.INACTIVE
        else:
            status_class = StatusClass.OTHER
        return cls(raw=raw or "unknown", status_class=status_class)

    @property
    def is_settled(self) -> bool:
        """True when the task is not running and a start may be issued."""
        return self.raw.lower() in _SETTLED_STATUSES

    def __str__(self) -> str:
        return self.raw


class ValidationState(str, Enum):
    """Classification of a table's data validation state."""

    VALIDATED = "validated"
    FAILED = "failed"
    PENDING = "pending"
    OTHER = "other"

    @classmethod
    def parse(cls, value: str | None) -> ValidationState:
        normalized = (value or "").strip().lower()
        if normalized in ("validated", "table validated"):
            return cls.VALIDATED
        if normalized in ("error", "failed", "validation failed"):
            return cls.FAILED
        if normalized in ("pending", "not enabled"):
            return cls.PENDING
        return cls.OTHER


class StartType(str, Enum):
    """How a replication task is started."""

    START_REPLICATION = "start-replication"
    RESUME_PROCESSING = "resume-processing"
    RELOAD_TARGET = "reload-target"


class OperationKind(str, Enum):
    """Operations the fan-out executor can apply to a task."""

    START = "start"
    STOP = "stop"
    RESUME = "resume"
    RESTART = "restart"
    RELOAD = "reload"


@dataclass(frozen=True)
class ProgressStats:
    """Progress counters reported for a task."""

    percent_complete: int = 0
    elapsed_millis: int = 0
    tables_loaded: int = 0
    tables_loading: int = 0
    tables_queued: int = 0
    tables_errored: int = 0
    stop_reason: str | None = None

    @property
    def elapsed(self) -> str:
        return format_elapsed_time(self.elapsed_millis)


@dataclass(frozen=True)
class TaskRecord:
    """One replication task as last reported by the remote service."""

    arn: str
    name: str
    status: TaskStatus
    migration_type: str = ""
    replication_instance_arn: str = ""
    source_endpoint_arn: str = ""
    target_endpoint_arn: str = ""
    table_mappings: str = ""
    created_at: datetime | None = None
    started_at: datetime | None = None
    stopped_at: datetime | None = None
    last_failure_message: str | None = None
    stats: ProgressStats | None = None


@dataclass(frozen=True)
class TableStatRecord:
    """Per-table replication counters."""

    schema_name: str
    table_name: str
    inserts: int = 0
    updates: int = 0
    deletes: int = 0
    ddls: int = 0
    full_load_rows: int = 0
    last_updated: datetime | None = None
    validation_state_raw: str = ""
    validation_state: ValidationState = field(default=ValidationState.OTHER)

    @property
    def qualified_name(self) -> str:
        return f"{self.schema_name}.{self.table_name}"


@dataclass(frozen=True)
class OperationOutcome:
    """The result of one attempted operation against one task."""

    arn: str
    success: bool
    message: str
    error: str | None = None

    @classmethod
    def succeeded(cls, arn: str, verb: str) -> OperationOutcome:
        return cls(arn=arn, success=True, message=f"Successfully issued {verb} command")

    @classmethod
    def failed(cls, arn: str, verb: str, error: str) -> OperationOutcome:
        return cls(
            arn=arn,
            success=False,
            message=f"Failed to {verb} task: {error}",
            error=error,
        )

    @property
    def task_name(self) -> str:
        return task_name_from_arn(self.arn)


def task_name_from_arn(arn: str) -> str:
    """Best-effort short name for an ARN (its final resource component)."""
    tail = arn.rsplit(":", 1)[-1]
    return tail.rsplit("/", 1)[-1]


def format_elapsed_time(millis: int) -> str:
    """Format a millisecond duration as its two most significant units.

    >>> format_elapsed_time(0)
    '0s'
    >>> format_elapsed_time(125_000)
    '2m 5s'
    >>> format_elapsed_time(93_600_000)
    '1d 2h'
    """
    if millis <= 0:
        return "0s"

    seconds = millis // 1000
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24

    if days:
        rest = hours % 24
        return f"{days}d {rest}h" if rest else f"{days}d"
    if hours:
        rest = minutes % 60
        return f"{hours}h {rest}m" if rest else f"{hours}h"
    if minutes:
        rest = seconds % 60
        return f"{minutes}m {rest}s" if rest else f"{minutes}m"
    return f"{seconds}s"

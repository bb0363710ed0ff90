"""dmsctl - operate fleets of AWS DMS replication tasks."""

__version__ = "0.4.0"

# Re-export core components for convenience
from .config import DmsCtlConfig, configure_logging
from .exceptions import (
    ConfigError,
    DmsCtlError,
    EmptyTargetSetError,
    GatewayConstructionError,
    GatewayError,
    ResolutionError,
    TaskNotFoundError,
)
from .executor import ExecutionSummary, ExecutorConfig, FanOutExecutor, Operation
from .gateway import DmsGateway, FleetGateway
from .models import (
    OperationKind,
    OperationOutcome,
    ProgressStats,
    StartType,
    StatusClass,
    TableStatRecord,
    TaskRecord,
    TaskStatus,
    ValidationState,
    format_elapsed_time,
    task_name_from_arn,
)
from .resolver import Resolution, match_pattern, resolve, resolve_identifiers

__all__ = [
    "ConfigError",
    "DmsCtlConfig",
    "DmsCtlError",
    "DmsGateway",
    "EmptyTargetSetError",
    "ExecutionSummary",
    "ExecutorConfig",
    "FanOutExecutor",
    "FleetGateway",
    "GatewayConstructionError",
    "GatewayError",
    "Operation",
    "OperationKind",
    "OperationOutcome",
    "ProgressStats",
    "Resolution",
    "ResolutionError",
    "StartType",
    "StatusClass",
    "TableStatRecord",
    "TaskNotFoundError",
    "TaskRecord",
    "TaskStatus",
    "ValidationState",
    "configure_logging",
    "format_elapsed_time",
    "match_pattern",
    "resolve",
    "resolve_identifiers",
    "task_name_from_arn",
]

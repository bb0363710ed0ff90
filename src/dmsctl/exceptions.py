"""
dmsctl Exception Hierarchy.

All custom exceptions inherit from DmsCtlError for unified error handling.
"""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)


class DmsCtlError(Exception):
    """Base exception for dmsctl errors.

    Attributes:
        message: Human-readable error description
        context: Additional context for debugging
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self._log_error()

    def _log_error(self) -> None:
        """Log the error creation at debug level.

        Per-task failures are expected during fan-out; callers log at the
        appropriate level when handling the exception.
        """
        logger.debug(
            f"{self.__class__.__name__}: {self.message}",
            extra={"error_context": self.context},
        )

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} [{ctx}]"
        return self.message


class ConfigError(DmsCtlError):
    """Raised for configuration errors.

    Examples:
        - Malformed config file
        - Invalid log level or theme
    """


class GatewayError(DmsCtlError):
    """Raised when a call to the replication service fails.

    The message carries the service's own error text so it can be shown to
    the user unchanged.
    """

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        arn: str | None = None,
        code: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        if operation:
            ctx["operation"] = operation
        if arn:
            ctx["arn"] = arn
        if code:
            ctx["code"] = code
        super().__init__(message, ctx)
        self.operation = operation
        self.arn = arn
        self.code = code

    def __str__(self) -> str:
        return self.message


class TaskNotFoundError(GatewayError):
    """Raised when a described task does not exist."""

    def __init__(self, arn: str) -> None:
        super().__init__(f"task not found: {arn}", operation="describe_task", arn=arn)


class GatewayConstructionError(DmsCtlError):
    """Raised when a client session cannot be created (bad profile, region, ...)."""


class ResolutionError(DmsCtlError):
    """Raised for malformed identifier input."""


class EmptyTargetSetError(ResolutionError):
    """Raised in command mode when identifiers resolve to no tasks."""

    def __init__(self, requested: list[str] | None = None) -> None:
        ctx = {"requested": list(requested)} if requested else {}
        super().__init__("no valid tasks found", ctx)
        self.requested = list(requested or [])

    def __str__(self) -> str:
        return self.message

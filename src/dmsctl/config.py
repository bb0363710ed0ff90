"""Configuration management for dmsctl."""

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from pydantic import BaseModel, Field, ValidationError, field_validator

from dmsctl.exceptions import ConfigError

_LOG_LEVELS = {
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}
_LOG_RECORD_KEYS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
}

UI_THEMES = {"default", "mono"}
ENDPOINT_ENV_VAR = "AWS_ENDPOINT_URL"


def _parse_log_level(level: str) -> int:
    normalized = level.strip().lower()
    if normalized in _LOG_LEVELS:
        return _LOG_LEVELS[normalized]
    valid = ", ".join(sorted({k for k in _LOG_LEVELS if k != "warn"}))
    raise ValueError(f"Invalid log level: {level}. Valid: {valid}")


def _coerce_log_levels(levels: dict[str, str]) -> dict[str, str]:
    normalized: dict[str, str] = {}
    for name, level in levels.items():
        _parse_log_level(level)
        normalized[name] = level.strip().lower()
    return normalized


def _iter_log_levels(
    default_level: str,
    per_component: dict[str, str],
) -> Iterable[int]:
    yield _parse_log_level(default_level)
    for level in per_component.values():
        yield _parse_log_level(level)


class _StructuredFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key in _LOG_RECORD_KEYS:
                continue
            if isinstance(value, (str, int, float, bool)) or value is None:
                payload[key] = value
            else:
                payload[key] = str(value)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack_info"] = record.stack_info
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(config: "DmsCtlConfig") -> None:
    """Configure structured logging for CLI usage."""
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    handler: logging.Handler
    if config.log_file:
        handler = logging.FileHandler(config.log_file)
    else:
        handler = logging.StreamHandler()
    handler.setLevel(logging.NOTSET)
    handler.setFormatter(_StructuredFormatter())
    root_logger.addHandler(handler)

    min_level = min(_iter_log_levels(config.log_level, config.log_levels))
    root_logger.setLevel(min_level)

    for name, level in config.log_levels.items():
        logging.getLogger(name).setLevel(_parse_log_level(level))

    # botocore is chatty at debug; only follow it when asked for explicitly
    if "botocore" not in config.log_levels and min_level < logging.INFO:
        logging.getLogger("botocore").setLevel(logging.INFO)


def _default_endpoint_url() -> str | None:
    return os.environ.get(ENDPOINT_ENV_VAR) or None


class DmsCtlConfig(BaseModel):
    """Main configuration for dmsctl."""

    # Session options
    profile: str | None = Field(default=None, description="AWS shared-credentials profile")
    region: str | None = Field(default=None, description="AWS region")
    endpoint_url: str | None = Field(
        default_factory=_default_endpoint_url,
        description="Custom service endpoint (LocalStack, mock servers)",
    )
    connect_timeout: float = Field(default=10.0, gt=0, description="Connect timeout (seconds)")
    read_timeout: float = Field(default=60.0, gt=0, description="Read timeout (seconds)")
    max_workers: int = Field(
        default=256,
        ge=1,
        description="Threads (and HTTP connections) available for concurrent service calls",
    )

    # Restart behaviour
    wait_for_stop: bool = Field(
        default=False,
        description="During restart, poll until the task has stopped before starting it",
    )
    stop_poll_interval: float = Field(default=5.0, gt=0, description="Seconds between stop polls")
    stop_poll_timeout: float = Field(
        default=300.0, gt=0, description="Give up waiting for a stop after this many seconds"
    )

    # TUI options
    refresh_interval: float = Field(default=5.0, ge=1.0, description="Auto-refresh period (seconds)")
    auto_refresh: bool = Field(default=True, description="Start the TUI with auto-refresh on")
    ui_theme: str = Field(default="default", description="UI theme (default, mono)")

    # Logging
    log_level: str = Field(default="warning", description="Log level")
    log_levels: dict[str, str] = Field(
        default_factory=dict,
        description="Per-component log levels (e.g., {'dmsctl.gateway': 'debug'})",
    )
    log_file: str | None = Field(
        default=None,
        description="Optional log file path (structured JSON)",
    )

    @field_validator("ui_theme")
    @classmethod
    def _validate_ui_theme(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in UI_THEMES:
            valid = ", ".join(sorted(UI_THEMES))
            raise ValueError(f"Invalid ui_theme. Valid: {valid}")
        return normalized

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        _parse_log_level(value)
        return value.strip().lower()

    @field_validator("log_levels")
    @classmethod
    def _validate_log_levels(cls, value: dict[str, str]) -> dict[str, str]:
        return _coerce_log_levels(value)

    @classmethod
    def from_file(cls, path: str | Path) -> "DmsCtlConfig":
        """Load configuration from TOML file.

        A missing file yields the defaults. Malformed files raise ConfigError.
        """
        import tomllib

        path = Path(path)
        if not path.exists():
            return cls()

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
            return cls(**data)
        except (tomllib.TOMLDecodeError, ValidationError) as e:
            raise ConfigError(f"Invalid config file: {e}", {"path": str(path)}) from e

    @classmethod
    def default_path(cls) -> Path:
        """Get default config file path."""
        return Path.home() / ".config" / "dmsctl" / "config.toml"

    def with_overrides(self, **overrides: object) -> "DmsCtlConfig":
        """Return a copy with every non-None override applied and re-validated."""
        updates = {key: value for key, value in overrides.items() if value is not None}
        if not updates:
            return self
        try:
            return type(self).model_validate({**self.model_dump(), **updates})
        except ValidationError as e:
            raise ConfigError(f"Invalid option: {e}") from e

from __future__ import annotations

import json
import logging

import pytest

from dmsctl.config import (
    DmsCtlConfig,
    _parse_log_level,
    _StructuredFormatter,
    configure_logging,
)
from dmsctl.exceptions import ConfigError
from dmsctl.executor import ExecutorConfig


class TestDmsCtlConfig:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("AWS_ENDPOINT_URL", raising=False)
        config = DmsCtlConfig()
        assert config.refresh_interval == 5.0
        assert config.auto_refresh is True
        assert config.wait_for_stop is False
        assert config.endpoint_url is None
        assert config.log_level == "warning"
        assert config.max_workers == 256

    def test_max_workers_lower_bound(self):
        with pytest.raises(ValueError):
            DmsCtlConfig(max_workers=0)

    def test_endpoint_from_environment(self, monkeypatch):
        monkeypatch.setenv("AWS_ENDPOINT_URL", "http://localhost:4566")
        assert DmsCtlConfig().endpoint_url == "http://localhost:4566"

    def test_invalid_theme_rejected(self):
        with pytest.raises(ValueError):
            DmsCtlConfig(ui_theme="neon")

    def test_theme_normalized(self):
        assert DmsCtlConfig(ui_theme=" MONO ").ui_theme == "mono"

    def test_refresh_interval_lower_bound(self):
        with pytest.raises(ValueError):
            DmsCtlConfig(refresh_interval=0.1)

    def test_log_levels_validated(self):
        config = DmsCtlConfig(log_level="DEBUG", log_levels={"dmsctl.gateway": "Info"})
        assert config.log_level == "debug"
        assert config.log_levels == {"dmsctl.gateway": "info"}
        with pytest.raises(ValueError):
            DmsCtlConfig(log_level="loud")

    def test_with_overrides_skips_none(self):
        config = DmsCtlConfig(profile="ops", region="eu-west-1")
        updated = config.with_overrides(profile=None, region="us-east-2")
        assert updated.profile == "ops"
        assert updated.region == "us-east-2"

    def test_with_overrides_revalidates(self):
        with pytest.raises(ConfigError):
            DmsCtlConfig().with_overrides(log_level="nope")

    def test_executor_config_from_config(self):
        config = DmsCtlConfig(wait_for_stop=True, stop_poll_interval=2, stop_poll_timeout=30)
        executor_config = ExecutorConfig.from_config(config)
        assert executor_config.wait_for_stop
        assert executor_config.stop_poll_interval == 2
        assert executor_config.stop_poll_timeout == 30


class TestConfigFile:
    def test_missing_file_gives_defaults(self, tmp_path):
        config = DmsCtlConfig.from_file(tmp_path / "nope.toml")
        assert config.profile is None

    def test_load_toml(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text(
            'profile = "ops"\nregion = "eu-west-1"\nrefresh_interval = 10\nwait_for_stop = true\n',
            encoding="utf-8",
        )
        config = DmsCtlConfig.from_file(path)
        assert config.profile == "ops"
        assert config.region == "eu-west-1"
        assert config.refresh_interval == 10
        assert config.wait_for_stop is True

    def test_malformed_toml(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("profile = ", encoding="utf-8")
        with pytest.raises(ConfigError):
            DmsCtlConfig.from_file(path)

    def test_invalid_values(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text('ui_theme = "neon"\n', encoding="utf-8")
        with pytest.raises(ConfigError):
            DmsCtlConfig.from_file(path)

    def test_default_path(self):
        path = DmsCtlConfig.default_path()
        assert path.parts[-3:] == (".config", "dmsctl", "config.toml")


class TestLogging:
    def test_parse_log_level(self):
        assert _parse_log_level("warn") == logging.WARNING
        with pytest.raises(ValueError):
            _parse_log_level("verbose")

    def test_structured_formatter_emits_json(self):
        record = logging.LogRecord(
            name="dmsctl.executor",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg="Fan-out finished",
            args=(),
            exc_info=None,
        )
        record.summary = "1 of 2 succeeded"
        payload = json.loads(_StructuredFormatter().format(record))
        assert payload["level"] == "info"
        assert payload["logger"] == "dmsctl.executor"
        assert payload["message"] == "Fan-out finished"
        assert payload["summary"] == "1 of 2 succeeded"

    def test_configure_logging_to_file(self, tmp_path):
        log_file = tmp_path / "dmsctl.log"
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level
        try:
            configure_logging(
                DmsCtlConfig(
                    log_level="info",
                    log_levels={"dmsctl.gateway": "debug"},
                    log_file=str(log_file),
                )
            )
            assert root.level == logging.DEBUG
            assert logging.getLogger("dmsctl.gateway").level == logging.DEBUG
            logging.getLogger("dmsctl.test").info("hello", extra={"arn": "arn:x"})
            for handler in root.handlers:
                handler.flush()
            line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
            assert json.loads(line)["arn"] == "arn:x"
        finally:
            for handler in list(root.handlers):
                root.removeHandler(handler)
                handler.close()
            for handler in saved_handlers:
                root.addHandler(handler)
            root.setLevel(saved_level)
            logging.getLogger("dmsctl.gateway").setLevel(logging.NOTSET)

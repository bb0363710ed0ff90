"""Tests for core data types."""

from __future__ import annotations

import pytest

from dmsctl.models import (
    OperationOutcome,
    StatusClass,
    TaskStatus,
    ValidationState,
    format_elapsed_time,
    task_name_from_arn,
)


class TestTaskStatus:
    @pytest.mark.parametrize("raw", ["running", "starting", "replicating", "Running"])
    def test_active_statuses(self, raw):
        assert TaskStatus.parse(raw).status_class is StatusClass.ACTIVE

    @pytest.mark.parametrize("raw", ["stopped", "stopping", "failed"])
    def test_inactive_statuses(self, raw):
        assert TaskStatus.parse(raw).status_class is StatusClass.INACTIVE

    @pytest.mark.parametrize("raw", ["ready", "creating", "modifying", "something-new"])
    def test_everything_else_is_other(self, raw):
        assert TaskStatus.parse(raw).status_class is StatusClass.OTHER

    def test_raw_value_kept_for_display(self):
        status = TaskStatus.parse("Replicating")
        assert str(status) == "Replicating"

    def test_missing_status(self):
        status = TaskStatus.parse(None)
        assert status.raw == "unknown"
        assert status.status_class is StatusClass.OTHER

    def test_settled(self):
        assert TaskStatus.parse("stopped").is_settled
        assert TaskStatus.parse("failed").is_settled
        assert not TaskStatus.parse("stopping").is_settled
        assert not TaskStatus.parse("running").is_settled


class TestValidationState:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("Validated", ValidationState.VALIDATED),
            ("Table validated", ValidationState.VALIDATED),
            ("Error", ValidationState.FAILED),
            ("Validation failed", ValidationState.FAILED),
            ("Pending records", ValidationState.OTHER),
            ("Pending", ValidationState.PENDING),
            ("Not enabled", ValidationState.PENDING),
            ("", ValidationState.OTHER),
        ],
    )
    def test_parse(self, raw, expected):
        assert ValidationState.parse(raw) is expected


class TestFormatElapsedTime:
    @pytest.mark.parametrize(
        "millis,expected",
        [
            (0, "0s"),
            (999, "0s"),
            (45_000, "45s"),
            (120_000, "2m"),
            (125_000, "2m 5s"),
            (3 * 3_600_000, "3h"),
            (3 * 3_600_000 + 15 * 60_000, "3h 15m"),
            (86_400_000, "1d"),
            (93_600_000, "1d 2h"),
        ],
    )
    def test_format(self, millis, expected):
        assert format_elapsed_time(millis) == expected


class TestTaskNameFromArn:
    def test_colon_separated(self):
        assert task_name_from_arn("arn:aws:dms:us-east-1:123:task:ABCDEF") == "ABCDEF"

    def test_slash_separated_tail(self):
        assert task_name_from_arn("arn:aws:dms:us-east-1:123:rep/task-x") == "task-x"

    def test_plain_string(self):
        assert task_name_from_arn("orders") == "orders"


class TestOperationOutcome:
    def test_success_message(self):
        outcome = OperationOutcome.succeeded("arn:x:task:A", "stop")
        assert outcome.success
        assert outcome.message == "Successfully issued stop command"
        assert outcome.error is None

    def test_failure_message_embeds_error(self):
        outcome = OperationOutcome.failed("arn:x:task:A", "start", "InvalidResourceStateFault: busy")
        assert not outcome.success
        assert outcome.message == "Failed to start task: InvalidResourceStateFault: busy"
        assert outcome.error == "InvalidResourceStateFault: busy"
        assert outcome.task_name == "A"

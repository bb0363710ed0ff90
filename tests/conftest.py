"""Shared fixtures: an in-memory fleet gateway."""

from __future__ import annotations

import asyncio

import pytest

from dmsctl.exceptions import GatewayError, TaskNotFoundError
from dmsctl.models import StartType, TableStatRecord, TaskRecord, TaskStatus

ARN_PREFIX = "arn:aws:dms:us-east-1:123456789012:task:"


def make_task(name: str, status: str = "stopped", **kwargs) -> TaskRecord:
    return TaskRecord(
        arn=kwargs.pop("arn", f"{ARN_PREFIX}{name.upper()}"),
        name=name,
        status=TaskStatus.parse(status),
        migration_type=kwargs.pop("migration_type", "full-load-and-cdc"),
        **kwargs,
    )


class FakeGateway:
    """Records calls and fails on demand, keyed by ARN."""

    def __init__(
        self,
        tasks: list[TaskRecord] | None = None,
        *,
        region: str | None = "us-east-1",
        profile: str | None = "test",
    ) -> None:
        self.tasks = list(tasks or [])
        self.region = region
        self.profile = profile
        self.calls: list[tuple] = []
        self.list_calls = 0
        self.list_error: Exception | None = None
        self.start_errors: dict[str, Exception] = {}
        self.stop_errors: dict[str, Exception] = {}
        self.table_stats: dict[str, list[TableStatRecord]] = {}
        self.delays: dict[str, float] = {}

    async def list_tasks(self) -> list[TaskRecord]:
        self.list_calls += 1
        if self.list_error is not None:
            raise self.list_error
        return list(self.tasks)

    async def describe_task(self, arn: str) -> TaskRecord:
        self.calls.append(("describe", arn))
        for task in self.tasks:
            if task.arn == arn:
                return task
        raise TaskNotFoundError(arn)

    async def get_table_statistics(self, arn: str) -> list[TableStatRecord]:
        self.calls.append(("table_stats", arn))
        return list(self.table_stats.get(arn, []))

    async def start_task(self, arn: str, start_type: StartType) -> None:
        await asyncio.sleep(self.delays.get(arn, 0))
        self.calls.append(("start", arn, StartType(start_type)))
        if arn in self.start_errors:
            raise self.start_errors[arn]

    async def stop_task(self, arn: str) -> None:
        await asyncio.sleep(self.delays.get(arn, 0))
        self.calls.append(("stop", arn))
        if arn in self.stop_errors:
            raise self.stop_errors[arn]

    def calls_for(self, kind: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == kind]


def gateway_error(message: str) -> GatewayError:
    return GatewayError(message, operation="test")


@pytest.fixture
def fleet() -> list[TaskRecord]:
    return [
        make_task("prod-db", "running"),
        make_task("dev-db", "stopped"),
        make_task("prod-cache", "failed"),
    ]


@pytest.fixture
def gateway(fleet) -> FakeGateway:
    return FakeGateway(fleet)

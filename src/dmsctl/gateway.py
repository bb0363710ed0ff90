"""Remote fleet gateway: the async boundary to the replication service.

``FleetGateway`` is the interface the resolver, executor and TUI depend on.
``DmsGateway`` implements it on top of a boto3 ``dms`` client; the client is
synchronous, so every call runs on a thread pool owned by the gateway and
sized so that a whole fan-out batch can be in flight at once.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Protocol, TypeVar, runtime_checkable

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, NoRegionError, ProfileNotFound

from dmsctl.config import DmsCtlConfig
from dmsctl.exceptions import GatewayConstructionError, GatewayError, TaskNotFoundError
from dmsctl.models import (
    ProgressStats,
    StartType,
    TableStatRecord,
    TaskRecord,
    TaskStatus,
    ValidationState,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@runtime_checkable
class FleetGateway(Protocol):
    """Async access to the remote fleet of replication tasks."""

    profile: str | None
    region: str | None

    async def list_tasks(self) -> list[TaskRecord]: ...

    async def describe_task(self, arn: str) -> TaskRecord: ...

    async def get_table_statistics(self, arn: str) -> list[TableStatRecord]: ...

    async def start_task(self, arn: str, start_type: StartType) -> None: ...

    async def stop_task(self, arn: str) -> None: ...


# ---------------------------------------------------------------------------
# Response conversion
# ---------------------------------------------------------------------------


def task_from_response(item: dict[str, Any]) -> TaskRecord:
    """Build a TaskRecord from one ``ReplicationTasks`` entry."""
    raw_stats = item.get("ReplicationTaskStats")
    stats = None
    if raw_stats:
        stats = ProgressStats(
            percent_complete=int(raw_stats.get("FullLoadProgressPercent", 0)),
            elapsed_millis=int(raw_stats.get("ElapsedTimeMillis", 0)),
            tables_loaded=int(raw_stats.get("TablesLoaded", 0)),
            tables_loading=int(raw_stats.get("TablesLoading", 0)),
            tables_queued=int(raw_stats.get("TablesQueued", 0)),
            tables_errored=int(raw_stats.get("TablesErrored", 0)),
            stop_reason=item.get("StopReason") or None,
        )
    return TaskRecord(
        arn=item.get("ReplicationTaskArn", ""),
        name=item.get("ReplicationTaskIdentifier", ""),
        status=TaskStatus.parse(item.get("Status")),
        migration_type=item.get("MigrationType", ""),
        replication_instance_arn=item.get("ReplicationInstanceArn", ""),
        source_endpoint_arn=item.get("SourceEndpointArn", ""),
        target_endpoint_arn=item.get("TargetEndpointArn", ""),
        table_mappings=item.get("TableMappings", ""),
        created_at=item.get("ReplicationTaskCreationDate"),
        started_at=item.get("ReplicationTaskStartDate"),
        stopped_at=raw_stats.get("StopDate") if raw_stats else None,
        last_failure_message=item.get("LastFailureMessage") or None,
        stats=stats,
    )


def table_stat_from_response(item: dict[str, Any]) -> TableStatRecord:
    """Build a TableStatRecord from one ``TableStatistics`` entry."""
    raw_state = item.get("ValidationState", "")
    return TableStatRecord(
        schema_name=item.get("SchemaName", ""),
        table_name=item.get("TableName", ""),
        inserts=int(item.get("Inserts", 0)),
        updates=int(item.get("Updates", 0)),
        deletes=int(item.get("Deletes", 0)),
        ddls=int(item.get("Ddls", 0)),
        full_load_rows=int(item.get("FullLoadRows", 0)),
        last_updated=item.get("LastUpdateTime"),
        validation_state_raw=raw_state,
        validation_state=ValidationState.parse(raw_state),
    )


def _error_text(exc: Exception) -> tuple[str, str | None]:
    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        code = error.get("Code")
        message = error.get("Message") or str(exc)
        return (f"{code}: {message}" if code else message), code
    return str(exc), None


# ---------------------------------------------------------------------------
# boto3 implementation
# ---------------------------------------------------------------------------


class DmsGateway:
    """FleetGateway backed by the AWS Database Migration Service API.

    Works with AWS itself and with DMS-compatible endpoints such as LocalStack
    via ``endpoint_url``.
    """

    def __init__(
        self,
        profile: str | None = None,
        region: str | None = None,
        endpoint_url: str | None = None,
        *,
        connect_timeout: float = 10.0,
        read_timeout: float = 60.0,
        max_workers: int = 256,
        client: Any = None,
    ) -> None:
        self.profile = profile
        self.endpoint_url = endpoint_url
        self._pool = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="dmsctl-gateway"
        )

        if client is not None:
            self._client = client
            self.region = region or getattr(getattr(client, "meta", None), "region_name", None)
            return

        try:
            session = boto3.Session(profile_name=profile, region_name=region)
            client_kwargs: dict[str, Any] = {
                "service_name": "dms",
                "config": Config(
                    connect_timeout=connect_timeout,
                    read_timeout=read_timeout,
                    max_pool_connections=max_workers,
                    retries={"max_attempts": 1, "mode": "standard"},
                ),
            }
            if endpoint_url:
                client_kwargs["endpoint_url"] = endpoint_url
            self._client = session.client(**client_kwargs)
        except (ProfileNotFound, NoRegionError, BotoCoreError) as e:
            raise GatewayConstructionError(
                f"failed to create DMS client: {e}",
                {"profile": profile, "region": region},
            ) from e

        self.region = self._client.meta.region_name
        logger.info(
            "DMS client initialized",
            extra={"profile": profile, "region": self.region, "endpoint": endpoint_url},
        )

    @classmethod
    def from_config(cls, config: DmsCtlConfig) -> DmsGateway:
        return cls(
            profile=config.profile,
            region=config.region,
            endpoint_url=config.endpoint_url,
            connect_timeout=config.connect_timeout,
            read_timeout=config.read_timeout,
            max_workers=config.max_workers,
        )

    async def _call(self, operation: str, fn: Callable[[], T], arn: str | None = None) -> T:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(self._pool, fn)
        except (ClientError, BotoCoreError) as e:
            text, code = _error_text(e)
            raise GatewayError(text, operation=operation, arn=arn, code=code) from e

    def _paginate(self, operation: str, key: str, **kwargs: Any) -> list[dict[str, Any]]:
        paginator = self._client.get_paginator(operation)
        items: list[dict[str, Any]] = []
        for page in paginator.paginate(**kwargs):
            items.extend(page.get(key, []))
        return items

    async def list_tasks(self) -> list[TaskRecord]:
        items = await self._call(
            "list_tasks",
            functools.partial(self._paginate, "describe_replication_tasks", "ReplicationTasks"),
        )
        tasks = [task_from_response(item) for item in items]
        logger.debug("Listed tasks", extra={"count": len(tasks)})
        return tasks

    async def describe_task(self, arn: str) -> TaskRecord:
        def describe() -> dict[str, Any]:
            return self._client.describe_replication_tasks(
                Filters=[{"Name": "replication-task-arn", "Values": [arn]}]
            )

        try:
            response = await self._call("describe_task", describe, arn=arn)
        except GatewayError as e:
            if e.code == "ResourceNotFoundFault":
                raise TaskNotFoundError(arn) from e
            raise
        items = response.get("ReplicationTasks", [])
        if not items:
            raise TaskNotFoundError(arn)
        return task_from_response(items[0])

    async def get_table_statistics(self, arn: str) -> list[TableStatRecord]:
        items = await self._call(
            "get_table_statistics",
            functools.partial(
                self._paginate,
                "describe_table_statistics",
                "TableStatistics",
                ReplicationTaskArn=arn,
            ),
            arn=arn,
        )
        return [table_stat_from_response(item) for item in items]

    async def start_task(self, arn: str, start_type: StartType) -> None:
        await self._call(
            "start_task",
            functools.partial(
                self._client.start_replication_task,
                ReplicationTaskArn=arn,
                StartReplicationTaskType=StartType(start_type).value,
            ),
            arn=arn,
        )
        logger.info("Start issued", extra={"arn": arn, "start_type": StartType(start_type).value})

    async def stop_task(self, arn: str) -> None:
        await self._call(
            "stop_task",
            functools.partial(self._client.stop_replication_task, ReplicationTaskArn=arn),
            arn=arn,
        )
        logger.info("Stop issued", extra={"arn": arn})

"""Concurrent fan-out of task operations.

Each target gets exactly one attempt, running concurrently with every other
target. A failure on one target is recorded as that target's outcome and
never affects the others; the batch always completes with one outcome per
target, in input order.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Sequence

from dmsctl.exceptions import GatewayError
from dmsctl.models import OperationKind, OperationOutcome, StartType

if TYPE_CHECKING:
    from dmsctl.config import DmsCtlConfig
    from dmsctl.gateway import FleetGateway

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Operation:
    """An operation to apply to every target of a batch."""

    kind: OperationKind
    start_type: StartType = StartType.START_REPLICATION

    @classmethod
    def start(cls, start_type: StartType = StartType.START_REPLICATION) -> Operation:
        return cls(OperationKind.START, StartType(start_type))

    @classmethod
    def stop(cls) -> Operation:
        return cls(OperationKind.STOP)

    @classmethod
    def resume(cls) -> Operation:
        return cls(OperationKind.RESUME, StartType.RESUME_PROCESSING)

    @classmethod
    def restart(cls, start_type: StartType = StartType.START_REPLICATION) -> Operation:
        return cls(OperationKind.RESTART, StartType(start_type))

    @classmethod
    def reload(cls) -> Operation:
        return cls(OperationKind.RELOAD, StartType.RELOAD_TARGET)

    @property
    def verb(self) -> str:
        return self.kind.value

    @property
    def is_restart(self) -> bool:
        return self.kind in (OperationKind.RESTART, OperationKind.RELOAD)


@dataclass
class ExecutorConfig:
    """Configuration for fan-out execution."""

    # Restart issues start right after stop is accepted. The remote side may
    # still be stopping at that point and reject the start; that rejection is
    # reported as the target's outcome. Set wait_for_stop to poll first.
    wait_for_stop: bool = False
    stop_poll_interval: float = 5.0
    stop_poll_timeout: float = 300.0

    @classmethod
    def from_config(cls, config: "DmsCtlConfig") -> ExecutorConfig:
        return cls(
            wait_for_stop=config.wait_for_stop,
            stop_poll_interval=config.stop_poll_interval,
            stop_poll_timeout=config.stop_poll_timeout,
        )


@dataclass
class ExecutionSummary:
    """Aggregated view of a batch's outcomes."""

    total: int = 0
    succeeded: int = 0
    failed: int = 0

    @classmethod
    def from_outcomes(cls, outcomes: Sequence[OperationOutcome]) -> ExecutionSummary:
        summary = cls(total=len(outcomes))
        for outcome in outcomes:
            if outcome.success:
                summary.succeeded += 1
            else:
                summary.failed += 1
        return summary

    @property
    def all_succeeded(self) -> bool:
        return self.failed == 0

    def __str__(self) -> str:
        return f"{self.succeeded} of {self.total} succeeded"


class StopWaitTimeout(GatewayError):
    """Raised when a restart gives up waiting for its stop to settle."""


class FanOutExecutor:
    """Apply one operation to many targets concurrently."""

    def __init__(
        self,
        gateway: "FleetGateway",
        config: ExecutorConfig | None = None,
    ) -> None:
        self._gateway = gateway
        self._config = config or ExecutorConfig()

    async def execute(
        self,
        targets: Sequence[str],
        operation: Operation,
        on_outcome: Callable[[int, OperationOutcome], None] | None = None,
    ) -> list[OperationOutcome]:
        """Run ``operation`` against every target and return index-aligned outcomes.

        Args:
            targets: Task ARNs. Duplicates are attempted independently.
            operation: The operation to apply.
            on_outcome: Optional callback(index, outcome) as each unit finishes.
        """
        if not targets:
            return []

        outcomes: list[OperationOutcome | None] = [None] * len(targets)

        async def run_unit(index: int, arn: str) -> None:
            outcome = await self._attempt(arn, operation)
            outcomes[index] = outcome
            if on_outcome is not None:
                on_outcome(index, outcome)

        logger.info(
            "Fan-out started",
            extra={"operation": operation.verb, "targets": len(targets)},
        )
        await asyncio.gather(*(run_unit(index, arn) for index, arn in enumerate(targets)))

        results = [outcome for outcome in outcomes if outcome is not None]
        logger.info(
            "Fan-out finished",
            extra={"operation": operation.verb, "summary": str(ExecutionSummary.from_outcomes(results))},
        )
        return results

    async def _attempt(self, arn: str, operation: Operation) -> OperationOutcome:
        # Catch-all: every failure becomes this target's outcome
        try:
            if operation.kind is OperationKind.STOP:
                await self._gateway.stop_task(arn)
            elif operation.is_restart:
                await self._restart(arn, operation.start_type)
            else:
                await self._gateway.start_task(arn, operation.start_type)
        except Exception as e:
            logger.info(
                "Operation failed",
                extra={"operation": operation.verb, "arn": arn, "error": str(e)},
            )
            return OperationOutcome.failed(arn, operation.verb, str(e))
        return OperationOutcome.succeeded(arn, operation.verb)

    async def _restart(self, arn: str, start_type: StartType) -> None:
        try:
            await self._gateway.stop_task(arn)
        except Exception as e:
            raise GatewayError(
                f"failed to stop task during restart: {e}", operation="restart", arn=arn
            ) from e

        if self._config.wait_for_stop:
            await self._wait_until_stopped(arn)

        try:
            await self._gateway.start_task(arn, start_type)
        except Exception as e:
            raise GatewayError(
                f"failed to start task during restart: {e}", operation="restart", arn=arn
            ) from e

    async def _wait_until_stopped(self, arn: str) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._config.stop_poll_timeout
        while True:
            task = await self._gateway.describe_task(arn)
            if task.status.is_settled:
                return
            if loop.time() >= deadline:
                raise StopWaitTimeout(
                    f"timed out waiting for task to stop (last status: {task.status.raw})",
                    operation="restart",
                    arn=arn,
                )
            logger.debug("Waiting for stop", extra={"arn": arn, "status": task.status.raw})
            await asyncio.sleep(self._config.stop_poll_interval)

"""Turn user-supplied task identifiers into concrete ARNs.

An identifier is one of:

- an ARN (anything starting with ``arn:``), passed through untouched;
- ``all`` or ``*``, meaning every task in the fleet;
- a glob pattern containing ``*``, ``?`` or ``[``, matched against task names;
- an exact task name.

Misses never abort resolution. They are reported as warnings so the rest of
the request can still be acted on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Sequence

from dmsctl.exceptions import EmptyTargetSetError
from dmsctl.models import TaskRecord

if TYPE_CHECKING:
    from dmsctl.gateway import FleetGateway

logger = logging.getLogger(__name__)

ARN_PREFIX = "arn:"
ALL_KEYWORDS = frozenset({"all", "*"})
GLOB_CHARS = "*?["


@dataclass
class Resolution:
    """Resolved targets plus the warnings produced along the way."""

    identifiers: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.identifiers)

    def require_targets(self) -> list[str]:
        """Return the identifiers, raising when nothing resolved."""
        if not self.identifiers:
            raise EmptyTargetSetError()
        return list(self.identifiers)


def is_resource_identifier(value: str) -> bool:
    return value.startswith(ARN_PREFIX)


def has_glob_chars(value: str) -> bool:
    return any(ch in value for ch in GLOB_CHARS)


def needs_fleet(requested: Iterable[str]) -> bool:
    """True if any identifier can only be resolved against a fleet listing."""
    return any(not is_resource_identifier(item) for item in requested)


def match_pattern(pattern: str, text: str) -> bool:
    """Glob match where ``*`` is any run and ``?`` is one character.

    Every other character, ``[`` included, matches itself. Runs in
    O(len(pattern) * len(text)) worst case with no recursion: on a mismatch
    after a ``*``, the star is re-anchored one character further along.
    """
    p = t = 0
    star = -1
    resume = 0

    while t < len(text):
        if p < len(pattern) and (pattern[p] == "?" or pattern[p] == text[t]):
            p += 1
            t += 1
        elif p < len(pattern) and pattern[p] == "*":
            star = p
            resume = t
            p += 1
        elif star != -1:
            p = star + 1
            resume += 1
            t = resume
        else:
            return False

    while p < len(pattern) and pattern[p] == "*":
        p += 1
    return p == len(pattern)


def resolve_identifiers(requested: Sequence[str], fleet: Sequence[TaskRecord]) -> Resolution:
    """Resolve identifiers against a fleet snapshot.

    The output keeps request order; a pattern contributes its matches in
    fleet order. Duplicates are kept, so a task named twice is acted on twice.
    """
    result = Resolution()

    for item in requested:
        if is_resource_identifier(item):
            result.identifiers.append(item)
        elif item in ALL_KEYWORDS:
            result.identifiers.extend(task.arn for task in fleet)
        elif has_glob_chars(item):
            matched = [task.arn for task in fleet if match_pattern(item, task.name)]
            if not matched:
                result.warnings.append(f"no tasks matched pattern '{item}'")
            result.identifiers.extend(matched)
        else:
            named = [task.arn for task in fleet if task.name == item]
            if not named:
                result.warnings.append(f"task '{item}' not found")
                continue
            if len(named) > 1:
                result.warnings.append(
                    f"task name '{item}' matches {len(named)} tasks; using {named[0]}"
                )
            result.identifiers.append(named[0])

    for warning in result.warnings:
        logger.info("Identifier resolution warning", extra={"warning": warning})
    return result


async def resolve(
    gateway: "FleetGateway",
    requested: Sequence[str],
    fleet: Sequence[TaskRecord] | None = None,
) -> Resolution:
    """Resolve identifiers, listing the fleet once and only if needed.

    Listing failures propagate as ``GatewayError``.
    """
    if fleet is None:
        fleet = await gateway.list_tasks() if needs_fleet(requested) else []
    return resolve_identifiers(requested, fleet)

"""Diagnostics channel for recoverable data problems.

The layout pipeline never raises on messy data. Every issue it recovers from
is recorded here and logged through structlog; callers may subscribe to be
notified as issues are found.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


class DiagnosticCode(str, Enum):
    DANGLING_PARENT = "dangling_parent"
    DANGLING_CROSS_LINK = "dangling_cross_link"
    SELF_REFERENCE = "self_reference"
    DUPLICATE_ENTITY = "duplicate_entity"
    UNGROUPED_ENTITY = "ungrouped_entity"
    MISSING_ENDPOINT = "missing_endpoint"
    MULTI_PARENT_SKIPPED = "multi_parent_skipped"
    INVALID_CONFIG = "invalid_config"
    INVALID_RECORD = "invalid_record"
    HIERARCHY_CYCLE = "hierarchy_cycle"


@dataclass(frozen=True)
class Diagnostic:
    code: DiagnosticCode
    message: str
    node_key: str | None = None
    context: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)


Subscriber = Callable[[Diagnostic], None]


class Diagnostics:
    """Collects ``Diagnostic`` records for a single layout run."""

    def __init__(self, subscribers: list[Subscriber] | None = None) -> None:
        self.records: list[Diagnostic] = []
        self._subscribers: list[Subscriber] = list(subscribers or [])

    def subscribe(self, callback: Subscriber) -> None:
        self._subscribers.append(callback)

    def report(
        self,
        code: DiagnosticCode,
        message: str,
        node_key: str | None = None,
        **context: Any,
    ) -> Diagnostic:
        diagnostic = Diagnostic(code=code, message=message, node_key=node_key, context=context)
        self.records.append(diagnostic)
        logger.warning(code.value, node_key=node_key, detail=message, **context)
        for callback in self._subscribers:
            callback(diagnostic)
        return diagnostic

    def codes(self) -> list[DiagnosticCode]:
        return [d.code for d in self.records]

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self):
        return iter(self.records)


def ensure(diagnostics: Diagnostics | None) -> Diagnostics:
    """Return ``diagnostics`` or a fresh collector when none was given."""
    return diagnostics if diagnostics is not None else Diagnostics()

"""
Status aggregation across entity kinds.

Aggregation never fails on a bad document: entities whose status cannot be
read are counted under 'Unknown'.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, Field, computed_field

from pmflow.entities.models import EntityKind, EntityRecord, Priority, UNKNOWN, spec_for
from pmflow.entities.store import EntityStore
from pmflow.utils.logger import get_logger

logger = get_logger(__name__)

REPORT_KINDS = (EntityKind.TICKET, EntityKind.STORY, EntityKind.ISSUE, EntityKind.PRD)


def completion_percent(completed: int, total: int) -> int:
    """Whole-number percentage rounded half up; 0 when there is nothing to complete."""
    if total <= 0:
        return 0
    return math.floor(completed * 100 / total + 0.5)


class KindSummary(BaseModel):
    """Counts for one entity kind."""

    kind: EntityKind
    label: str
    total: int = 0
    completed: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)
    by_priority: Dict[str, int] = Field(default_factory=dict)

    @computed_field
    @property
    def completion_percent(self) -> int:
        return completion_percent(self.completed, self.total)

    def count(self, status: str) -> int:
        return self.by_status.get(status, 0)


def summarize(kind: EntityKind, records: Iterable[EntityRecord]) -> KindSummary:
    """
    Count records by status and priority (severity for issues).

    Every declared status and priority appears in the result, zero or not,
    in declared order; 'Unknown' is added only when something is unknown.
    """
    kind_spec = spec_for(kind)
    by_status: Dict[str, int] = {status: 0 for status in kind_spec.statuses}
    by_priority: Dict[str, int] = {level.value: 0 for level in Priority}
    total = 0

    for record in records:
        total += 1
        status = record.status if record.status in by_status else UNKNOWN
        by_status[status] = by_status.get(status, 0) + 1
        by_priority[record.rank.value] += 1

    summary = KindSummary(
        kind=kind,
        label=kind_spec.plural,
        total=total,
        completed=by_status[kind_spec.completed_status],
        by_status=by_status,
        by_priority=by_priority,
    )
    logger.debug(
        f"Summarized {summary.total} {kind_spec.plural.lower()}",
        completed=summary.completed,
    )
    return summary


class StatusReport(BaseModel):
    """Per-kind summaries at a point in time."""

    generated_at: datetime = Field(default_factory=datetime.now)
    summaries: List[KindSummary] = Field(default_factory=list)

    def get(self, kind: EntityKind) -> Optional[KindSummary]:
        for summary in self.summaries:
            if summary.kind == kind:
                return summary
        return None


def build_status_report(
    store: EntityStore,
    kinds: Iterable[EntityKind] = REPORT_KINDS,
) -> StatusReport:
    """Scan the store and summarize each requested kind (active documents only)."""
    with logger.time_operation("status aggregation"):
        return StatusReport(
            summaries=[summarize(kind, store.list_entities(kind)) for kind in kinds]
        )


__all__ = [
    "REPORT_KINDS",
    "completion_percent",
    "KindSummary",
    "summarize",
    "StatusReport",
    "build_status_report",
]

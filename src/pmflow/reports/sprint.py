"""
Sprint report: status summaries, git metadata and recommendations.
"""

from __future__ import annotations

import json
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field

from pmflow.entities.models import EntityKind, EntityRecord, Priority
from pmflow.entities.store import EntityStore
from pmflow.exceptions import ExternalToolError
from pmflow.integrations.git import GitProbe, GitStatus
from pmflow.utils.logger import get_logger
from pmflow.utils.paths import safe_write
from .aggregator import KindSummary, REPORT_KINDS, summarize

logger = get_logger(__name__)

# Tickets in progress above this count trigger a WIP recommendation
WIP_LIMIT = 5

REC_CREATE_TICKETS = "Create initial tickets for project planning"
REC_REDUCE_WIP = "Consider reducing work in progress to improve focus"
REC_ADD_STORIES = "Add user stories to define feature requirements"
REC_FIX_ISSUES = "Address open issues to maintain code quality"
REC_COMMIT = "Commit pending changes to maintain clean repository state"
REC_START_PRIORITY = "Start with the highest priority tickets"


def sprint_name(day: Optional[date] = None) -> str:
    """ISO-week sprint name, e.g. 'Sprint 2026-W42'."""
    year, week, _ = (day or date.today()).isocalendar()
    return f"Sprint {year}-W{week:02d}"


class StepResult(BaseModel):
    """A report-gathering step that did not complete."""

    step: str
    error: str


class SprintReport(BaseModel):
    sprint: str
    generated_at: datetime = Field(default_factory=datetime.now)
    summaries: List[KindSummary] = Field(default_factory=list)
    git: Optional[GitStatus] = None
    failed_steps: List[StepResult] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)

    def get(self, kind: EntityKind) -> Optional[KindSummary]:
        for summary in self.summaries:
            if summary.kind == kind:
                return summary
        return None

    @property
    def filename(self) -> str:
        return f"sprint-report-{self.sprint.replace(' ', '-').lower()}.json"


def recommend(
    tickets: Sequence[EntityRecord],
    stories: Sequence[EntityRecord],
    issues: Sequence[EntityRecord],
    git: Optional[GitStatus] = None,
    wip_limit: int = WIP_LIMIT,
) -> List[str]:
    """Rule-based suggestions, in a fixed order."""
    recommendations = []
    in_progress = sum(1 for ticket in tickets if ticket.status == "In Progress")

    if not tickets:
        recommendations.append(REC_CREATE_TICKETS)
    if in_progress > wip_limit:
        recommendations.append(REC_REDUCE_WIP)
    if not stories:
        recommendations.append(REC_ADD_STORIES)
    if any(issue.status != "Resolved" for issue in issues):
        recommendations.append(REC_FIX_ISSUES)
    if git is not None and git.has_uncommitted_changes:
        recommendations.append(REC_COMMIT)

    urgent_waiting = any(
        ticket.rank in (Priority.HIGH, Priority.CRITICAL) and ticket.status == "Not Started"
        for ticket in tickets
    )
    if urgent_waiting and in_progress == 0:
        recommendations.append(REC_START_PRIORITY)

    return recommendations


def build_sprint_report(
    store: EntityStore,
    probe: Optional[GitProbe] = None,
    wip_limit: int = WIP_LIMIT,
    today: Optional[date] = None,
) -> SprintReport:
    """
    Gather everything for the sprint report.

    A failing git probe is recorded in failed_steps; the rest of the report
    is still produced.
    """
    records = {kind: store.list_entities(kind) for kind in REPORT_KINDS}
    report = SprintReport(
        sprint=sprint_name(today),
        summaries=[summarize(kind, records[kind]) for kind in REPORT_KINDS],
    )

    if probe is not None:
        try:
            report.git = probe.status()
        except ExternalToolError as e:
            logger.warning(f"Git metadata unavailable: {e.message}")
            report.failed_steps.append(StepResult(step="git", error=e.message))

    report.recommendations = recommend(
        records[EntityKind.TICKET],
        records[EntityKind.STORY],
        records[EntityKind.ISSUE],
        report.git,
        wip_limit,
    )
    return report


def save_report(report: SprintReport, reports_dir: Path) -> Path:
    """Write the report as indented JSON and return its path."""
    path = reports_dir / report.filename
    data = report.model_dump(mode="json")
    safe_write(path, json.dumps(data, indent=2, ensure_ascii=False) + "\n")
    logger.info(f"Saved sprint report to {path}")
    return path


__all__ = [
    "WIP_LIMIT",
    "sprint_name",
    "StepResult",
    "SprintReport",
    "recommend",
    "build_sprint_report",
    "save_report",
]

"""
Tests for status aggregation, sprint reports and the git probe.

Git is never invoked for real: subprocess.run is patched or the probe is a
MagicMock.
"""

from __future__ import annotations

import json
import subprocess
from datetime import date
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from pmflow.entities.models import EntityKind
from pmflow.exceptions import ExternalToolError
from pmflow.integrations.git import GitProbe, GitStatus
from pmflow.reports.aggregator import build_status_report, completion_percent, summarize
from pmflow.reports.sprint import (
    REC_ADD_STORIES,
    REC_COMMIT,
    REC_CREATE_TICKETS,
    REC_FIX_ISSUES,
    REC_REDUCE_WIP,
    REC_START_PRIORITY,
    build_sprint_report,
    recommend,
    save_report,
    sprint_name,
)

from conftest import add_ticket, make_document


def add_issue(store, number: int, status: str = "Open", severity: str = "🟡 Medium") -> None:
    labels = ("Open", "In Progress", "Resolved")
    block = "\n".join(f"- [{'x' if label == status else ' '}] {label}" for label in labels)
    text = f"# BUG-{number:03d}: Issue {number}\n## Status\n{block}\n## Severity\n{severity}\n"
    store.write_entity(EntityKind.ISSUE, f"BUG-{number:03d}-issue.md", text)


class TestCompletionPercent:
    """Test percentage rounding."""

    @pytest.mark.parametrize("completed,total,expected", [
        (0, 0, 0),
        (0, 3, 0),
        (1, 3, 33),
        (2, 3, 67),
        (1, 8, 13),
        (3, 8, 38),
        (4, 4, 100),
    ])
    def test_rounds_half_up(self, completed, total, expected):
        assert completion_percent(completed, total) == expected


class TestAggregator:
    """Test per-kind summaries."""

    def test_zero_entities_reports_zero_percent(self, memory_store):
        """Test a kind with no entities is reported at 0%."""
        report = build_status_report(memory_store)
        for summary in report.summaries:
            assert summary.total == 0
            assert summary.completion_percent == 0

    def test_counts_by_status_and_priority(self, memory_store):
        add_ticket(memory_store, 1, "A", status="Complete", priority="🔴 High")
        add_ticket(memory_store, 2, "B", status="In Progress")
        add_ticket(memory_store, 3, "C", status="Complete", priority="🟢 Low")

        summary = build_status_report(memory_store).get(EntityKind.TICKET)
        assert summary.total == 3
        assert summary.completed == 2
        assert summary.completion_percent == 67
        assert summary.by_status == {"Not Started": 0, "In Progress": 1, "Review": 0, "Complete": 2}
        assert summary.by_priority == {"Low": 1, "Medium": 1, "High": 1, "Critical": 0}

    def test_unknown_status_is_counted(self, memory_store):
        """Test unreadable statuses count under Unknown instead of failing."""
        memory_store.write_entity(EntityKind.STORY, "STORY-001-x.md", "# STORY-001: x\n")
        summary = summarize(EntityKind.STORY, memory_store.list_entities(EntityKind.STORY))
        assert summary.count("Unknown") == 1
        assert summary.total == 1

    def test_issues_count_by_severity(self, memory_store):
        add_issue(memory_store, 1, "Resolved", "🚨 Critical")
        add_issue(memory_store, 2)
        summary = build_status_report(memory_store).get(EntityKind.ISSUE)
        assert summary.completed == 1
        assert summary.by_priority["Critical"] == 1
        assert summary.completion_percent == 50

    def test_archived_documents_are_excluded(self, memory_store):
        add_ticket(memory_store, 1, "A", status="Complete")
        memory_store.archive_entity(memory_store.get_document("TICKET-001"))
        assert build_status_report(memory_store).get(EntityKind.TICKET).total == 0

    def test_summary_json_includes_percent(self, memory_store):
        data = build_status_report(memory_store).model_dump(mode="json")
        assert data["summaries"][0]["completion_percent"] == 0


class TestRecommendations:
    """Test the rule-based suggestions."""

    def test_empty_project(self):
        assert recommend([], [], []) == [REC_CREATE_TICKETS, REC_ADD_STORIES]

    def test_wip_limit(self, memory_store):
        for number in range(1, 7):
            add_ticket(memory_store, number, f"T{number}", status="In Progress")
        tickets = memory_store.list_entities(EntityKind.TICKET)
        assert REC_REDUCE_WIP in recommend(tickets, [], [])
        assert REC_REDUCE_WIP not in recommend(tickets, [], [], wip_limit=6)

    def test_open_issues_and_dirty_tree(self, memory_store):
        add_issue(memory_store, 1)
        issues = memory_store.list_entities(EntityKind.ISSUE)
        git = GitStatus(branch="main", commit_count=3, has_uncommitted_changes=True)
        result = recommend([], [], issues, git)
        assert REC_FIX_ISSUES in result
        assert REC_COMMIT in result

    def test_start_high_priority_when_idle(self, memory_store):
        add_ticket(memory_store, 1, "Urgent", priority="🔴 High")
        tickets = memory_store.list_entities(EntityKind.TICKET)
        assert REC_START_PRIORITY in recommend(tickets, [], [])

        add_ticket(memory_store, 2, "Busy", status="In Progress")
        tickets = memory_store.list_entities(EntityKind.TICKET)
        assert REC_START_PRIORITY not in recommend(tickets, [], [])


class TestSprintReport:
    """Test sprint report assembly."""

    def test_sprint_name_uses_iso_week(self):
        assert sprint_name(date(2026, 10, 19)) == "Sprint 2026-W43"
        assert sprint_name(date(2027, 1, 1)) == "Sprint 2026-W53"

    def test_git_failure_is_a_failed_step(self, memory_store):
        """Test a failing probe is recorded while the rest is still produced."""
        probe = MagicMock()
        probe.status.side_effect = ExternalToolError("git", "not a git repository", 128)

        report = build_sprint_report(memory_store, probe=probe, today=date(2026, 10, 19))

        assert report.git is None
        assert [(s.step, s.error) for s in report.failed_steps] == [("git", "git: not a git repository")]
        assert len(report.summaries) == 4
        assert report.recommendations == [REC_CREATE_TICKETS, REC_ADD_STORIES]

    def test_git_metadata_included(self, memory_store):
        probe = MagicMock()
        probe.status.return_value = GitStatus(branch="main", commit_count=12, last_commit="abc123 Init")
        report = build_sprint_report(memory_store, probe=probe)
        assert report.git.branch == "main"
        assert report.failed_steps == []

    def test_save_report_writes_json(self, memory_store, tmp_path: Path):
        report = build_sprint_report(memory_store, today=date(2026, 10, 19))
        path = save_report(report, tmp_path / "reports")

        assert path.name == "sprint-report-sprint-2026-w43.json"
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["sprint"] == "Sprint 2026-W43"
        assert data["summaries"][0]["kind"] == "ticket"
        assert data["git"] is None


class TestGitProbe:
    """Test subprocess handling in the git probe."""

    def _completed(self, stdout: str = "", returncode: int = 0, stderr: str = ""):
        return subprocess.CompletedProcess(args=["git"], returncode=returncode, stdout=stdout, stderr=stderr)

    def test_status_collects_all_fields(self, tmp_path: Path):
        outputs = iter([
            self._completed("main\n"),
            self._completed("42\n"),
            self._completed(" M tickets/TICKET-001-x.md\n"),
            self._completed("abc1234 Add tickets"),
        ])
        with patch("pmflow.integrations.git.subprocess.run", side_effect=lambda *a, **k: next(outputs)):
            status = GitProbe(tmp_path).status()

        assert status == GitStatus(
            branch="main",
            commit_count=42,
            has_uncommitted_changes=True,
            last_commit="abc1234 Add tickets",
        )

    def test_missing_git_binary(self, tmp_path: Path):
        with patch("pmflow.integrations.git.subprocess.run", side_effect=FileNotFoundError("git")):
            with pytest.raises(ExternalToolError) as exc_info:
                GitProbe(tmp_path).current_branch()
        assert exc_info.value.tool == "git"

    def test_timeout(self, tmp_path: Path):
        error = subprocess.TimeoutExpired(cmd=["git"], timeout=0.5)
        with patch("pmflow.integrations.git.subprocess.run", side_effect=error):
            with pytest.raises(ExternalToolError) as exc_info:
                GitProbe(tmp_path, timeout=0.5).commit_count()
        assert "timed out" in exc_info.value.message

    def test_non_zero_exit(self, tmp_path: Path):
        failed = self._completed(returncode=128, stderr="fatal: not a git repository")
        with patch("pmflow.integrations.git.subprocess.run", return_value=failed):
            with pytest.raises(ExternalToolError) as exc_info:
                GitProbe(tmp_path).has_uncommitted_changes()
        assert exc_info.value.returncode == 128
        assert "not a git repository" in exc_info.value.message

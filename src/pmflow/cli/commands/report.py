"""
Report commands: status-report and sprint-report.
"""

from __future__ import annotations

from typing import Iterable, Optional

from rich.markup import escape
from rich.text import Text

from pmflow.cli.theme import status_style
from pmflow.integrations.git import GitProbe
from pmflow.reports.aggregator import KindSummary, StatusReport, build_status_report
from pmflow.reports.sprint import SprintReport, build_sprint_report, save_report
from pmflow.utils.console import console
from pmflow.utils.logger import get_logger
from .common import Workspace

logger = get_logger(__name__)


def _breakdown(counts: dict) -> str:
    parts = []
    for label, count in counts.items():
        if not count and label == "Unknown":
            continue
        style = status_style(label)
        parts.append(f"[{style}]{label}[/{style}] {count}")
    return " · ".join(parts)


def _summary_table(title: str, summaries: Iterable[KindSummary]):
    table = console.create_table(title, "Kind", "Total", "Done", "Progress", "By status", "By priority")
    for summary in summaries:
        table.add_row(
            summary.label,
            str(summary.total),
            str(summary.completed),
            f"{summary.completion_percent}%",
            _breakdown(summary.by_status),
            " · ".join(f"{level} {count}" for level, count in summary.by_priority.items() if count) or "-",
        )
    return table


def status_report() -> StatusReport:
    """Print per-kind totals, status and priority counts and completion."""
    workspace = Workspace.from_config()
    report = build_status_report(workspace.store)

    console.print(_summary_table("📊 Project Status", report.summaries))
    console.print(f"[dim]Generated {report.generated_at:%Y-%m-%d %H:%M}[/dim]")
    return report


def _print_sprint(report: SprintReport) -> None:
    console.print(_summary_table(f"🏃 {report.sprint}", report.summaries))

    if report.git is not None:
        git = report.git
        content = Text()
        content.append("Branch: ", style="dim")
        content.append(f"{git.branch}\n")
        content.append("Commits: ", style="dim")
        content.append(f"{git.commit_count}\n")
        content.append("Uncommitted changes: ", style="dim")
        content.append("yes" if git.has_uncommitted_changes else "no")
        if git.last_commit:
            content.append("\nLast commit: ", style="dim")
            content.append(git.last_commit)
        console.status_panel("Repository", content, emoji="🌿")

    for step in report.failed_steps:
        console.error(f"Step '{step.step}' failed: {escape(step.error)}")

    console.print()
    if report.recommendations:
        console.print("[bold]💡 Recommendations[/bold]")
        for index, recommendation in enumerate(report.recommendations, 1):
            console.print(f"   {index}. {recommendation}")
    else:
        console.success("No immediate recommendations - project is in good shape!")


def sprint_report(save: bool = True) -> SprintReport:
    """
    Print the sprint report and, unless save is False, store it as JSON.

    A git failure is printed as a failed step; the report is still produced.
    """
    workspace = Workspace.from_config()
    config = workspace.config
    probe = GitProbe(config.project_root, timeout=config.workflow.git_timeout)

    report = build_sprint_report(
        workspace.store,
        probe=probe,
        wip_limit=config.workflow.wip_limit,
    )
    _print_sprint(report)

    saved: Optional[str] = None
    if save:
        saved = str(save_report(report, config.reports_path))
        console.print(f"\n[dim]📄 Saved to {saved}[/dim]")
    logger.debug("Sprint report finished", saved=saved or "no")
    return report


__all__ = ["status_report", "sprint_report"]

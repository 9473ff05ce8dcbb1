"""Status and sprint reports."""

from .aggregator import KindSummary, StatusReport, build_status_report, completion_percent, summarize
from .sprint import SprintReport, build_sprint_report, recommend, save_report, sprint_name

__all__ = [
    "KindSummary",
    "StatusReport",
    "build_status_report",
    "completion_percent",
    "summarize",
    "SprintReport",
    "build_sprint_report",
    "recommend",
    "save_report",
    "sprint_name",
]

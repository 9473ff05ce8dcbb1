"""
Rich theme configuration for the PM-Flow CLI.

Defines the color palette plus the styles used for entity statuses and
priorities in listings and reports.
"""

from typing import Optional

from rich.theme import Theme

# PM-Flow Color Palette
PRIMARY = "#00A6FB"    # Bright blue for primary actions
SUCCESS = "#52C41A"    # Green for successful operations
WARNING = "#FAAD14"    # Orange for warnings
ERROR = "#FF4D4F"      # Red for errors
INFO = "#1890FF"       # Light blue for information
MUTED = "#8C8C8C"      # Gray for secondary text
ACCENT = "#722ED1"     # Purple for highlights

pmflow_theme = Theme({
    # Core semantic colors
    "primary": PRIMARY,
    "success": SUCCESS,
    "warning": WARNING,
    "error": ERROR,
    "info": INFO,
    "muted": MUTED,
    "accent": ACCENT,

    # Status indicators
    "success.text": f"bold {SUCCESS}",
    "warning.text": f"bold {WARNING}",
    "error.text": f"bold {ERROR}",
    "info.text": f"bold {INFO}",

    # UI Components
    "panel.title": f"bold {PRIMARY}",
    "panel.subtitle": MUTED,
    "panel.border": PRIMARY,

    "table.header": f"bold {PRIMARY}",
    "table.border": MUTED,

    # Command Help
    "help.command": f"bold {PRIMARY}",
    "help.option": f"bold {ACCENT}",
    "help.argument": f"italic {INFO}",
    "help.example": MUTED,

    "highlight": f"bold {ACCENT}",
    "dim": MUTED,
    "bright": f"bold {PRIMARY}",

    # Entity statuses
    "status.not_started": MUTED,
    "status.draft": MUTED,
    "status.open": f"bold {WARNING}",
    "status.in_progress": f"bold {INFO}",
    "status.in_review": ACCENT,
    "status.review": ACCENT,
    "status.approved": INFO,
    "status.in_development": f"bold {INFO}",
    "status.complete": f"bold {SUCCESS}",
    "status.resolved": f"bold {SUCCESS}",
    "status.deprecated": f"dim {MUTED}",
    "status.unknown": f"italic {MUTED}",

    # Entity priorities
    "priority.low": SUCCESS,
    "priority.medium": WARNING,
    "priority.high": ERROR,
    "priority.critical": f"bold reverse {ERROR}",
})


def status_style(label: Optional[str]) -> str:
    """Map a status label such as 'In Progress' to its theme style name."""
    if not label:
        return "status.unknown"
    return "status." + label.lower().replace(" ", "_")


def priority_style(label: str) -> str:
    """Map a priority label such as 'High' to its theme style name."""
    return "priority." + label.lower()


__all__ = [
    "pmflow_theme",
    "status_style",
    "priority_style",
    "PRIMARY",
    "SUCCESS",
    "WARNING",
    "ERROR",
    "INFO",
    "MUTED",
    "ACCENT",
]

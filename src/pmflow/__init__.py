"""
PM-Flow (pmflow) - tickets, stories, PRDs and issues as markdown files.

Every work item is a markdown document in the repository. The CLI creates
them from templates, moves them through their status lifecycle by rewriting
the Status checkbox block, and aggregates them into status and sprint
reports.
"""

__version__ = "0.1.0"
__author__ = "PM-Flow Team"
__description__ = "Markdown-native project management workflow for the command line"

__all__ = [
    "__version__",
    "__author__",
    "__description__",
]

"""
List commands: list-tickets, list-stories, list-issues, list-prds.
"""

from __future__ import annotations

from typing import List

from rich.markup import escape

from pmflow.cli.theme import priority_style, status_style
from pmflow.entities.models import EntityKind, EntityRecord, Story, priority_line, spec_for
from pmflow.utils.console import console
from pmflow.utils.logger import get_logger
from .common import Workspace

logger = get_logger(__name__)

_EMOJI = {
    EntityKind.TICKET: "🎫",
    EntityKind.STORY: "📖",
    EntityKind.PRD: "📋",
    EntityKind.ISSUE: "🐛",
}


def _styled(text: str, style: str) -> str:
    return f"[{style}]{escape(text)}[/{style}]"


def list_entities(kind: EntityKind, include_archived: bool = False) -> List[EntityRecord]:
    """
    Print a table of every document of one kind.

    Returns:
        The records listed, ordered by ID
    """
    kind_spec = spec_for(kind)
    workspace = Workspace.from_config()
    records = workspace.store.list_entities(kind, include_archived=include_archived)
    logger.debug(f"Listing {len(records)} {kind_spec.plural.lower()}")

    if not records:
        console.info(f"No {kind_spec.plural.lower()} found in {kind_spec.active_dir.as_posix()}/")
        return records

    level_header = "Severity" if kind == EntityKind.ISSUE else "Priority"
    columns = ["ID", "Title", "Status", level_header]
    if kind == EntityKind.STORY:
        columns += ["Points", "PRD"]
    columns.append("Created")

    table = console.create_table(f"{_EMOJI[kind]} {kind_spec.plural}", *columns)
    for record in records:
        status = record.status_display + (" ⚠️" if record.ambiguous_status else "")
        row = [
            record.id + (" (archived)" if record.archived else ""),
            escape(record.title),
            _styled(status, status_style(record.status)),
            _styled(priority_line(record.rank), priority_style(record.rank.value)),
        ]
        if isinstance(record, Story):
            row += [record.story_points_display, record.prd_ref or "-"]
        row.append(record.created_display)
        table.add_row(*row)

    console.print(table)

    completed = sum(1 for record in records if record.is_complete)
    console.print(
        f"[dim]Total: {len(records)} · {kind_spec.completed_status}: {completed}[/dim]"
    )
    return records


__all__ = ["list_entities"]

"""
Creation commands: create-prd, create-ticket, create-issue.

Each allocates the next ID for its kind, renders the kind's template and
writes the new document.
"""

from __future__ import annotations

from typing import Dict, Iterable, Optional

from rich.markup import escape

from pmflow.entities.ids import next_number
from pmflow.entities.models import (
    DEFAULT_PRIORITY,
    EntityKind,
    Priority,
    parse_priority,
    priority_line,
    spec_for,
)
from pmflow.entities.store import StoredDocument
from pmflow.entities.templates import criteria_block, entity_filename, render, status_block
from pmflow.exceptions import UsageError
from pmflow.utils.console import console
from pmflow.utils.logger import get_logger
from .common import Workspace, require, require_title, today

logger = get_logger(__name__)

PRD_USAGE = 'pmflow create-prd "Feature Name"'
TICKET_USAGE = 'pmflow create-ticket "Title" "Description" [Low|Medium|High|Critical]'
ISSUE_USAGE = 'pmflow create-issue "Title" "Description" [Low|Medium|High|Critical]'


def resolve_priority(value: Optional[str], usage: str) -> Priority:
    """Parse an optional priority argument, defaulting to Medium."""
    if value is None or not value.strip():
        return DEFAULT_PRIORITY
    level = parse_priority(value)
    if level is None:
        raise UsageError(
            f"'{value}' is not a priority. Valid: {', '.join(p.value for p in Priority)}",
            usage,
        )
    return level


def create_entity(
    workspace: Workspace,
    kind: EntityKind,
    title: str,
    values: Dict[str, str],
    status: Optional[str] = None,
) -> StoredDocument:
    """
    Allocate an ID, render the kind's template and write the document.

    values supplies kind-specific tokens; ID, TITLE, DATE and STATUS_BLOCK
    are filled in here.

    Raises:
        TemplateMissingError: If the template cannot be found; nothing is written
    """
    kind_spec = spec_for(kind)
    template = workspace.renderer.load(kind_spec.template_name)

    number = next_number(workspace.store, kind)
    entity_id = kind_spec.format_id(number)
    tokens = {
        "ID": entity_id,
        "TITLE": title,
        "DATE": today(),
        "STATUS_BLOCK": status_block(kind_spec, status),
        **values,
    }

    text = render(template, tokens)
    document = workspace.store.write_entity(kind, entity_filename(kind_spec, number, title), text)
    logger.info(f"Created {entity_id}", title=title, filename=document.filename)
    return document


def ticket_values(
    description: str,
    priority: Priority,
    criteria: Iterable[str] = (),
    story_ref: Optional[str] = None,
) -> Dict[str, str]:
    return {
        "DESCRIPTION": description,
        "PRIORITY": priority_line(priority),
        "ACCEPTANCE_CRITERIA": criteria_block(criteria),
        "STORY_REF": story_ref or "None",
    }


def _print_created(document: StoredDocument, title: str, extra: Optional[Dict[str, str]] = None) -> None:
    kind_spec = spec_for(document.kind)
    console.success(f"Created new {kind_spec.display_name}: {document.entity_id}")
    console.print(f"   📄 File: {document.location or document.filename}")
    console.print(f"   📝 Title: {escape(title)}")
    for label, value in (extra or {}).items():
        console.print(f"   {label}: {value}")
    console.print(f"   📅 Created: {today()}")


def create_prd(title: Optional[str]) -> StoredDocument:
    """Create a PRD in docs/prd/active from the prd template."""
    title = require_title(title, "PRD title", PRD_USAGE)
    workspace = Workspace.from_config()

    document = create_entity(
        workspace,
        EntityKind.PRD,
        title,
        {"PRIORITY": priority_line(DEFAULT_PRIORITY)},
    )

    _print_created(document, title)
    console.print()
    console.print("[dim]💡 Next steps:[/dim]")
    console.print("[muted]   • Edit the PRD to add your specific requirements[/muted]")
    console.print("[muted]   • Add user stories with acceptance criteria[/muted]")
    console.print(f"[muted]   • Generate stories: pmflow generate-stories {document.entity_id}[/muted]")
    return document


def create_ticket(
    title: Optional[str],
    description: Optional[str],
    priority: Optional[str] = None,
) -> StoredDocument:
    """Create a ticket in tickets/, status Not Started."""
    title = require_title(title, "title", TICKET_USAGE)
    description = require(description, "description", TICKET_USAGE)
    level = resolve_priority(priority, TICKET_USAGE)
    workspace = Workspace.from_config()

    document = create_entity(
        workspace,
        EntityKind.TICKET,
        title,
        ticket_values(description, level),
    )

    _print_created(document, title, {"🎯 Priority": priority_line(level)})
    console.print()
    console.print("[dim]📋 Next steps:[/dim]")
    console.print("[muted]   1. Review and edit the ticket file[/muted]")
    console.print("[muted]   2. Add specific acceptance criteria[/muted]")
    console.print(f"[muted]   3. Start work: pmflow pick-ticket --ticket {document.entity_id}[/muted]")
    return document


def create_issue(
    title: Optional[str],
    description: Optional[str],
    severity: Optional[str] = None,
) -> StoredDocument:
    """Create a bug report in issues/, status Open."""
    title = require_title(title, "title", ISSUE_USAGE)
    description = require(description, "description", ISSUE_USAGE)
    level = resolve_priority(severity, ISSUE_USAGE)
    workspace = Workspace.from_config()

    document = create_entity(
        workspace,
        EntityKind.ISSUE,
        title,
        {"DESCRIPTION": description, "SEVERITY": priority_line(level)},
    )

    _print_created(document, title, {"🐛 Severity": priority_line(level)})
    return document


__all__ = [
    "resolve_priority",
    "create_entity",
    "ticket_values",
    "create_prd",
    "create_ticket",
    "create_issue",
]

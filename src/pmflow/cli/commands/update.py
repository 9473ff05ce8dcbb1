"""
Mutation commands: update-ticket, update-prd-status, archive-prd.
"""

from __future__ import annotations

from typing import Optional

from rich.markup import escape

from pmflow.entities.models import EntityKind, parse_entity_id, spec_for
from pmflow.entities.parser import replace_heading, replace_section_body
from pmflow.entities.store import StoredDocument
from pmflow.entities.templates import entity_filename
from pmflow.entities.transitions import Intent, TransitionResult
from pmflow.exceptions import EntityExistsError, UsageError
from pmflow.utils.console import console
from pmflow.utils.logger import get_logger
from .common import Workspace, require, require_id, require_title

logger = get_logger(__name__)

UPDATE_TICKET_USAGE = (
    "pmflow update-ticket --id TICKET-001 [--status STATUS] [--name TITLE] "
    "[--description TEXT] [--newid TICKET-010]"
)
PRD_STATUS_USAGE = 'pmflow update-prd-status PRD-001 "In Review"'
ARCHIVE_PRD_USAGE = "pmflow archive-prd PRD-001"


def update_ticket(
    ticket_id: Optional[str],
    status: Optional[str] = None,
    name: Optional[str] = None,
    description: Optional[str] = None,
    new_id: Optional[str] = None,
) -> StoredDocument:
    """
    Change a ticket's status, title, description and/or ID in one write.

    Every change is computed and validated first; the document is written
    once at the end, so a rejected change leaves the file untouched. A new
    title or ID also renames the file. The old number of a re-numbered
    ticket is retired.
    """
    ticket_id = require_id(ticket_id, EntityKind.TICKET, UPDATE_TICKET_USAGE)
    if not any(value is not None for value in (status, name, description, new_id)):
        raise UsageError("Nothing to update", UPDATE_TICKET_USAGE)

    workspace = Workspace.from_config()
    kind_spec = spec_for(EntityKind.TICKET)
    document = workspace.store.get_document(ticket_id)
    record = document.to_record()
    text = document.text
    changes = []

    if status is not None:
        text, target = workspace.engine.prepare(document, status, Intent.UPDATE)
        changes.append(f"status {record.status_display} → {target}")

    if description is not None:
        description = require(description, "description", UPDATE_TICKET_USAGE)
        text = replace_section_body(text, "Description", description)
        changes.append("description")

    target_id = ticket_id
    if new_id is not None:
        target_id = require_id(new_id, EntityKind.TICKET, UPDATE_TICKET_USAGE)
        if target_id != ticket_id:
            if workspace.store.find_document(target_id) is not None:
                raise EntityExistsError(target_id)
            target_number = parse_entity_id(target_id)[1]
            if target_number in workspace.store.retired_numbers(EntityKind.TICKET):
                raise EntityExistsError(target_id, retired=True)
        changes.append(f"id {ticket_id} → {target_id}")

    title = record.title
    if name is not None:
        title = require_title(name, "name", UPDATE_TICKET_USAGE)
        changes.append(f"title → {title}")

    if name is not None or target_id != ticket_id:
        text = replace_heading(text, target_id, title)
        number = parse_entity_id(target_id)[1]
        filename = entity_filename(kind_spec, number, title)
        updated = workspace.store.rename_entity(document, filename, text)
        if target_id != ticket_id:
            workspace.store.retire(EntityKind.TICKET, [record.number])
    else:
        updated = workspace.store.update_entity(document, text)

    logger.info(f"Updated {ticket_id}", changes=", ".join(changes))
    console.success(f"Updated {target_id}")
    for change in changes:
        console.print(f"   • {escape(change)}")
    if updated.filename != document.filename:
        console.print(f"   📄 Renamed {document.filename} → {updated.filename}")
    return updated


def update_prd_status(prd_id: Optional[str], status: Optional[str]) -> TransitionResult:
    """Set a PRD's status (Draft, In Review, Approved, In Development, Complete, Deprecated)."""
    prd_id = require_id(prd_id, EntityKind.PRD, PRD_STATUS_USAGE)
    status = require(status, "status", PRD_STATUS_USAGE)
    workspace = Workspace.from_config()

    result = workspace.engine.transition(prd_id, status, Intent.UPDATE)
    if result.changed:
        console.success(f"{prd_id}: {result.previous or 'Unknown'} → {result.current}")
    else:
        console.info(f"{prd_id} is already {result.current}")
    return result


def archive_prd(prd_id: Optional[str]) -> StoredDocument:
    """
    Move a PRD from docs/prd/active to docs/prd/archive.

    Stories generated from it keep their back-reference and are not touched.
    """
    prd_id = require_id(prd_id, EntityKind.PRD, ARCHIVE_PRD_USAGE)
    workspace = Workspace.from_config()

    document = workspace.store.get_document(prd_id, include_archived=False)
    archived = workspace.store.archive_entity(document)

    console.success(f"Archived {prd_id}")
    console.print(f"   📄 File: {archived.location or archived.filename}")
    return archived


__all__ = ["update_ticket", "update_prd_status", "archive_prd"]

"""
clear-tickets: delete one ticket or all of them.

Deletion is irreversible. Without --archive the ticket numbers are retired
so they are never allocated again; with --archive the files move to
tickets/archive and keep claiming their numbers.
"""

from __future__ import annotations

from typing import List, Optional

from rich.prompt import Confirm

from pmflow.entities.models import EntityKind
from pmflow.entities.store import StoredDocument
from pmflow.utils.console import console
from pmflow.utils.logger import get_logger
from .common import Workspace, require, require_id

logger = get_logger(__name__)

USAGE = "pmflow clear-tickets <TICKET-001|ALL> [--archive] [--yes]"


def clear_tickets(target: Optional[str], archive: bool = False, yes: bool = False) -> List[StoredDocument]:
    """
    Remove active tickets after confirmation.

    Returns:
        The documents that were removed (empty when cancelled)
    """
    target = require(target, "ticket ID or ALL", USAGE)
    workspace = Workspace.from_config()

    if target.upper() == "ALL":
        documents = workspace.store.list_documents(EntityKind.TICKET)
        if not documents:
            console.info("No tickets to clear")
            return []
    else:
        ticket_id = require_id(target, EntityKind.TICKET, USAGE)
        documents = [workspace.store.get_document(ticket_id, include_archived=False)]

    action = "Archive" if archive else "Permanently delete"
    for document in documents:
        console.print(f"   • {document.entity_id} ({document.filename})")
    if not yes:
        confirmed = Confirm.ask(
            f"{action} {len(documents)} ticket(s)?",
            default=False,
            console=console.console,
        )
        if not confirmed:
            console.info("Cancelled; nothing changed")
            return []

    for document in documents:
        if archive:
            workspace.store.archive_entity(document)
        else:
            workspace.store.delete_entity(document)

    logger.info(f"Cleared {len(documents)} ticket(s)", archive=archive)
    verb = "Archived" if archive else "Deleted"
    console.success(f"{verb} {len(documents)} ticket(s)")
    return documents


__all__ = ["clear_tickets"]

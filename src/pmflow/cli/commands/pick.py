"""
Pick commands: start work on a ticket, or promote a story to a ticket.

Both go through the pick policy: an entity that is already In Progress or
Complete cannot be picked, and its file is left exactly as it was.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from rich.markup import escape
from rich.prompt import Prompt

from pmflow.entities.ids import next_number
from pmflow.entities.models import EntityKind, EntityRecord, Story, spec_for
from pmflow.entities.store import StoredDocument
from pmflow.entities.templates import entity_filename, render, status_block
from pmflow.entities.transitions import Intent, TransitionResult
from pmflow.utils.console import console
from pmflow.utils.logger import get_logger
from .common import Workspace, require_id, today
from .create import ticket_values

logger = get_logger(__name__)

IN_PROGRESS = "In Progress"


def _choose(workspace: Workspace, kind: EntityKind) -> Optional[str]:
    """Show the pickable entities of a kind and ask which one to start."""
    kind_spec = spec_for(kind)
    policy = workspace.engine.policy(kind)
    candidates: List[EntityRecord] = [
        record
        for record in workspace.store.list_entities(kind)
        if policy.is_pickable(record.status)
    ]
    if not candidates:
        console.info(f"No {kind_spec.plural.lower()} available to pick")
        return None

    table = console.create_table(f"Available {kind_spec.plural}", "ID", "Title", "Status", "Priority")
    for record in candidates:
        table.add_row(record.id, escape(record.title), record.status_display, record.rank.value)
    console.print(table)

    choices = [record.id for record in candidates]
    return Prompt.ask(
        f"[bold]{kind_spec.display_name} to pick[/bold]",
        choices=choices,
        default=choices[0],
        console=console.console,
    )


def pick_ticket(ticket_id: Optional[str] = None) -> Optional[TransitionResult]:
    """
    Move a ticket to In Progress.

    Without ticket_id the user is prompted to choose among pickable tickets.
    """
    workspace = Workspace.from_config()
    if ticket_id is None:
        ticket_id = _choose(workspace, EntityKind.TICKET)
        if ticket_id is None:
            return None
    ticket_id = require_id(ticket_id, EntityKind.TICKET, "pmflow pick-ticket [--ticket TICKET-001]")

    result = workspace.engine.transition(ticket_id, IN_PROGRESS, Intent.PICK)
    record = result.document.to_record()

    console.success(f"Picked {record.id}: {escape(record.title)}")
    console.print(f"   📊 Status: {result.previous or 'Unknown'} → {result.current}")
    console.print(f"   📄 File: {result.document.location or result.document.filename}")
    return result


def _story_description(story: Story) -> str:
    if story.as_a and story.i_want_to and story.so_that:
        return f"As a {story.as_a}, I want to {story.i_want_to}, so that {story.so_that}."
    return story.description or story.title


def pick_story(story_id: Optional[str] = None) -> Optional[Tuple[TransitionResult, StoredDocument]]:
    """
    Move a story to In Progress and create an In Progress ticket for it.

    The ticket carries the story's priority and acceptance criteria and a
    '## Story' back-reference.
    """
    workspace = Workspace.from_config()
    if story_id is None:
        story_id = _choose(workspace, EntityKind.STORY)
        if story_id is None:
            return None
    story_id = require_id(story_id, EntityKind.STORY, "pmflow pick-story [--story STORY-001]")

    story_doc = workspace.store.get_document(story_id)
    story = story_doc.to_record()

    # Validate everything before the first write
    ticket_spec = spec_for(EntityKind.TICKET)
    template = workspace.renderer.load(ticket_spec.template_name)
    new_text, target = workspace.engine.prepare(story_doc, IN_PROGRESS, Intent.PICK)

    number = next_number(workspace.store, EntityKind.TICKET)
    ticket_id = ticket_spec.format_id(number)
    ticket_text = render(
        template,
        {
            "ID": ticket_id,
            "TITLE": story.title,
            "DATE": today(),
            "STATUS_BLOCK": status_block(ticket_spec, IN_PROGRESS),
            **ticket_values(
                _story_description(story),
                story.priority,
                story.acceptance_criteria,
                story_ref=story.id,
            ),
        },
    )

    story_doc = workspace.store.update_entity(story_doc, new_text)
    result = TransitionResult(story.id, story.status, target, story_doc)
    ticket = workspace.store.write_entity(
        EntityKind.TICKET,
        entity_filename(ticket_spec, number, story.title),
        ticket_text,
    )
    logger.info(f"Promoted {story.id} to {ticket_id}", title=story.title)

    console.success(f"Picked {story.id}: {escape(story.title)}")
    console.print(f"   📊 Status: {story.status_display} → {target}")
    console.print(f"   🎫 Ticket: {ticket_id} ({ticket.filename})")
    return result, ticket


__all__ = ["pick_ticket", "pick_story"]

"""
generate-stories: turn the story blocks of a PRD into story documents.
"""

from __future__ import annotations

from typing import List, Optional

from rich.markup import escape

from pmflow.entities.models import EntityKind, priority_line
from pmflow.entities.parser import extract_story_blocks
from pmflow.entities.store import StoredDocument
from pmflow.entities.templates import criteria_block
from pmflow.utils.console import console
from pmflow.utils.logger import get_logger
from .common import Workspace, require_id
from .create import create_entity

logger = get_logger(__name__)

USAGE = "pmflow generate-stories PRD-001"


def generate_stories(prd_id: Optional[str]) -> List[StoredDocument]:
    """
    Create one story per '### STORY-NNN: Title' block of a PRD.

    Every story gets a freshly allocated ID; the number written in the PRD
    is ignored. A block whose title already exists as a story of this PRD
    is skipped, so running the command twice creates nothing new.

    Returns:
        The story documents created
    """
    prd_id = require_id(prd_id, EntityKind.PRD, USAGE)
    workspace = Workspace.from_config()
    prd = workspace.store.get_document(prd_id)

    console.print(f"📖 Reading PRD: {prd_id}")
    blocks = extract_story_blocks(prd.text)
    if not blocks:
        console.warning(f"No user stories found in {prd_id}")
        console.print("[muted]Add '### STORY-001: Title' blocks to the PRD before generating[/muted]")
        return []

    console.print(f"📝 Found {len(blocks)} user stories in {prd_id}\n")

    existing = {
        (story.prd_ref, story.title.strip().lower())
        for story in workspace.store.list_entities(EntityKind.STORY, include_archived=True)
    }

    created: List[StoredDocument] = []
    skipped = 0
    for block in blocks:
        key = (prd_id, block.title.strip().lower())
        if key in existing:
            console.print(f"⏭️  Skipped: {escape(block.title)} (already exists)")
            skipped += 1
            continue

        document = create_entity(
            workspace,
            EntityKind.STORY,
            block.title,
            {
                "PRIORITY": priority_line(block.priority),
                "STORY_POINTS": str(block.story_points),
                "PRD_REF": prd_id,
                "AS_A": block.as_a,
                "I_WANT_TO": block.i_want_to,
                "SO_THAT": block.so_that,
                "ACCEPTANCE_CRITERIA": criteria_block(block.acceptance_criteria),
            },
        )
        existing.add(key)
        created.append(document)

        console.success(f"Created: {document.filename}")
        console.print(f"   📝 {escape(block.title)}")
        console.print(f"   🎯 Priority: {block.priority.value}")
        console.print(f"   📊 Story Points: {block.story_points}\n")

    logger.info(
        f"Generated stories from {prd_id}",
        created=len(created),
        skipped=skipped,
    )
    console.print(f"📊 Summary: {len(created)} created, {skipped} skipped")
    if created:
        console.print()
        console.print("[dim]💡 Next steps:[/dim]")
        console.print("[muted]   • Review and refine the generated stories[/muted]")
        console.print("[muted]   • Start one: pmflow pick-story[/muted]")
        console.print(f"[muted]   • Update the PRD: pmflow update-prd-status {prd_id} \"In Development\"[/muted]")
    return created


__all__ = ["generate_stories"]

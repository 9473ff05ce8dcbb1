"""
PM-Flow entities.

Markdown-backed tickets, stories, PRDs and issues: the document grammar,
storage, ID allocation, templates and status transitions.
"""

from .models import (
    EntityKind,
    EntityRecord,
    Issue,
    KIND_SPECS,
    KindSpec,
    PRD,
    Priority,
    Story,
    StoryBlock,
    Ticket,
    spec_for,
)
from .ids import next_id, next_number
from .store import EntityStore, FileSystemStore, InMemoryStore, StoredDocument
from .templates import TemplateRenderer
from .transitions import Intent, TransitionEngine, TransitionPolicy

__all__ = [
    "EntityKind",
    "EntityRecord",
    "Issue",
    "KIND_SPECS",
    "KindSpec",
    "PRD",
    "Priority",
    "Story",
    "StoryBlock",
    "Ticket",
    "spec_for",
    "next_id",
    "next_number",
    "EntityStore",
    "FileSystemStore",
    "InMemoryStore",
    "StoredDocument",
    "TemplateRenderer",
    "Intent",
    "TransitionEngine",
    "TransitionPolicy",
]

"""
Entity models for PM-Flow.

Tickets, stories, PRDs and issues are markdown documents; these models are
the typed view the parser extracts from them. Per-kind facts (ID prefix,
storage directories, ordered status labels) live in one KindSpec each so
the parser, the store and the transition engine agree on them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class EntityKind(str, Enum):
    """The four kinds of tracked documents."""
    TICKET = "ticket"
    STORY = "story"
    PRD = "prd"
    ISSUE = "issue"


class Priority(str, Enum):
    """Priority (or, for issues, severity) levels in ascending order."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


PRIORITY_EMOJI: Dict[Priority, str] = {
    Priority.LOW: "🟢",
    Priority.MEDIUM: "🟡",
    Priority.HIGH: "🔴",
    Priority.CRITICAL: "🚨",
}

DEFAULT_PRIORITY = Priority.MEDIUM

# Placeholder shown wherever a status, date or story-point value is missing
UNKNOWN = "Unknown"

WORK_STATUSES: Tuple[str, ...] = ("Not Started", "In Progress", "Review", "Complete")
PRD_STATUSES: Tuple[str, ...] = (
    "Draft",
    "In Review",
    "Approved",
    "In Development",
    "Complete",
    "Deprecated",
)
ISSUE_STATUSES: Tuple[str, ...] = ("Open", "In Progress", "Resolved")


@dataclass(frozen=True)
class KindSpec:
    """Static description of one entity kind."""

    kind: EntityKind
    prefix: str
    display_name: str
    plural: str
    active_dir: Path
    archive_dir: Path
    statuses: Tuple[str, ...]
    completed_status: str
    template_name: str
    required_sections: Tuple[str, ...]
    lowercase_filename: bool = False

    @property
    def initial_status(self) -> str:
        """Status every newly created document starts in."""
        return self.statuses[0]

    @property
    def filename_prefix(self) -> str:
        return self.prefix.lower() if self.lowercase_filename else self.prefix

    def format_id(self, number: int) -> str:
        """Format a number as an ID: 7 -> TICKET-007. Wider numbers are kept whole."""
        return f"{self.prefix}-{number:03d}"

    def normalize_status(self, label: str) -> Optional[str]:
        """Return the declared label matching label case-insensitively, or None."""
        wanted = " ".join(label.split()).lower()
        for status in self.statuses:
            if status.lower() == wanted:
                return status
        return None


KIND_SPECS: Dict[EntityKind, KindSpec] = {
    EntityKind.TICKET: KindSpec(
        kind=EntityKind.TICKET,
        prefix="TICKET",
        display_name="Ticket",
        plural="Tickets",
        active_dir=Path("tickets"),
        archive_dir=Path("tickets") / "archive",
        statuses=WORK_STATUSES,
        completed_status="Complete",
        template_name="ticket",
        required_sections=("Created", "Status", "Priority", "Description"),
    ),
    EntityKind.STORY: KindSpec(
        kind=EntityKind.STORY,
        prefix="STORY",
        display_name="Story",
        plural="Stories",
        active_dir=Path("stories"),
        archive_dir=Path("stories") / "archive",
        statuses=WORK_STATUSES,
        completed_status="Complete",
        template_name="story",
        required_sections=("Created", "Status", "Priority"),
    ),
    EntityKind.PRD: KindSpec(
        kind=EntityKind.PRD,
        prefix="PRD",
        display_name="PRD",
        plural="PRDs",
        active_dir=Path("docs") / "prd" / "active",
        archive_dir=Path("docs") / "prd" / "archive",
        statuses=PRD_STATUSES,
        completed_status="Complete",
        template_name="prd",
        required_sections=("Created", "Status", "Priority"),
        lowercase_filename=True,
    ),
    EntityKind.ISSUE: KindSpec(
        kind=EntityKind.ISSUE,
        prefix="BUG",
        display_name="Issue",
        plural="Issues",
        active_dir=Path("issues"),
        archive_dir=Path("issues") / "archive",
        statuses=ISSUE_STATUSES,
        completed_status="Resolved",
        template_name="issue",
        required_sections=("Created", "Status", "Severity", "Description"),
    ),
}

_ID_PATTERN = re.compile(r"^\s*(TICKET|STORY|PRD|BUG)-(\d+)", re.IGNORECASE)


def spec_for(kind: EntityKind) -> KindSpec:
    """Get the KindSpec for a kind."""
    return KIND_SPECS[kind]


def parse_entity_id(text: str) -> Optional[Tuple[KindSpec, int]]:
    """
    Split an ID like 'ticket-7' or a filename stem like 'TICKET-007-fix-bug'.

    Args:
        text: Candidate identifier, matched case-insensitively

    Returns:
        (KindSpec, number) or None when text does not start with a known prefix
    """
    match = _ID_PATTERN.match(text)
    if not match:
        return None
    prefix = match.group(1).upper()
    for kind_spec in KIND_SPECS.values():
        if kind_spec.prefix == prefix:
            return kind_spec, int(match.group(2))
    return None


def normalize_entity_id(text: str, kind: Optional[EntityKind] = None) -> Optional[str]:
    """
    Canonicalize an ID: 'prd-1' -> 'PRD-001'.

    When kind is given, IDs of other kinds are rejected, and a bare number is
    accepted as an ID of that kind.
    """
    parsed = parse_entity_id(text)
    if parsed is None:
        if kind is not None and text.strip().isdigit():
            return spec_for(kind).format_id(int(text.strip()))
        return None
    kind_spec, number = parsed
    if kind is not None and kind_spec.kind != kind:
        return None
    return kind_spec.format_id(number)


def parse_priority(text: Optional[str]) -> Optional[Priority]:
    """
    Find a priority level in a line such as '🔴 High' or 'high'.

    Returns:
        The Priority, or None when no level word is present
    """
    if not text:
        return None
    lowered = text.lower()
    # Critical before High so '🚨 Critical - high impact' reads as Critical
    for level in (Priority.CRITICAL, Priority.HIGH, Priority.MEDIUM, Priority.LOW):
        if re.search(rf"\b{level.value.lower()}\b", lowered):
            return level
    return None


def priority_line(priority: Priority) -> str:
    """Render the emoji-prefixed line written under '## Priority'."""
    return f"{PRIORITY_EMOJI[priority]} {priority.value}"


class EntityRecord(BaseModel):
    """
    Fields shared by every entity document.

    Missing optional fields hold their documented defaults: status and
    created are None (shown as Unknown), priority is Medium.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    kind: EntityKind
    id: str = Field(..., description="Canonical ID, e.g. TICKET-007")
    number: int = Field(..., ge=0)
    title: str = ""
    status: Optional[str] = None
    priority: Priority = DEFAULT_PRIORITY
    created: Optional[date] = None
    description: Optional[str] = None
    acceptance_criteria: List[str] = Field(default_factory=list)
    ambiguous_status: bool = Field(
        False,
        description="More than one status checkbox was marked"
    )
    path: Optional[Path] = Field(None, description="Where the document was read from")
    archived: bool = False

    @property
    def spec(self) -> KindSpec:
        return spec_for(self.kind)

    @property
    def status_display(self) -> str:
        return self.status or UNKNOWN

    @property
    def created_display(self) -> str:
        return self.created.isoformat() if self.created else UNKNOWN

    @property
    def rank(self) -> Priority:
        """Level used for priority counts and ordering."""
        return self.priority

    @property
    def is_complete(self) -> bool:
        return self.status == self.spec.completed_status


class Ticket(EntityRecord):
    """A unit of work; may be promoted from a story."""

    kind: EntityKind = EntityKind.TICKET
    story_ref: Optional[str] = None


class Story(EntityRecord):
    """A user story, usually generated from a PRD."""

    kind: EntityKind = EntityKind.STORY
    story_points: Optional[int] = None
    prd_ref: Optional[str] = None
    as_a: Optional[str] = None
    i_want_to: Optional[str] = None
    so_that: Optional[str] = None

    @property
    def story_points_display(self) -> str:
        return str(self.story_points) if self.story_points is not None else UNKNOWN


class PRD(EntityRecord):
    """A product requirements document."""

    kind: EntityKind = EntityKind.PRD


class Issue(EntityRecord):
    """A bug report. Severity takes the place of priority."""

    kind: EntityKind = EntityKind.ISSUE
    severity: Priority = DEFAULT_PRIORITY

    @property
    def rank(self) -> Priority:
        return self.severity


MODEL_BY_KIND = {
    EntityKind.TICKET: Ticket,
    EntityKind.STORY: Story,
    EntityKind.PRD: PRD,
    EntityKind.ISSUE: Issue,
}


class StoryBlock(BaseModel):
    """A '### STORY-NNN: title' block embedded in a PRD."""

    source_id: Optional[str] = Field(None, description="ID as written in the PRD")
    title: str
    as_a: str
    i_want_to: str
    so_that: str
    acceptance_criteria: List[str] = Field(default_factory=list)
    story_points: int = 5
    priority: Priority = DEFAULT_PRIORITY


__all__ = [
    "EntityKind",
    "Priority",
    "PRIORITY_EMOJI",
    "DEFAULT_PRIORITY",
    "UNKNOWN",
    "WORK_STATUSES",
    "PRD_STATUSES",
    "ISSUE_STATUSES",
    "KindSpec",
    "KIND_SPECS",
    "spec_for",
    "parse_entity_id",
    "normalize_entity_id",
    "parse_priority",
    "priority_line",
    "EntityRecord",
    "Ticket",
    "Story",
    "PRD",
    "Issue",
    "MODEL_BY_KIND",
    "StoryBlock",
]

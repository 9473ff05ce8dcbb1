"""
Markdown document grammar and field extraction.

Every entity document follows one ordered-section grammar:

    # TICKET-001: Title
    ## Created
    📅 2026-01-31
    ## Status
    - [x] Not Started
    - [ ] In Progress
    ...

Extraction is tolerant: a field that is missing or unreadable falls back to
its default and never raises. The rewrite helpers at the bottom are used by
mutations and do raise MalformedDocumentError when the part they must change
is absent.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Tuple

from pmflow.exceptions import MalformedDocumentError
from pmflow.utils.logger import get_logger
from .models import (
    DEFAULT_PRIORITY,
    EntityKind,
    EntityRecord,
    KindSpec,
    MODEL_BY_KIND,
    Priority,
    StoryBlock,
    normalize_entity_id,
    parse_entity_id,
    parse_priority,
    spec_for,
)

logger = get_logger(__name__)

_HEADING_RE = re.compile(r"^#\s+(?P<text>.*?)\s*$")
_HEADING_ID_RE = re.compile(
    r"^(?P<id>(?:TICKET|STORY|PRD|BUG)-\d+)\s*:\s*(?P<title>.*)$",
    re.IGNORECASE,
)
_SECTION_RE = re.compile(r"^##\s+(?P<name>.*?)\s*$")
_FENCE_RE = re.compile(r"^\s*(```|~~~)")
CHECKBOX_RE = re.compile(r"^(?P<indent>\s*[-*+]\s+)\[(?P<mark>[ xX])\](?P<gap>\s+)(?P<label>.*?)\s*$")
_DATE_RE = re.compile(r"\b(\d{4}-\d{2}-\d{2})\b")
_INT_RE = re.compile(r"\b(\d+)\b")

_STORY_HEADER_RE = re.compile(r"^###(?!#)\s*(?P<id>STORY-[^:\s]*)\s*:\s*(?P<title>.+?)\s*$", re.IGNORECASE)
_STORY_FIELDS = {
    "as_a": re.compile(r"\*\*As an?\*\*:?\s*(.+?)\s*(?=\*\*I want to\*\*|\Z)", re.S | re.I),
    "i_want_to": re.compile(r"\*\*I want to\*\*:?\s*(.+?)\s*(?=\*\*So that\*\*|\Z)", re.S | re.I),
    "so_that": re.compile(
        r"\*\*So that\*\*:?\s*(.+?)\s*(?=\*\*Acceptance Criteria|\*\*Story Points|\*\*Priority|\Z)",
        re.S | re.I,
    ),
}
_STORY_CRITERIA_RE = re.compile(
    r"\*\*Acceptance Criteria:?\*\*:?\s*\n(?P<items>(?:\s*[-*+]\s+\[[ xX]\].*(?:\n|\Z))*)",
    re.I,
)
_STORY_POINTS_RE = re.compile(r"\*\*Story Points:?\*\*:?\s*(\d+)", re.I)
_STORY_PRIORITY_RE = re.compile(r"\*\*Priority:?\*\*:?\s*(.+)", re.I)


@dataclass
class Section:
    """A '## Name' section; start/end index the body lines (end exclusive)."""
    name: str
    header_index: int
    start: int
    end: int


@dataclass
class Document:
    """A document split into its heading and ordered sections, lines kept verbatim."""
    lines: List[str]
    heading_index: Optional[int] = None
    entity_id: Optional[str] = None
    title: Optional[str] = None
    sections: List[Section] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(self.lines)

    @property
    def newline(self) -> str:
        for line in self.lines:
            if line.endswith("\r\n"):
                return "\r\n"
            if line.endswith("\n"):
                return "\n"
        return "\n"

    def section(self, name: str) -> Optional[Section]:
        """First section with this name, compared case-insensitively."""
        wanted = name.lower()
        for section in self.sections:
            if section.name.lower() == wanted:
                return section
        return None

    def body_lines(self, section: Section) -> List[str]:
        return self.lines[section.start:section.end]

    def body(self, name: str) -> Optional[str]:
        """Stripped body text of a section, or None if the section is absent or empty."""
        section = self.section(name)
        if section is None:
            return None
        text = "".join(self.body_lines(section)).strip()
        return text or None


def parse_document(text: str) -> Document:
    """
    Split text into heading and sections.

    Lines inside fenced code blocks never start a section.
    """
    lines = text.splitlines(keepends=True)
    doc = Document(lines=lines)
    in_fence = False
    current: Optional[Section] = None

    for index, raw in enumerate(lines):
        line = raw.rstrip("\r\n")
        if _FENCE_RE.match(line):
            in_fence = not in_fence
            continue
        if in_fence:
            continue

        section_match = _SECTION_RE.match(line)
        if section_match:
            if current is not None:
                current.end = index
            current = Section(section_match.group("name"), index, index + 1, len(lines))
            doc.sections.append(current)
            continue

        heading_match = _HEADING_RE.match(line)
        if heading_match:
            if doc.heading_index is None:
                doc.heading_index = index
                heading = heading_match.group("text")
                id_match = _HEADING_ID_RE.match(heading)
                if id_match:
                    doc.entity_id = normalize_entity_id(id_match.group("id"))
                    doc.title = id_match.group("title").strip()
                else:
                    doc.title = heading
            # Any level-1 heading closes the open section
            if current is not None:
                current.end = index
                current = None

    return doc


def checkbox_items(lines: List[str]) -> List[Tuple[bool, str]]:
    """(checked, label) for each '- [ ]' / '- [x]' line."""
    items = []
    for raw in lines:
        match = CHECKBOX_RE.match(raw.rstrip("\r\n"))
        if match:
            items.append((match.group("mark") in "xX", match.group("label")))
    return items


def extract_status(doc: Document, kind_spec: KindSpec) -> Tuple[Optional[str], bool]:
    """
    Read the checked label from the Status checkbox block.

    Returns:
        (status, ambiguous). When several labels are checked the first one in
        the kind's declared order wins and ambiguous is True.
    """
    section = doc.section("Status")
    if section is None:
        return None, False

    checked = {
        status
        for is_checked, label in checkbox_items(doc.body_lines(section))
        if is_checked
        for status in [kind_spec.normalize_status(label)]
        if status is not None
    }
    ordered = [status for status in kind_spec.statuses if status in checked]
    if not ordered:
        return None, False
    return ordered[0], len(ordered) > 1


def extract_priority(doc: Document, section_name: str = "Priority") -> Optional[Priority]:
    body = doc.body(section_name)
    if body is None:
        return None
    for line in body.splitlines():
        level = parse_priority(line)
        if level is not None:
            return level
    return None


def extract_date(doc: Document, section_name: str = "Created") -> Optional[date]:
    body = doc.body(section_name)
    if body is None:
        return None
    match = _DATE_RE.search(body)
    if not match:
        return None
    try:
        return date.fromisoformat(match.group(1))
    except ValueError:
        return None


def extract_int(doc: Document, section_name: str) -> Optional[int]:
    body = doc.body(section_name)
    if body is None:
        return None
    match = _INT_RE.search(body)
    return int(match.group(1)) if match else None


def extract_reference(doc: Document, section_name: str, kind: EntityKind) -> Optional[str]:
    """First ID of the given kind found in a back-reference section."""
    body = doc.body(section_name)
    if body is None:
        return None
    for token in re.split(r"[\s,()\[\]]+", body):
        ref = normalize_entity_id(token, kind) if parse_entity_id(token) else None
        if ref:
            return ref
    return None


def extract_criteria(doc: Document) -> List[str]:
    section = doc.section("Acceptance Criteria")
    if section is None:
        return []
    return [label for _, label in checkbox_items(doc.body_lines(section)) if label]


def parse_entity(
    text: str,
    kind: EntityKind,
    fallback_id: Optional[str] = None,
) -> EntityRecord:
    """
    Extract an entity record from document text.

    Never raises on malformed input; missing fields take their defaults.

    Args:
        text: Raw markdown
        kind: Kind of document (decided by where it is stored)
        fallback_id: ID to use when the heading carries none, e.g. from the filename

    Returns:
        A Ticket, Story, PRD or Issue instance
    """
    kind_spec = spec_for(kind)
    doc = parse_document(text)

    entity_id = doc.entity_id if doc.entity_id and doc.entity_id.startswith(kind_spec.prefix) else None
    entity_id = entity_id or (normalize_entity_id(fallback_id, kind) if fallback_id else None)
    number = parse_entity_id(entity_id)[1] if entity_id else 0
    entity_id = entity_id or kind_spec.format_id(0)

    status, ambiguous = extract_status(doc, kind_spec)
    if ambiguous:
        logger.warning(
            f"{entity_id} has more than one status checked; using '{status}'",
            entity_id=entity_id,
        )

    fields: Dict[str, object] = {
        "id": entity_id,
        "number": number,
        "title": doc.title or "",
        "status": status,
        "ambiguous_status": ambiguous,
        "priority": extract_priority(doc) or DEFAULT_PRIORITY,
        "created": extract_date(doc),
        "description": doc.body("Description"),
        "acceptance_criteria": extract_criteria(doc),
    }

    if kind == EntityKind.TICKET:
        fields["story_ref"] = extract_reference(doc, "Story", EntityKind.STORY)
    elif kind == EntityKind.STORY:
        fields["story_points"] = extract_int(doc, "Story Points")
        fields["prd_ref"] = extract_reference(doc, "PRD", EntityKind.PRD)
        fields["as_a"] = doc.body("As a")
        fields["i_want_to"] = doc.body("I want to")
        fields["so_that"] = doc.body("So that")
    elif kind == EntityKind.ISSUE:
        fields["severity"] = (
            extract_priority(doc, "Severity")
            or extract_priority(doc, "Priority")
            or DEFAULT_PRIORITY
        )

    return MODEL_BY_KIND[kind](**fields)


def missing_sections(text: str, kind: EntityKind) -> List[str]:
    """
    Structural check used by 'pmflow validate'.

    Returns:
        Names of required parts that are absent; 'Heading' when the
        '# ID: Title' line is missing or carries no ID
    """
    doc = parse_document(text)
    missing = []
    if doc.entity_id is None:
        missing.append("Heading")
    for name in spec_for(kind).required_sections:
        if doc.section(name) is None:
            # Issues may carry their level under Priority instead of Severity
            if name == "Severity" and doc.section("Priority") is not None:
                continue
            missing.append(name)
    return missing


def extract_story_blocks(prd_text: str) -> List[StoryBlock]:
    """
    Extract '### STORY-NNN: Title' blocks from a PRD.

    A block needs the As a / I want to / So that narrative; blocks without
    it are skipped. Story points default to 5 and priority to Medium.
    """
    lines = prd_text.splitlines()
    blocks: List[Tuple[str, str, List[str]]] = []
    current: Optional[Tuple[str, str, List[str]]] = None

    for line in lines:
        header = _STORY_HEADER_RE.match(line)
        if header:
            current = (header.group("id"), header.group("title"), [])
            blocks.append(current)
            continue
        if current is not None and re.match(r"^#{1,3}(?!#)\s", line):
            current = None
            continue
        if current is not None:
            current[2].append(line)

    stories = []
    for source_id, title, body_lines in blocks:
        body = "\n".join(body_lines)
        narrative = {}
        for name, pattern in _STORY_FIELDS.items():
            match = pattern.search(body)
            if match:
                narrative[name] = " ".join(match.group(1).split()).rstrip(",")
        if len(narrative) < len(_STORY_FIELDS):
            logger.debug(f"Skipping story block without narrative: {title}")
            continue

        criteria: List[str] = []
        criteria_match = _STORY_CRITERIA_RE.search(body)
        if criteria_match:
            criteria = [
                label
                for _, label in checkbox_items(criteria_match.group("items").splitlines())
                if label
            ]

        points_match = _STORY_POINTS_RE.search(body)
        priority_match = _STORY_PRIORITY_RE.search(body)

        stories.append(
            StoryBlock(
                source_id=normalize_entity_id(source_id, EntityKind.STORY),
                title=title,
                acceptance_criteria=criteria,
                story_points=int(points_match.group(1)) if points_match else 5,
                priority=(
                    parse_priority(priority_match.group(1)) if priority_match else None
                ) or DEFAULT_PRIORITY,
                **narrative,
            )
        )

    return stories


def replace_heading(text: str, entity_id: str, title: str) -> str:
    """
    Rewrite the '# ID: Title' line.

    Raises:
        MalformedDocumentError: If the document has no level-1 heading
    """
    doc = parse_document(text)
    if doc.heading_index is None:
        raise MalformedDocumentError(f"{entity_id} has no '# ID: Title' heading")
    doc.lines[doc.heading_index] = f"# {entity_id}: {title}{doc.newline}"
    return doc.text


def replace_section_body(text: str, name: str, body: str) -> str:
    """
    Replace the body of a '## name' section, keeping its trailing blank lines.

    Raises:
        MalformedDocumentError: If the section is absent
    """
    doc = parse_document(text)
    section = doc.section(name)
    if section is None:
        raise MalformedDocumentError(f"Document has no '## {name}' section")

    old = doc.body_lines(section)
    trailing = 0
    for line in reversed(old):
        if line.strip():
            break
        trailing += 1
    new_lines = [line + doc.newline for line in body.strip("\n").splitlines()]
    new_lines.extend(doc.newline for _ in range(trailing))
    doc.lines[section.start:section.end] = new_lines
    return doc.text


__all__ = [
    "CHECKBOX_RE",
    "Section",
    "Document",
    "parse_document",
    "checkbox_items",
    "extract_status",
    "extract_priority",
    "extract_date",
    "extract_int",
    "extract_reference",
    "extract_criteria",
    "parse_entity",
    "missing_sections",
    "extract_story_blocks",
    "replace_heading",
    "replace_section_body",
]

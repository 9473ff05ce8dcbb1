"""
Tests for the markdown document grammar and field extraction.

Extraction must never raise on malformed input; the rewrite helpers must
raise MalformedDocumentError when the part they change is missing.
"""

from __future__ import annotations

from datetime import date

import pytest

from pmflow.entities.models import EntityKind, Issue, Priority, Story, Ticket
from pmflow.entities.parser import (
    extract_story_blocks,
    missing_sections,
    parse_document,
    parse_entity,
    replace_heading,
    replace_section_body,
)
from pmflow.exceptions import MalformedDocumentError

from conftest import make_document


class TestParseDocument:
    """Test splitting text into heading and sections."""

    def test_reads_heading_id_and_title(self, ticket_text):
        """Test the '# ID: Title' line is split into its parts."""
        doc = parse_document(ticket_text)
        assert doc.entity_id == "TICKET-001"
        assert doc.title == "Fix login bug"
        assert [s.name for s in doc.sections] == ["Created", "Status", "Priority", "Description"]

    def test_heading_id_is_canonicalized(self):
        """Test lower-case, unpadded IDs in headings are normalized."""
        doc = parse_document("# ticket-7: Something\n")
        assert doc.entity_id == "TICKET-007"

    def test_heading_without_id_keeps_title(self):
        """Test a heading with no ID still yields a title."""
        doc = parse_document("# Just a title\n")
        assert doc.entity_id is None
        assert doc.title == "Just a title"

    def test_fenced_code_does_not_start_sections(self):
        """Test '## ' lines inside code fences are not section headers."""
        text = "# TICKET-001: T\n## Notes\n```\n## Status\n- [x] Complete\n```\n"
        doc = parse_document(text)
        assert [s.name for s in doc.sections] == ["Notes"]

    def test_text_round_trips_verbatim(self, ticket_text):
        """Test the document reproduces its input byte for byte."""
        crlf = ticket_text.replace("\n", "\r\n")
        assert parse_document(ticket_text).text == ticket_text
        assert parse_document(crlf).text == crlf
        assert parse_document(crlf).newline == "\r\n"

    def test_body_returns_none_for_empty_section(self):
        """Test an empty section body reads as absent."""
        doc = parse_document("# TICKET-001: T\n## Description\n\n## Priority\nHigh\n")
        assert doc.body("Description") is None
        assert doc.body("priority") == "High"


class TestParseEntity:
    """Test extraction of typed records."""

    def test_extracts_ticket_fields(self, ticket_text):
        """Test a well-formed ticket parses completely."""
        record = parse_entity(ticket_text, EntityKind.TICKET)
        assert isinstance(record, Ticket)
        assert record.id == "TICKET-001"
        assert record.number == 1
        assert record.title == "Fix login bug"
        assert record.status == "Not Started"
        assert record.priority == Priority.MEDIUM
        assert record.created == date(2026, 1, 15)
        assert record.description == "Users cannot log in with SSO."
        assert record.ambiguous_status is False

    def test_missing_fields_take_defaults(self):
        """Test that a bare heading parses with Unknown status and Medium priority."""
        record = parse_entity("# TICKET-004: Bare\n", EntityKind.TICKET)
        assert record.status is None
        assert record.status_display == "Unknown"
        assert record.priority == Priority.MEDIUM
        assert record.created is None
        assert record.created_display == "Unknown"

    def test_garbage_input_does_not_raise(self):
        """Test arbitrary text degrades instead of failing."""
        record = parse_entity("\x00 random ### text\n## Status\n- [x] Bogus\n", EntityKind.STORY)
        assert record.status is None
        assert record.id == "STORY-000"

    def test_fallback_id_from_filename(self):
        """Test a heading without an ID borrows the filename's ID."""
        record = parse_entity("# Some ticket\n", EntityKind.TICKET, fallback_id="TICKET-012-some-ticket")
        assert record.id == "TICKET-012"
        assert record.number == 12
        assert record.title == "Some ticket"

    def test_multiple_checked_statuses_uses_declared_order(self):
        """Test the first checked status in declared order wins and is flagged."""
        text = make_document(
            "TICKET-002",
            "Both",
            status_lines=("- [ ] Not Started", "- [x] Complete", "- [x] In Progress", "- [ ] Review"),
        )
        record = parse_entity(text, EntityKind.TICKET)
        assert record.status == "In Progress"
        assert record.ambiguous_status is True

    def test_status_labels_match_case_insensitively(self):
        """Test 'in progress' reads as In Progress."""
        text = make_document("TICKET-003", "Case", status_lines=("- [X] in progress",))
        assert parse_entity(text, EntityKind.TICKET).status == "In Progress"

    @pytest.mark.parametrize("line,expected", [
        ("🟢 Low", Priority.LOW),
        ("🔴 High", Priority.HIGH),
        ("critical", Priority.CRITICAL),
        ("🚨 Critical - high impact", Priority.CRITICAL),
        ("whatever", Priority.MEDIUM),
    ])
    def test_priority_line_variants(self, line, expected):
        """Test priority detection on emoji and plain lines."""
        text = make_document("TICKET-001", "P", priority=line)
        assert parse_entity(text, EntityKind.TICKET).priority == expected

    def test_story_fields(self):
        """Test story-specific sections."""
        text = make_document(
            "STORY-003",
            "Export CSV",
            priority="🔴 High",
            extra=(
                "\n## Story Points\n8\n"
                "\n## PRD\nPRD-002\n"
                "\n## As a\nanalyst\n"
                "\n## I want to\nexport data\n"
                "\n## So that\nI can share it\n"
                "\n## Acceptance Criteria\n- [ ] CSV has headers\n- [x] Dates are ISO\n"
            ),
        )
        record = parse_entity(text, EntityKind.STORY)
        assert isinstance(record, Story)
        assert record.story_points == 8
        assert record.prd_ref == "PRD-002"
        assert record.as_a == "analyst"
        assert record.acceptance_criteria == ["CSV has headers", "Dates are ISO"]

    def test_story_points_unknown_when_absent(self):
        """Test missing story points display as Unknown."""
        record = parse_entity(make_document("STORY-001", "S"), EntityKind.STORY)
        assert record.story_points is None
        assert record.story_points_display == "Unknown"

    def test_issue_severity(self):
        """Test issues read Severity and fall back to Priority."""
        issue_text = (
            "# BUG-001: Crash\n## Status\n- [x] Open\n- [ ] In Progress\n- [ ] Resolved\n"
            "## Severity\n🚨 Critical\n"
        )
        record = parse_entity(issue_text, EntityKind.ISSUE)
        assert isinstance(record, Issue)
        assert record.status == "Open"
        assert record.severity == Priority.CRITICAL
        assert record.rank == Priority.CRITICAL

        legacy = issue_text.replace("## Severity", "## Priority").replace("Critical", "Low")
        assert parse_entity(legacy, EntityKind.ISSUE).severity == Priority.LOW


class TestMissingSections:
    """Test the structural check behind 'pmflow validate'."""

    def test_complete_ticket_has_nothing_missing(self, ticket_text):
        assert missing_sections(ticket_text, EntityKind.TICKET) == []

    def test_reports_heading_and_sections(self):
        """Test a document without heading or sections reports both."""
        missing = missing_sections("just text\n", EntityKind.TICKET)
        assert missing == ["Heading", "Created", "Status", "Priority", "Description"]

    def test_issue_priority_satisfies_severity(self):
        text = "# BUG-001: x\n## Created\n📅 2026-01-01\n## Status\n- [x] Open\n## Priority\nLow\n## Description\nd\n"
        assert missing_sections(text, EntityKind.ISSUE) == []


class TestStoryBlocks:
    """Test story block extraction from PRDs."""

    PRD = """# PRD-001: Dashboard

## User Stories

### STORY-001: View metrics
**As a** product manager
**I want to** see key metrics
**So that** I can track progress

**Acceptance Criteria:**
- [ ] Shows daily actives
- [ ] Loads in under 2s

**Story Points:** 3
**Priority:** High

### STORY-002: Incomplete block
Just some notes without a narrative.

### STORY-003: Export
**As a** analyst
**I want to** export the dashboard
**So that** I can share it

## Technical Requirements
- Fast
"""

    def test_extracts_complete_blocks(self):
        """Test blocks with a narrative are extracted with their details."""
        blocks = extract_story_blocks(self.PRD)
        assert [b.title for b in blocks] == ["View metrics", "Export"]

        first = blocks[0]
        assert first.source_id == "STORY-001"
        assert first.as_a == "product manager"
        assert first.i_want_to == "see key metrics"
        assert first.so_that == "I can track progress"
        assert first.acceptance_criteria == ["Shows daily actives", "Loads in under 2s"]
        assert first.story_points == 3
        assert first.priority == Priority.HIGH

    def test_defaults_for_points_and_priority(self):
        """Test story points default to 5 and priority to Medium."""
        export = extract_story_blocks(self.PRD)[1]
        assert export.story_points == 5
        assert export.priority == Priority.MEDIUM
        assert export.acceptance_criteria == []

    def test_no_blocks(self):
        assert extract_story_blocks("# PRD-001: Empty\n\n## Summary\nNothing\n") == []


class TestRewriteHelpers:
    """Test heading and section rewrites."""

    def test_replace_heading(self, ticket_text):
        """Test only the heading line changes."""
        new_text = replace_heading(ticket_text, "TICKET-009", "New name")
        assert new_text.splitlines()[0] == "# TICKET-009: New name"
        assert new_text.splitlines()[1:] == ticket_text.splitlines()[1:]

    def test_replace_heading_without_heading_raises(self):
        with pytest.raises(MalformedDocumentError):
            replace_heading("## Status\n", "TICKET-001", "x")

    def test_replace_section_body_keeps_spacing(self, ticket_text):
        """Test the description body is replaced and the rest is untouched."""
        text = ticket_text + "\n## Notes\nkeep me\n"
        new_text = replace_section_body(text, "Description", "Line one\nLine two")
        doc = parse_document(new_text)
        assert doc.body("Description") == "Line one\nLine two"
        assert doc.body("Notes") == "keep me"
        assert "Line two\n\n## Notes" in new_text

    def test_replace_missing_section_raises(self):
        with pytest.raises(MalformedDocumentError):
            replace_section_body("# TICKET-001: T\n", "Description", "x")

"""
Tests for status transitions.

A transition must leave exactly one status checked and must not touch any
other byte of the document; a blocked transition must not touch the file at
all.
"""

from __future__ import annotations

import pytest

from pmflow.entities.models import EntityKind, spec_for
from pmflow.entities.parser import parse_entity
from pmflow.entities.transitions import (
    Intent,
    TransitionEngine,
    TransitionPolicy,
    rewrite_status,
)
from pmflow.exceptions import (
    MalformedDocumentError,
    NotFoundError,
    TransitionBlockedError,
    UsageError,
)

from conftest import add_ticket, make_document


def checked_lines(text: str):
    return [line for line in text.splitlines() if line.lstrip().startswith(("- [x]", "- [X]"))]


class TestRewriteStatus:
    """Test the checkbox rewrite itself."""

    def test_only_marks_change(self, ticket_text):
        """Test the rewritten text differs only in the two affected marks."""
        new_text = rewrite_status(ticket_text, spec_for(EntityKind.TICKET), "Review")
        old_lines, new_lines = ticket_text.splitlines(), new_text.splitlines()
        changed = [(a, b) for a, b in zip(old_lines, new_lines) if a != b]

        assert len(old_lines) == len(new_lines)
        assert changed == [
            ("- [x] Not Started", "- [ ] Not Started"),
            ("- [ ] Review", "- [x] Review"),
        ]

    def test_exactly_one_checked_after_ambiguous_block(self):
        """Test an ambiguous block is resolved to a single checked label."""
        text = make_document(
            "TICKET-001",
            "Both",
            status_lines=("- [x] Not Started", "- [x] In Progress", "- [ ] Review", "- [x] Complete"),
        )
        new_text = rewrite_status(text, spec_for(EntityKind.TICKET), "Review")
        assert checked_lines(new_text) == ["- [x] Review"]

    def test_unknown_checked_label_is_cleared(self):
        """Test a checked label the kind does not declare is unchecked."""
        text = make_document(
            "TICKET-001",
            "Foreign",
            status_lines=("- [x] Done", "- [ ] Not Started", "- [ ] In Progress", "- [ ] Review", "- [ ] Complete"),
        )
        new_text = rewrite_status(text, spec_for(EntityKind.TICKET), "In Progress")
        assert checked_lines(new_text) == ["- [x] In Progress"]
        assert "- [ ] Done" in new_text

    def test_keeps_crlf_and_indentation(self):
        text = "# TICKET-001: T\r\n## Status\r\n  * [x] Not Started\r\n  * [ ] Complete\r\n"
        new_text = rewrite_status(text, spec_for(EntityKind.TICKET), "Complete")
        assert new_text == "# TICKET-001: T\r\n## Status\r\n  * [ ] Not Started\r\n  * [x] Complete\r\n"

    def test_rebuilds_block_when_label_missing(self):
        """Test a block lacking the target label is rebuilt in declared order."""
        text = "# TICKET-001: T\n## Status\n- [x] Not Started\n\n## Priority\nHigh\n"
        new_text = rewrite_status(text, spec_for(EntityKind.TICKET), "Review")
        record = parse_entity(new_text, EntityKind.TICKET)
        assert record.status == "Review"
        assert "- [ ] In Progress\n- [x] Review\n- [ ] Complete\n\n## Priority" in new_text

    def test_missing_status_section_raises(self):
        with pytest.raises(MalformedDocumentError):
            rewrite_status("# TICKET-001: T\n", spec_for(EntityKind.TICKET), "Review")


class TestTransitionPolicy:
    """Test guard rules."""

    def test_resolve_target_is_case_insensitive(self):
        policy = TransitionPolicy.for_kind(EntityKind.PRD)
        assert policy.resolve_target("in review") == "In Review"

    def test_resolve_target_rejects_unknown_labels(self):
        policy = TransitionPolicy.for_kind(EntityKind.TICKET)
        with pytest.raises(UsageError) as exc_info:
            policy.resolve_target("Done-ish")
        assert "Not Started" in exc_info.value.message

    @pytest.mark.parametrize("status", ["In Progress", "Complete"])
    def test_pick_is_blocked_for_busy_tickets(self, status):
        policy = TransitionPolicy.for_kind(EntityKind.TICKET)
        assert policy.is_pickable(status) is False
        with pytest.raises(TransitionBlockedError):
            policy.check("TICKET-001", status, "In Progress", Intent.PICK)

    def test_update_is_allowed_when_permissive(self):
        policy = TransitionPolicy.for_kind(EntityKind.TICKET, "permissive")
        policy.check("TICKET-001", "Complete", "Review", Intent.UPDATE)

    def test_update_is_blocked_when_guarded(self):
        policy = TransitionPolicy.for_kind(EntityKind.TICKET, "guarded")
        with pytest.raises(TransitionBlockedError):
            policy.check("TICKET-001", "Complete", "Review", Intent.UPDATE)

    def test_unknown_status_is_pickable(self):
        assert TransitionPolicy.for_kind(EntityKind.STORY).is_pickable(None) is True


class TestTransitionEngine:
    """Test transitions applied through a store."""

    def test_pick_moves_ticket_to_in_progress(self, memory_store):
        add_ticket(memory_store, 1, "One")
        result = TransitionEngine(memory_store).transition("TICKET-001", "In Progress", Intent.PICK)

        assert result.changed is True
        assert result.previous == "Not Started"
        assert memory_store.read_entity("TICKET-001").status == "In Progress"
        assert len(checked_lines(result.document.text)) == 1

    @pytest.mark.parametrize("status", ["In Progress", "Complete"])
    def test_blocked_pick_leaves_document_identical(self, memory_store, status):
        """Test a refused pick leaves the stored text byte-identical."""
        add_ticket(memory_store, 1, "One", status=status)
        before = memory_store.get_document("TICKET-001").text

        with pytest.raises(TransitionBlockedError):
            TransitionEngine(memory_store).transition("TICKET-001", "In Progress", Intent.PICK)

        assert memory_store.get_document("TICKET-001").text == before

    def test_no_op_transition_does_not_write(self, memory_store, monkeypatch):
        """Test setting the current status again writes nothing."""
        add_ticket(memory_store, 1, "One", status="Review")

        def fail_write(*args, **kwargs):
            raise AssertionError("unexpected write")

        monkeypatch.setattr(memory_store, "write_entity", fail_write)
        result = TransitionEngine(memory_store).transition("TICKET-001", "review")
        assert result.changed is False
        assert result.current == "Review"

    def test_prepare_does_not_write(self, memory_store):
        add_ticket(memory_store, 1, "One")
        document = memory_store.get_document("TICKET-001")
        new_text, target = TransitionEngine(memory_store).prepare(document, "complete")

        assert target == "Complete"
        assert parse_entity(new_text, EntityKind.TICKET).status == "Complete"
        assert memory_store.read_entity("TICKET-001").status == "Not Started"

    def test_unknown_id_raises_not_found(self, memory_store):
        with pytest.raises(NotFoundError):
            TransitionEngine(memory_store).transition("TICKET-404", "Review")

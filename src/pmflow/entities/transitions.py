"""
Status transitions.

A transition flips the checkboxes of the '## Status' block so exactly one
label is marked and leaves every other byte of the document alone. Which
transitions are allowed is decided by one TransitionPolicy per kind.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple

from pmflow.exceptions import MalformedDocumentError, TransitionBlockedError, UsageError
from pmflow.utils.logger import get_logger
from .models import EntityKind, KindSpec, spec_for
from .parser import CHECKBOX_RE, parse_document
from .store import EntityStore, StoredDocument
from .templates import status_block

logger = get_logger(__name__)


class Intent(str, Enum):
    """Why a transition is requested; policies guard some intents."""
    PICK = "pick"
    UPDATE = "update"


# Statuses from which an entity can no longer be picked up
BUSY_STATUSES: Dict[EntityKind, Tuple[str, ...]] = {
    EntityKind.TICKET: ("In Progress", "Complete"),
    EntityKind.STORY: ("In Progress", "Complete"),
    EntityKind.ISSUE: ("In Progress", "Resolved"),
    EntityKind.PRD: ("Complete", "Deprecated"),
}


@dataclass(frozen=True)
class TransitionPolicy:
    """
    Guard rules for one kind.

    Picking is always guarded. Updates are guarded only when the project
    sets workflow.update_guard to 'guarded'.
    """

    kind_spec: KindSpec
    guarded_intents: FrozenSet[Intent] = field(default_factory=lambda: frozenset({Intent.PICK}))

    @classmethod
    def for_kind(cls, kind: EntityKind, update_guard: str = "permissive") -> "TransitionPolicy":
        intents = {Intent.PICK}
        if update_guard == "guarded":
            intents.add(Intent.UPDATE)
        return cls(spec_for(kind), frozenset(intents))

    @property
    def busy_statuses(self) -> Tuple[str, ...]:
        return BUSY_STATUSES[self.kind_spec.kind]

    def is_pickable(self, status: Optional[str]) -> bool:
        return status not in self.busy_statuses

    def resolve_target(self, target: str) -> str:
        """
        Map user input onto a declared status label.

        Raises:
            UsageError: If target is not a status of this kind
        """
        status = self.kind_spec.normalize_status(target)
        if status is None:
            valid = ", ".join(self.kind_spec.statuses)
            raise UsageError(
                f"'{target}' is not a {self.kind_spec.display_name} status. Valid: {valid}"
            )
        return status

    def check(self, entity_id: str, current: Optional[str], target: str, intent: Intent) -> None:
        """
        Raises:
            TransitionBlockedError: If the intent is guarded and the entity is busy
        """
        if intent in self.guarded_intents and current in self.busy_statuses:
            raise TransitionBlockedError(entity_id, current or "", target)


def rewrite_status(text: str, kind_spec: KindSpec, target: str) -> str:
    """
    Mark target in the Status block and clear every other checkbox in it.

    Only the check marks change. When the block has no line for target, the
    block is rebuilt from the kind's ordered labels.

    Raises:
        MalformedDocumentError: If the document has no '## Status' section
    """
    doc = parse_document(text)
    section = doc.section("Status")
    if section is None:
        raise MalformedDocumentError("Document has no '## Status' section")

    present = set()
    rewritten = list(doc.lines)
    for index in range(section.start, section.end):
        raw = doc.lines[index]
        match = CHECKBOX_RE.match(raw.rstrip("\r\n"))
        if not match:
            continue
        label = kind_spec.normalize_status(match.group("label"))
        if label is not None:
            present.add(label)
        # Undeclared labels are unchecked too
        mark = "x" if label == target else " "
        rewritten[index] = raw[:match.start("mark")] + mark + raw[match.end("mark"):]

    if target in present:
        return "".join(rewritten)

    logger.debug(f"Status block lacks '{target}', rebuilding it")
    body = doc.body_lines(section)
    trailing = 0
    for line in reversed(body):
        if line.strip():
            break
        trailing += 1
    block = [line + doc.newline for line in status_block(kind_spec, target).split("\n")]
    block.extend(doc.newline for _ in range(trailing))
    doc.lines[section.start:section.end] = block
    return doc.text


@dataclass
class TransitionResult:
    """Outcome of a transition request."""
    entity_id: str
    previous: Optional[str]
    current: str
    document: StoredDocument

    @property
    def changed(self) -> bool:
        return self.previous != self.current


class TransitionEngine:
    """Applies validated status changes to stored documents."""

    def __init__(self, store: EntityStore, update_guard: str = "permissive"):
        self.store = store
        self.update_guard = update_guard

    def policy(self, kind: EntityKind) -> TransitionPolicy:
        return TransitionPolicy.for_kind(kind, self.update_guard)

    def prepare(
        self,
        document: StoredDocument,
        target_status: str,
        intent: Intent = Intent.UPDATE,
    ) -> Tuple[str, str]:
        """
        Validate a transition and compute the rewritten text without saving it.

        Returns:
            (new_text, target label)

        Raises:
            UsageError: If target_status is not valid for the kind
            TransitionBlockedError: If the policy refuses
        """
        record = document.to_record()
        policy = self.policy(document.kind)

        target = policy.resolve_target(target_status)
        policy.check(record.id, record.status, target, intent)
        return rewrite_status(document.text, policy.kind_spec, target), target

    def transition(
        self,
        entity_id: str,
        target_status: str,
        intent: Intent = Intent.UPDATE,
    ) -> TransitionResult:
        """
        Move an entity to target_status.

        Raises:
            NotFoundError: If the ID does not resolve
            UsageError: If target_status is not valid for the kind
            TransitionBlockedError: If the policy refuses; the file is untouched
        """
        document = self.store.get_document(entity_id)
        record = document.to_record()
        new_text, target = self.prepare(document, target_status, intent)

        if new_text != document.text:
            document = self.store.update_entity(document, new_text)
            logger.info(
                f"{record.id}: {record.status_display} -> {target}",
                intent=intent.value,
            )
        else:
            logger.debug(f"{record.id} already {target}")

        return TransitionResult(record.id, record.status, target, document)


__all__ = [
    "Intent",
    "BUSY_STATUSES",
    "TransitionPolicy",
    "rewrite_status",
    "TransitionResult",
    "TransitionEngine",
]

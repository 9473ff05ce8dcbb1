"""ID allocation: the next number is one past every number ever claimed."""

from __future__ import annotations

from pmflow.utils.logger import get_logger
from .models import EntityKind, spec_for
from .store import EntityStore

logger = get_logger(__name__)


def next_number(store: EntityStore, kind: EntityKind) -> int:
    """
    Compute the next free number for a kind.

    Active, archived and retired numbers all count, so IDs are never
    reused. There is no cross-process coordination: two concurrent
    invocations can allocate the same number.
    """
    used = store.used_numbers(kind)
    number = max(used) + 1 if used else 1
    logger.debug(f"Allocated {kind.value} number {number}", existing=len(used))
    return number


def next_id(store: EntityStore, kind: EntityKind) -> str:
    """Next ID for a kind, e.g. 'TICKET-004'."""
    return spec_for(kind).format_id(next_number(store, kind))


__all__ = ["next_number", "next_id"]

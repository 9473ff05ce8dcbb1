"""Shared plumbing for command handlers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from pmflow.config import Config, get_config_safe
from pmflow.entities.models import EntityKind, normalize_entity_id, spec_for
from pmflow.entities.store import FileSystemStore
from pmflow.entities.templates import TemplateRenderer
from pmflow.entities.transitions import TransitionEngine
from pmflow.exceptions import UsageError


@dataclass
class Workspace:
    """Configuration plus the store, renderer and engine built from it."""

    config: Config
    store: FileSystemStore

    @classmethod
    def from_config(cls, config: Optional[Config] = None) -> "Workspace":
        config = config or get_config_safe()
        return cls(config=config, store=FileSystemStore(config.project_root))

    @property
    def renderer(self) -> TemplateRenderer:
        return TemplateRenderer(self.config.templates_path)

    @property
    def engine(self) -> TransitionEngine:
        return TransitionEngine(self.store, self.config.workflow.update_guard)


def today() -> str:
    return date.today().isoformat()


def require(value: Optional[str], what: str, usage: str) -> str:
    """
    Return value stripped, or raise UsageError when it is missing or blank.
    """
    if value is None or not value.strip():
        raise UsageError(f"Missing required argument: {what}", usage)
    return value.strip()


def require_title(value: Optional[str], what: str, usage: str) -> str:
    """Like require, with whitespace runs (newlines included) collapsed to one space."""
    return " ".join(require(value, what, usage).split())


def require_id(value: Optional[str], kind: EntityKind, usage: str) -> str:
    """Canonical ID of the given kind ('prd-1' -> 'PRD-001')."""
    raw = require(value, f"{spec_for(kind).display_name} ID", usage)
    entity_id = normalize_entity_id(raw, kind)
    if entity_id is None:
        raise UsageError(
            f"'{raw}' is not a {spec_for(kind).display_name} ID "
            f"(expected {spec_for(kind).format_id(1)})",
            usage,
        )
    return entity_id


__all__ = ["Workspace", "today", "require", "require_title", "require_id"]

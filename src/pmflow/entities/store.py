"""
Entity storage.

The project directory is the database: each entity is one markdown file in
its kind's active or archive directory. EntityStore hides that layout from
the rest of the code; InMemoryStore implements the same contract without a
disk and backs most tests.

Nothing is cached between calls. Every read re-scans the directories, so
hand edits made between commands are always seen.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

import yaml

from pmflow.exceptions import EntityExistsError, MalformedDocumentError, NotFoundError
from pmflow.utils.logger import get_logger
from pmflow.utils.paths import ensure_directory, safe_read, safe_write, validate_path
from .models import (
    EntityKind,
    EntityRecord,
    KIND_SPECS,
    normalize_entity_id,
    parse_entity_id,
    spec_for,
)
from .parser import parse_document, parse_entity

logger = get_logger(__name__)

RETIRED_LEDGER = Path(".pmflow") / "retired.yaml"

_IGNORED_FILES = {"readme.md"}


@dataclass
class StoredDocument:
    """Raw document as held by a store."""
    kind: EntityKind
    filename: str
    text: str
    archived: bool = False
    location: Optional[Path] = None

    @property
    def entity_id(self) -> Optional[str]:
        """ID from the heading, or from the filename when the heading has none."""
        kind_spec = spec_for(self.kind)
        heading_id = parse_document(self.text).entity_id
        if heading_id and heading_id.startswith(f"{kind_spec.prefix}-"):
            return heading_id
        return normalize_entity_id(Path(self.filename).stem, self.kind)

    def id_numbers(self) -> Set[int]:
        """Every ID number this document claims, by heading and by filename."""
        numbers = set()
        for candidate in (parse_document(self.text).entity_id, Path(self.filename).stem):
            parsed = parse_entity_id(candidate) if candidate else None
            if parsed and parsed[0].kind == self.kind:
                numbers.add(parsed[1])
        return numbers

    def to_record(self) -> EntityRecord:
        record = parse_entity(self.text, self.kind, fallback_id=Path(self.filename).stem)
        return record.model_copy(update={"path": self.location, "archived": self.archived})


class EntityStore(ABC):
    """
    Repository of entity documents.

    Subclasses provide raw document access; listing, lookup and ID scanning
    are built on top of it here.
    """

    @abstractmethod
    def list_documents(self, kind: EntityKind, archived: bool = False) -> List[StoredDocument]:
        """Documents of one kind in the active (or archive) location, sorted by filename."""

    @abstractmethod
    def write_entity(
        self,
        kind: EntityKind,
        filename: str,
        text: str,
        archived: bool = False,
    ) -> StoredDocument:
        """Create or overwrite a document."""

    @abstractmethod
    def _remove(self, document: StoredDocument) -> None:
        """Remove the document from wherever it is held."""

    @abstractmethod
    def retired_numbers(self, kind: EntityKind) -> Set[int]:
        """Numbers of deleted entities that must not be allocated again."""

    @abstractmethod
    def retire(self, kind: EntityKind, numbers: Iterable[int]) -> None:
        """Record numbers in the retired-ID ledger."""

    def exists(self, kind: EntityKind, filename: str, archived: bool = False) -> bool:
        return any(doc.filename == filename for doc in self.list_documents(kind, archived))

    def all_documents(self, kind: EntityKind) -> List[StoredDocument]:
        """Active documents followed by archived ones."""
        return self.list_documents(kind) + self.list_documents(kind, archived=True)

    def list_entities(self, kind: EntityKind, include_archived: bool = False) -> List[EntityRecord]:
        """Parse every document of a kind, ordered by ID number."""
        documents = self.all_documents(kind) if include_archived else self.list_documents(kind)
        records = [doc.to_record() for doc in documents]
        return sorted(records, key=lambda record: (record.number, record.title))

    def find_document(self, entity_id: str, include_archived: bool = True) -> Optional[StoredDocument]:
        """Locate a document by ID, active location first."""
        parsed = parse_entity_id(entity_id)
        if parsed is None:
            return None
        kind_spec, number = parsed
        wanted = kind_spec.format_id(number)
        documents = (
            self.all_documents(kind_spec.kind)
            if include_archived
            else self.list_documents(kind_spec.kind)
        )
        for document in documents:
            if document.entity_id == wanted:
                return document
        return None

    def get_document(self, entity_id: str, include_archived: bool = True) -> StoredDocument:
        """
        Like find_document, but raise when the ID does not resolve.

        Raises:
            NotFoundError: Listing the IDs that do exist for that kind
        """
        document = self.find_document(entity_id, include_archived)
        if document is not None:
            return document

        parsed = parse_entity_id(entity_id)
        alternatives: List[str] = []
        if parsed is not None:
            alternatives = [
                record.id for record in self.list_entities(parsed[0].kind, include_archived)
            ]
        raise NotFoundError(entity_id, alternatives)

    def read_entity(self, entity_id: str) -> EntityRecord:
        """Parse the document with this ID."""
        return self.get_document(entity_id).to_record()

    def used_numbers(self, kind: EntityKind) -> Set[int]:
        """Every number claimed by active, archived or retired entities."""
        numbers = set(self.retired_numbers(kind))
        for document in self.all_documents(kind):
            numbers.update(document.id_numbers())
        return numbers

    def delete_entity(self, document: StoredDocument, retire: bool = True) -> None:
        """
        Remove a document for good.

        The entity's number goes into the retired ledger unless retire is
        False (the caller kept an archival copy that still claims it).
        """
        self._remove(document)
        if retire:
            numbers = document.id_numbers()
            if numbers:
                self.retire(document.kind, numbers)
        logger.info(f"Deleted {document.entity_id}", filename=document.filename)

    def archive_entity(self, document: StoredDocument) -> StoredDocument:
        """
        Move a document into its kind's archive location.

        Raises:
            EntityExistsError: If the archive already holds a file of that name
        """
        if document.archived:
            return document
        if self.exists(document.kind, document.filename, archived=True):
            raise EntityExistsError(f"{document.entity_id} (archive/{document.filename})")
        archived = self.write_entity(document.kind, document.filename, document.text, archived=True)
        self._remove(document)
        logger.info(f"Archived {document.entity_id}", filename=document.filename)
        return archived

    def rename_entity(self, document: StoredDocument, filename: str, text: str) -> StoredDocument:
        """
        Write text under a new filename and drop the old file.

        Raises:
            EntityExistsError: If another document already has that filename
        """
        if filename != document.filename and self.exists(document.kind, filename, document.archived):
            raise EntityExistsError(filename)
        renamed = self.write_entity(document.kind, filename, text, archived=document.archived)
        if filename != document.filename:
            self._remove(document)
        return renamed

    def update_entity(self, document: StoredDocument, text: str) -> StoredDocument:
        """Overwrite a document in place."""
        return self.write_entity(document.kind, document.filename, text, archived=document.archived)


class FileSystemStore(EntityStore):
    """Store rooted at a project directory, using the layout in KIND_SPECS."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def directory(self, kind: EntityKind, archived: bool = False) -> Path:
        kind_spec = spec_for(kind)
        return self.root / (kind_spec.archive_dir if archived else kind_spec.active_dir)

    def list_documents(self, kind: EntityKind, archived: bool = False) -> List[StoredDocument]:
        directory = self.directory(kind, archived)
        if not directory.is_dir():
            return []

        documents = []
        for path in sorted(directory.glob("*.md")):
            if not path.is_file() or path.name.lower() in _IGNORED_FILES:
                continue
            text = safe_read(path)
            if text is None:
                continue
            documents.append(StoredDocument(kind, path.name, text, archived, path))
        return documents

    def write_entity(
        self,
        kind: EntityKind,
        filename: str,
        text: str,
        archived: bool = False,
    ) -> StoredDocument:
        path = self.directory(kind, archived) / filename
        validate_path(path, self.root)
        safe_write(path, text)
        logger.debug(f"Wrote {path}", kind=kind.value)
        return StoredDocument(kind, filename, text, archived, path)

    def _remove(self, document: StoredDocument) -> None:
        path = document.location or self.directory(document.kind, document.archived) / document.filename
        if not path.exists():
            raise MalformedDocumentError(f"{path} disappeared before it could be removed", str(path))
        path.unlink()

    def _ledger_path(self) -> Path:
        return self.root / RETIRED_LEDGER

    def _load_ledger(self) -> Dict[str, List[int]]:
        text = safe_read(self._ledger_path())
        if not text:
            return {}
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            logger.warning(f"Ignoring unreadable retired-ID ledger: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def retired_numbers(self, kind: EntityKind) -> Set[int]:
        values = self._load_ledger().get(kind.value) or []
        return {int(value) for value in values if str(value).isdigit()}

    def retire(self, kind: EntityKind, numbers: Iterable[int]) -> None:
        ledger = self._load_ledger()
        merged = sorted(self.retired_numbers(kind) | set(numbers))
        ledger[kind.value] = merged
        ensure_directory(self._ledger_path().parent)
        safe_write(self._ledger_path(), yaml.safe_dump(ledger, sort_keys=True))
        logger.debug(f"Retired {kind.value} numbers {merged}")


class InMemoryStore(EntityStore):
    """Dictionary-backed store with the same behavior as FileSystemStore."""

    def __init__(self) -> None:
        self._documents: Dict[Tuple[EntityKind, bool], Dict[str, str]] = {
            (kind, archived): {}
            for kind in KIND_SPECS
            for archived in (False, True)
        }
        self._retired: Dict[EntityKind, Set[int]] = {kind: set() for kind in KIND_SPECS}

    def list_documents(self, kind: EntityKind, archived: bool = False) -> List[StoredDocument]:
        bucket = self._documents[(kind, archived)]
        return [
            StoredDocument(kind, filename, bucket[filename], archived)
            for filename in sorted(bucket)
        ]

    def write_entity(
        self,
        kind: EntityKind,
        filename: str,
        text: str,
        archived: bool = False,
    ) -> StoredDocument:
        self._documents[(kind, archived)][filename] = text
        return StoredDocument(kind, filename, text, archived)

    def _remove(self, document: StoredDocument) -> None:
        bucket = self._documents[(document.kind, document.archived)]
        if document.filename not in bucket:
            raise MalformedDocumentError(f"{document.filename} is not in the store")
        del bucket[document.filename]

    def retired_numbers(self, kind: EntityKind) -> Set[int]:
        return set(self._retired[kind])

    def retire(self, kind: EntityKind, numbers: Iterable[int]) -> None:
        self._retired[kind].update(numbers)


__all__ = [
    "RETIRED_LEDGER",
    "StoredDocument",
    "EntityStore",
    "FileSystemStore",
    "InMemoryStore",
]

"""
validate: check every document for the sections commands rely on.
"""

from __future__ import annotations

from typing import List, Tuple

from pmflow.entities.models import KIND_SPECS
from pmflow.entities.parser import missing_sections
from pmflow.utils.console import console
from pmflow.utils.logger import get_logger
from .common import Workspace

logger = get_logger(__name__)


def validate_documents() -> List[Tuple[str, str]]:
    """
    Report missing required sections and ambiguous status blocks.

    Returns:
        (filename, problem) pairs; empty when every document is well-formed
    """
    workspace = Workspace.from_config()
    problems: List[Tuple[str, str]] = []
    checked = 0

    for kind in KIND_SPECS:
        for document in workspace.store.all_documents(kind):
            checked += 1
            location = document.location or document.filename
            missing = missing_sections(document.text, kind)
            if missing:
                problems.append((str(location), "missing " + ", ".join(missing)))
            record = document.to_record()
            if record.ambiguous_status:
                problems.append((str(location), f"several statuses checked (reads as {record.status})"))
            elif record.status is None:
                problems.append((str(location), "no status checked"))

    logger.debug(f"Validated {checked} documents", problems=len(problems))

    if not problems:
        console.success(f"All {checked} documents are well-formed")
        return problems

    table = console.create_table("🔍 Document problems", "File", "Problem")
    for location, problem in problems:
        table.add_row(location, problem)
    console.print(table)
    console.warning(f"{len(problems)} problem(s) in {checked} documents")
    return problems


__all__ = ["validate_documents"]

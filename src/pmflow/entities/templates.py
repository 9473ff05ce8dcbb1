"""
Document templates.

Templates are plain markdown with {{TOKEN}} placeholders. A project can
override any built-in template by dropping <name>.md into its templates
directory; 'pmflow init' writes the built-ins there as a starting point.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional

from pmflow.exceptions import TemplateMissingError
from pmflow.utils.logger import get_logger
from pmflow.utils.paths import safe_read, safe_write
from .models import KindSpec

logger = get_logger(__name__)

_TOKEN_RE = re.compile(r"\{\{([A-Z0-9_]+)\}\}")

TICKET_TEMPLATE = """# {{ID}}: {{TITLE}}

## Created
📅 {{DATE}}

## Last Updated
📅 {{DATE}}

## Status
{{STATUS_BLOCK}}

## Priority
{{PRIORITY}}

## Story
{{STORY_REF}}

## Description
{{DESCRIPTION}}

## Dependencies
- None

## Acceptance Criteria
{{ACCEPTANCE_CRITERIA}}

## Implementation Notes
- Add implementation details here
- Include technical considerations

## Testing
- [ ] Define test cases
- [ ] Include unit tests
- [ ] Include integration tests

## Notes
Add any additional notes or context here.

---

**Version**: v1
**Created**: {{DATE}}
"""

STORY_TEMPLATE = """# {{ID}}: {{TITLE}}

## Created
📅 {{DATE}}

## Last Updated
📅 {{DATE}}

## Status
{{STATUS_BLOCK}}

## Priority
{{PRIORITY}}

## Story Points
{{STORY_POINTS}}

## PRD
{{PRD_REF}}

## As a
{{AS_A}}

## I want to
{{I_WANT_TO}}

## So that
{{SO_THAT}}

## Acceptance Criteria
{{ACCEPTANCE_CRITERIA}}

## Technical Notes
[Add any technical implementation details here]

## Dependencies
[Add any dependencies on other stories or tickets]

## Notes
[Additional notes or context]
"""

PRD_TEMPLATE = """# {{ID}}: {{TITLE}}

## Created
📅 {{DATE}}

## Status
{{STATUS_BLOCK}}

## Priority
{{PRIORITY}}

## Executive Summary
Brief overview of {{TITLE}} and the business value it delivers.

## Problem Statement
What problem does {{TITLE}} solve, and for whom?

## User Stories

### STORY-001: {{TITLE}} core flow
**As a** user
**I want to** perform this action
**So that** I can achieve this benefit

**Acceptance Criteria:**
- [ ] User can perform the action successfully

**Story Points:** 5
**Priority:** Medium

## Technical Requirements
- Functional requirements
- Non-functional requirements

## Success Metrics
- How success will be measured

## Dependencies
- None

## Timeline
- Estimated development timeline
"""

ISSUE_TEMPLATE = """# {{ID}}: {{TITLE}}

## Created
📅 {{DATE}}

## Status
{{STATUS_BLOCK}}

## Severity
{{SEVERITY}}

## Description
{{DESCRIPTION}}

## Steps to Reproduce
1. Describe the steps here

## Expected Behavior
What should happen.

## Actual Behavior
What happens instead.

## Notes
Add any additional notes or context here.
"""

BUILTIN_TEMPLATES: Dict[str, str] = {
    "ticket": TICKET_TEMPLATE,
    "story": STORY_TEMPLATE,
    "prd": PRD_TEMPLATE,
    "issue": ISSUE_TEMPLATE,
}

DEFAULT_CRITERIA = ("Define acceptance criteria", "Add specific requirements")


def render(template: str, values: Mapping[str, str]) -> str:
    """
    Substitute {{TOKEN}} placeholders in one pass.

    Substituted values are never rescanned, and tokens missing from values
    are left as they are.
    """
    return _TOKEN_RE.sub(lambda match: values.get(match.group(1), match.group(0)), template)


def slugify(title: str) -> str:
    """'Fix: Login Bug!' -> 'fix-login-bug'."""
    slug = re.sub(r"\s+", "-", title.strip().lower())
    slug = re.sub(r"[^a-z0-9-]", "", slug)
    slug = re.sub(r"-{2,}", "-", slug).strip("-")
    return slug or "untitled"


def entity_filename(kind_spec: KindSpec, number: int, title: str) -> str:
    """
    Filename for a new document.

    PRDs use a lower-case prefix ('prd-001-user-dashboard.md'); the other
    kinds keep it upper-case ('TICKET-001-fix-bug.md').
    """
    return f"{kind_spec.filename_prefix}-{number:03d}-{slugify(title)}.md"


def status_block(kind_spec: KindSpec, status: Optional[str] = None) -> str:
    """Checkbox list with exactly one label marked, in the kind's declared order."""
    selected = status or kind_spec.initial_status
    return "\n".join(
        f"- [{'x' if label == selected else ' '}] {label}"
        for label in kind_spec.statuses
    )


def criteria_block(criteria: Iterable[str]) -> str:
    items: List[str] = [item for item in criteria if item.strip()] or list(DEFAULT_CRITERIA)
    return "\n".join(f"- [ ] {item}" for item in items)


class TemplateRenderer:
    """Loads templates from a project directory, falling back to the built-ins."""

    def __init__(self, templates_dir: Optional[Path] = None):
        self.templates_dir = templates_dir

    def load(self, name: str) -> str:
        """
        Load a template by name.

        Raises:
            TemplateMissingError: If neither the project nor the built-ins have it
        """
        searched = []
        if self.templates_dir is not None:
            override = self.templates_dir / f"{name}.md"
            searched.append(str(override))
            text = safe_read(override)
            if text is not None:
                logger.debug(f"Using project template {override}")
                return text

        if name in BUILTIN_TEMPLATES:
            return BUILTIN_TEMPLATES[name]

        searched.append("built-in templates")
        raise TemplateMissingError(name, searched)

    def render(self, name: str, values: Mapping[str, str]) -> str:
        return render(self.load(name), values)


def write_default_templates(templates_dir: Path, force: bool = False) -> List[Path]:
    """
    Write the built-in templates into a project.

    Returns:
        Paths written; existing files are kept unless force is set
    """
    written = []
    for name, text in BUILTIN_TEMPLATES.items():
        path = templates_dir / f"{name}.md"
        if path.exists() and not force:
            continue
        safe_write(path, text)
        written.append(path)
    return written


__all__ = [
    "BUILTIN_TEMPLATES",
    "DEFAULT_CRITERIA",
    "render",
    "slugify",
    "entity_filename",
    "status_block",
    "criteria_block",
    "TemplateRenderer",
    "write_default_templates",
]

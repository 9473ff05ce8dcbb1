"""
PM-Flow initialization command.

Creates the directory layout, the .pmflow state directory, a commented
.pmflow.yaml and editable copies of the built-in templates.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List

from pmflow.config import get_config_safe, init_project_config
from pmflow.config.loader import PROJECT_CONFIG_NAME
from pmflow.entities.models import KIND_SPECS
from pmflow.entities.templates import write_default_templates
from pmflow.utils.console import console
from pmflow.utils.logger import get_logger
from pmflow.utils.paths import ensure_directory

logger = get_logger(__name__)


def _display(path: Path, project_root: Path) -> str:
    try:
        return str(path.relative_to(project_root))
    except ValueError:
        return str(path)


def initialize_structure(project_root: Path, templates_dir: Path, force: bool = False) -> Dict[str, List[str]]:
    """
    Create directories, config and templates under project_root.

    Existing files are kept unless force is set.

    Returns:
        {'created_dirs': [...], 'created_files': [...]}
    """
    result: Dict[str, List[str]] = {"created_dirs": [], "created_files": []}

    directories = [project_root / ".pmflow", templates_dir]
    for kind_spec in KIND_SPECS.values():
        directories += [project_root / kind_spec.active_dir, project_root / kind_spec.archive_dir]

    for directory in directories:
        if ensure_directory(directory):
            result["created_dirs"].append(_display(directory, project_root))

    config_path = project_root / PROJECT_CONFIG_NAME
    if force or not config_path.exists():
        init_project_config(config_path, force=True)
        result["created_files"].append(PROJECT_CONFIG_NAME)

    for path in write_default_templates(templates_dir, force=force):
        result["created_files"].append(_display(path, project_root))

    return result


def init_project(force: bool = False) -> Dict[str, List[str]]:
    """Initialize PM-Flow in the configured project root."""
    config = get_config_safe()
    project_root = config.project_root
    templates_dir = config.templates_path

    with logger.time_operation("project initialization"):
        result = initialize_structure(project_root, templates_dir, force=force)

    created = result["created_dirs"] + result["created_files"]
    if not created:
        console.info(f"PM-Flow is already set up in {project_root} (use --force to rewrite templates)")
        return result

    content = "\n".join(f"• {item}" for item in created)
    console.status_panel(
        title="PM-Flow initialized",
        content=f"{content}\n\nNext: pmflow create-prd \"Feature Name\"",
        status="success",
        emoji="🏗️",
    )
    return result


__all__ = ["initialize_structure", "init_project"]

"""
Pytest configuration and fixtures for PM-Flow testing.

This module provides fixtures for testing PM-Flow functionality including:
- Temporary project directories used as the working directory
- Isolation from the user's global config and PMFLOW_* environment
- In-memory entity stores for fast, filesystem-free tests
- CLI test runners for Typer commands
- Rich console output capturing
"""

from __future__ import annotations

import os
from io import StringIO
from pathlib import Path
from typing import Any, Generator, Tuple

import pytest
from faker import Faker
from loguru import logger
from rich.console import Console
from typer.testing import CliRunner

from pmflow.cli.theme import pmflow_theme
from pmflow.config import clear_config
from pmflow.entities.models import EntityKind
from pmflow.entities.store import InMemoryStore

# Initialize faker for test data generation
fake = Faker()

_ENV_PREFIXES = ("PMFLOW_",)
_ENV_NAMES = ("NO_COLOR",)


def _owned_env_keys() -> set:
    return {
        key for key in os.environ
        if key.startswith(_ENV_PREFIXES) or key in _ENV_NAMES
    }


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path_factory, monkeypatch) -> Generator[None, None, None]:
    """
    Keep every test away from real configuration.

    HOME points at an empty directory outside tmp_path, so
    ~/.pmflow/config.yaml is never read and tmp_path stays empty. PMFLOW_*
    variables from the caller's shell are removed, and the config
    singleton is reset before and after the test. Variables that a .env file
    loads during the test are removed afterwards as well.
    """
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    for key in _owned_env_keys():
        monkeypatch.delenv(key, raising=False)

    logger.remove()
    clear_config()

    yield

    clear_config()
    for key in _owned_env_keys():
        os.environ.pop(key, None)


@pytest.fixture
def tmp_project(tmp_path: Path) -> Generator[Path, None, None]:
    """
    Create an empty project directory and make it the working directory.

    Commands resolve the project root from the working directory, so a
    test using this fixture reads and writes only under tmp_path/project.

    Yields:
        Path: Path to the temporary project directory

    Example:
        def test_creates_ticket(tmp_project):
            create_ticket("Fix bug", "details")
            assert (tmp_project / "tickets").is_dir()
    """
    project = tmp_path / "project"
    project.mkdir()

    original_cwd = Path.cwd()
    os.chdir(project)

    yield project

    os.chdir(original_cwd)


@pytest.fixture
def memory_store() -> InMemoryStore:
    """A fresh dictionary-backed store."""
    return InMemoryStore()


@pytest.fixture
def cli_runner() -> CliRunner:
    """
    Create a Typer CLI test runner.

    Returns:
        CliRunner: Typer test runner for CLI testing

    Example:
        def test_cli_command(cli_runner, tmp_project):
            result = cli_runner.invoke(app, ["create-prd", "Search"])
            assert result.exit_code == 0
    """
    return CliRunner()


@pytest.fixture
def captured_console(monkeypatch) -> Generator[StringIO, None, None]:
    """
    Redirect the PM-Flow console singleton into a buffer.

    Yields:
        StringIO: Everything printed through pmflow.utils.console.console
    """
    from pmflow.utils.console import console

    buffer = StringIO()
    test_console = Console(
        file=buffer,
        force_terminal=False,
        width=160,
        theme=pmflow_theme,
    )
    monkeypatch.setattr(console, "_console", test_console)
    yield buffer


def make_document(
    entity_id: str,
    title: str,
    status_lines: Tuple[str, ...] = ("- [x] Not Started", "- [ ] In Progress", "- [ ] Review", "- [ ] Complete"),
    priority: str = "🟡 Medium",
    extra: str = "",
    created: str = "2026-01-15",
) -> str:
    """Hand-written entity markdown for parser and store tests."""
    status = "\n".join(status_lines)
    return (
        f"# {entity_id}: {title}\n"
        "\n"
        "## Created\n"
        f"📅 {created}\n"
        "\n"
        "## Status\n"
        f"{status}\n"
        "\n"
        "## Priority\n"
        f"{priority}\n"
        f"{extra}"
    )


@pytest.fixture
def ticket_text() -> str:
    """A well-formed Not Started ticket."""
    return make_document(
        "TICKET-001",
        "Fix login bug",
        extra="\n## Description\nUsers cannot log in with SSO.\n",
    )


def add_ticket(store: Any, number: int, title: str, status: str = "Not Started", priority: str = "Medium") -> None:
    """Write a ticket with the given status into a store."""
    labels = ("Not Started", "In Progress", "Review", "Complete")
    lines = tuple(f"- [{'x' if label == status else ' '}] {label}" for label in labels)
    text = make_document(
        f"TICKET-{number:03d}",
        title,
        status_lines=lines,
        priority=priority,
        extra="\n## Description\nSomething to do.\n",
    )
    slug = title.lower().replace(" ", "-")
    store.write_entity(EntityKind.TICKET, f"TICKET-{number:03d}-{slug}.md", text)

"""
PM-Flow CLI - markdown-native PM workflow.

Main entry point. Every command lazily imports its handler from
pmflow.cli.commands and runs it under handle_errors.
"""

from __future__ import annotations

import os
import sys
import traceback
from typing import Any, Optional

import typer

from pmflow import __version__
from pmflow.cli.decorators import handle_errors
from pmflow.config import get_config_safe
from pmflow.entities.models import EntityKind
from pmflow.exceptions import ConfigError
from pmflow.utils.console import console
from pmflow.utils.logger import get_logger, setup_logging


app = typer.Typer(
    name="pmflow",
    help="📋 PM-Flow: tickets, stories, PRDs and issues as markdown files",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
    context_settings={
        "help_option_names": ["-h", "--help"],
    },
)


def initialize_logging() -> None:
    """Initialize logging system early in the application lifecycle."""
    try:
        config = get_config_safe()
    except ConfigError:
        # Config problems are reported by the command that needs the config
        setup_logging(None)
        return
    setup_logging(config)


def handle_debug_mode() -> None:
    """Switch to DEBUG logging when PMFLOW_DEBUG is set."""
    if not os.getenv("PMFLOW_DEBUG"):
        return
    console.info("Debug mode enabled", emoji=True)
    try:
        config = get_config_safe()
    except ConfigError:
        setup_logging(None)
        return
    config.app.debug = True
    setup_logging(config)


def global_exception_handler(exc_type: type, exc_value: BaseException, exc_tb: Any) -> None:
    """
    Log an uncaught exception and print a one-line error.

    The full traceback is shown only in debug mode.
    """
    logger = get_logger(__name__)

    if isinstance(exc_value, KeyboardInterrupt):
        logger.info("Interrupted by user")
        console.print("\n👋 Goodbye!")
        sys.exit(0)

    if hasattr(exc_value, 'exit_code'):
        sys.exit(getattr(exc_value, 'exit_code', 1))

    error_title = f"Unexpected Error: {exc_type.__name__}"
    error_message = str(exc_value) or "An unexpected error occurred"

    logger.exception(
        f"Uncaught exception: {error_title}",
        extra={
            'error_type': exc_type.__name__,
            'error_message': error_message,
        }
    )

    console.error(f"{error_title}: {error_message}")

    if os.getenv("PMFLOW_DEBUG"):
        console.print("\n[dim]Full traceback (debug mode):[/dim]")
        traceback.print_exception(exc_type, exc_value, exc_tb)
    else:
        console.info("Run with --debug for full traceback", emoji=False)

    sys.exit(1)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", "-V", help="Show version and exit"
    ),
    debug: bool = typer.Option(
        False, "--debug", help="Enable debug logging and full tracebacks"
    ),
) -> None:
    """
    📋 [bold]PM-Flow[/bold]: project management in plain markdown.

    Tickets, stories, PRDs and issues live as markdown files in your
    repository. Run [bold]pmflow init[/bold] to get started.
    """
    logger = get_logger(__name__)

    if version:
        console.print(f"PM-Flow version [bold]{__version__}[/bold]")
        raise typer.Exit()

    if debug:
        os.environ["PMFLOW_DEBUG"] = "1"
        logger.debug("Debug mode enabled via CLI flag")

    handle_debug_mode()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


# --- create ---------------------------------------------------------------

@app.command("create-prd")
@handle_errors
def create_prd_command(
    title: Optional[str] = typer.Argument(None, help="PRD title", metavar="TITLE"),
) -> None:
    """📄 Create a PRD in docs/prd/active."""
    from pmflow.cli.commands.create import create_prd
    create_prd(title)


@app.command("create-ticket")
@handle_errors
def create_ticket_command(
    title: Optional[str] = typer.Argument(None, help="Ticket title", metavar="TITLE"),
    description: Optional[str] = typer.Argument(None, help="What needs doing", metavar="DESCRIPTION"),
    priority: Optional[str] = typer.Argument(
        None, help="Low, Medium, High or Critical (default Medium)", metavar="PRIORITY"
    ),
) -> None:
    """🎫 Create a ticket in tickets/."""
    from pmflow.cli.commands.create import create_ticket
    create_ticket(title, description, priority)


@app.command("create-issue")
@handle_errors
def create_issue_command(
    title: Optional[str] = typer.Argument(None, help="Issue title", metavar="TITLE"),
    description: Optional[str] = typer.Argument(None, help="What goes wrong", metavar="DESCRIPTION"),
    severity: Optional[str] = typer.Argument(
        None, help="Low, Medium, High or Critical (default Medium)", metavar="SEVERITY"
    ),
) -> None:
    """🐛 Create an issue in issues/."""
    from pmflow.cli.commands.create import create_issue
    create_issue(title, description, severity)


@app.command("generate-stories")
@handle_errors
def generate_stories_command(
    prd_id: Optional[str] = typer.Argument(None, help="PRD to read stories from", metavar="PRD-ID"),
) -> None:
    """📚 Create story files from the story blocks of a PRD."""
    from pmflow.cli.commands.generate import generate_stories
    generate_stories(prd_id)


# --- list -----------------------------------------------------------------

def _list(kind: EntityKind, archived: bool) -> None:
    from pmflow.cli.commands.listing import list_entities
    list_entities(kind, include_archived=archived)


_ARCHIVED_OPTION = typer.Option(False, "--archived", "-a", help="Include archived entries")


@app.command("list-tickets")
@handle_errors
def list_tickets_command(archived: bool = _ARCHIVED_OPTION) -> None:
    """🎫 List tickets."""
    _list(EntityKind.TICKET, archived)


@app.command("list-stories")
@handle_errors
def list_stories_command(archived: bool = _ARCHIVED_OPTION) -> None:
    """📚 List stories."""
    _list(EntityKind.STORY, archived)


@app.command("list-issues")
@handle_errors
def list_issues_command(archived: bool = _ARCHIVED_OPTION) -> None:
    """🐛 List issues."""
    _list(EntityKind.ISSUE, archived)


@app.command("list-prds")
@handle_errors
def list_prds_command(archived: bool = _ARCHIVED_OPTION) -> None:
    """📄 List PRDs."""
    _list(EntityKind.PRD, archived)


# --- transitions ----------------------------------------------------------

@app.command("pick-ticket")
@handle_errors
def pick_ticket_command(
    ticket: Optional[str] = typer.Option(None, "--ticket", "-t", help="Ticket to start, e.g. TICKET-001"),
) -> None:
    """▶️  Move a ticket to In Progress (prompts when --ticket is omitted)."""
    from pmflow.cli.commands.pick import pick_ticket
    pick_ticket(ticket)


@app.command("pick-story")
@handle_errors
def pick_story_command(
    story: Optional[str] = typer.Option(None, "--story", "-s", help="Story to start, e.g. STORY-001"),
) -> None:
    """▶️  Start a story and open a ticket for it (prompts when --story is omitted)."""
    from pmflow.cli.commands.pick import pick_story
    pick_story(story)


@app.command("update-ticket")
@handle_errors
def update_ticket_command(
    ticket_id: Optional[str] = typer.Option(None, "--id", help="Ticket to update"),
    status: Optional[str] = typer.Option(None, "--status", help="New status"),
    name: Optional[str] = typer.Option(None, "--name", help="New title"),
    description: Optional[str] = typer.Option(None, "--description", help="New description"),
    new_id: Optional[str] = typer.Option(None, "--newid", help="Re-number the ticket"),
) -> None:
    """✏️  Change a ticket's status, title, description or ID."""
    from pmflow.cli.commands.update import update_ticket
    update_ticket(ticket_id, status=status, name=name, description=description, new_id=new_id)


@app.command("update-prd-status")
@handle_errors
def update_prd_status_command(
    prd_id: Optional[str] = typer.Argument(None, metavar="PRD-ID"),
    status: Optional[str] = typer.Argument(None, metavar="STATUS"),
) -> None:
    """📄 Set a PRD's status."""
    from pmflow.cli.commands.update import update_prd_status
    update_prd_status(prd_id, status)


@app.command("archive-prd")
@handle_errors
def archive_prd_command(
    prd_id: Optional[str] = typer.Argument(None, metavar="PRD-ID"),
) -> None:
    """📦 Move a PRD to docs/prd/archive."""
    from pmflow.cli.commands.update import archive_prd
    archive_prd(prd_id)


# --- reports --------------------------------------------------------------

@app.command("status-report")
@handle_errors
def status_report_command() -> None:
    """📊 Totals, status breakdown and completion per kind."""
    from pmflow.cli.commands.report import status_report
    status_report()


@app.command("sprint-report")
@handle_errors
def sprint_report_command(
    save: bool = typer.Option(True, "--save/--no-save", help="Write the report to the reports directory"),
) -> None:
    """🏃 Sprint summary with git activity and recommendations."""
    from pmflow.cli.commands.report import sprint_report
    sprint_report(save=save)


# --- maintenance ----------------------------------------------------------

@app.command("clear-tickets")
@handle_errors
def clear_tickets_command(
    target: Optional[str] = typer.Argument(None, help="Ticket ID or ALL", metavar="TICKET-ID|ALL"),
    archive: bool = typer.Option(False, "--archive", help="Move to tickets/archive instead of deleting"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
) -> None:
    """🧹 Delete or archive tickets."""
    from pmflow.cli.commands.clear import clear_tickets
    clear_tickets(target, archive=archive, yes=yes)


@app.command("validate")
@handle_errors
def validate_command() -> None:
    """🔍 Check every document for required sections and a single status."""
    from pmflow.cli.commands.validate import validate_documents
    if validate_documents():
        raise typer.Exit(1)


@app.command("init")
@handle_errors
def init_command(
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite config and templates"),
) -> None:
    """🏗️ Create the PM-Flow directories, config and templates."""
    logger = get_logger(__name__)
    logger.info("Initializing PM-Flow", extra={'force': force})
    from pmflow.cli.commands.init import init_project
    init_project(force=force)


def setup_exception_handling() -> None:
    """Install global exception handler."""
    sys.excepthook = global_exception_handler


def cli_main() -> None:
    """Main CLI entry point with exception handling and logging."""
    initialize_logging()
    logger = get_logger(__name__)

    logger.debug("Starting PM-Flow CLI", extra={
        'python_version': sys.version,
        'argv': sys.argv,
    })

    setup_exception_handling()

    try:
        app()
    finally:
        logger.debug("PM-Flow CLI session ended")


if __name__ == "__main__":
    cli_main()

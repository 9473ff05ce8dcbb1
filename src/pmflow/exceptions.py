"""
PM-Flow Exception Hierarchy.

Every user-visible failure is a PMFlowError that knows how to render itself
as a Rich panel. Commands recover from usage and lookup errors and abort on
rendering failures.
"""

from typing import Any, Iterable, Optional

from rich.panel import Panel
from rich.text import Text

from pmflow.utils.console import console


class PMFlowError(Exception):
    """
    Base exception for all PM-Flow errors.

    Provides error formatting with Rich panels.
    """

    # Process exit code when the error reaches the command boundary
    exit_code: int = 1

    def __init__(
        self,
        message: str,
        suggestion: Optional[str] = None,
        context: Optional[dict[str, Any]] = None
    ):
        """
        Initialize PM-Flow exception.

        Args:
            message: The error message
            suggestion: Optional helpful suggestion for fixing the error
            context: Optional context data for debugging
        """
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion
        self.context = context or {}

    def display(self) -> None:
        """Display the error in the console."""
        error_text = Text(self.message, style="bold red")

        if self.suggestion:
            error_text.append("\n\n💡 ", style="yellow")
            error_text.append(self.suggestion, style="italic yellow")

        panel = Panel(
            error_text,
            title="❌ Error",
            title_align="left",
            border_style="red",
            padding=(1, 2)
        )
        console.print(panel)


class ConfigError(PMFlowError):
    """Raised when there's a configuration issue."""

    def __init__(self, message: str, suggestion: Optional[str] = None):
        if not suggestion:
            suggestion = "Check .pmflow.yaml and PMFLOW_* environment variables"
        super().__init__(message, suggestion)


class UsageError(PMFlowError):
    """Raised when a command is invoked with bad or missing arguments."""

    exit_code = 0

    def __init__(self, message: str, usage: Optional[str] = None):
        self.usage = usage
        super().__init__(message, suggestion=f"Usage: {usage}" if usage else None)


class NotFoundError(PMFlowError):
    """Raised when a referenced entity ID does not resolve to a document."""

    exit_code = 0

    def __init__(self, entity_id: str, alternatives: Optional[Iterable[str]] = None):
        self.entity_id = entity_id
        self.alternatives = list(alternatives or [])
        if self.alternatives:
            suggestion = "Available: " + ", ".join(self.alternatives)
        else:
            suggestion = "Nothing to choose from yet"
        super().__init__(
            f"{entity_id} not found",
            suggestion,
            {"entity_id": entity_id},
        )


class TemplateMissingError(PMFlowError):
    """Raised when a required template is absent from the project and the defaults."""

    def __init__(self, name: str, searched: Optional[Iterable[str]] = None):
        self.name = name
        searched_list = list(searched or [])
        suggestion = "Run 'pmflow init' to write the default templates"
        if searched_list:
            suggestion += f" (looked in: {', '.join(searched_list)})"
        super().__init__(f"Template '{name}' not found", suggestion, {"template": name})


class MalformedDocumentError(PMFlowError):
    """
    Raised when a mutation cannot find the section it has to rewrite.

    Extraction never raises this; parsers fall back to default values.
    """

    def __init__(self, message: str, path: Optional[str] = None):
        context = {"path": path} if path else {}
        super().__init__(message, "Check the document's headings", context)


class TransitionBlockedError(PMFlowError):
    """Raised when a transition policy refuses a status change."""

    exit_code = 0

    def __init__(self, entity_id: str, current: str, target: str):
        self.entity_id = entity_id
        self.current = current
        self.target = target
        super().__init__(
            f"{entity_id} is already {current}",
            context={"entity_id": entity_id, "current": current, "target": target},
        )


class EntityExistsError(PMFlowError):
    """Raised when a write would take an ID that is, or was, in use."""

    def __init__(self, entity_id: str, retired: bool = False):
        message = (
            f"{entity_id} belonged to a deleted entity and is retired"
            if retired
            else f"{entity_id} already exists"
        )
        super().__init__(
            message,
            "Pick an unused ID",
            {"entity_id": entity_id, "retired": retired},
        )


class ExternalToolError(PMFlowError):
    """Raised when a wrapped external process fails, times out, or is missing."""

    def __init__(self, tool: str, message: str, returncode: Optional[int] = None):
        self.tool = tool
        self.returncode = returncode
        context = {"tool": tool}
        if returncode is not None:
            context["returncode"] = returncode
        super().__init__(f"{tool}: {message}", context=context)

"""
Rich console singleton and utilities for the PM-Flow CLI.

Provides a centralized console instance with the PM-Flow theme and
helper methods for consistent styling across all commands.
"""

from __future__ import annotations

import os
from typing import Any, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from pmflow.cli.theme import pmflow_theme


class PMFlowConsole:
    """
    Singleton console instance with PM-Flow theming and helper methods.

    Provides consistent styling and utilities for all CLI commands.
    """

    _instance: Optional[PMFlowConsole] = None

    def __new__(cls) -> PMFlowConsole:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self) -> None:
        """Initialize the Rich console with the PM-Flow theme."""
        force_terminal = None
        if os.getenv("PMFLOW_DEBUG"):
            force_terminal = True

        self._console = Console(
            theme=pmflow_theme,
            force_terminal=force_terminal,
            no_color=bool(os.getenv("NO_COLOR")),
            width=None,  # Auto-detect terminal width
        )

    @property
    def console(self) -> Console:
        """Access to the underlying Rich console."""
        return self._console

    def print(self, *args: Any, **kwargs: Any) -> None:
        """Print with themed console."""
        self._console.print(*args, **kwargs)

    def success(self, message: str, emoji: bool = True) -> None:
        """Print a success message with consistent styling."""
        prefix = "✅ " if emoji else ""
        self._console.print(f"{prefix}{message}", style="success.text")

    def error(self, message: str, emoji: bool = True) -> None:
        """Print an error message with consistent styling."""
        prefix = "❌ " if emoji else ""
        self._console.print(f"{prefix}{message}", style="error.text")

    def warning(self, message: str, emoji: bool = True) -> None:
        """Print a warning message with consistent styling."""
        prefix = "⚠️  " if emoji else ""
        self._console.print(f"{prefix}{message}", style="warning.text")

    def info(self, message: str, emoji: bool = True) -> None:
        """Print an info message with consistent styling."""
        prefix = "ℹ️  " if emoji else ""
        self._console.print(f"{prefix}{message}", style="info.text")

    def status_panel(
        self,
        title: str,
        content: Any,
        status: str = "info",
        emoji: str = "",
    ) -> None:
        """
        Display a status panel with consistent styling.

        Args:
            title: Panel title
            content: Panel content (string or any Rich renderable)
            status: Status type (success, warning, error, info)
            emoji: Optional emoji for the title
        """
        title_text = f"{emoji} {title}" if emoji else title

        panel = Panel(
            content,
            title=title_text,
            title_align="left",
            border_style=f"{status}.text" if status != "info" else "panel.border",
            padding=(1, 2),
        )
        self._console.print(panel)

    def create_table(self, title: str, *columns: str) -> Table:
        """
        Create a themed table with the given column headers.

        Args:
            title: Table title
            columns: Column header names

        Returns:
            Table ready for add_row()
        """
        table = Table(
            title=title,
            header_style="table.header",
            border_style="table.border",
            title_justify="left",
        )
        for column in columns:
            table.add_column(column)
        return table

    def command_help_panel(
        self,
        command: str,
        description: str,
        examples: list[str],
    ) -> None:
        """
        Display a help panel for a command.

        Args:
            command: Command name
            description: Command description
            examples: List of usage examples
        """
        content = Text()
        content.append(description + "\n\n", style="dim")

        if examples:
            content.append("Examples:\n", style="help.option")
            for example in examples:
                content.append(f"  {example}\n", style="help.example")

        panel = Panel(
            content,
            title=f"🚀 {command}",
            title_align="left",
            border_style="panel.border",
            padding=(1, 2),
        )
        self._console.print(panel)


# Global console instance
console = PMFlowConsole()

__all__ = ["console", "PMFlowConsole"]

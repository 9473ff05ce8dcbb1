"""
PM-Flow Logging Infrastructure using loguru with Rich integration.

Console output goes to stderr through a Rich console so it never mixes with
command output; a JSON-serialized rotating log file under .pmflow/logs keeps
the full DEBUG trail of every mutation.
"""

from __future__ import annotations

import os
import time
from pathlib import Path
from typing import Any, Dict, Optional, TYPE_CHECKING

from loguru import logger
from rich.console import Console
from rich.highlighter import Highlighter
from rich.markup import escape
from rich.text import Text

if TYPE_CHECKING:
    from pmflow.config.models import Config


def _get_log_level_colors() -> Dict[str, str]:
    """Get log level colors with lazy import to avoid circular dependency."""
    from pmflow.cli.theme import SUCCESS, WARNING, ERROR, INFO, MUTED

    return {
        "TRACE": MUTED,
        "DEBUG": MUTED,
        "INFO": INFO,
        "SUCCESS": SUCCESS,
        "WARNING": WARNING,
        "ERROR": ERROR,
        "CRITICAL": ERROR,
    }


class RichLogHighlighter(Highlighter):
    """Highlighter for console logs: entity IDs, file paths, durations."""

    def highlight(self, text: Text) -> None:
        """Apply highlighting to log text based on content."""
        from pmflow.cli.theme import ACCENT, SUCCESS, WARNING, ERROR, MUTED

        text.highlight_regex(r'\b(ERROR|FAILED|EXCEPTION)\b', f"bold {ERROR}")
        text.highlight_regex(r'\b(WARNING|WARN)\b', f"bold {WARNING}")

        # Entity identifiers
        text.highlight_regex(r'\b(TICKET|STORY|PRD|BUG)-\d+\b', f"bold {ACCENT}")

        # File paths
        text.highlight_regex(r'[/\\][\w/\\.-]+\.[a-zA-Z]+', f"dim {MUTED}")

        # Durations
        text.highlight_regex(r'\d+\.?\d*\s?(ms|s|sec|seconds?)\b', f"italic {SUCCESS}")


def console_formatter(record: Dict[str, Any]) -> str:
    """
    Format log records for Rich console output.

    Returns a loguru format template, so literal braces are doubled.

    Args:
        record: Log record dictionary

    Returns:
        Format template for the console sink
    """
    from pmflow.cli.theme import INFO
    log_level_colors = _get_log_level_colors()
    level_color = log_level_colors.get(record['level'].name, INFO)

    time_str = record['time'].strftime('%H:%M:%S')
    level_str = f"{record['level'].name:<8}"

    logger_name = record['extra'].get('name', record['name']) or ''
    if logger_name.startswith('pmflow.'):
        logger_name = logger_name[len('pmflow.'):]
    logger_str = f"{logger_name:<20}"

    parts = [
        f"[dim]{time_str}[/dim]",
        f"[bold {level_color}]{level_str}[/bold {level_color}]",
        f"[dim]{escape(logger_str)}[/dim]",
        escape(record['message']),
    ]

    context_parts = [
        f"{key}={value}"
        for key, value in record['extra'].items()
        if key not in ('name', 'duration_ms')
    ]
    if 'duration_ms' in record['extra']:
        context_parts.append(f"{record['extra']['duration_ms']}ms")
    if context_parts:
        parts.append(f"[dim]({escape(', '.join(context_parts))})[/dim]")

    line = " | ".join(parts)
    return line.replace("{", "{{").replace("}", "}}")


def setup_logging(config: Optional[Config] = None) -> None:
    """
    Setup loguru with Rich console output and JSON file logging.

    Args:
        config: PM-Flow configuration object. If None, uses environment variables
    """
    logger.remove()

    if config:
        log_level = config.app.log_level
        debug_mode = config.app.debug
        no_color = config.app.no_color
        log_to_file = config.app.log_to_file
        project_root = config.project_root
    else:
        log_level = os.getenv('PMFLOW_LOG_LEVEL', 'WARNING').upper()
        debug_mode = os.getenv('PMFLOW_DEBUG', '').lower() in ('1', 'true', 'yes', 'on')
        no_color = bool(os.getenv('NO_COLOR'))
        log_to_file = False
        project_root = Path.cwd()

    if debug_mode:
        log_level = 'DEBUG'

    console = Console(
        stderr=True,
        no_color=no_color,
        highlighter=RichLogHighlighter() if not no_color else None,
        width=None,
    )

    def console_sink(message: str) -> None:
        """Rich console sink function."""
        console.print(message.rstrip("\n"), highlight=not no_color, markup=True)

    logger.add(
        console_sink,
        format=console_formatter,
        level=log_level,
        colorize=False,  # Colors are handled by Rich markup
        backtrace=debug_mode,
        diagnose=debug_mode,
    )

    if not log_to_file:
        return

    log_dir = project_root / '.pmflow' / 'logs'
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / 'pmflow.log'

    logger.add(
        log_file,
        format="{message}",
        serialize=True,
        level='DEBUG',  # Always log everything to file
        rotation='10 MB',
        retention='7 days',
        compression='gz',
        backtrace=True,
        diagnose=debug_mode,
    )

    logger.bind(name=__name__).debug(
        "PM-Flow logging initialized",
    )


def get_logger(name: str) -> "LoggerAdapter":
    """
    Get a logger instance for the given module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        LoggerAdapter instance with context support
    """
    return LoggerAdapter(logger.bind(name=name), name)


class LoggerAdapter:
    """
    Adapter that provides context binding and timing on top of loguru.

    Keyword arguments given to the level methods are bound as structured
    context instead of being used to format the message, so entity titles
    containing braces are logged verbatim.
    """

    def __init__(self, logger_instance: Any, name: str):
        self._logger = logger_instance
        self.name = name

    def bind(self, **kwargs: Any) -> "LoggerAdapter":
        """Bind additional context to the logger."""
        return LoggerAdapter(self._logger.bind(**kwargs), self.name)

    def _log(self, level: str, message: str, kwargs: Dict[str, Any]) -> None:
        extra = kwargs.pop('extra', None) or {}
        bound = self._logger.bind(**extra, **kwargs) if (extra or kwargs) else self._logger
        bound.opt(depth=2).log(level, message)

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message."""
        self._log("DEBUG", message, kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info message."""
        self._log("INFO", message, kwargs)

    def success(self, message: str, **kwargs: Any) -> None:
        """Log success message."""
        self._log("SUCCESS", message, kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log warning message."""
        self._log("WARNING", message, kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        """Log error message."""
        self._log("ERROR", message, kwargs)

    def critical(self, message: str, **kwargs: Any) -> None:
        """Log critical message."""
        self._log("CRITICAL", message, kwargs)

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log exception with traceback."""
        extra = kwargs.pop('extra', None) or {}
        self._logger.bind(**extra, **kwargs).opt(exception=True, depth=1).error(message)

    def time_operation(self, operation: str) -> "TimedOperation":
        """Create a context manager that times an operation."""
        return TimedOperation(self, operation)


class TimedOperation:
    """Context manager for timing operations and logging the results."""

    def __init__(self, logger_adapter: LoggerAdapter, operation: str):
        self.logger = logger_adapter
        self.operation = operation
        self.start_time: Optional[float] = None

    def __enter__(self) -> "TimedOperation":
        """Start timing the operation."""
        self.start_time = time.perf_counter()
        self.logger.debug(f"Starting {self.operation}")
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """End timing and log the result."""
        if self.start_time is None:
            return
        duration_ms = round((time.perf_counter() - self.start_time) * 1000, 2)

        if exc_type is None:
            self.logger.debug(
                f"Completed {self.operation}",
                extra={'duration_ms': duration_ms}
            )
        else:
            self.logger.error(
                f"Failed {self.operation}: {exc_val}",
                extra={'duration_ms': duration_ms}
            )


__all__ = [
    'setup_logging',
    'get_logger',
    'LoggerAdapter',
    'TimedOperation',
    'RichLogHighlighter',
]

"""
Command decorators.

handle_errors maps PMFlowError subclasses to console output and exit codes
at the command boundary, so command bodies can simply raise.
"""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable, TypeVar

import typer
from rich.markup import escape

from pmflow.exceptions import (
    NotFoundError,
    PMFlowError,
    TransitionBlockedError,
    UsageError,
)
from pmflow.utils.console import console
from pmflow.utils.logger import get_logger

F = TypeVar('F', bound=Callable[..., Any])


def handle_errors(func: F) -> F:
    """
    Report PM-Flow errors raised by a command and set the exit code.

    Usage errors, unknown IDs and blocked transitions are recoverable: a
    message is printed and the command exits 0 with nothing changed. Every
    other PMFlowError is shown as an error panel and exits with its
    exit_code. Unexpected exceptions propagate to the global handler.
    """
    func_logger = get_logger(func.__module__)

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except TransitionBlockedError as e:
            func_logger.warning(f"Blocked transition: {e.message}", **e.context)
            console.warning(f"{escape(e.message)}; nothing changed")
        except UsageError as e:
            func_logger.debug(f"Usage error in {func.__name__}: {e.message}")
            console.error(escape(e.message))
            if e.usage:
                console.print(f"[dim]Usage:[/dim] {escape(e.usage)}")
        except NotFoundError as e:
            func_logger.info(f"Not found: {e.entity_id}")
            e.display()
        except PMFlowError as e:
            func_logger.error(
                f"{func.__name__} failed: {e.message}",
                error_type=type(e).__name__,
            )
            e.display()
            if e.exit_code:
                raise typer.Exit(e.exit_code)
        return None

    return wrapper  # type: ignore[return-value]


__all__ = ["handle_errors"]

"""
PM-Flow Utilities.

Console output, logging and filesystem helpers shared by every command.
"""

from .console import console, PMFlowConsole
from .logger import setup_logging, get_logger, LoggerAdapter

__all__ = [
    # Console
    'console',
    'PMFlowConsole',

    # Logging
    'setup_logging',
    'get_logger',
    'LoggerAdapter',
]

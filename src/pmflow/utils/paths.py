"""
Path utilities for PM-Flow.

Path validation and atomic file writes. Every entity document is
written through safe_write so an interrupted command leaves either the old
or the new document on disk, never a truncated one.
"""

import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from pmflow.exceptions import PMFlowError


class PathSecurityError(PMFlowError):
    """Raised when a path operation would violate security constraints."""

    def __init__(self, message: str, path: Optional[Path] = None):
        suggestion = "Ensure paths stay within the project and contain no null bytes"
        context = {"path": str(path)} if path else {}
        super().__init__(message, suggestion, context)


class PathOperationError(PMFlowError):
    """Raised when a path operation fails."""

    def __init__(self, message: str, path: Optional[Path] = None):
        suggestion = "Check file permissions and disk space"
        context = {"path": str(path)} if path else {}
        super().__init__(message, suggestion, context)


def validate_path(path: Path, base_dir: Optional[Path] = None) -> None:
    """
    Reject paths with null bytes or, when base_dir is given, paths outside it.

    Args:
        path: Path to validate
        base_dir: Optional base directory to enforce boundaries

    Raises:
        PathSecurityError: If path validation fails
    """
    if "\x00" in str(path):
        raise PathSecurityError("Path contains null bytes", path)

    if base_dir is not None:
        try:
            path.resolve().relative_to(base_dir.resolve())
        except ValueError:
            raise PathSecurityError(f"Path escapes base directory: {path}", path)


def ensure_directory(directory: Path, parents: bool = True, mode: int = 0o755) -> bool:
    """
    Create a directory if needed.

    Args:
        directory: Path to directory to create
        parents: Create parent directories if needed
        mode: Unix permissions for the directory

    Returns:
        True if directory was created, False if it already existed

    Raises:
        PathOperationError: If creation fails
    """
    validate_path(directory)

    if directory.is_dir():
        return False

    try:
        directory.mkdir(parents=parents, exist_ok=True, mode=mode)
    except PermissionError as e:
        raise PathOperationError(
            f"Permission denied creating directory: {directory}",
            directory
        ) from e
    except OSError as e:
        raise PathOperationError(
            f"Failed to create directory: {directory} - {e}",
            directory
        ) from e

    if not directory.is_dir():
        raise PathOperationError(
            f"Path exists but is not a directory: {directory}",
            directory
        )
    return True


def safe_write(
    file_path: Path,
    content: Union[str, bytes],
    encoding: str = "utf-8",
) -> None:
    """
    Atomic file write: temporary file in the same directory, then rename.

    Args:
        file_path: Path to file to write
        content: Content to write (str or bytes)
        encoding: Text encoding (ignored for bytes)

    Raises:
        PathOperationError: If write fails
        PathSecurityError: If path validation fails
    """
    validate_path(file_path)
    ensure_directory(file_path.parent)

    is_binary = isinstance(content, bytes)
    temp_path: Optional[Path] = None

    try:
        temp_fd, temp_name = tempfile.mkstemp(
            dir=file_path.parent,
            prefix=f".{file_path.name}.",
            suffix=".tmp"
        )
        temp_path = Path(temp_name)

        if is_binary:
            with os.fdopen(temp_fd, "wb") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
        else:
            # newline="" keeps the document's own line endings byte-identical
            with os.fdopen(temp_fd, "w", encoding=encoding, newline="") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())

        temp_path.replace(file_path)

    except OSError as e:
        if temp_path and temp_path.exists():
            temp_path.unlink()
        raise PathOperationError(
            f"Failed to write file: {file_path} - {e}",
            file_path
        ) from e


def safe_read(
    file_path: Path,
    encoding: str = "utf-8",
    default: Optional[str] = None
) -> Optional[str]:
    """
    Read a text file, returning default when it does not exist.

    Args:
        file_path: Path to file to read
        encoding: Text encoding
        default: Default value if file doesn't exist

    Returns:
        File contents or default value

    Raises:
        PathOperationError: If read fails (except FileNotFoundError)
    """
    validate_path(file_path)

    try:
        with open(file_path, "r", encoding=encoding, newline="") as f:
            return f.read()
    except FileNotFoundError:
        return default
    except PermissionError as e:
        raise PathOperationError(
            f"Permission denied reading file: {file_path}",
            file_path
        ) from e
    except OSError as e:
        raise PathOperationError(
            f"Failed to read file: {file_path} - {e}",
            file_path
        ) from e


__all__ = [
    "PathSecurityError",
    "PathOperationError",
    "validate_path",
    "ensure_directory",
    "safe_write",
    "safe_read",
]

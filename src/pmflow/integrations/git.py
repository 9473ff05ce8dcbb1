"""
Read-only git probe for the sprint report.

Each query runs one git subprocess with a timeout. Any failure (git not
installed, not a repository, non-zero exit, timeout) is raised as an
ExternalToolError so the report can show it as a failed step.
"""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

from pmflow.exceptions import ExternalToolError
from pmflow.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 10.0


class GitStatus(BaseModel):
    """Repository metadata included in the sprint report."""

    branch: str
    commit_count: int = Field(0, ge=0)
    has_uncommitted_changes: bool = False
    last_commit: Optional[str] = None


class GitProbe:
    """Runs git commands in a working directory."""

    def __init__(self, cwd: Path, timeout: float = DEFAULT_TIMEOUT):
        self.cwd = cwd
        self.timeout = timeout

    def _run(self, args: List[str]) -> str:
        command = ["git", *args]
        try:
            completed = subprocess.run(
                command,
                cwd=self.cwd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as e:
            raise ExternalToolError("git", "git executable not found") from e
        except subprocess.TimeoutExpired as e:
            raise ExternalToolError("git", f"'{' '.join(command)}' timed out after {self.timeout}s") from e

        if completed.returncode != 0:
            message = completed.stderr.strip() or f"'{' '.join(command)}' failed"
            raise ExternalToolError("git", message, completed.returncode)
        return completed.stdout.strip()

    def current_branch(self) -> str:
        return self._run(["rev-parse", "--abbrev-ref", "HEAD"])

    def commit_count(self) -> int:
        output = self._run(["rev-list", "--count", "HEAD"])
        try:
            return int(output)
        except ValueError as e:
            raise ExternalToolError("git", f"unexpected commit count: {output!r}") from e

    def has_uncommitted_changes(self) -> bool:
        return bool(self._run(["status", "--porcelain"]))

    def last_commit(self) -> Optional[str]:
        return self._run(["log", "-1", "--pretty=format:%h %s"]) or None

    def status(self) -> GitStatus:
        """
        Collect all metadata.

        Raises:
            ExternalToolError: On the first git call that fails
        """
        with logger.time_operation("git status probe"):
            return GitStatus(
                branch=self.current_branch(),
                commit_count=self.commit_count(),
                has_uncommitted_changes=self.has_uncommitted_changes(),
                last_commit=self.last_commit(),
            )


__all__ = ["GitStatus", "GitProbe", "DEFAULT_TIMEOUT"]

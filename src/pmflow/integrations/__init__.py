"""External tools PM-Flow reads from."""

from .git import GitProbe, GitStatus

__all__ = ["GitProbe", "GitStatus"]

"""Result types returned by the external tool wrappers."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class CommandResult:
    """Exit status and captured output of one tool invocation."""

    success: bool
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0

    @property
    def output(self) -> str:
        """Combined stdout and stderr, for error reporting."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


@dataclass(frozen=True)
class GitStatus:
    """State of the git checkout a release is tagged from.

    Attributes:
        is_git_repo: Whether the project root is inside a git work tree
        is_clean: Whether ``git status --porcelain`` reported nothing
        branch: Checked out branch, ``HEAD`` when detached, or None
    """

    is_git_repo: bool
    is_clean: bool
    branch: str | None

"""Git operations used to record a release.

A release commits the VERSION file and adds an annotated ``v<version>`` tag.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from .types import CommandResult, GitStatus

if TYPE_CHECKING:
    from .runner import CommandRunner


class GitCommands:
    """Git commands run from the project root."""

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    def get_status(self) -> GitStatus:
        """Inspect the working tree the release will be tagged from."""
        inside = self._runner.run(["git", "rev-parse", "--is-inside-work-tree"])
        if not inside.success or inside.stdout.strip() != "true":
            return GitStatus(is_git_repo=False, is_clean=False, branch=None)

        porcelain = self._runner.run(["git", "status", "--porcelain"])
        head = self._runner.run(["git", "rev-parse", "--abbrev-ref", "HEAD"])
        branch = head.stdout.strip() if head.success else ""
        return GitStatus(
            is_git_repo=True,
            is_clean=porcelain.success and not porcelain.stdout.strip(),
            branch=branch or None,
        )

    def tag_exists(self, name: str) -> bool:
        result = self._runner.run(
            ["git", "rev-parse", "--quiet", "--verify", f"refs/tags/{name}"]
        )
        return result.success

    def add(self, *paths: Path) -> CommandResult:
        return self._runner.run(["git", "add", *(str(p) for p in paths)])

    def commit(self, message: str) -> CommandResult:
        return self._runner.run(["git", "commit", "-m", message])

    def tag(self, name: str, message: str) -> CommandResult:
        """Create an annotated tag at HEAD."""
        return self._runner.run(["git", "tag", "-a", name, "-m", message])

"""Kustomize command abstractions."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from .types import CommandResult

if TYPE_CHECKING:
    from .runner import CommandRunner


class KustomizeCommands:
    """Kustomize-related shell commands."""

    def __init__(self, runner: CommandRunner) -> None:
        """Initialize kustomize commands.

        Args:
            runner: Command runner for executing shell commands
        """
        self._runner = runner

    def build(self, directory: Path) -> CommandResult:
        """Run ``kustomize build`` and return the rendered stream on stdout."""
        return self._runner.run(["kustomize", "build", str(directory)])

    def version(self) -> CommandResult:
        return self._runner.run(["kustomize", "version"])

"""Subprocess execution shared by the helm, kustomize, kubectl and git wrappers."""

from __future__ import annotations

import shutil
import subprocess
from collections.abc import Sequence
from pathlib import Path

from loguru import logger

from .types import CommandResult

# Shell convention for "command not found"
NOT_FOUND_RETURNCODE = 127


class CommandRunner:
    """Runs external tools from the project root and captures their output.

    Failures are returned as unsuccessful ``CommandResult`` values; callers
    decide whether a failure is fatal.
    """

    def __init__(self, project_root: Path) -> None:
        """Initialize the command runner.

        Args:
            project_root: Default working directory for every command
        """
        self.project_root = project_root

    def which(self, tool: str) -> str | None:
        """Return the absolute path of a tool on PATH, or None."""
        return shutil.which(tool)

    def run(
        self,
        cmd: Sequence[str],
        *,
        cwd: Path | None = None,
        capture_output: bool = True,
    ) -> CommandResult:
        """Run a tool to completion.

        A missing executable becomes a failed result with return code 127.

        Args:
            cmd: Executable followed by its arguments
            cwd: Working directory (defaults to project_root)
            capture_output: Capture stdout/stderr instead of inheriting them

        Returns:
            CommandResult describing the exit status and output
        """
        argv = list(cmd)
        logger.debug(f"Running: {' '.join(argv)}")
        try:
            completed = subprocess.run(
                argv,
                cwd=cwd or self.project_root,
                capture_output=capture_output,
                text=True,
                check=False,
            )
        except FileNotFoundError:
            logger.debug(f"Executable not found: {argv[0]}")
            return CommandResult(
                success=False,
                stderr=f"{argv[0]}: command not found",
                returncode=NOT_FOUND_RETURNCODE,
            )

        if completed.returncode != 0:
            logger.debug(f"{argv[0]} exited with {completed.returncode}")
        return CommandResult(
            success=completed.returncode == 0,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
            returncode=completed.returncode,
        )

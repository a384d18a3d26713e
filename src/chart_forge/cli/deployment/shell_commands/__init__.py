"""Shell command abstractions for chart build and release operations.

This package wraps the external tools the build depends on. It is organized
into one module per tool:

- helm: chart rendering, linting, packaging and repository access
- kustomize: overlay builds
- kubectl: client-side validation and live label inspection
- git: release commits and tags

Usage:
    from chart_forge.cli.deployment.shell_commands import ShellCommands

    commands = ShellCommands(project_root=Path("."))
    result = commands.helm.lint(chart_dir)
"""

from collections.abc import Sequence
from pathlib import Path

from chart_forge.core.errors import MissingToolsError

from .git import GitCommands
from .helm import HelmCommands
from .kubectl import KubectlCommands
from .kustomize import KustomizeCommands
from .runner import CommandRunner
from .types import CommandResult, GitStatus


class ShellCommands:
    """Unified interface for all shell command operations.

    Attributes:
        helm: Helm-related commands
        kustomize: Kustomize-related commands
        kubectl: Kubernetes kubectl commands
        git: Git repository commands

    Example:
        >>> commands = ShellCommands(Path("."))
        >>> commands.require_tools(["helm", "kustomize"])
        >>> commands.kustomize.build(Path("overlays/staging"))
    """

    def __init__(self, project_root: Path) -> None:
        """Initialize the shell commands executor.

        Args:
            project_root: Path to the project root directory.
                         Commands will be executed from this directory by default.
        """
        self._project_root = Path(project_root)
        self._runner = CommandRunner(self._project_root)

        self.helm = HelmCommands(self._runner)
        self.kustomize = KustomizeCommands(self._runner)
        self.kubectl = KubectlCommands(self._runner)
        self.git = GitCommands(self._runner)

    @property
    def project_root(self) -> Path:
        """Get the project root path."""
        return self._project_root

    @property
    def runner(self) -> CommandRunner:
        return self._runner

    def missing_tools(self, tools: Sequence[str]) -> list[str]:
        """Return the tools that are not available on PATH."""
        return [tool for tool in tools if self._runner.which(tool) is None]

    def require_tools(self, tools: Sequence[str]) -> None:
        """Ensure every tool is installed.

        Raises:
            MissingToolsError: Listing every tool that is missing
        """
        missing = self.missing_tools(tools)
        if missing:
            raise MissingToolsError(missing)


__all__ = [
    "CommandResult",
    "CommandRunner",
    "GitCommands",
    "GitStatus",
    "HelmCommands",
    "KubectlCommands",
    "KustomizeCommands",
    "ShellCommands",
]

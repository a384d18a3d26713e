"""Helm command abstractions.

This module provides commands for working with Helm charts: rendering,
linting, packaging, dependency management and repository access.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from .types import CommandResult

if TYPE_CHECKING:
    from .runner import CommandRunner


class HelmCommands:
    """Helm-related shell commands.

    Provides operations for:
    - Rendering and linting (template, lint)
    - Packaging (package, dependency update)
    - Repository access (repo add, repo update, pull)
    """

    def __init__(self, runner: CommandRunner) -> None:
        """Initialize Helm commands.

        Args:
            runner: Command runner for executing shell commands
        """
        self._runner = runner

    # =========================================================================
    # Rendering
    # =========================================================================

    def template(
        self,
        release_name: str,
        chart_path: Path,
        *,
        value_files: Sequence[Path] | None = None,
        set_values: Sequence[str] | None = None,
        namespace: str | None = None,
        output_dir: Path | None = None,
        dry_run: bool = False,
    ) -> CommandResult:
        """Render chart templates locally.

        Args:
            release_name: Release name used while rendering
            chart_path: Path to the chart directory
            value_files: Optional values files passed with ``-f``
            set_values: Optional ``key=value`` overrides passed with ``--set``
            namespace: Namespace to render into
            output_dir: Write rendered files here instead of stdout
            dry_run: Pass ``--dry-run`` (server-independent validation)

        Returns:
            CommandResult whose stdout holds the rendered manifests

        Example:
            >>> helm.template("test", Path("build/output/mimir-custom"),
            ...               set_values=["mimir.ingester.replicas=3"])
        """
        cmd = ["helm", "template", release_name, str(chart_path)]
        if namespace:
            cmd.extend(["--namespace", namespace])
        for vf in value_files or []:
            cmd.extend(["-f", str(vf)])
        for sv in set_values or []:
            cmd.extend(["--set", sv])
        if output_dir is not None:
            cmd.extend(["--output-dir", str(output_dir)])
        if dry_run:
            cmd.append("--dry-run")
        return self._runner.run(cmd)

    def lint(
        self, chart_path: Path, *, value_files: Sequence[Path] | None = None
    ) -> CommandResult:
        """Run ``helm lint`` on a chart."""
        cmd = ["helm", "lint", str(chart_path)]
        for vf in value_files or []:
            cmd.extend(["-f", str(vf)])
        return self._runner.run(cmd)

    # =========================================================================
    # Packaging
    # =========================================================================

    def package(self, chart_path: Path, destination: Path) -> CommandResult:
        """Package a chart directory into a ``.tgz`` archive."""
        return self._runner.run(
            ["helm", "package", str(chart_path), "--destination", str(destination)]
        )

    def dependency_update(self, chart_path: Path) -> CommandResult:
        """Update the chart's ``charts/`` directory from Chart.yaml dependencies."""
        return self._runner.run(["helm", "dependency", "update"], cwd=chart_path)

    # =========================================================================
    # Repositories
    # =========================================================================

    def repo_add(
        self, name: str, url: str, *, force_update: bool = True
    ) -> CommandResult:
        """Register a chart repository."""
        cmd = ["helm", "repo", "add", name, url]
        if force_update:
            cmd.append("--force-update")
        return self._runner.run(cmd)

    def repo_update(self) -> CommandResult:
        """Refresh the local cache of every registered repository."""
        return self._runner.run(["helm", "repo", "update"])

    def pull(
        self,
        chart_ref: str,
        version: str,
        destination: Path,
    ) -> CommandResult:
        """Download and unpack a chart.

        Args:
            chart_ref: Chart reference (e.g. ``grafana/mimir-distributed``)
            version: Chart version to fetch
            destination: Directory to unpack into
        """
        cmd = [
            "helm",
            "pull",
            chart_ref,
            "--version",
            version,
            "--untar",
            "--untardir",
            str(destination),
        ]
        return self._runner.run(cmd)

    def version(self) -> CommandResult:
        """Return the short Helm client version."""
        return self._runner.run(["helm", "version", "--short"])

"""Kubectl command abstractions.

This module provides the kubectl operations used while validating
generated manifests and auditing live cluster labels.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

from loguru import logger

from .types import CommandResult

if TYPE_CHECKING:
    from .runner import CommandRunner


class KubectlCommands:
    """Kubectl-related shell commands.

    Provides operations for:
    - Client-side manifest validation (dry-run apply)
    - Listing namespaced resource types
    - Fetching resources as JSON
    """

    def __init__(self, runner: CommandRunner) -> None:
        """Initialize kubectl commands.

        Args:
            runner: Command runner for executing shell commands
        """
        self._runner = runner

    def dry_run_apply(self, manifest: Path) -> CommandResult:
        """Validate a manifest file with ``kubectl apply --dry-run=client``."""
        return self._runner.run(
            ["kubectl", "apply", "--dry-run=client", "-f", str(manifest)]
        )

    def namespaced_resource_types(self) -> list[str]:
        """Return every listable namespaced resource type known to the cluster."""
        result = self._runner.run(
            ["kubectl", "api-resources", "--verbs=list", "--namespaced", "-o", "name"]
        )
        if not result.success:
            return []
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def get_objects(self, resources: list[str], namespace: str) -> list[dict[str, Any]]:
        """Fetch resources of the given types from a namespace.

        Args:
            resources: Resource types (e.g. ``["pods", "configmaps"]``)
            namespace: Kubernetes namespace

        Returns:
            The ``items`` of the returned list, or an empty list on failure
        """
        if not resources:
            return []
        cmd = [
            "kubectl",
            "get",
            ",".join(resources),
            "-n",
            namespace,
            "--ignore-not-found",
            "-o",
            "json",
        ]
        result = self._runner.run(cmd)
        if not result.success or not result.stdout.strip():
            return []

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError:
            logger.debug("kubectl returned invalid JSON")
            return []
        return list(data.get("items", []))

"""Shared fixtures for chart-forge tests."""

from __future__ import annotations

import copy
from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest
import yaml  # type: ignore[import-untyped]

from chart_forge.cli.context import CLIContext
from chart_forge.cli.deployment.shell_commands.types import CommandResult, GitStatus
from chart_forge.infra.constants import ChartConstants, ChartPaths

HARDENED_CONTAINER: dict[str, Any] = {
    "name": "app",
    "image": "grafana/mimir:2.12.0",
    "securityContext": {
        "privileged": False,
        "runAsUser": 10001,
        "readOnlyRootFilesystem": True,
        "allowPrivilegeEscalation": False,
        "capabilities": {"drop": ["ALL"]},
    },
    "resources": {
        "requests": {"cpu": "100m", "memory": "128Mi"},
        "limits": {"cpu": "1", "memory": "512Mi"},
    },
}

HARDENED_POD_SECURITY_CONTEXT: dict[str, Any] = {
    "runAsNonRoot": True,
    "runAsUser": 10001,
    "runAsGroup": 10001,
    "fsGroup": 10001,
}

WorkloadFactory = Callable[..., dict[str, Any]]


def hardened_container(**overrides: Any) -> dict[str, Any]:
    container = copy.deepcopy(HARDENED_CONTAINER)
    container.update(overrides)
    return container


@pytest.fixture
def make_workload() -> WorkloadFactory:
    """Factory for Deployment/StatefulSet manifests, hardened by default."""

    def _make(
        kind: str = "Deployment",
        name: str = "mimir-distributor",
        containers: list[dict[str, Any]] | None = None,
        pod_security_context: dict[str, Any] | None = HARDENED_POD_SECURITY_CONTEXT,
        service_account: str | None = "mimir",
        **pod_fields: Any,
    ) -> dict[str, Any]:
        pod_spec: dict[str, Any] = {
            "containers": containers
            if containers is not None
            else [hardened_container()],
        }
        if pod_security_context is not None:
            pod_spec["securityContext"] = copy.deepcopy(pod_security_context)
        if service_account is not None:
            pod_spec["serviceAccountName"] = service_account
        pod_spec.update(pod_fields)
        return {
            "apiVersion": "apps/v1",
            "kind": kind,
            "metadata": {"name": name},
            "spec": {"template": {"spec": pod_spec}},
        }

    return _make


@pytest.fixture
def hardened_deployment(make_workload: WorkloadFactory) -> dict[str, Any]:
    return make_workload()


@pytest.fixture
def chart_metadata() -> dict[str, Any]:
    return {
        "apiVersion": "v2",
        "name": "mimir-custom",
        "version": "0.1.0",
        "description": "Custom Grafana Mimir chart with kustomizations",
    }


def write_yaml(path: Path, data: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data, sort_keys=False))
    return path


@pytest.fixture
def chart_dir(tmp_path: Path, chart_metadata: dict[str, Any]) -> Path:
    """A minimal chart directory with Chart.yaml, values.yaml and templates/."""
    root = tmp_path / "chart"
    write_yaml(root / "Chart.yaml", chart_metadata)
    write_yaml(
        root / "values.yaml",
        {"mimir": {"structuredConfig": {"common": {"storage": {"backend": "s3"}}}}},
    )
    (root / "templates").mkdir(parents=True)
    (root / "templates" / "deployment.yaml").write_text(
        "apiVersion: apps/v1\n"
        "kind: Deployment\n"
        "metadata:\n"
        "  name: {{ .Release.Name }}-distributor\n"
        "  namespace: {{ .Release.Namespace }}\n"
    )
    return root


@pytest.fixture
def make_container() -> Callable[..., dict[str, Any]]:
    """Factory for hardened containers; keyword overrides replace fields."""
    return hardened_container


@pytest.fixture
def mock_shell_commands() -> MagicMock:
    """Shell commands whose helm and git calls all succeed."""
    commands = MagicMock()
    ok = CommandResult(success=True)
    for name in (
        "lint",
        "template",
        "package",
        "dependency_update",
        "repo_add",
        "repo_update",
        "pull",
    ):
        getattr(commands.helm, name).return_value = ok
    for name in ("add", "commit", "tag"):
        getattr(commands.git, name).return_value = ok
    commands.git.get_status.return_value = GitStatus(
        is_git_repo=True, is_clean=True, branch="main"
    )
    commands.git.tag_exists.return_value = False
    commands.missing_tools.return_value = []
    return commands


@pytest.fixture
def cli_context(tmp_path: Path, mock_shell_commands: MagicMock) -> CLIContext:
    """A CLIContext rooted at tmp_path with mocked console and commands."""
    constants = ChartConstants()
    return CLIContext(
        console=MagicMock(),
        project_root=tmp_path,
        commands=mock_shell_commands,
        constants=constants,
        paths=ChartPaths(tmp_path, constants),
    )

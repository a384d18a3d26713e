"""Custom chart assembly.

Builds the customized chart from the upstream chart plus the contents of the
kustomize directory:

1. Copy the base chart into a fresh output directory
2. Rebrand Chart.yaml and record provenance annotations
3. Deep-merge ``values-override.yaml`` onto ``values.yaml``
4. Run rendered templates through ``kustomization.yaml``
5. Add extra resources from ``resources/``
6. Restore the base templates if nothing was produced
7. Refresh chart dependencies
"""

from __future__ import annotations

import copy
import os
import shutil
import tempfile
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml  # type: ignore[import-untyped]
from loguru import logger

from chart_forge.utils.console_like import ConsoleLike, coalesce_console

from .errors import ChartForgeError, ToolExecutionError
from .manifests import split_manifests

if TYPE_CHECKING:
    from chart_forge.cli.deployment.shell_commands import ShellCommands

BASE_CHART_ANNOTATION = "custom.chart/base-chart"
BASE_VERSION_ANNOTATION = "custom.chart/base-version"
BUILD_DATE_ANNOTATION = "custom.chart/build-date"

VALUES_OVERRIDE_FILE = "values-override.yaml"
KUSTOMIZATION_FILE = "kustomization.yaml"
RESOURCES_DIR = "resources"


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` onto ``base``.

    Nested mappings are merged key by key; for every other type (scalars,
    sequences, null) the override value replaces the base value. Neither
    input is mutated.

    Example:
        >>> deep_merge({"a": {"x": 1, "y": 2}}, {"a": {"y": 3}, "b": [1]})
        {'a': {'x': 1, 'y': 3}, 'b': [1]}
    """
    merged: dict[str, Any] = copy.deepcopy(dict(base))
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _utc_timestamp(now: datetime) -> str:
    return now.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _read_yaml(path: Path) -> dict[str, Any]:
    with open(path) as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}


def _write_yaml(path: Path, data: Mapping[str, Any]) -> None:
    with open(path, "w") as f:
        yaml.safe_dump(dict(data), f, sort_keys=False)


@dataclass
class AssemblySummary:
    """What the assembler did while building a chart."""

    output_dir: Path
    values_merged: bool = False
    kustomized: bool = False
    resource_files: int = 0
    restored_templates: bool = False
    dependencies_updated: bool = False


class ChartAssembler:
    """Builds the customized chart from a base chart and a kustomize directory."""

    def __init__(
        self,
        commands: ShellCommands,
        *,
        chart_name: str = "mimir-custom",
        description: str = "Custom Grafana Mimir chart with kustomizations",
        base_chart_name: str = "mimir-distributed",
        release_name: str = "mimir-base",
        console: ConsoleLike | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the assembler.

        Args:
            commands: Shell command facade (helm and kustomize are used)
            chart_name: Name written into the built Chart.yaml
            description: Description written into the built Chart.yaml
            base_chart_name: Recorded in the base-chart annotation
            release_name: Release name used when rendering for kustomize
            console: Optional console for progress output
            clock: Returns the build timestamp (defaults to now in UTC)
        """
        self.commands = commands
        self.chart_name = chart_name
        self.description = description
        self.base_chart_name = base_chart_name
        self.release_name = release_name
        self.console = coalesce_console(console)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def build(
        self, base_chart_dir: Path, kustomize_dir: Path, output_dir: Path
    ) -> AssemblySummary:
        """Assemble the custom chart into ``output_dir``.

        The output directory is removed first, so repeated builds start clean.

        Raises:
            ChartForgeError: If the base chart directory does not exist
            ToolExecutionError: If helm or kustomize fails
        """
        if not base_chart_dir.is_dir():
            raise ChartForgeError(
                f"Base chart not found: {base_chart_dir}",
                details="Fetch it first with 'chart-forge build --fetch'",
            )

        self.console.info(f"Building custom chart into {output_dir}")
        summary = AssemblySummary(output_dir=output_dir)

        if output_dir.exists():
            shutil.rmtree(output_dir)
        output_dir.mkdir(parents=True)
        shutil.copytree(base_chart_dir, output_dir, dirs_exist_ok=True)

        self._rewrite_chart_metadata(base_chart_dir, output_dir)
        summary.values_merged = self._apply_values_override(kustomize_dir, output_dir)
        summary.kustomized = self._apply_kustomization(kustomize_dir, output_dir)
        summary.resource_files = self._add_resources(kustomize_dir, output_dir)
        summary.restored_templates = self._ensure_templates(
            base_chart_dir, output_dir
        )
        summary.dependencies_updated = self._update_dependencies(output_dir)

        self.console.ok(f"Custom chart build completed: {output_dir}")
        return summary

    # =========================================================================
    # Build steps
    # =========================================================================

    def _rewrite_chart_metadata(self, base_chart_dir: Path, output_dir: Path) -> None:
        chart_yaml = output_dir / "Chart.yaml"
        if not chart_yaml.exists():
            logger.debug(f"No Chart.yaml in {output_dir}, skipping metadata rewrite")
            return

        base_version = _read_yaml(base_chart_dir / "Chart.yaml").get("version")
        chart = _read_yaml(chart_yaml)
        chart["name"] = self.chart_name
        chart["description"] = self.description

        annotations = dict(chart.get("annotations") or {})
        annotations[BASE_CHART_ANNOTATION] = self.base_chart_name
        annotations[BASE_VERSION_ANNOTATION] = str(base_version or "")
        annotations[BUILD_DATE_ANNOTATION] = _utc_timestamp(self._clock())
        chart["annotations"] = annotations

        _write_yaml(chart_yaml, chart)

    def _apply_values_override(self, kustomize_dir: Path, output_dir: Path) -> bool:
        override_file = kustomize_dir / VALUES_OVERRIDE_FILE
        if not override_file.exists():
            return False

        self.console.info("Applying values overrides...")
        values_file = output_dir / "values.yaml"
        base_values = _read_yaml(values_file) if values_file.exists() else {}
        merged = deep_merge(base_values, _read_yaml(override_file))
        _write_yaml(values_file, merged)
        logger.debug(f"Merged {override_file} onto {values_file}")
        self.console.ok("Values overrides applied")
        return True

    def _apply_kustomization(self, kustomize_dir: Path, output_dir: Path) -> bool:
        if not (kustomize_dir / KUSTOMIZATION_FILE).exists():
            return False

        self.console.info("Applying kustomize transformations...")
        with tempfile.TemporaryDirectory(prefix="chart-forge-") as tmp:
            work_dir = Path(tmp)
            rendered_dir = work_dir / "base"
            overlay_dir = work_dir / "kustomize"

            result = self.commands.helm.template(
                self.release_name, output_dir, output_dir=rendered_dir
            )
            if not result.success:
                raise ToolExecutionError(
                    ["helm", "template", self.release_name, str(output_dir)],
                    result.output,
                )

            shutil.copytree(kustomize_dir, overlay_dir)
            kustomization_file = overlay_dir / KUSTOMIZATION_FILE
            kustomization = _read_yaml(kustomization_file)
            resources = list(kustomization.get("resources") or [])
            for rendered in sorted(rendered_dir.rglob("*.yaml")):
                resources.append(os.path.relpath(rendered, overlay_dir))
            kustomization["resources"] = resources
            _write_yaml(kustomization_file, kustomization)

            result = self.commands.kustomize.build(overlay_dir)
            if not result.success:
                raise ToolExecutionError(
                    ["kustomize", "build", str(overlay_dir)], result.output
                )

            templates_dir = output_dir / "templates"
            if templates_dir.exists():
                shutil.rmtree(templates_dir)
            written = split_manifests(result.stdout, templates_dir)

        self.console.ok(f"Kustomize transformations applied ({len(written)} files)")
        return True

    def _add_resources(self, kustomize_dir: Path, output_dir: Path) -> int:
        resources_dir = kustomize_dir / RESOURCES_DIR
        if not resources_dir.is_dir():
            return 0

        self.console.info("Adding additional resources...")
        templates_dir = output_dir / "templates"
        templates_dir.mkdir(parents=True, exist_ok=True)
        count = 0
        for item in sorted(resources_dir.iterdir()):
            if item.is_dir():
                shutil.copytree(item, templates_dir / item.name, dirs_exist_ok=True)
            else:
                shutil.copy2(item, templates_dir / item.name)
            count += 1
        return count

    def _ensure_templates(self, base_chart_dir: Path, output_dir: Path) -> bool:
        templates_dir = output_dir / "templates"
        if templates_dir.is_dir() and any(templates_dir.iterdir()):
            return False

        self.console.warn("No templates found, copying original templates...")
        base_templates = base_chart_dir / "templates"
        if base_templates.is_dir():
            shutil.copytree(base_templates, templates_dir, dirs_exist_ok=True)
        return True

    def _update_dependencies(self, output_dir: Path) -> bool:
        lock_file = output_dir / "Chart.lock"
        if lock_file.exists():
            lock_file.unlink()

        chart_yaml = output_dir / "Chart.yaml"
        if not chart_yaml.exists():
            return False
        dependencies = _read_yaml(chart_yaml).get("dependencies") or []
        if not any(isinstance(d, Mapping) and d.get("name") for d in dependencies):
            return False

        self.console.info("Updating chart dependencies...")
        result = self.commands.helm.dependency_update(output_dir)
        if not result.success:
            raise ToolExecutionError(["helm", "dependency", "update"], result.output)
        return True

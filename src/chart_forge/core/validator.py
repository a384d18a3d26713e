"""Static validation of a chart and its rendered manifests.

Checks chart metadata (required fields, version format), chart structure
(values and templates present) and a few advisory conventions:
- Workload containers without CPU/memory requests or limits
- Hardcoded namespaces in templates
- Missing Mimir storage configuration

ERROR findings fail validation; WARNING findings are reported only.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]
from loguru import logger

from .findings import ManifestRef, ValidationReport, error, warning
from .manifests import RenderedManifestSet, containers

REQUIRED_FIELDS: tuple[str, ...] = ("name", "version", "description")
REQUIRED_COMPONENTS: tuple[str, ...] = ("values.yaml", "templates")
CHART_VERSION_PATTERN = re.compile(r"^\d+\.\d+\.\d+(-.*)?$")
RESOURCE_KEYS: tuple[str, ...] = ("cpu", "memory")


def validate(
    manifest_set: RenderedManifestSet,
    chart_metadata: Mapping[str, Any],
    *,
    chart_components: Iterable[str] | None = None,
    values: Mapping[str, Any] | None = None,
    templates: Mapping[str, str] | None = None,
) -> ValidationReport:
    """Validate chart metadata, structure and rendered manifests.

    Args:
        manifest_set: Rendered manifests of the chart
        chart_metadata: Parsed Chart.yaml
        chart_components: Names of the files/directories present in the chart
            root. When None, the structure check is skipped.
        values: Parsed values.yaml, enables the storage configuration check
        templates: Template file name -> raw content, enables the namespace check

    Returns:
        ValidationReport; ``passed`` is False iff any ERROR finding exists
    """
    report = ValidationReport()

    _check_required_fields(chart_metadata, report)
    _check_version_format(chart_metadata, report)
    if chart_components is not None:
        _check_chart_components(set(chart_components), report)
    _check_resource_specs(manifest_set, report)
    if templates is not None:
        _check_hardcoded_namespaces(templates, report)
    if values is not None:
        _check_storage_config(values, report)

    return report


# =============================================================================
# Checks
# =============================================================================


def _check_required_fields(
    metadata: Mapping[str, Any], report: ValidationReport
) -> None:
    for name in REQUIRED_FIELDS:
        value = metadata.get(name)
        if value is None or str(value).strip() == "":
            report.add(
                error(
                    f"MissingField:{name}",
                    f"Missing required field in Chart.yaml: {name}",
                )
            )


def _check_version_format(
    metadata: Mapping[str, Any], report: ValidationReport
) -> None:
    version = metadata.get("version")
    # A missing version is already reported as MissingField:version
    if version is None or str(version).strip() == "":
        return
    if not CHART_VERSION_PATTERN.match(str(version)):
        report.add(
            error(
                "InvalidVersionFormat",
                f"Invalid version format in Chart.yaml: {version}",
            )
        )


def _check_chart_components(
    present: set[str], report: ValidationReport
) -> None:
    for name in REQUIRED_COMPONENTS:
        if name not in present:
            report.add(
                error(
                    f"MissingChartComponent:{name}",
                    f"Missing required file/directory: {name}",
                )
            )


def _has_resource(resources: Mapping[str, Any], key: str) -> bool:
    for section in ("requests", "limits"):
        spec = resources.get(section) or {}
        if isinstance(spec, Mapping) and spec.get(key) not in (None, ""):
            return True
    return False


def _check_resource_specs(
    manifest_set: RenderedManifestSet, report: ValidationReport
) -> None:
    for manifest in manifest_set.workloads():
        subject = ManifestRef.of(manifest)
        for container in containers(manifest):
            resources = container.get("resources") or {}
            missing = [
                key for key in RESOURCE_KEYS if not _has_resource(resources, key)
            ]
            if missing:
                report.add(
                    warning(
                        "MissingResourceSpec",
                        f"Container '{container.get('name', '?')}' has no "
                        f"{'/'.join(missing)} requests or limits",
                        subject,
                    )
                )


def _check_hardcoded_namespaces(
    templates: Mapping[str, str], report: ValidationReport
) -> None:
    for name in sorted(templates):
        for line in templates[name].splitlines():
            if "namespace:" not in line:
                continue
            if "{{" in line or ".Release.Namespace" in line:
                continue
            report.add(
                warning(
                    "HardcodedNamespace",
                    f"{name}: hardcoded namespace '{line.strip()}' "
                    "(consider using .Release.Namespace)",
                )
            )


def _check_storage_config(
    values: Mapping[str, Any], report: ValidationReport
) -> None:
    node: Any = values
    for key in ("mimir", "structuredConfig", "common", "storage"):
        if not isinstance(node, Mapping) or node.get(key) is None:
            report.add(
                warning(
                    "MissingStorageConfig",
                    "Storage configuration not found in values.yaml "
                    "(mimir.structuredConfig.common.storage)",
                )
            )
            return
        node = node[key]


# =============================================================================
# Filesystem front-end
# =============================================================================


@dataclass
class ChartSources:
    """Files of a chart directory loaded for validation."""

    metadata: dict[str, Any] = field(default_factory=dict)
    components: set[str] = field(default_factory=set)
    values: dict[str, Any] | None = None
    templates: dict[str, str] = field(default_factory=dict)
    load_report: ValidationReport = field(default_factory=ValidationReport)


class ChartValidator:
    """Validates a chart directory on disk.

    Loads Chart.yaml, values.yaml and template sources, then delegates to
    :func:`validate`. YAML that cannot be parsed is reported as an
    ``InvalidYaml:<file>`` error instead of raising.
    """

    def __init__(self, chart_dir: Path) -> None:
        self.chart_dir = chart_dir

    def load(self) -> ChartSources:
        sources = ChartSources()
        if not self.chart_dir.is_dir():
            sources.load_report.add(
                error(
                    "MissingChartComponent:Chart.yaml",
                    f"Chart directory not found: {self.chart_dir}",
                )
            )
            return sources

        sources.components = {p.name for p in self.chart_dir.iterdir()}
        sources.metadata = self._load_yaml("Chart.yaml", sources.load_report) or {}
        if "Chart.yaml" not in sources.components:
            sources.load_report.add(
                error(
                    "MissingChartComponent:Chart.yaml",
                    "Missing required file: Chart.yaml",
                )
            )

        if "values.yaml" in sources.components:
            sources.values = self._load_yaml("values.yaml", sources.load_report) or {}

        templates_dir = self.chart_dir / "templates"
        if templates_dir.is_dir():
            for path in sorted(templates_dir.rglob("*")):
                if path.is_file() and path.suffix in (".yaml", ".yml", ".tpl"):
                    rel = str(path.relative_to(self.chart_dir))
                    sources.templates[rel] = path.read_text()

        return sources

    def validate(self, manifest_set: RenderedManifestSet) -> ValidationReport:
        """Validate the chart against its rendered manifests."""
        sources = self.load()
        report = validate(
            manifest_set,
            sources.metadata,
            chart_components=sources.components,
            values=sources.values,
            templates=sources.templates,
        )
        return sources.load_report.merge(report)

    def _load_yaml(self, name: str, report: ValidationReport) -> dict[str, Any] | None:
        path = self.chart_dir / name
        if not path.exists():
            return None
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.debug(f"Failed to parse {path}: {e}")
            report.add(
                error(f"InvalidYaml:{name}", f"Invalid YAML syntax in {name}: {e}")
            )
            return None
        return data if isinstance(data, dict) else {}

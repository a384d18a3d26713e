"""Compare the upstream chart with the customized chart."""

from __future__ import annotations

import tempfile
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from chart_forge.core.diff import ChartDiff, FileDiff, diff_trees, unified_diff
from chart_forge.core.errors import ToolExecutionError
from chart_forge.core.manifests import RenderedManifestSet, manifest_kind

if TYPE_CHECKING:
    from .shell_commands import ShellCommands


@dataclass
class ChartComparison:
    """Differences between the base and custom chart."""

    chart_yaml: FileDiff
    values_yaml: FileDiff
    templates: ChartDiff
    base_kinds: Counter[str] = field(default_factory=Counter)
    custom_kinds: Counter[str] = field(default_factory=Counter)


def _read(path: Path) -> str:
    return path.read_text() if path.exists() else ""


def _rendered_files(root: Path) -> dict[str, str]:
    """Map rendered files to their contents, keyed below the chart directory.

    ``helm template --output-dir`` nests output under the chart name, which
    differs between the two charts, so that first path segment is dropped.
    """
    files: dict[str, str] = {}
    for path in sorted(root.rglob("*.yaml")):
        parts = path.relative_to(root).parts
        key = "/".join(parts[1:]) if len(parts) > 1 else parts[0]
        files[key] = path.read_text()
    return files


def _kind_counts(files: dict[str, str]) -> Counter[str]:
    counts: Counter[str] = Counter()
    for text in files.values():
        for manifest in RenderedManifestSet.from_yaml(text):
            counts[manifest_kind(manifest)] += 1
    return counts


def diff_charts(
    base_dir: Path, custom_dir: Path, commands: ShellCommands
) -> ChartComparison:
    """Diff Chart.yaml, values.yaml and every rendered template.

    Raises:
        ToolExecutionError: If either chart fails to render
    """
    rendered: list[dict[str, str]] = []
    with tempfile.TemporaryDirectory(prefix="chart-diff-") as tmp:
        for release, chart in (("base-chart", base_dir), ("custom-chart", custom_dir)):
            out = Path(tmp) / release
            result = commands.helm.template(release, chart, output_dir=out)
            if not result.success:
                raise ToolExecutionError(
                    ["helm", "template", release, str(chart)], result.output
                )
            rendered.append(_rendered_files(out))

    base_files, custom_files = rendered
    return ChartComparison(
        chart_yaml=FileDiff(
            "Chart.yaml",
            unified_diff(
                _read(base_dir / "Chart.yaml"),
                _read(custom_dir / "Chart.yaml"),
                "Chart.yaml",
            ),
        ),
        values_yaml=FileDiff(
            "values.yaml",
            unified_diff(
                _read(base_dir / "values.yaml"),
                _read(custom_dir / "values.yaml"),
                "values.yaml",
            ),
        ),
        templates=diff_trees(base_files, custom_files),
        base_kinds=_kind_counts(base_files),
        custom_kinds=_kind_counts(custom_files),
    )

"""Render-level tests for a built chart.

Each case renders the chart with ``helm template`` under different values
and records whether rendering succeeded. The default render is also
inspected for the Mimir distributed components, services and workloads.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from chart_forge.core.manifests import RenderedManifestSet
from chart_forge.infra.constants import DEFAULT_CONSTANTS, ChartConstants
from chart_forge.utils.console_like import ConsoleLike, coalesce_console

if TYPE_CHECKING:
    from .shell_commands import ShellCommands


STORAGE_BACKENDS: dict[str, tuple[str, ...]] = {
    "filesystem": ("mimir.structuredConfig.common.storage.backend=filesystem",),
    "s3": (
        "mimir.structuredConfig.common.storage.backend=s3",
        "mimir.structuredConfig.common.storage.s3.endpoint=s3.amazonaws.com",
        "mimir.structuredConfig.common.storage.s3.bucket_name=mimir-blocks",
    ),
    "gcs": (
        "mimir.structuredConfig.common.storage.backend=gcs",
        "mimir.structuredConfig.common.storage.gcs.bucket_name=mimir-blocks",
    ),
}

EXTRA_RENDER_CASES: dict[str, tuple[str, ...]] = {
    "custom annotations and labels": (
        "global.podAnnotations.test=value",
        "global.podLabels.environment=test",
    ),
    "ingress": (
        "nginx.ingress.enabled=true",
        "nginx.ingress.hosts[0].host=mimir.example.com",
    ),
}


class CaseStatus(Enum):
    """Outcome of a single chart test case."""

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class ChartTestCase:
    """Result of one chart test case."""

    name: str
    status: CaseStatus
    detail: str = ""


@dataclass
class ChartTestReport:
    """Results of a chart test run, in execution order."""

    cases: list[ChartTestCase] = field(default_factory=list)

    @property
    def failed(self) -> list[ChartTestCase]:
        return [c for c in self.cases if c.status is CaseStatus.FAILED]

    @property
    def passed(self) -> bool:
        return not self.failed

    def record(self, name: str, status: CaseStatus, detail: str = "") -> None:
        logger.debug(f"Chart test {name}: {status.value} {detail}".rstrip())
        self.cases.append(ChartTestCase(name, status, detail))


class ChartTester:
    """Runs render scenarios and structural checks against a chart."""

    def __init__(
        self,
        commands: ShellCommands,
        *,
        console: ConsoleLike | None = None,
        constants: ChartConstants | None = None,
    ) -> None:
        self.commands = commands
        self.console = coalesce_console(console)
        self.constants = constants or DEFAULT_CONSTANTS

    def run(self, chart_dir: Path) -> ChartTestReport:
        """Run every test case against ``chart_dir``.

        All cases run even after a failure so the report is complete.
        """
        self.console.info("Running chart tests...")
        report = ChartTestReport()
        self._test_scenarios(chart_dir, report)
        self._test_replica_counts(chart_dir, report)
        self._test_storage_backends(chart_dir, report)
        self._test_default_render(chart_dir, report)
        for name, set_values in EXTRA_RENDER_CASES.items():
            self._render_case(chart_dir, name, set_values, report)
        return report

    def _render_case(
        self,
        chart_dir: Path,
        name: str,
        set_values: Sequence[str],
        report: ChartTestReport,
        value_files: Sequence[Path] | None = None,
        release_name: str | None = None,
    ) -> None:
        result = self.commands.helm.template(
            release_name or self.constants.TEMPLATE_RELEASE_NAME,
            chart_dir,
            value_files=value_files,
            set_values=set_values,
            dry_run=True,
        )
        if result.success:
            report.record(name, CaseStatus.PASSED)
            self.console.ok(f"{name} test passed")
        else:
            report.record(name, CaseStatus.FAILED, result.output.strip())
            self.console.error(f"{name} test failed")

    def _test_scenarios(self, chart_dir: Path, report: ChartTestReport) -> None:
        for scenario, description in self.constants.TEST_SCENARIOS:
            values_file = chart_dir / "ci" / f"{scenario}-values.yaml"
            if not values_file.exists():
                report.record(description, CaseStatus.SKIPPED, "no values file found")
                self.console.info(f"Skipping {description} (no values file found)")
                continue
            self._render_case(
                chart_dir,
                description,
                (),
                report,
                value_files=[values_file],
                release_name=f"test-{scenario}",
            )

    def _test_replica_counts(self, chart_dir: Path, report: ChartTestReport) -> None:
        for replicas in self.constants.TEST_REPLICA_COUNTS:
            self._render_case(
                chart_dir,
                f"replicas={replicas}",
                (
                    f"mimir.ingester.replicas={replicas}",
                    f"mimir.distributor.replicas={replicas}",
                ),
                report,
            )

    def _test_storage_backends(self, chart_dir: Path, report: ChartTestReport) -> None:
        for backend, set_values in STORAGE_BACKENDS.items():
            self._render_case(chart_dir, f"storage={backend}", set_values, report)

    def _test_default_render(self, chart_dir: Path, report: ChartTestReport) -> None:
        """Render with default values and inspect the resulting resources."""
        result = self.commands.helm.template(
            self.constants.TEMPLATE_RELEASE_NAME, chart_dir
        )
        if not result.success:
            report.record("default render", CaseStatus.FAILED, result.output.strip())
            self.console.error("Default render failed")
            return

        missing = [
            c
            for c in self.constants.DISTRIBUTED_COMPONENTS
            if f"mimir-{c}" not in result.stdout
        ]
        if missing:
            report.record(
                "required components",
                CaseStatus.FAILED,
                f"Missing required component(s): {', '.join(missing)}",
            )
            self.console.error(f"Missing required components: {' '.join(missing)}")
        else:
            report.record("required components", CaseStatus.PASSED)

        manifests = RenderedManifestSet.from_yaml(result.stdout)
        if manifests.of_kind("Service"):
            report.record("services", CaseStatus.PASSED)
        else:
            report.record(
                "services", CaseStatus.FAILED, "No services found in rendered templates"
            )
        if manifests.workloads():
            report.record("workloads", CaseStatus.PASSED)
        else:
            report.record(
                "workloads",
                CaseStatus.FAILED,
                "No deployments found in rendered templates",
            )

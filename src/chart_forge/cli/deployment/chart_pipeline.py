"""Build and release stages for the custom chart.

This module provides the ChartPipeline class which implements every stage
of the chart lifecycle. Each stage can be invoked on its own from the CLI;
``release`` chains them and stops at the first failure:

1. clean: remove build output and the cached base chart
2. fetch: download the upstream chart
3. build: assemble the custom chart
4. validate: helm lint, render checks and static validation
5. test: render scenarios and structural checks
6. security-scan: audit rendered workloads
7. bump: compute and persist the next version
8. package: ``helm package`` into build/packages
9. publish: upload to Artifactory
10. tag: commit VERSION and create a git tag
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from chart_forge.core.assembler import AssemblySummary, ChartAssembler
from chart_forge.core.errors import ChartForgeError, ToolExecutionError
from chart_forge.core.findings import ValidationReport, error
from chart_forge.core.manifests import RenderedManifestSet
from chart_forge.core.security import audit
from chart_forge.core.validator import ChartValidator
from chart_forge.core.versioning import (
    SemVer,
    VersionFile,
    next_version,
    set_chart_version,
)
from chart_forge.infra.artifactory import PublisherConfig, PublishResult
from chart_forge.infra.artifactory import publish as publish_package

from .chart_tester import ChartTester, ChartTestReport
from .shell_commands.types import CommandResult

if TYPE_CHECKING:
    from chart_forge.cli.context import CLIContext


class ChartPipeline:
    """Implements the chart build and release stages.

    Attributes:
        ctx: CLI context holding console, commands, constants and paths
    """

    def __init__(self, ctx: CLIContext) -> None:
        self.ctx = ctx
        self.console = ctx.console
        self.commands = ctx.commands
        self.constants = ctx.constants
        self.paths = ctx.paths

    # =========================================================================
    # Build
    # =========================================================================

    def clean(self) -> None:
        """Remove build artifacts and the cached base chart."""
        for path in (self.paths.build, self.paths.base_chart):
            if path.exists():
                shutil.rmtree(path)
                logger.debug(f"Removed {path}")
        self.console.ok("Clean completed")

    def fetch_base_chart(self) -> Path:
        """Download the upstream chart into ``charts/``."""
        c = self.constants
        self.console.info(
            f"Downloading base chart {c.BASE_CHART_NAME} {c.BASE_CHART_VERSION}"
        )
        self.paths.charts.mkdir(parents=True, exist_ok=True)

        self._require(
            self.commands.helm.repo_add(c.BASE_CHART_REPO_NAME, c.BASE_CHART_REPO),
            ["helm", "repo", "add", c.BASE_CHART_REPO_NAME, c.BASE_CHART_REPO],
        )
        self._require(self.commands.helm.repo_update(), ["helm", "repo", "update"])

        if self.paths.base_chart.exists():
            shutil.rmtree(self.paths.base_chart)
        ref = f"{c.BASE_CHART_REPO_NAME}/{c.BASE_CHART_NAME}"
        self._require(
            self.commands.helm.pull(ref, c.BASE_CHART_VERSION, self.paths.charts),
            ["helm", "pull", ref, "--version", c.BASE_CHART_VERSION],
        )
        self.console.ok("Base chart downloaded")
        return self.paths.base_chart

    def build(self, *, fetch: bool = True) -> AssemblySummary:
        """Assemble the custom chart, fetching the base chart first if asked."""
        if fetch or not self.paths.base_chart.exists():
            self.fetch_base_chart()

        assembler = ChartAssembler(
            self.commands,
            chart_name=self.constants.CHART_NAME,
            description=self.constants.CHART_DESCRIPTION,
            base_chart_name=self.constants.BASE_CHART_NAME,
            release_name=self.constants.KUSTOMIZE_RELEASE_NAME,
            console=self.console,
        )
        return assembler.build(
            self.paths.base_chart, self.paths.kustomize, self.paths.custom_chart
        )

    # =========================================================================
    # Checks
    # =========================================================================

    def validate(self, chart_dir: Path | None = None) -> ValidationReport:
        """Lint, render and statically validate a chart.

        Tool failures become ERROR findings so the report is complete.
        """
        chart_dir = chart_dir or self.paths.custom_chart
        release = self.constants.TEMPLATE_RELEASE_NAME
        tool_report = ValidationReport()

        lint = self.commands.helm.lint(chart_dir)
        if not lint.success:
            tool_report.add(error("HelmLintFailed", lint.output.strip() or "helm lint"))

        rendered = self.commands.helm.template(release, chart_dir)
        if rendered.success:
            manifests = RenderedManifestSet.from_yaml(rendered.stdout)
        else:
            manifests = RenderedManifestSet()
            tool_report.add(
                error(
                    "TemplateRenderFailed",
                    rendered.output.strip() or "helm template failed",
                )
            )

        test_values = chart_dir / "ci" / "test-values.yaml"
        if test_values.exists():
            result = self.commands.helm.template(
                release, chart_dir, value_files=[test_values], dry_run=True
            )
            if not result.success:
                tool_report.add(
                    error(
                        "TemplateRenderFailed:ci/test-values.yaml",
                        result.output.strip() or "helm template failed",
                    )
                )

        report = tool_report.merge(ChartValidator(chart_dir).validate(manifests))
        logger.debug(f"Validation produced {len(report.findings)} findings")
        return report

    def test(self, chart_dir: Path | None = None) -> ChartTestReport:
        tester = ChartTester(
            self.commands, console=self.console, constants=self.constants
        )
        return tester.run(chart_dir or self.paths.custom_chart)

    def render(self, chart_dir: Path | None = None) -> RenderedManifestSet:
        """Render a chart with default values.

        Raises:
            ToolExecutionError: If rendering fails
        """
        chart_dir = chart_dir or self.paths.custom_chart
        release = self.constants.SECURITY_RELEASE_NAME
        result = self.commands.helm.template(release, chart_dir)
        self._require(result, ["helm", "template", release, str(chart_dir)])
        return RenderedManifestSet.from_yaml(result.stdout)

    def security_scan(
        self,
        chart_dir: Path | None = None,
        *,
        parallel: bool = False,
        manifests_dir: Path | None = None,
    ) -> ValidationReport:
        """Audit the rendered chart, or pre-rendered manifests when given.

        Raises:
            ChartForgeError: If manifests_dir is not a directory
            ToolExecutionError: If rendering the chart fails
        """
        if manifests_dir is None:
            return audit(self.render(chart_dir), parallel=parallel)
        if not manifests_dir.is_dir():
            raise ChartForgeError(f"Manifests directory not found: {manifests_dir}")
        manifests = RenderedManifestSet.from_directory(manifests_dir)
        logger.debug(f"Loaded {len(manifests)} manifests from {manifests_dir}")
        return audit(manifests, parallel=parallel)

    # =========================================================================
    # Release
    # =========================================================================

    def current_version(self) -> str:
        default = self.constants.DEFAULT_VERSION
        return VersionFile(self.paths.version_file, default).read()

    def next_version(self, bump: str, build_number: str | None = None) -> SemVer:
        return next_version(bump, self.current_version(), build_number)

    def bump_version(self, bump: str, build_number: str | None = None) -> SemVer:
        """Persist the next version.

        ``VERSION`` keeps the plain ``x.y.z`` so it can be bumped again; the
        built chart's Chart.yaml receives the full version including any
        build suffix.
        """
        current = self.current_version()
        new_version = next_version(bump, current, build_number)
        self.console.info(f"Updating version from {current} to {new_version}")

        VersionFile(self.paths.version_file).write(new_version.base)
        if self.paths.custom_chart_yaml.exists():
            set_chart_version(self.paths.custom_chart_yaml, new_version)
        else:
            self.console.warn("Built chart not found; only VERSION was updated")

        self.console.ok(f"Version updated to {new_version}")
        return new_version

    def package(self, version: SemVer | str) -> Path:
        """Package the built chart.

        Raises:
            ToolExecutionError: If helm package fails
            ChartForgeError: If the expected package file was not produced
        """
        self.paths.packages.mkdir(parents=True, exist_ok=True)
        chart_dir = self.paths.custom_chart
        self._require(
            self.commands.helm.package(chart_dir, self.paths.packages),
            ["helm", "package", str(chart_dir)],
        )
        package_file = self.paths.package_file(str(version))
        if not package_file.exists():
            raise ChartForgeError(
                f"Expected package not found: {package_file}",
                details="Check that Chart.yaml carries the released version",
            )
        self.console.ok(f"Chart packaged: {package_file}")
        return package_file

    def publish(self, package_file: Path, *, timeout: float = 30.0) -> PublishResult:
        config = PublisherConfig.from_env(self.paths.env_file)
        self.console.info(f"Publishing {package_file.name} to {config.repository}")
        result = publish_package(
            package_file,
            config,
            timeout=timeout,
            repo_alias=self.constants.HELM_REPO_ALIAS,
        )
        self.console.ok("Chart uploaded successfully")
        for warning in result.warnings:
            self.console.warn(warning)
        return result

    def tag(self, version: SemVer | str) -> str:
        """Commit the VERSION file and create an annotated ``v<version>`` tag.

        A failed commit (e.g. nothing to commit) is tolerated; a failed tag
        is not.
        """
        status = self.commands.git.get_status()
        if not status.is_git_repo:
            raise ChartForgeError(
                "Cannot tag release: not a git repository",
                details=f"Run from a git checkout of {self.paths.project_root}",
            )

        message = f"Release {self.constants.CHART_NAME} version {version}"
        tag_name = f"v{version}"
        if self.commands.git.tag_exists(tag_name):
            raise ChartForgeError(
                f"Tag {tag_name} already exists",
                details="Bump the version before tagging a new release",
            )
        logger.debug(f"Tagging {tag_name} on branch {status.branch}")

        self._require(
            self.commands.git.add(self.paths.version_file),
            ["git", "add", str(self.paths.version_file)],
        )
        commit = self.commands.git.commit(message)
        if not commit.success:
            logger.debug(f"git commit skipped: {commit.output}")
            self.console.warn("Nothing to commit; tagging current HEAD")
        self._require(
            self.commands.git.tag(tag_name, message),
            ["git", "tag", "-a", tag_name],
        )
        self.console.ok(f"Git tagged with {tag_name}")
        return tag_name

    @staticmethod
    def _require(result: CommandResult, command: list[str]) -> None:
        if not result.success:
            raise ToolExecutionError(command, result.output)

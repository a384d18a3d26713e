"""Unit tests for the chart build and release stages."""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
import yaml  # type: ignore[import-untyped]

from chart_forge.cli.context import CLIContext
from chart_forge.cli.deployment.chart_pipeline import ChartPipeline
from chart_forge.cli.deployment.shell_commands.types import CommandResult, GitStatus
from chart_forge.core.errors import ChartForgeError, ToolExecutionError
from chart_forge.infra.artifactory import PublishResult


def built_chart(cli_context: CLIContext, version: str = "0.1.0") -> Path:
    """Write a minimal built chart where the pipeline expects it."""
    chart = cli_context.paths.custom_chart
    (chart / "templates").mkdir(parents=True)
    (chart / "Chart.yaml").write_text(
        yaml.safe_dump(
            {
                "apiVersion": "v2",
                "name": "mimir-custom",
                "version": version,
                "description": "Custom chart",
            }
        )
    )
    (chart / "values.yaml").write_text(
        "mimir:\n  structuredConfig:\n    common:\n      storage:\n"
        "        backend: s3\n"
    )
    return chart


class TestBuildStages:
    """Tests for clean, fetch and build."""

    def test_clean_removes_build_and_base_chart(self, cli_context: CLIContext) -> None:
        paths = cli_context.paths
        paths.custom_chart.mkdir(parents=True)
        paths.base_chart.mkdir(parents=True)

        ChartPipeline(cli_context).clean()

        assert not paths.build.exists()
        assert not paths.base_chart.exists()
        assert paths.charts.exists()

    def test_clean_is_idempotent(self, cli_context: CLIContext) -> None:
        ChartPipeline(cli_context).clean()
        ChartPipeline(cli_context).clean()

    def test_fetch_base_chart(self, cli_context: CLIContext) -> None:
        helm = cli_context.commands.helm

        chart_dir = ChartPipeline(cli_context).fetch_base_chart()

        assert chart_dir == cli_context.paths.base_chart
        helm.repo_add.assert_called_once_with(
            "grafana", "https://grafana.github.io/helm-charts"
        )
        helm.pull.assert_called_once_with(
            "grafana/mimir-distributed", "5.4.0", cli_context.paths.charts
        )

    def test_fetch_failure_raises(self, cli_context: CLIContext) -> None:
        cli_context.commands.helm.pull.return_value = CommandResult(
            success=False, stderr="Error: chart not found"
        )
        with pytest.raises(ToolExecutionError):
            ChartPipeline(cli_context).fetch_base_chart()

    @patch("chart_forge.cli.deployment.chart_pipeline.ChartAssembler")
    def test_build_without_fetch(
        self, mock_assembler_cls: MagicMock, cli_context: CLIContext
    ) -> None:
        paths = cli_context.paths
        paths.base_chart.mkdir(parents=True)

        ChartPipeline(cli_context).build(fetch=False)

        cli_context.commands.helm.pull.assert_not_called()
        kwargs = mock_assembler_cls.call_args.kwargs
        assert kwargs["chart_name"] == "mimir-custom"
        assert kwargs["release_name"] == "mimir-base"
        mock_assembler_cls.return_value.build.assert_called_once_with(
            paths.base_chart, paths.kustomize, paths.custom_chart
        )

    @patch("chart_forge.cli.deployment.chart_pipeline.ChartAssembler")
    def test_build_fetches_missing_base_chart(
        self, _assembler: MagicMock, cli_context: CLIContext
    ) -> None:
        ChartPipeline(cli_context).build(fetch=False)
        cli_context.commands.helm.pull.assert_called_once()


class TestChecks:
    """Tests for validate, render and security_scan."""

    def test_validate_clean_chart(
        self, cli_context: CLIContext, hardened_deployment: dict[str, Any]
    ) -> None:
        built_chart(cli_context)
        cli_context.commands.helm.template.return_value = CommandResult(
            success=True, stdout=yaml.safe_dump(hardened_deployment)
        )

        report = ChartPipeline(cli_context).validate()

        assert report.passed
        assert report.is_clean

    def test_lint_and_render_failures_become_findings(
        self, cli_context: CLIContext
    ) -> None:
        chart = built_chart(cli_context)
        (chart / "ci").mkdir()
        (chart / "ci" / "test-values.yaml").write_text("a: 1\n")
        helm = cli_context.commands.helm
        helm.lint.return_value = CommandResult(success=False, stdout="[ERROR] x")
        helm.template.return_value = CommandResult(success=False, stderr="parse error")

        report = ChartPipeline(cli_context).validate()

        assert not report.passed
        assert report.rule_ids()[:3] == [
            "HelmLintFailed",
            "TemplateRenderFailed",
            "TemplateRenderFailed:ci/test-values.yaml",
        ]
        ci_call = helm.template.call_args_list[1]
        assert ci_call.kwargs["value_files"] == [chart / "ci" / "test-values.yaml"]
        assert ci_call.kwargs["dry_run"] is True

    def test_validate_explicit_chart_dir(
        self, cli_context: CLIContext, chart_dir: Path
    ) -> None:
        ChartPipeline(cli_context).validate(chart_dir)
        cli_context.commands.helm.lint.assert_called_once_with(chart_dir)

    def test_render_failure_raises(self, cli_context: CLIContext) -> None:
        cli_context.commands.helm.template.return_value = CommandResult(
            success=False, stderr="boom"
        )
        with pytest.raises(ToolExecutionError):
            ChartPipeline(cli_context).render()

    def test_render_uses_security_release(self, cli_context: CLIContext) -> None:
        ChartPipeline(cli_context).render()
        args = cli_context.commands.helm.template.call_args.args
        assert args == ("security-test", cli_context.paths.custom_chart)

    def test_security_scan(
        self, cli_context: CLIContext, make_workload: Any
    ) -> None:
        insecure = make_workload(hostPID=True)
        cli_context.commands.helm.template.return_value = CommandResult(
            success=True, stdout=yaml.safe_dump(insecure)
        )

        report = ChartPipeline(cli_context).security_scan(parallel=True)

        assert report.rule_ids() == ["NoHostPID"]
        assert not report.passed

    def test_security_scan_of_rendered_output(
        self, cli_context: CLIContext, make_workload: Any, tmp_path: Path
    ) -> None:
        output_dir = tmp_path / "output" / "production"
        output_dir.mkdir(parents=True)
        (output_dir / "deployment-mimir.yaml").write_text(
            yaml.safe_dump(make_workload(hostPID=True))
        )

        report = ChartPipeline(cli_context).security_scan(manifests_dir=output_dir)

        assert report.rule_ids() == ["NoHostPID"]
        cli_context.commands.helm.template.assert_not_called()

    def test_security_scan_missing_manifests_dir(
        self, cli_context: CLIContext, tmp_path: Path
    ) -> None:
        with pytest.raises(ChartForgeError, match="Manifests directory not found"):
            ChartPipeline(cli_context).security_scan(manifests_dir=tmp_path / "gone")


class TestReleaseStages:
    """Tests for versioning, packaging, publishing and tagging."""

    def test_current_version_defaults(self, cli_context: CLIContext) -> None:
        assert ChartPipeline(cli_context).current_version() == "0.1.0"

    def test_bump_version(self, cli_context: CLIContext) -> None:
        cli_context.paths.version_file.write_text("0.1.0\n")
        chart = built_chart(cli_context)

        version = ChartPipeline(cli_context).bump_version("minor", "42")

        assert str(version) == "0.2.0-build.42"
        assert cli_context.paths.version_file.read_text() == "0.2.0\n"
        assert yaml.safe_load((chart / "Chart.yaml").read_text())["version"] == (
            "0.2.0-build.42"
        )

    def test_bump_without_built_chart_warns(self, cli_context: CLIContext) -> None:
        version = ChartPipeline(cli_context).bump_version("patch")

        assert str(version) == "0.1.1"
        assert cli_context.paths.version_file.read_text() == "0.1.1\n"
        cli_context.console.warn.assert_called_once()

    def test_package(self, cli_context: CLIContext) -> None:
        paths = cli_context.paths

        def fake_package(chart: Path, destination: Path) -> CommandResult:
            (destination / "mimir-custom-0.1.1.tgz").write_bytes(b"tgz")
            return CommandResult(success=True)

        cli_context.commands.helm.package.side_effect = fake_package

        package = ChartPipeline(cli_context).package("0.1.1")

        assert package == paths.packages / "mimir-custom-0.1.1.tgz"

    def test_package_missing_output(self, cli_context: CLIContext) -> None:
        with pytest.raises(ChartForgeError, match="Expected package not found"):
            ChartPipeline(cli_context).package("0.1.1")

    @patch("chart_forge.cli.deployment.chart_pipeline.publish_package")
    def test_publish_reports_warnings(
        self,
        mock_publish: MagicMock,
        cli_context: CLIContext,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("ARTIFACTORY_URL", "https://repo.example.com")
        monkeypatch.setenv("ARTIFACTORY_REPO", "helm-local")
        monkeypatch.setenv("ARTIFACTORY_USER", "ci")
        monkeypatch.setenv("ARTIFACTORY_TOKEN", "secret")
        mock_publish.return_value = PublishResult(
            chart_name="mimir-custom",
            version="0.1.1",
            upload_url="https://repo.example.com/artifactory/helm-local/x.tgz",
            status_code=201,
            warnings=["Chart verification failed"],
        )
        package = cli_context.paths.packages / "mimir-custom-0.1.1.tgz"

        result = ChartPipeline(cli_context).publish(package, timeout=5.0)

        assert result.status_code == 201
        config = mock_publish.call_args.args[1]
        assert config.endpoint == "https://repo.example.com/artifactory"
        assert mock_publish.call_args.kwargs["timeout"] == 5.0
        assert mock_publish.call_args.kwargs["repo_alias"] == "custom-charts"
        cli_context.console.warn.assert_called_once_with("Chart verification failed")

    def test_tag(self, cli_context: CLIContext) -> None:
        git = cli_context.commands.git

        tag = ChartPipeline(cli_context).tag("0.1.1")

        assert tag == "v0.1.1"
        git.add.assert_called_once_with(cli_context.paths.version_file)
        git.commit.assert_called_once_with("Release mimir-custom version 0.1.1")
        git.tag.assert_called_once_with(
            "v0.1.1", "Release mimir-custom version 0.1.1"
        )

    def test_tag_tolerates_empty_commit(self, cli_context: CLIContext) -> None:
        git = cli_context.commands.git
        git.commit.return_value = CommandResult(success=False, stdout="nothing")

        assert ChartPipeline(cli_context).tag("0.1.1") == "v0.1.1"
        cli_context.console.warn.assert_called_once()

    def test_tag_failure_raises(self, cli_context: CLIContext) -> None:
        cli_context.commands.git.tag.return_value = CommandResult(
            success=False, stderr="fatal: tag 'v0.1.1' already exists"
        )
        with pytest.raises(ToolExecutionError):
            ChartPipeline(cli_context).tag("0.1.1")

    def test_tag_outside_git_repository(self, cli_context: CLIContext) -> None:
        cli_context.commands.git.get_status.return_value = GitStatus(
            is_git_repo=False, is_clean=False, branch=None
        )
        with pytest.raises(ChartForgeError, match="not a git repository"):
            ChartPipeline(cli_context).tag("0.1.1")
        cli_context.commands.git.add.assert_not_called()

    def test_tag_refuses_existing_tag(self, cli_context: CLIContext) -> None:
        cli_context.commands.git.tag_exists.return_value = True
        with pytest.raises(ChartForgeError, match="v0.1.1 already exists"):
            ChartPipeline(cli_context).tag("0.1.1")
        cli_context.commands.git.tag.assert_not_called()

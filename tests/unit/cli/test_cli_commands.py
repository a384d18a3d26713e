"""Tests for the chart-forge commands invoked through the Typer app."""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from chart_forge.cli import app
from chart_forge.cli.context import CLIContext
from chart_forge.cli.deployment.chart_tester import CaseStatus, ChartTestReport
from chart_forge.cli.deployment.overlay import OverlayResult
from chart_forge.cli.deployment.shell_commands import CommandResult
from chart_forge.core.findings import ValidationReport, error, warning

runner = CliRunner()


@pytest.fixture(autouse=True)
def skip_logging_setup() -> Iterator[None]:
    with patch("chart_forge.cli.configure_logging"):
        yield


@pytest.fixture
def chart_pipeline() -> Iterator[MagicMock]:
    with patch("chart_forge.cli.commands.chart.ChartPipeline") as mock_cls:
        yield mock_cls.return_value


@pytest.fixture
def release_pipeline() -> Iterator[MagicMock]:
    with patch("chart_forge.cli.commands.release.ChartPipeline") as mock_cls:
        pipeline = mock_cls.return_value
        pipeline.validate.return_value = ValidationReport()
        pipeline.test.return_value = ChartTestReport()
        pipeline.security_scan.return_value = ValidationReport()
        pipeline.bump_version.return_value = "0.1.1"
        yield pipeline


class TestCheckCommands:
    """Tests for validate, security-scan and test."""

    def test_validate_json(
        self, cli_context: CLIContext, chart_pipeline: MagicMock
    ) -> None:
        chart_pipeline.validate.return_value = ValidationReport(
            [warning("HardcodedNamespace", "namespace found")]
        )

        result = runner.invoke(app, ["validate", "--json"], obj=cli_context)

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["passed"] is True
        assert payload["warnings"] == 1
        cli_context.console.print_report.assert_not_called()

    def test_validate_failure_exits_nonzero(
        self, cli_context: CLIContext, chart_pipeline: MagicMock
    ) -> None:
        report = ValidationReport([error("MissingField", "Missing 'version'")])
        chart_pipeline.validate.return_value = report

        result = runner.invoke(app, ["validate"], obj=cli_context)

        assert result.exit_code == 1
        cli_context.console.print_report.assert_called_once_with(
            report, "Chart validation"
        )

    def test_security_scan_parallel(
        self, cli_context: CLIContext, chart_pipeline: MagicMock
    ) -> None:
        chart_pipeline.security_scan.return_value = ValidationReport(
            [error("NoPrivileged", "privileged container")]
        )

        result = runner.invoke(
            app, ["security-scan", "--parallel"], obj=cli_context
        )

        assert result.exit_code == 1
        chart_pipeline.security_scan.assert_called_once_with(
            None, parallel=True, manifests_dir=None
        )
        cli_context.console.print_list.assert_called_once()

    def test_security_scan_manifests_dir(
        self, cli_context: CLIContext, chart_pipeline: MagicMock
    ) -> None:
        chart_pipeline.security_scan.return_value = ValidationReport()

        result = runner.invoke(
            app, ["security-scan", "-m", "output/production"], obj=cli_context
        )

        assert result.exit_code == 0
        chart_pipeline.security_scan.assert_called_once_with(
            None, parallel=False, manifests_dir=Path("output/production")
        )

    def test_chart_tests_failure(
        self, cli_context: CLIContext, chart_pipeline: MagicMock
    ) -> None:
        report = ChartTestReport()
        report.record("default-render", CaseStatus.PASSED)
        report.record("replicas-3", CaseStatus.FAILED, "[rendered] 2 != 3")
        chart_pipeline.test.return_value = report

        result = runner.invoke(app, ["test"], obj=cli_context)

        assert result.exit_code == 1
        cli_context.console.error.assert_called_once_with("1 chart test(s) failed")


class TestVersionCommands:
    """Tests for the version sub-commands."""

    def test_show(self, cli_context: CLIContext) -> None:
        cli_context.paths.version_file.write_text("1.2.3\n")

        result = runner.invoke(
            app,
            ["version", "show", "--bump", "minor"],
            obj=cli_context,
            env={"BUILD_NUMBER": None},
        )

        assert result.exit_code == 0
        printed = [c.args[0] for c in cli_context.console.print.call_args_list]
        assert printed == ["Current version: 1.2.3", "Next version: 1.3.0"]

    def test_show_rejects_unknown_bump(self, cli_context: CLIContext) -> None:
        cli_context.paths.version_file.write_text("1.2.3\n")

        result = runner.invoke(
            app, ["version", "show", "--bump", "huge"], obj=cli_context
        )

        assert result.exit_code == 1
        assert "Invalid bump kind" in result.output


class TestDoctor:
    """Tests for the doctor command."""

    def test_all_tools_present(self, cli_context: CLIContext) -> None:
        commands = cli_context.commands
        commands.helm.version.return_value = CommandResult(
            success=True, stdout="v3.14.2+gc309b6f\n"
        )
        commands.kustomize.version.return_value = CommandResult(success=False)

        result = runner.invoke(app, ["doctor"], obj=cli_context)

        assert result.exit_code == 0
        ok_messages = [c.args[0] for c in cli_context.console.ok.call_args_list]
        assert "helm available (v3.14.2+gc309b6f)" in ok_messages
        assert "kustomize available" in ok_messages
        assert "git available" in ok_messages

    def test_missing_tool(self, cli_context: CLIContext) -> None:
        commands = cli_context.commands
        commands.missing_tools.return_value = ["kubectl"]
        commands.helm.version.return_value = CommandResult(success=False)
        commands.kustomize.version.return_value = CommandResult(success=False)

        result = runner.invoke(app, ["doctor"], obj=cli_context)

        assert result.exit_code == 1
        cli_context.console.error.assert_called_once_with("kubectl not found")


class TestReleaseCommand:
    """Tests for the release pipeline command."""

    def test_stops_on_validation_failure(
        self, cli_context: CLIContext, release_pipeline: MagicMock
    ) -> None:
        release_pipeline.validate.return_value = ValidationReport(
            [error("InvalidVersion", "bad version")]
        )

        result = runner.invoke(app, ["release"], obj=cli_context)

        assert result.exit_code == 1
        assert "chart validation failed" in result.output
        release_pipeline.test.assert_not_called()
        release_pipeline.package.assert_not_called()

    def test_stops_on_security_failure(
        self, cli_context: CLIContext, release_pipeline: MagicMock
    ) -> None:
        release_pipeline.security_scan.return_value = ValidationReport(
            [error("NoHostPID", "hostPID enabled")]
        )

        result = runner.invoke(app, ["release"], obj=cli_context)

        assert result.exit_code == 1
        release_pipeline.bump_version.assert_not_called()

    def test_without_publish_or_tag(
        self, cli_context: CLIContext, release_pipeline: MagicMock
    ) -> None:
        result = runner.invoke(
            app,
            ["release", "--no-publish", "--no-tag", "--bump", "patch"],
            obj=cli_context,
            env={"BUILD_NUMBER": None},
        )

        assert result.exit_code == 0
        release_pipeline.clean.assert_called_once_with()
        release_pipeline.build.assert_called_once_with()
        release_pipeline.bump_version.assert_called_once_with("patch", None)
        release_pipeline.package.assert_called_once_with("0.1.1")
        release_pipeline.publish.assert_not_called()
        release_pipeline.tag.assert_not_called()
        cli_context.console.ok.assert_called_with(
            "Release 0.1.1 completed successfully!"
        )


class TestDeployCommand:
    """Tests for the deploy command."""

    @patch("chart_forge.cli.commands.deploy.OverlayDeployer")
    def test_dry_run(
        self, mock_deployer_cls: MagicMock, cli_context: CLIContext
    ) -> None:
        deployer = mock_deployer_cls.return_value
        deployer.deploy.return_value = OverlayResult(
            "staging", cli_context.project_root / "output" / "staging", dry_run=True
        )

        result = runner.invoke(
            app, ["deploy", "-o", "staging", "--dry-run"], obj=cli_context
        )

        assert result.exit_code == 0
        deployer.deploy.assert_called_once_with(
            cli_context.paths.deployment_config, "staging", dry_run=True
        )
        cli_context.console.ok.assert_called_once_with(
            "Dry run completed successfully!"
        )


class TestLabelsCommand:
    """Tests for the labels command."""

    def test_namespace_audit(self, cli_context: CLIContext) -> None:
        kubectl = cli_context.commands.kubectl
        kubectl.get_objects.return_value = [
            {
                "kind": "Pod",
                "metadata": {"name": "mimir-ingester-0", "labels": {"app": "mimir"}},
            }
        ]

        result = runner.invoke(
            app, ["labels", "-n", "mimir", "-k", "pods"], obj=cli_context
        )

        assert result.exit_code == 0
        kubectl.get_objects.assert_called_once_with(["pods"], "mimir")
        kubectl.namespaced_resource_types.assert_not_called()
        cli_context.console.print.assert_any_call("  - app: mimir")

    def test_no_objects(
        self, cli_context: CLIContext, chart_pipeline: MagicMock
    ) -> None:
        chart_pipeline.render.return_value = []

        result = runner.invoke(app, ["labels"], obj=cli_context)

        assert result.exit_code == 0
        cli_context.console.info.assert_called_once_with(
            "No resources found for the specified criteria."
        )

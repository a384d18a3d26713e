"""Release commands: package, publish, tag and the full release pipeline."""

from pathlib import Path
from typing import Annotated

import typer

from chart_forge.cli.context import get_cli_context
from chart_forge.cli.deployment.chart_pipeline import ChartPipeline
from chart_forge.cli.shared.console import CLIConsole, with_error_handling
from chart_forge.core.errors import ChartForgeError
from chart_forge.core.security import RECOMMENDATIONS
from chart_forge.infra.artifactory import PublishResult

from .options import BuildNumberOption, BumpOption, TimeoutOption

DEFAULT_TIMEOUT = 30.0


def _print_publish_result(console: CLIConsole, result: PublishResult) -> None:
    console.print(f"Chart: {result.chart_name}")
    console.print(f"Version: {result.version}")
    console.print(f"Upload URL: {result.upload_url}")
    if result.reindexed:
        console.ok("Repository index updated successfully")
    if result.verified:
        console.ok("Chart verification successful")
    console.print_list("Installation instructions", result.install_commands)
    console.ok("Chart published successfully!")


@with_error_handling
def package(
    ctx: typer.Context,
    bump: BumpOption = "patch",
    build_number: BuildNumberOption = None,
    skip_build: Annotated[
        bool,
        typer.Option("--skip-build", help="Package the existing build output"),
    ] = False,
) -> None:
    """Build, bump the version and package the chart."""
    cli = get_cli_context(ctx)
    pipeline = ChartPipeline(cli)
    if not skip_build:
        pipeline.build()
    version = pipeline.bump_version(bump, build_number)
    pipeline.package(version)


@with_error_handling
def publish(
    ctx: typer.Context,
    package_file: Annotated[
        Path,
        typer.Argument(help="Path to the packaged chart (.tgz)"),
    ],
    timeout: TimeoutOption = DEFAULT_TIMEOUT,
) -> None:
    """Publish a packaged chart to Artifactory.

    Repository settings come from ARTIFACTORY_URL, ARTIFACTORY_REPO,
    ARTIFACTORY_USER and ARTIFACTORY_TOKEN (environment or .env).
    """
    cli = get_cli_context(ctx)
    cli.console.print_header("Publishing Chart")
    result = ChartPipeline(cli).publish(package_file, timeout=timeout)
    _print_publish_result(cli.console, result)


@with_error_handling
def tag(
    ctx: typer.Context,
    version: Annotated[
        str | None,
        typer.Option("--version", help="Version to tag (defaults to VERSION)"),
    ] = None,
) -> None:
    """Commit VERSION and create an annotated git tag."""
    pipeline = ChartPipeline(get_cli_context(ctx))
    pipeline.tag(version or pipeline.current_version())


@with_error_handling
def release(
    ctx: typer.Context,
    bump: BumpOption = "patch",
    build_number: BuildNumberOption = None,
    timeout: TimeoutOption = DEFAULT_TIMEOUT,
    git_tag: Annotated[
        bool,
        typer.Option("--tag/--no-tag", help="Commit and tag the release in git"),
    ] = True,
    publish_chart: Annotated[
        bool,
        typer.Option("--publish/--no-publish", help="Upload to Artifactory"),
    ] = True,
) -> None:
    """Run the full release pipeline.

    clean, build, validate, test, security-scan, bump, package, publish, tag.
    Stops at the first failing stage.
    """
    cli = get_cli_context(ctx)
    console = cli.console
    pipeline = ChartPipeline(cli)
    console.print_header("Releasing Custom Chart")

    pipeline.clean()
    pipeline.build()

    report = pipeline.validate()
    console.print_report(report, "Chart validation")
    if not report.passed:
        raise ChartForgeError("Release stopped: chart validation failed")

    tests = pipeline.test()
    if not tests.passed:
        names = ", ".join(case.name for case in tests.failed)
        raise ChartForgeError("Release stopped: chart tests failed", details=names)

    scan = pipeline.security_scan()
    console.print_report(scan, "Security scan")
    if not scan.passed:
        console.print_list("Security recommendations", RECOMMENDATIONS)
        raise ChartForgeError("Release stopped: security scan failed")

    version = pipeline.bump_version(bump, build_number)
    package_file = pipeline.package(version)

    if publish_chart:
        result = pipeline.publish(package_file, timeout=timeout)
        _print_publish_result(console, result)
    else:
        console.info("Publishing disabled")

    if git_tag:
        pipeline.tag(version)
    else:
        console.info("Git tagging disabled")

    console.ok(f"Release {version} completed successfully!")

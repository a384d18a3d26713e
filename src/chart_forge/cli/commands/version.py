"""Version commands.

``show`` prints the current and next version; ``bump`` persists the next
version to VERSION and the built chart's Chart.yaml.
"""

import typer

from chart_forge.cli.context import get_cli_context
from chart_forge.cli.deployment.chart_pipeline import ChartPipeline
from chart_forge.cli.shared.console import with_error_handling

from .options import BuildNumberOption, BumpOption

version_app = typer.Typer(
    help="Show or bump the chart version",
    no_args_is_help=True,
)


@version_app.command()
@with_error_handling
def show(
    ctx: typer.Context,
    bump: BumpOption = "patch",
    build_number: BuildNumberOption = None,
) -> None:
    """Show the current and next version."""
    cli = get_cli_context(ctx)
    pipeline = ChartPipeline(cli)
    cli.console.print(f"Current version: {pipeline.current_version()}")
    cli.console.print(f"Next version: {pipeline.next_version(bump, build_number)}")


@version_app.command(name="bump")
@with_error_handling
def bump_version(
    ctx: typer.Context,
    bump: BumpOption = "patch",
    build_number: BuildNumberOption = None,
) -> None:
    """Write the next version to VERSION and the built Chart.yaml.

    Examples:
        chart-forge version bump
        chart-forge version bump --bump minor
        BUILD_NUMBER=42 chart-forge version bump
    """
    ChartPipeline(get_cli_context(ctx)).bump_version(bump, build_number)

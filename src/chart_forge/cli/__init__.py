"""Main CLI application module.

This module provides the main entry point for the chart-forge CLI, which
builds, validates, scans, packages and publishes the custom Mimir chart.

Commands:
- build / clean: assemble the custom chart
- validate / security-scan / test: check the built chart
- package / publish / tag / release: ship it
- diff / labels: inspect differences and labels
- deploy: generate kustomize overlay manifests
- version: show or bump the chart version
- doctor: check installed tools
"""

from typing import Annotated

import typer

from chart_forge.runtime.logging import configure_logging

from .commands import (
    build,
    clean,
    deploy,
    diff,
    doctor,
    labels,
    package,
    publish,
    release,
    run_tests,
    security_scan,
    tag,
    validate,
    version_app,
)
from .context import CLIContext, build_cli_context

# Create the main CLI application
app = typer.Typer(
    help="🛠️  chart-forge - Custom Mimir Helm chart build and release tool",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Configure logging and the shared command context."""
    configure_logging(verbose)
    if not isinstance(ctx.obj, CLIContext):
        ctx.obj = build_cli_context()


# Build commands
app.command()(build)
app.command()(clean)

# Check commands
app.command()(validate)
app.command(name="security-scan")(security_scan)
app.command(name="test")(run_tests)
app.command()(diff)
app.command()(labels)
app.command()(doctor)

# Release commands
app.command()(package)
app.command()(publish)
app.command()(tag)
app.command()(release)

app.command()(deploy)
app.add_typer(version_app, name="version")


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()

"""Kustomize overlay deployment command."""

from pathlib import Path
from typing import Annotated

import typer

from chart_forge.cli.context import get_cli_context
from chart_forge.cli.deployment.overlay import OverlayDeployer
from chart_forge.cli.shared.console import with_error_handling


@with_error_handling
def deploy(
    ctx: typer.Context,
    overlay: Annotated[
        str,
        typer.Option("--overlay", "-o", envvar="OVERLAY", help="Overlay environment"),
    ] = "development",
    config_file: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            envvar="CONFIG_FILE",
            help="Configuration file (default: deployment-config.yaml)",
        ),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", "-d", help="Preview manifests without writing"),
    ] = False,
    work_dir: Annotated[
        Path | None,
        typer.Option("--work-dir", help="Directory for base/, overlays/, output/"),
    ] = None,
) -> None:
    """Generate manifests for an overlay from Helm base manifests.

    Examples:
        chart-forge deploy
        chart-forge deploy -o production
        chart-forge deploy -o staging --dry-run
    """
    cli = get_cli_context(ctx)
    cli.console.print_header("Mimir Kustomize Deployment")

    root = work_dir or cli.project_root
    deployer = OverlayDeployer(
        cli.commands, root, console=cli.console, constants=cli.constants
    )
    config = config_file or cli.paths.deployment_config
    result = deployer.deploy(config, overlay, dry_run=dry_run)

    if result.dry_run:
        cli.console.ok("Dry run completed successfully!")
        return

    cli.console.ok("Deployment completed successfully!")
    cli.console.info(f"Generated manifests are available in: {result.output_dir}/")
    cli.console.print("\nTo apply to Kubernetes cluster:")
    cli.console.print(f"  kubectl apply -f {result.output_dir}/")

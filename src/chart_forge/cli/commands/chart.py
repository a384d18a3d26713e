"""Chart build and verification commands.

This module provides the commands that build the custom chart and check
it: build, clean, validate, security-scan, test, diff, labels and doctor.
"""

from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from chart_forge.cli.context import get_cli_context
from chart_forge.cli.deployment.chart_diff import diff_charts
from chart_forge.cli.deployment.chart_pipeline import ChartPipeline
from chart_forge.cli.deployment.chart_tester import CaseStatus
from chart_forge.cli.shared.console import with_error_handling
from chart_forge.core.labels import LabelReport, analyze_labels
from chart_forge.core.security import RECOMMENDATIONS

ChartDirOption = Annotated[
    Path | None,
    typer.Option(
        "--chart-dir",
        "-c",
        help="Chart directory (defaults to the built custom chart)",
    ),
]

JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Print the report as JSON"),
]


# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------


@with_error_handling
def build(
    ctx: typer.Context,
    fetch: Annotated[
        bool,
        typer.Option(
            "--fetch/--no-fetch",
            help="Download the base chart before building",
        ),
    ] = True,
) -> None:
    """Build the custom chart from the base chart and kustomize/.

    Examples:
        chart-forge build
        chart-forge build --no-fetch
    """
    cli = get_cli_context(ctx)
    cli.console.print_header("Building Custom Chart")
    summary = ChartPipeline(cli).build(fetch=fetch)

    table = Table(show_header=False, box=None)
    table.add_row("Output", str(summary.output_dir))
    table.add_row("Values overrides", "yes" if summary.values_merged else "no")
    table.add_row("Kustomized", "yes" if summary.kustomized else "no")
    table.add_row("Extra resources", str(summary.resource_files))
    deps_updated = "yes" if summary.dependencies_updated else "no"
    table.add_row("Dependencies updated", deps_updated)
    cli.console.print(table)


@with_error_handling
def clean(ctx: typer.Context) -> None:
    """Remove build artifacts and the cached base chart."""
    ChartPipeline(get_cli_context(ctx)).clean()


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------


@with_error_handling
def validate(
    ctx: typer.Context,
    chart_dir: ChartDirOption = None,
    as_json: JsonOption = False,
) -> None:
    """Validate chart metadata, structure and rendered manifests.

    Runs helm lint, renders the chart (also with ci/test-values.yaml when
    present) and checks required fields, version format, resource specs,
    hardcoded namespaces and storage configuration.
    """
    cli = get_cli_context(ctx)
    report = ChartPipeline(cli).validate(chart_dir)

    if as_json:
        typer.echo(report.to_json())
    else:
        cli.console.print_header("Chart Validation")
        cli.console.print_report(report, "Chart validation")

    if not report.passed:
        raise typer.Exit(1)


@with_error_handling
def security_scan(
    ctx: typer.Context,
    chart_dir: ChartDirOption = None,
    as_json: JsonOption = False,
    parallel: Annotated[
        bool,
        typer.Option("--parallel", help="Evaluate rules on a thread pool"),
    ] = False,
    manifests_dir: Annotated[
        Path | None,
        typer.Option(
            "--manifests-dir",
            "-m",
            help="Scan pre-rendered manifests (e.g. output/production) instead",
        ),
    ] = None,
) -> None:
    """Audit rendered workloads against the security rules.

    Only Deployments and StatefulSets are inspected. Every rule runs on
    every workload, so a single scan lists all violations.

    Examples:
        chart-forge security-scan
        chart-forge security-scan -m output/production
    """
    cli = get_cli_context(ctx)
    report = ChartPipeline(cli).security_scan(
        chart_dir, parallel=parallel, manifests_dir=manifests_dir
    )

    if as_json:
        typer.echo(report.to_json())
    else:
        cli.console.print_header("Security Scan")
        cli.console.print_report(report, "Security scan")
        cli.console.print_list("Security recommendations", RECOMMENDATIONS)

    if not report.passed:
        raise typer.Exit(1)


@with_error_handling
def run_tests(ctx: typer.Context, chart_dir: ChartDirOption = None) -> None:
    """Render the chart under several scenarios and check its structure."""
    cli = get_cli_context(ctx)
    cli.console.print_header("Chart Tests")
    report = ChartPipeline(cli).test(chart_dir)

    table = Table(title="Chart tests")
    table.add_column("Case")
    table.add_column("Status")
    table.add_column("Detail", overflow="fold")
    styles = {
        CaseStatus.PASSED: "[green]passed[/green]",
        CaseStatus.FAILED: "[red]failed[/red]",
        CaseStatus.SKIPPED: "[dim]skipped[/dim]",
    }
    for case in report.cases:
        table.add_row(case.name, styles[case.status], Text(case.detail))
    cli.console.print(table)

    if not report.passed:
        cli.console.error(f"{len(report.failed)} chart test(s) failed")
        raise typer.Exit(1)
    cli.console.ok("All chart tests passed")


@with_error_handling
def diff(
    ctx: typer.Context,
    base_dir: Annotated[
        Path | None,
        typer.Option("--base", help="Base chart directory"),
    ] = None,
    custom_dir: Annotated[
        Path | None,
        typer.Option("--custom", help="Custom chart directory"),
    ] = None,
) -> None:
    """Show differences between the base chart and the custom chart."""
    cli = get_cli_context(ctx)
    base = base_dir or cli.paths.base_chart
    custom = custom_dir or cli.paths.custom_chart
    comparison = diff_charts(base, custom, cli.commands)
    console = cli.console

    for title, file_diff in (
        ("Chart.yaml", comparison.chart_yaml),
        ("values.yaml", comparison.values_yaml),
    ):
        console.print_subheader(f"{title} differences")
        if file_diff.changed:
            console.print(Text(file_diff.diff))
        else:
            console.print(f"No differences in {title}")

    console.print_subheader("Template differences")
    templates = comparison.templates
    for file_diff in templates.changed:
        console.print(f"--- Comparing {file_diff.path} ---")
        console.print(Text(file_diff.diff))
    for path in templates.removed:
        console.print(f"--- File removed: {path} ---")
    for path in templates.added:
        console.print(f"--- New file: {path} ---")
    if templates.is_identical:
        console.print("No template differences")

    table = Table(title="Resource count comparison")
    table.add_column("Kind")
    table.add_column("Base", justify="right")
    table.add_column("Custom", justify="right")
    kinds = sorted(set(comparison.base_kinds) | set(comparison.custom_kinds))
    for kind in kinds:
        table.add_row(
            kind,
            str(comparison.base_kinds.get(kind, 0)),
            str(comparison.custom_kinds.get(kind, 0)),
        )
    console.print(table)
    console.ok("Diff comparison completed")


def _print_label_report(ctx: typer.Context, report: LabelReport) -> None:
    console = get_cli_context(ctx).console
    console.print_subheader("1. Global common labels")
    if report.global_common:
        for key, value in report.global_common.items():
            console.print(f"  - {key}: {value}")
    else:
        console.print("  (None)")

    console.print_subheader("2. Kind common labels (excluding global)")
    for kind, labels in report.kind_common.items():
        console.print(f"  {kind}:")
        for key, value in labels.items():
            console.print(f"    - {key}: {value}")

    console.print_subheader("3. Resource specific labels")
    for ref, keys in report.resource_specific.items():
        console.print(f"  {ref}:")
        for key in keys:
            console.print(f"    - {key}")


@with_error_handling
def labels(
    ctx: typer.Context,
    namespace: Annotated[
        str | None,
        typer.Option(
            "--namespace",
            "-n",
            help="Audit live objects in this namespace instead of the chart",
        ),
    ] = None,
    kind: Annotated[
        str | None,
        typer.Option(
            "--kind",
            "-k",
            help="Resource type to audit in the namespace (e.g. pods)",
        ),
    ] = None,
    chart_dir: ChartDirOption = None,
) -> None:
    """Show tiered labels: global, per-kind and per-resource.

    Examples:
        chart-forge labels
        chart-forge labels -n mimir-system
        chart-forge labels -n mimir-system -k deployments
    """
    cli = get_cli_context(ctx)
    if namespace:
        kubectl = cli.commands.kubectl
        resources = [kind] if kind else kubectl.namespaced_resource_types()
        cli.console.info(f"Analyzing {kind or 'all resources'} in {namespace}")
        objects = kubectl.get_objects(resources, namespace)
    else:
        objects = list(ChartPipeline(cli).render(chart_dir))

    report = analyze_labels(objects)
    if report.object_count == 0:
        cli.console.info("No resources found for the specified criteria.")
        return
    _print_label_report(ctx, report)


@with_error_handling
def doctor(ctx: typer.Context) -> None:
    """Check that the external tools are installed."""
    cli = get_cli_context(ctx)
    tools = (*cli.constants.REQUIRED_TOOLS, "git")
    missing = cli.commands.missing_tools(tools)
    version_checks = {
        "helm": cli.commands.helm.version,
        "kustomize": cli.commands.kustomize.version,
    }
    for tool in tools:
        if tool in missing:
            cli.console.error(f"{tool} not found")
            continue
        check = version_checks.get(tool)
        result = check() if check else None
        if result is not None and result.success and result.stdout.strip():
            version = result.stdout.strip().splitlines()[0]
            cli.console.ok(f"{tool} available ({escape(version)})")
        else:
            cli.console.ok(f"{tool} available")
    if missing:
        raise typer.Exit(1)


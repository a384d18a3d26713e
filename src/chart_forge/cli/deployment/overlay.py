"""Kustomize overlay deployment pipeline.

Generates per-environment manifests for Mimir in distributed mode:

1. Check that helm, kubectl and kustomize are installed
2. Load ``deployment-config.yaml``
3. Create the working directory layout
4. Fetch the upstream chart
5. Render base manifests and write ``base/kustomization.yaml``
6. Validate (or create) the overlay kustomization
7. Build the overlay into ``output/<overlay>/``
8. Validate the output with kubectl and check the distributed components

Directory layout (relative to the working directory)::

    base/                   Helm-generated base manifests
    overlays/<name>/        Environment-specific overlays
    output/<name>/          Final generated manifests
    charts/                 Cached Helm charts
    values/                 Helm values files
"""

from __future__ import annotations

import shutil
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml  # type: ignore[import-untyped]
from loguru import logger
from rich.text import Text

from chart_forge.core.errors import OverlayNotFound, ToolExecutionError
from chart_forge.core.manifests import split_manifests
from chart_forge.infra.constants import DEFAULT_CONSTANTS, ChartConstants
from chart_forge.runtime.config import DeploymentConfig, load_deployment_config
from chart_forge.utils.console_like import ConsoleLike, coalesce_console

from .shell_commands.types import CommandResult

if TYPE_CHECKING:
    from .shell_commands import ShellCommands

KUSTOMIZE_API_VERSION = "kustomize.config.k8s.io/v1beta1"
COMBINED_MANIFEST = "manifests.yaml"
DRY_RUN_PREVIEW_LINES = 50
BASE_VALUES_FILES = ("base.yaml", "distributed-mode.yaml")


@dataclass
class OverlayResult:
    """Outcome of an overlay build."""

    overlay: str
    output_dir: Path
    dry_run: bool = False
    preview: list[str] = field(default_factory=list)
    manifest_files: list[Path] = field(default_factory=list)
    validation_failures: list[str] = field(default_factory=list)
    deployment_count: int = 0
    missing_components: list[str] = field(default_factory=list)


class OverlayDeployer:
    """Builds kustomize overlays on top of Helm-rendered base manifests."""

    def __init__(
        self,
        commands: ShellCommands,
        work_dir: Path,
        *,
        console: ConsoleLike | None = None,
        constants: ChartConstants | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the deployer.

        Args:
            commands: Shell command facade
            work_dir: Directory holding base/, overlays/, output/, charts/, values/
            console: Optional console for progress output
            constants: Build constants (defaults to DEFAULT_CONSTANTS)
            clock: Returns the generation timestamp (defaults to now in UTC)
        """
        self.commands = commands
        self.work_dir = work_dir
        self.console = coalesce_console(console)
        self.constants = constants or DEFAULT_CONSTANTS
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # =========================================================================
    # Paths
    # =========================================================================

    @property
    def base_dir(self) -> Path:
        return self.work_dir / "base"

    @property
    def overlays_dir(self) -> Path:
        return self.work_dir / "overlays"

    @property
    def charts_dir(self) -> Path:
        return self.work_dir / "charts"

    @property
    def values_dir(self) -> Path:
        return self.work_dir / "values"

    def output_dir(self, overlay: str) -> Path:
        return self.work_dir / "output" / overlay

    def _timestamp(self) -> str:
        return self._clock().astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")

    # =========================================================================
    # Pipeline
    # =========================================================================

    def deploy(
        self,
        config_file: Path,
        overlay: str | None = None,
        *,
        dry_run: bool = False,
    ) -> OverlayResult:
        """Run the full overlay pipeline.

        Args:
            config_file: Path to ``deployment-config.yaml``
            overlay: Overlay to build (defaults to the development overlay)
            dry_run: Only preview the kustomize output, write nothing to output/

        Raises:
            MissingToolsError: If a required tool is not installed
            ConfigError: If the configuration file is missing or invalid
            OverlayNotFound: If the overlay directory does not exist
            ToolExecutionError: If helm or kustomize fails
        """
        overlay = overlay or self.constants.DEFAULT_OVERLAY
        self.console.info(
            f"Overlay: {overlay} | Dry Run: {dry_run} | Config: {config_file}"
        )

        self.check_tools()
        config = load_deployment_config(config_file)
        self.create_directories()
        chart_dir = self.fetch_chart(config)
        self.generate_base_manifests(config, chart_dir)
        self.validate_overlay(overlay)
        result = self.build_overlay(overlay, dry_run=dry_run)

        if not dry_run:
            self.validate_manifests(result)
            self.check_distributed_components(result)
        return result

    def check_tools(self) -> None:
        self.console.info("Checking dependencies...")
        self.commands.require_tools(self.constants.REQUIRED_TOOLS)
        self.console.ok("All dependencies are available")

    def create_directories(self) -> None:
        """Create the working directory layout."""
        for directory in (self.base_dir, self.charts_dir, self.values_dir):
            directory.mkdir(parents=True, exist_ok=True)
        for overlay in self.constants.OVERLAYS:
            (self.overlays_dir / overlay).mkdir(parents=True, exist_ok=True)
            self.output_dir(overlay).mkdir(parents=True, exist_ok=True)

    def fetch_chart(self, config: DeploymentConfig) -> Path:
        """Add the chart repository and pull the configured chart.

        Returns:
            Directory of the unpacked chart
        """
        chart = config.chart
        repo_alias = self.constants.BASE_CHART_REPO_NAME
        self.console.info(f"Fetching Helm chart: {chart.name}:{chart.version}")

        self._check(
            self.commands.helm.repo_add(repo_alias, chart.repository),
            ["helm", "repo", "add", repo_alias, chart.repository],
        )
        self._check(self.commands.helm.repo_update(), ["helm", "repo", "update"])

        chart_dir = self.charts_dir / chart.name
        if chart_dir.exists():
            shutil.rmtree(chart_dir)
        ref = f"{repo_alias}/{chart.name}"
        self._check(
            self.commands.helm.pull(ref, chart.version, self.charts_dir),
            ["helm", "pull", ref, "--version", chart.version],
        )
        self.console.ok("Helm chart fetched successfully")
        return chart_dir

    def generate_base_manifests(
        self, config: DeploymentConfig, chart_dir: Path
    ) -> list[str]:
        """Render the chart into ``base/`` and write its kustomization.

        Returns:
            Resource paths listed in ``base/kustomization.yaml``
        """
        self.console.info("Generating base manifests from Helm chart...")
        if self.base_dir.exists():
            shutil.rmtree(self.base_dir)
        self.base_dir.mkdir(parents=True)

        value_files = [
            self.values_dir / name
            for name in BASE_VALUES_FILES
            if (self.values_dir / name).exists()
        ]
        result = self.commands.helm.template(
            self.constants.BASE_RELEASE_NAME,
            chart_dir,
            namespace=self.constants.BASE_NAMESPACE,
            value_files=value_files,
            output_dir=self.base_dir,
        )
        self._check(result, ["helm", "template", self.constants.BASE_RELEASE_NAME])

        self._flatten_rendered_chart(config.chart.name)
        resources = self.write_base_kustomization(config.chart.version)
        self.console.ok(f"Base manifests generated ({len(resources)} resources)")
        return resources

    def _flatten_rendered_chart(self, chart_name: str) -> None:
        """Move ``base/<chart>/templates/*`` to ``base/``."""
        rendered = self.base_dir / chart_name
        templates = rendered / "templates"
        if templates.is_dir():
            for item in sorted(templates.iterdir()):
                shutil.move(str(item), str(self.base_dir / item.name))
        if rendered.is_dir():
            shutil.rmtree(rendered)

    def write_base_kustomization(self, chart_version: str) -> list[str]:
        resources = sorted(
            path.relative_to(self.base_dir).as_posix()
            for path in self.base_dir.rglob("*.yaml")
            if path.name != "kustomization.yaml"
        )
        kustomization: dict[str, Any] = {
            "apiVersion": KUSTOMIZE_API_VERSION,
            "kind": "Kustomization",
            "metadata": {
                "name": self.constants.KUSTOMIZE_RELEASE_NAME,
                "annotations": {
                    "mimir-deployment/source": "helm",
                    "mimir-deployment/chart-version": chart_version,
                    "mimir-deployment/generated-at": self._timestamp(),
                },
            },
            "resources": resources,
            "commonLabels": {
                "mimir-deployment/managed-by": "kustomize",
                "mimir-deployment/component": "mimir",
            },
            "commonAnnotations": {
                "mimir-deployment/source": "helm",
                "mimir-deployment/chart-version": chart_version,
            },
        }
        with open(self.base_dir / "kustomization.yaml", "w") as f:
            yaml.safe_dump(kustomization, f, sort_keys=False)
        return resources

    def available_overlays(self) -> list[str]:
        if not self.overlays_dir.is_dir():
            return []
        return sorted(p.name for p in self.overlays_dir.iterdir() if p.is_dir())

    def validate_overlay(self, overlay: str) -> bool:
        """Ensure the overlay exists, generating a kustomization when absent.

        Returns:
            True if a kustomization.yaml was generated

        Raises:
            OverlayNotFound: If ``overlays/<overlay>`` does not exist
        """
        overlay_dir = self.overlays_dir / overlay
        if not overlay_dir.is_dir():
            raise OverlayNotFound(overlay, self.available_overlays())

        kustomization_file = overlay_dir / "kustomization.yaml"
        if kustomization_file.exists():
            return False

        self.console.warn(f"No kustomization.yaml found in overlays/{overlay}")
        self.console.info(f"Creating basic kustomization.yaml for {overlay} overlay")
        kustomization = {
            "apiVersion": KUSTOMIZE_API_VERSION,
            "kind": "Kustomization",
            "metadata": {
                "name": f"mimir-{overlay}",
                "annotations": {
                    "mimir-deployment/overlay": overlay,
                    "mimir-deployment/generated-at": self._timestamp(),
                },
            },
            "resources": ["../../base"],
            "namePrefix": f"{overlay}-",
            "commonLabels": {"mimir-deployment/environment": overlay},
        }
        with open(kustomization_file, "w") as f:
            yaml.safe_dump(kustomization, f, sort_keys=False)
        return True

    def build_overlay(self, overlay: str, *, dry_run: bool = False) -> OverlayResult:
        """Run ``kustomize build`` for an overlay.

        In dry-run mode the first lines of the output are kept as a preview
        and nothing is written.
        """
        self.console.info(f"Applying Kustomize transformations for overlay: {overlay}")
        output_dir = self.output_dir(overlay)
        result = OverlayResult(overlay=overlay, output_dir=output_dir, dry_run=dry_run)

        overlay_dir = self.overlays_dir / overlay
        built = self.commands.kustomize.build(overlay_dir)
        self._check(built, ["kustomize", "build", str(overlay_dir)])

        if dry_run:
            result.preview = built.stdout.splitlines()[:DRY_RUN_PREVIEW_LINES]
            for line in result.preview:
                self.console.print(Text(line))
            self.console.info("... (output truncated in dry-run mode)")
            return result

        if output_dir.exists():
            shutil.rmtree(output_dir)
        output_dir.mkdir(parents=True)
        (output_dir / COMBINED_MANIFEST).write_text(built.stdout)
        result.manifest_files = split_manifests(built.stdout, output_dir)
        self.console.info(
            f"Split into {len(result.manifest_files)} individual manifest files"
        )
        self.console.ok("Kustomize transformations applied")
        return result

    def validate_manifests(self, result: OverlayResult) -> None:
        """Validate each split manifest with a client-side kubectl dry run.

        Failures are counted and reported as warnings.
        """
        self.console.info("Validating generated manifests...")
        for manifest in result.manifest_files:
            check = self.commands.kubectl.dry_run_apply(manifest)
            if not check.success:
                logger.debug(f"kubectl rejected {manifest.name}: {check.output}")
                self.console.warn(f"Validation failed for: {manifest.name}")
                result.validation_failures.append(manifest.name)

        if result.validation_failures:
            self.console.warn(
                f"{len(result.validation_failures)} manifest(s) failed validation"
            )
        else:
            self.console.ok("All manifests validated successfully")

        result.deployment_count = sum(
            1 for path in result.manifest_files if path.name.startswith("deployment-")
        )
        self.console.info(
            f"Generated {len(result.manifest_files)} manifest files "
            f"with {result.deployment_count} deployments"
        )

    def check_distributed_components(
        self,
        result: OverlayResult,
        components: Sequence[str] | None = None,
    ) -> list[str]:
        """Report distributed-mode components that no manifest mentions.

        A component counts as present when ``mimir-<component>`` appears in
        any generated manifest file.
        """
        self.console.info("Validating distributed mode components...")
        texts = [path.read_text() for path in result.manifest_files if path.exists()]
        wanted = components or self.constants.DISTRIBUTED_COMPONENTS
        result.missing_components = [
            c for c in wanted if not any(f"mimir-{c}" in text for text in texts)
        ]
        if result.missing_components:
            self.console.warn(
                "Missing distributed mode components: "
                + " ".join(result.missing_components)
            )
        else:
            self.console.ok("All required distributed mode components found")
        return result.missing_components

    @staticmethod
    def _check(result: CommandResult, command: list[str]) -> None:
        if not result.success:
            raise ToolExecutionError(command, result.output)

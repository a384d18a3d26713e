"""Build constants and project paths.

This module centralizes the magic strings, paths, and defaults used
throughout the chart build and release process.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class ChartConstants:
    """Constants for building and releasing the custom chart.

    All attributes are class-level and immutable.
    """

    # Chart identity
    CHART_NAME: str = "mimir-custom"
    CHART_DESCRIPTION: str = "Custom Grafana Mimir chart with kustomizations"

    # Upstream chart
    BASE_CHART_REPO: str = "https://grafana.github.io/helm-charts"
    BASE_CHART_REPO_NAME: str = "grafana"
    BASE_CHART_NAME: str = "mimir-distributed"
    BASE_CHART_VERSION: str = "5.4.0"

    # Versioning
    DEFAULT_VERSION: str = "0.1.0"

    # Release names used when rendering templates
    TEMPLATE_RELEASE_NAME: str = "test"
    SECURITY_RELEASE_NAME: str = "security-test"
    KUSTOMIZE_RELEASE_NAME: str = "mimir-base"
    BASE_RELEASE_NAME: str = "mimir"
    BASE_NAMESPACE: str = "mimir-system"

    # Repository index to register in install instructions
    HELM_REPO_ALIAS: str = "custom-charts"

    # Tools required by the overlay pipeline
    REQUIRED_TOOLS: tuple[str, ...] = ("helm", "kubectl", "kustomize")

    # Mimir microservices expected in distributed mode
    DISTRIBUTED_COMPONENTS: tuple[str, ...] = (
        "ingester",
        "distributor",
        "querier",
        "query-frontend",
        "compactor",
        "store-gateway",
    )

    # Kustomize overlays
    OVERLAYS: tuple[str, ...] = ("development", "staging", "production")
    DEFAULT_OVERLAY: str = "development"

    # Chart test scenarios: (values file stem, description)
    TEST_SCENARIOS: tuple[tuple[str, str], ...] = (
        ("default", "Default values"),
        ("minimal", "Minimal configuration"),
        ("production", "Production configuration"),
    )
    TEST_REPLICA_COUNTS: tuple[int, ...] = (1, 3, 5)

    # Relative path fragments for project structure
    BUILD_DIR: str = "build"
    OUTPUT_DIR: str = "output"
    PACKAGE_DIR: str = "packages"
    CHARTS_DIR: str = "charts"
    KUSTOMIZE_DIR: str = "kustomize"
    VERSION_FILE: str = "VERSION"
    DEPLOYMENT_CONFIG: str = "deployment-config.yaml"


class ChartPaths:
    """Path resolver for build-related directories and files.

    All paths are derived from the project root.
    """

    def __init__(
        self, project_root: Path, constants: ChartConstants | None = None
    ) -> None:
        """Initialize chart paths.

        Args:
            project_root: Path to the project root directory
            constants: Build constants (defaults to DEFAULT_CONSTANTS)
        """
        self._project_root = project_root
        self._constants = constants or DEFAULT_CONSTANTS

        self.build = project_root / self._constants.BUILD_DIR
        self.output = self.build / self._constants.OUTPUT_DIR
        self.packages = self.build / self._constants.PACKAGE_DIR
        self.charts = project_root / self._constants.CHARTS_DIR
        self.kustomize = project_root / self._constants.KUSTOMIZE_DIR

    @property
    def project_root(self) -> Path:
        """Get path to project root."""
        return self._project_root

    @property
    def version_file(self) -> Path:
        """Get path to the VERSION file."""
        return self.project_root / self._constants.VERSION_FILE

    @property
    def base_chart(self) -> Path:
        """Get path to the downloaded upstream chart."""
        return self.charts / self._constants.BASE_CHART_NAME

    @property
    def custom_chart(self) -> Path:
        """Get path to the built custom chart."""
        return self.output / self._constants.CHART_NAME

    @property
    def custom_chart_yaml(self) -> Path:
        """Get path to the built chart's Chart.yaml."""
        return self.custom_chart / "Chart.yaml"

    @property
    def deployment_config(self) -> Path:
        """Get path to deployment-config.yaml."""
        return self.project_root / self._constants.DEPLOYMENT_CONFIG

    @property
    def env_file(self) -> Path:
        """Get path to .env file."""
        return self.project_root / ".env"

    def package_file(self, version: str) -> Path:
        """Get path of the packaged chart for a version."""
        return self.packages / f"{self._constants.CHART_NAME}-{version}.tgz"


DEFAULT_CONSTANTS = ChartConstants()

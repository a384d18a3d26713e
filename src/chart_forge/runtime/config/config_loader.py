"""Loading of ``deployment-config.yaml``.

Expected structure::

    spec:
      helm:
        chart:
          repository: https://grafana.github.io/helm-charts
          name: mimir-distributed
          version: 5.4.0
      validation:
        kubernetes_version: "1.29"
"""

from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]
from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from chart_forge.core.errors import ConfigError


class ChartSource(BaseModel):
    """Where the upstream chart is fetched from."""

    repository: str = "https://grafana.github.io/helm-charts"
    name: str = "mimir-distributed"
    version: str = "5.4.0"


class HelmSpec(BaseModel):
    chart: ChartSource = Field(default_factory=ChartSource)


class ValidationSpec(BaseModel):
    kubernetes_version: str | None = None


class DeploymentSpec(BaseModel):
    helm: HelmSpec = Field(default_factory=HelmSpec)
    validation: ValidationSpec = Field(default_factory=ValidationSpec)


class DeploymentConfig(BaseModel):
    """Top-level deployment configuration document."""

    spec: DeploymentSpec = Field(default_factory=DeploymentSpec)

    @property
    def chart(self) -> ChartSource:
        return self.spec.helm.chart


def load_deployment_config(file_path: Path) -> DeploymentConfig:
    """Load and validate a deployment configuration file.

    Args:
        file_path: Path to ``deployment-config.yaml``

    Returns:
        Validated DeploymentConfig

    Raises:
        ConfigError: If the file is missing, is not valid YAML, or does not
            match the expected structure
    """
    if not file_path.exists():
        raise ConfigError(f"Configuration file not found: {file_path}")

    logger.debug(f"Loading configuration from {file_path}")
    try:
        with open(file_path) as f:
            loaded: Any = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing YAML: {file_path}", details=str(e)) from e

    if loaded is None:
        loaded = {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"Invalid configuration structure: {file_path}")

    try:
        config = DeploymentConfig(**loaded)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {file_path}", details=str(e)) from e

    chart = config.chart
    logger.debug(
        f"Chart source: {chart.repository} {chart.name}:{chart.version} "
        f"(kubernetes {config.spec.validation.kubernetes_version})"
    )
    return config

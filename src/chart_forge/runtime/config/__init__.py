from .config_loader import (
    ChartSource,
    DeploymentConfig,
    DeploymentSpec,
    HelmSpec,
    ValidationSpec,
    load_deployment_config,
)

__all__ = [
    "ChartSource",
    "DeploymentConfig",
    "DeploymentSpec",
    "HelmSpec",
    "ValidationSpec",
    "load_deployment_config",
]

"""Artifactory Helm repository publishing."""

from .config import PublisherConfig
from .publisher import (
    ChartPublisher,
    PublishResult,
    install_commands,
    parse_artifact_name,
    publish,
)

__all__ = [
    "ChartPublisher",
    "PublishResult",
    "PublisherConfig",
    "install_commands",
    "parse_artifact_name",
    "publish",
]

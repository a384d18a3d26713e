"""Exception types raised by chart-forge operations.

Every error carries a short ``message`` naming what failed and optional
``details`` with recovery hints. The CLI renders both and exits non-zero.
"""

from __future__ import annotations

from collections.abc import Sequence


class ChartForgeError(Exception):
    """Base class for all chart-forge failures."""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(message)


# =============================================================================
# Versioning
# =============================================================================


class InvalidVersionFormat(ChartForgeError):
    """Raised when a version string is not ``x.y.z``."""

    def __init__(self, version: str):
        self.version = version
        super().__init__(
            f"Invalid version format: {version!r}",
            details="Expected x.y.z (e.g. 1.4.0)",
        )


class InvalidBumpKind(ChartForgeError):
    """Raised when the bump directive is not major, minor or patch."""

    def __init__(self, bump_kind: str):
        self.bump_kind = bump_kind
        super().__init__(
            f"Invalid bump kind: {bump_kind!r}",
            details="Use major, minor, or patch",
        )


# =============================================================================
# Publishing
# =============================================================================


class MissingCredentials(ChartForgeError):
    """Raised when repository coordinates or credentials are empty."""

    def __init__(self, fields: Sequence[str]):
        self.fields = tuple(fields)
        super().__init__(
            f"Missing repository settings: {', '.join(self.fields)}",
            details="Set ARTIFACTORY_URL, ARTIFACTORY_REPO, ARTIFACTORY_USER "
            "and ARTIFACTORY_TOKEN (environment or .env)",
        )


class ArtifactNotFound(ChartForgeError):
    """Raised when the chart package to publish does not exist."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Chart package not found: {path}")


class UnparseableArtifactName(ChartForgeError):
    """Raised when a package filename lacks a ``-<semver>.tgz`` suffix."""

    def __init__(self, filename: str):
        self.filename = filename
        super().__init__(
            f"Cannot derive chart name and version from {filename!r}",
            details="Expected <name>-<x.y.z>.tgz",
        )


class UploadFailed(ChartForgeError):
    """Raised when the repository rejects an upload."""

    def __init__(self, status: int, url: str = ""):
        self.status = status
        self.url = url
        super().__init__(
            f"Upload failed with HTTP status: {status}",
            details=f"PUT {url}" if url else None,
        )


class RepositoryUnreachable(ChartForgeError):
    """Raised when the upload request fails before any HTTP response."""

    def __init__(self, url: str, cause: Exception):
        self.url = url
        self.cause = cause
        super().__init__(
            f"Cannot reach repository: {url}",
            details=f"{type(cause).__name__}: {cause}",
        )


# =============================================================================
# Tooling and configuration
# =============================================================================


class ToolExecutionError(ChartForgeError):
    """Raised when an external tool (helm, kustomize, kubectl, git) fails."""

    def __init__(self, command: Sequence[str], output: str = ""):
        self.command = list(command)
        self.output = output
        super().__init__(
            f"Command failed: {' '.join(self.command)}",
            details=output.strip() or None,
        )


class MissingToolsError(ChartForgeError):
    """Raised when required command-line tools are not installed."""

    def __init__(self, tools: Sequence[str]):
        self.tools = tuple(tools)
        super().__init__(
            f"Missing required tools: {' '.join(self.tools)}",
            details=f"Install them first, e.g. 'brew install {' '.join(self.tools)}'",
        )


class ConfigError(ChartForgeError):
    """Raised when a configuration file is missing or invalid."""


class OverlayNotFound(ChartForgeError):
    """Raised when the requested kustomize overlay does not exist."""

    def __init__(self, overlay: str, available: Sequence[str]):
        self.overlay = overlay
        self.available = tuple(available)
        listing = ", ".join(self.available) if self.available else "none"
        super().__init__(
            f"Overlay directory not found: overlays/{overlay}",
            details=f"Available overlays: {listing}",
        )

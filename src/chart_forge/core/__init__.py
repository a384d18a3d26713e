"""Core chart operations, free of CLI concerns.

- versioning: next semantic version from a bump directive
- assembler: build the custom chart from the base chart
- validator: static validation of chart metadata and manifests
- security: security audit of rendered workloads
"""

from .errors import ChartForgeError
from .findings import Finding, ManifestRef, Severity, ValidationReport
from .manifests import RenderedManifestSet, split_manifests
from .security import audit
from .validator import validate
from .versioning import SemVer, next_version

__all__ = [
    "ChartForgeError",
    "Finding",
    "ManifestRef",
    "RenderedManifestSet",
    "SemVer",
    "Severity",
    "ValidationReport",
    "audit",
    "next_version",
    "split_manifests",
    "validate",
]

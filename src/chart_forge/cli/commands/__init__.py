"""CLI command modules.

Command groups:
- chart: build, validate, security-scan, test, diff, labels, doctor, clean
- release: package, publish, tag, release
- deploy: kustomize overlay pipeline
- version: show and bump the chart version
"""

from .chart import (
    build,
    clean,
    diff,
    doctor,
    labels,
    run_tests,
    security_scan,
    validate,
)
from .deploy import deploy
from .release import package, publish, release, tag
from .version import version_app

__all__ = [
    "build",
    "clean",
    "deploy",
    "diff",
    "doctor",
    "labels",
    "package",
    "publish",
    "release",
    "run_tests",
    "security_scan",
    "tag",
    "validate",
    "version_app",
]

"""Semantic version negotiation for chart releases.

Computes the next chart version from a bump directive (major, minor, patch)
and an optional CI build number, and persists the current version in the
project's ``VERSION`` file.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import yaml  # type: ignore[import-untyped]
from loguru import logger

from .errors import InvalidBumpKind, InvalidVersionFormat

VERSION_PATTERN = re.compile(r"([0-9]+)\.([0-9]+)\.([0-9]+)")
DEFAULT_VERSION = "0.1.0"


class BumpKind(str, Enum):
    """Version component to increment."""

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"


@dataclass(frozen=True)
class SemVer:
    """An immutable ``major.minor.patch`` version.

    Attributes:
        major: Major component
        minor: Minor component
        patch: Patch component
        build_suffix: Optional CI build number, rendered as ``-build.<suffix>``.
            It is display-only and never participates in ordering.
    """

    major: int
    minor: int
    patch: int
    build_suffix: str | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if min(self.major, self.minor, self.patch) < 0:
            raise InvalidVersionFormat(f"{self.major}.{self.minor}.{self.patch}")

    @classmethod
    def parse(cls, text: str) -> SemVer:
        """Parse a strict ``x.y.z`` version string.

        Raises:
            InvalidVersionFormat: If the text is not three dot-separated integers
        """
        match = VERSION_PATTERN.fullmatch(text)
        if not match:
            raise InvalidVersionFormat(text)
        major, minor, patch = (int(part) for part in match.groups())
        return cls(major, minor, patch)

    @property
    def ordering_key(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def __lt__(self, other: SemVer) -> bool:
        return self.ordering_key < other.ordering_key

    def __le__(self, other: SemVer) -> bool:
        return self.ordering_key <= other.ordering_key

    def __gt__(self, other: SemVer) -> bool:
        return self.ordering_key > other.ordering_key

    def __ge__(self, other: SemVer) -> bool:
        return self.ordering_key >= other.ordering_key

    def bump(self, kind: BumpKind) -> SemVer:
        """Return a new version with the given component incremented."""
        if kind is BumpKind.MAJOR:
            return SemVer(self.major + 1, 0, 0)
        if kind is BumpKind.MINOR:
            return SemVer(self.major, self.minor + 1, 0)
        return SemVer(self.major, self.minor, self.patch + 1)

    @property
    def base(self) -> SemVer:
        """This version without its build suffix."""
        return SemVer(self.major, self.minor, self.patch)

    def with_build(self, build_number: str | None) -> SemVer:
        return SemVer(self.major, self.minor, self.patch, build_number or None)

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.build_suffix:
            text = f"{text}-build.{self.build_suffix}"
        return text


def parse_bump_kind(value: str | BumpKind) -> BumpKind:
    """Coerce a bump directive, raising InvalidBumpKind for unknown values."""
    if isinstance(value, BumpKind):
        return value
    try:
        return BumpKind(value)
    except ValueError:
        raise InvalidBumpKind(value) from None


def next_version(
    bump_kind: str | BumpKind,
    current_version: str,
    build_number: str | None = None,
) -> SemVer:
    """Compute the next semantic version.

    Every call increments: feeding the result back in bumps again.

    Args:
        bump_kind: One of major, minor, patch
        current_version: Current version in strict ``x.y.z`` form
        build_number: Optional CI build number appended as ``-build.<n>``

    Returns:
        The bumped version

    Raises:
        InvalidVersionFormat: If current_version is not ``x.y.z``
        InvalidBumpKind: If bump_kind is not major, minor or patch

    Example:
        >>> str(next_version("patch", "0.1.0", "42"))
        '0.1.1-build.42'
    """
    current = SemVer.parse(current_version)
    kind = parse_bump_kind(bump_kind)
    return current.bump(kind).with_build(build_number)


class VersionFile:
    """The project's ``VERSION`` file holding the current release version."""

    def __init__(self, path: Path, default: str = DEFAULT_VERSION) -> None:
        self.path = path
        self.default = default

    def read(self) -> str:
        """Return the stored version, or the default when the file is absent."""
        if not self.path.exists():
            logger.debug(f"{self.path} not found, using default {self.default}")
            return self.default
        return self.path.read_text().strip() or self.default

    def write(self, version: SemVer | str) -> None:
        self.path.write_text(f"{version}\n")
        logger.debug(f"Wrote version {version} to {self.path}")


def set_chart_version(chart_yaml: Path, version: SemVer | str) -> None:
    """Rewrite the ``version`` field of a chart's Chart.yaml."""
    with open(chart_yaml) as f:
        chart = yaml.safe_load(f) or {}
    chart["version"] = str(version)
    with open(chart_yaml, "w") as f:
        yaml.safe_dump(chart, f, sort_keys=False)

"""Differences between the base chart and the customized chart."""

from __future__ import annotations

import difflib
from collections.abc import Mapping
from dataclasses import dataclass, field


@dataclass
class FileDiff:
    """Unified diff of one file present in both trees."""

    path: str
    diff: str

    @property
    def changed(self) -> bool:
        return bool(self.diff)


@dataclass
class ChartDiff:
    """Differences between two sets of files keyed by relative path."""

    compared: list[FileDiff] = field(default_factory=list)
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)

    @property
    def changed(self) -> list[FileDiff]:
        return [d for d in self.compared if d.changed]

    @property
    def is_identical(self) -> bool:
        return not self.changed and not self.added and not self.removed


def unified_diff(before: str, after: str, path: str) -> str:
    """Return a unified diff of two texts, or an empty string when equal."""
    lines = difflib.unified_diff(
        before.splitlines(keepends=True),
        after.splitlines(keepends=True),
        fromfile=f"base/{path}",
        tofile=f"custom/{path}",
    )
    return "".join(lines)


def diff_trees(base: Mapping[str, str], custom: Mapping[str, str]) -> ChartDiff:
    """Compare two file trees given as ``{relative_path: content}``."""
    result = ChartDiff()
    for path in sorted(base):
        if path in custom:
            text = unified_diff(base[path], custom[path], path)
            result.compared.append(FileDiff(path, text))
        else:
            result.removed.append(path)
    result.added = sorted(p for p in custom if p not in base)
    return result

"""Tiered label analysis of Kubernetes objects.

Splits the label keys used across a set of objects into three tiers:
1. Global common: keys present on every object
2. Kind common: keys shared by every object of one kind, excluding global keys
3. Resource specific: keys of one object not shared by the rest of its kind
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from .manifests import Manifest, manifest_kind, manifest_name


@dataclass
class LabelReport:
    """Result of a tiered label analysis."""

    object_count: int = 0
    global_common: dict[str, str] = field(default_factory=dict)
    kind_common: dict[str, dict[str, str]] = field(default_factory=dict)
    resource_specific: dict[str, list[str]] = field(default_factory=dict)


def _labels(manifest: Manifest) -> Mapping[str, Any]:
    metadata = manifest.get("metadata") or {}
    return metadata.get("labels") or {}


def _common_keys(items: list[Manifest]) -> list[str]:
    """Keys present on every item, in the order of the first item's labels."""
    if not items:
        return []
    common = list(_labels(items[0]))
    for item in items[1:]:
        keys = _labels(item)
        common = [k for k in common if k in keys]
    return common


def analyze_labels(objects: Iterable[Manifest]) -> LabelReport:
    """Compute global, per-kind and per-resource label tiers.

    Values shown for common keys are taken from the first object carrying
    them. Kinds are reported in sorted order; resources in input order.
    """
    items = list(objects)
    report = LabelReport(object_count=len(items))
    if not items:
        return report

    global_keys = _common_keys(items)
    first_labels = _labels(items[0])
    report.global_common = {k: str(first_labels[k]) for k in global_keys}

    by_kind: dict[str, list[Manifest]] = {}
    for item in items:
        by_kind.setdefault(manifest_kind(item), []).append(item)

    for kind in sorted(by_kind):
        members = by_kind[kind]
        kind_keys = _common_keys(members)
        kind_only = [k for k in kind_keys if k not in global_keys]
        if kind_only:
            sample = _labels(members[0])
            report.kind_common[kind] = {k: str(sample[k]) for k in kind_only}

        for member in members:
            specific = [k for k in _labels(member) if k not in kind_keys]
            if specific:
                ref = f"{kind}/{manifest_name(member)}"
                report.resource_specific[ref] = specific

    return report

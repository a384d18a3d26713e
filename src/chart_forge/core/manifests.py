"""Rendered Kubernetes manifests.

Helpers for reading the multi-document YAML streams produced by
``helm template`` and ``kustomize build``, and for splitting them into one
file per resource.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]
from loguru import logger

WORKLOAD_KINDS: tuple[str, ...] = ("Deployment", "StatefulSet")

Manifest = Mapping[str, Any]


def manifest_kind(manifest: Manifest) -> str:
    return str(manifest.get("kind") or "")


def manifest_name(manifest: Manifest) -> str:
    metadata = manifest.get("metadata") or {}
    return str(metadata.get("name") or "")


def pod_spec(manifest: Manifest) -> Mapping[str, Any]:
    """Return ``spec.template.spec`` of a workload, or an empty mapping."""
    spec = manifest.get("spec") or {}
    template = spec.get("template") or {}
    return template.get("spec") or {}


def containers(manifest: Manifest) -> list[Mapping[str, Any]]:
    """Return the (non-init) containers of a workload's pod template."""
    items = pod_spec(manifest).get("containers") or []
    return [c for c in items if isinstance(c, Mapping)]


class RenderedManifestSet(Sequence[Manifest]):
    """Ordered, read-only snapshot of rendered manifest documents."""

    def __init__(self, documents: Iterable[Manifest] = ()) -> None:
        self._documents: tuple[Manifest, ...] = tuple(
            doc for doc in documents if isinstance(doc, Mapping) and doc
        )

    @classmethod
    def from_yaml(cls, stream: str) -> RenderedManifestSet:
        """Parse a multi-document YAML stream, skipping empty documents."""
        return cls(yaml.safe_load_all(stream))

    @classmethod
    def from_directory(cls, directory: Path) -> RenderedManifestSet:
        """Load every ``*.yaml``/``*.yml`` file under a directory, sorted by path."""
        documents: list[Manifest] = []
        files = sorted([*directory.rglob("*.yaml"), *directory.rglob("*.yml")])
        for path in files:
            documents.extend(yaml.safe_load_all(path.read_text()))
        return cls(documents)

    def __getitem__(self, index):  # type: ignore[no-untyped-def]
        return self._documents[index]

    def __len__(self) -> int:
        return len(self._documents)

    def __iter__(self) -> Iterator[Manifest]:
        return iter(self._documents)

    def of_kind(self, *kinds: str) -> list[Manifest]:
        return [doc for doc in self._documents if manifest_kind(doc) in kinds]

    def workloads(self) -> list[Manifest]:
        """Return Deployments and StatefulSets, in document order."""
        return self.of_kind(*WORKLOAD_KINDS)

    def names(self) -> list[str]:
        return [manifest_name(doc) for doc in self._documents]


def manifest_filename(manifest: Manifest) -> str | None:
    """Return ``<kind>-<name>.yaml`` (lowercased), or None without kind or name."""
    kind = manifest_kind(manifest)
    name = manifest_name(manifest)
    if not kind or not name:
        return None
    return f"{kind}-{name}.yaml".lower()


def split_manifests(stream: str, output_dir: Path) -> list[Path]:
    """Write each document of a YAML stream to its own file.

    Files are named ``<kind>-<name>.yaml`` in lowercase. Documents lacking a
    kind or a name are skipped.

    Args:
        stream: Multi-document YAML (e.g. kustomize build output)
        output_dir: Directory to write into (created if needed)

    Returns:
        Paths written, in document order
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []

    for document in RenderedManifestSet.from_yaml(stream):
        filename = manifest_filename(document)
        if filename is None:
            logger.debug("Skipping manifest without kind or metadata.name")
            continue
        path = output_dir / filename
        with open(path, "w") as f:
            yaml.safe_dump(dict(document), f, sort_keys=False)
        written.append(path)

    logger.debug(f"Split {len(written)} manifests into {output_dir}")
    return written

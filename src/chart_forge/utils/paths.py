from __future__ import annotations

from pathlib import Path

# Files that only exist at the top of a chart-forge project
PROJECT_MARKERS = ("VERSION", "deployment-config.yaml", "pyproject.toml")


def get_project_root(start: Path | None = None) -> Path:
    """Find the chart project the CLI was started in.

    Walks up from ``start`` (default: the working directory) to the first
    directory containing one of PROJECT_MARKERS.

    Returns:
        The project directory, or the resolved start directory when no
        marker is found
    """
    current = (start or Path.cwd()).resolve()
    for parent in [current, *current.parents]:
        if any((parent / marker).exists() for marker in PROJECT_MARKERS):
            return parent
    return current

"""
Project discovery.

A Shuffle project root is the nearest directory, starting at the caller's
working directory and walking strictly upward, that directly contains the
marker file ``Shuffle.toml``. This is the only place in the package that
searches the filesystem; every other component takes the resolved root as
an argument.
"""

from __future__ import annotations

from pathlib import Path
from typing import Union

from .errors import ProjectNotFound

MARKER_FILE = "Shuffle.toml"
MAIN_PKG_PATH = "main"


def get_shuffle_project_path(cwd: Union[str, Path]) -> Path:
    """
    Check `cwd`, then each parent directory, for a Shuffle.toml file.

    Raises ProjectNotFound once the filesystem root has been checked.
    """
    start = Path(cwd).absolute()
    for candidate in (start, *start.parents):
        if (candidate / MARKER_FILE).is_file():
            return candidate
    raise ProjectNotFound(start, marker=MARKER_FILE)


def main_package_path(project_path: Path) -> Path:
    return project_path / MAIN_PKG_PATH


__all__ = ["MARKER_FILE", "MAIN_PKG_PATH", "get_shuffle_project_path", "main_package_path"]

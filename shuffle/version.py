"""
Version helpers for Shuffle.

Resolution order:
    1) SHUFFLE_VERSION env var (authoritative override)
    2) installed distribution metadata
    3) DEFAULT_VERSION
"""

from __future__ import annotations

import os
from importlib import metadata

DEFAULT_VERSION = "0.1.0"


def _detect() -> str:
    override = os.environ.get("SHUFFLE_VERSION")
    if override:
        return override.strip()
    try:
        return metadata.version("shuffle")
    except metadata.PackageNotFoundError:
        return DEFAULT_VERSION


__version__: str = _detect()

__all__ = ["__version__", "DEFAULT_VERSION"]

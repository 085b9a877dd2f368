"""
Shuffle: project discovery, Move package builds, TypeScript binding
generation and test-network bootstrap for Move smart-contract projects.
"""

from .version import __version__

__all__ = ["__version__"]

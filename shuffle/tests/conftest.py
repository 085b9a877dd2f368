from __future__ import annotations

import logging
from pathlib import Path

import pytest

from shuffle import logging as slog
from shuffle.home import Home

from .fakes import MOVE_TOML


@pytest.fixture(autouse=True)
def _reset_logging():
    """Drop handlers installed by slog.configure (the CLI callback installs one per invocation)."""
    yield
    root = logging.getLogger()
    for h in list(root.handlers):
        if isinstance(h.formatter, (slog.JSONFormatter, slog.TextFormatter)):
            root.removeHandler(h)
    slog.clear_context()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    root = tmp_path / "proj"
    (root / "main").mkdir(parents=True)
    (root / "Shuffle.toml").write_text('blockchain = "goodday"\n')
    (root / "main" / "Move.toml").write_text(MOVE_TOML)
    return root


@pytest.fixture
def home(tmp_path: Path) -> Home:
    h = Home(tmp_path / ".shuffle")
    h.generate_shuffle_path_if_nonexistent()
    h.write_default_networks_config_into_toml()
    return h

from pathlib import Path

import pytest

from shuffle.errors import ProjectNotFound
from shuffle.project import get_shuffle_project_path, main_package_path


def test_finds_marker_in_start_directory(project: Path) -> None:
    assert get_shuffle_project_path(project) == project.absolute()


def test_finds_marker_from_nested_descendant(project: Path) -> None:
    deep = project / "main" / "sources" / "nested"
    deep.mkdir(parents=True)
    assert get_shuffle_project_path(deep) == project.absolute()


def test_nearest_marker_wins(project: Path) -> None:
    inner = project / "examples" / "inner"
    inner.mkdir(parents=True)
    (inner / "Shuffle.toml").write_text('blockchain = "other"\n')
    assert get_shuffle_project_path(inner / ".") == inner.absolute()


def test_marker_must_be_a_file(tmp_path: Path) -> None:
    start = tmp_path / "a" / "b"
    start.mkdir(parents=True)
    (tmp_path / "a" / "Shuffle.toml").mkdir()
    with pytest.raises(ProjectNotFound) as ei:
        get_shuffle_project_path(start)
    assert "unable to find Shuffle.toml; are you in a Shuffle project?" in str(ei.value)


def test_main_package_path(project: Path) -> None:
    assert main_package_path(project) == project / "main"

"""
``shuffle new``: create a project directory.

Writes the marker file and the example project tree bundled under
``shuffle/templates`` (a Move package under ``main/`` plus Deno tests under
``e2e/`` and ``integration/``), then generates the TypeScript bindings for
the new package. ``{{name}}`` placeholders in the templates are substituted;
unknown placeholders are left untouched.
"""

from __future__ import annotations

import re
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Dict, Iterator, Mapping, Optional, TextIO, Tuple

from .build import Compiler
from .codegen import generate_typescript_libraries
from .config import DEFAULT_BLOCKCHAIN, Config
from .errors import IOErrorS, ShuffleError
from .home import Home
from .logging import get_logger, stage_scope
from .project import MARKER_FILE

log = get_logger(__name__)

TEMPLATES_DIR = "templates"
# Placeholder account for packages created before any account exists.
DEFAULT_SENDER_ADDRESS = "0x1"

RE_MUSTACHE = re.compile(r"{{\s*([A-Za-z_][A-Za-z0-9_]*)\s*}}")


def substitute_placeholders(text: str, variables: Mapping[str, object]) -> str:
    def repl(m: "re.Match[str]") -> str:
        key = m.group(1)
        return str(variables[key]) if key in variables else m.group(0)

    return RE_MUSTACHE.sub(repl, text)


def _walk(node: Traversable, prefix: Tuple[str, ...] = ()) -> Iterator[Tuple[Tuple[str, ...], Traversable]]:
    for child in sorted(node.iterdir(), key=lambda c: c.name):
        if child.name.startswith(("_", ".")):
            continue
        if child.is_dir():
            yield from _walk(child, prefix + (child.name,))
        else:
            yield prefix + (child.name,), child


def template_files() -> Dict[str, str]:
    """Relative path -> raw text of every bundled template file."""
    root = resources.files(__package__).joinpath(TEMPLATES_DIR)
    return {"/".join(parts): node.read_text(encoding="utf-8") for parts, node in _walk(root)}


def sender_address_for(home: Home) -> str:
    try:
        return "0x" + home.get_latest_address()
    except ShuffleError:
        return DEFAULT_SENDER_ADDRESS


def write_example_project(project_path: Path, variables: Mapping[str, object]) -> None:
    for rel, text in template_files().items():
        dest = project_path / rel
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_text(substitute_placeholders(text, variables), encoding="utf-8")


def handle(
    home: Home,
    blockchain: str,
    project_path: Path,
    *,
    compiler: Optional[Compiler] = None,
    out: Optional[TextIO] = None,
    generate: bool = True,
) -> Path:
    project_path = Path(project_path)
    if project_path.exists() and (not project_path.is_dir() or any(project_path.iterdir())):
        raise IOErrorS(
            f"{project_path} already exists and is not an empty directory", path=str(project_path)
        )
    with stage_scope("new", project=project_path):
        try:
            project_path.mkdir(parents=True, exist_ok=True)
            (project_path / MARKER_FILE).write_text(Config(blockchain=blockchain).to_toml(), encoding="utf-8")
            write_example_project(project_path, {"sender_address": sender_address_for(home)})
        except OSError as exc:
            raise IOErrorS(f"unable to create project: {exc}", path=str(project_path)).with_cause(exc)
        log.info("created project", extra={"blockchain": blockchain})
        if generate:
            generate_typescript_libraries(project_path, compiler=compiler, out=out)
    return project_path


__all__ = ["DEFAULT_BLOCKCHAIN", "handle", "template_files", "substitute_placeholders", "write_example_project"]

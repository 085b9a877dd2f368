"""
Package builder.

Compiles the project's main Move package under a fixed build configuration
(dev mode on, tests off, ABIs on, docs off). The compiler itself is an
external capability (``Compiler`` protocol); the default implementation
shells out to the ``move`` CLI and streams its output to the caller's sink.

Compilation is deterministic given the sources, so failures propagate as a
CompileError carrying the compiler diagnostic verbatim and nothing retries.
"""

from __future__ import annotations

import os
import subprocess
import sys
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Protocol, Sequence, TextIO, Tuple

from .errors import CompileError, TestRunnerError
from .logging import get_logger
from .project import main_package_path

log = get_logger(__name__)

MOVE_BIN_ENV = "SHUFFLE_MOVE_BIN"
DEFAULT_MOVE_BIN = "move"


@dataclass(frozen=True)
class BuildConfig:
    dev_mode: bool = True
    test_mode: bool = False
    generate_docs: bool = False
    generate_abis: bool = True


@dataclass(frozen=True)
class CompiledModule:
    name: str
    path: Path
    bytecode: bytes = field(repr=False)
    # None when the module is published under the deploying account.
    address: Optional[str] = None


@dataclass(frozen=True)
class CompiledPackage:
    name: str
    package_path: Path
    build_dir: Path
    modules: List[CompiledModule] = field(default_factory=list)

    @property
    def abi_dir(self) -> Path:
        return self.build_dir / "abis"


class Compiler(Protocol):
    def compile_package(self, package_path: Path, config: BuildConfig, out: TextIO) -> CompiledPackage:
        ...

    def run_unit_tests(self, package_path: Path, out: TextIO) -> None:
        ...


def build_flags(config: BuildConfig) -> List[str]:
    flags: List[str] = []
    if config.dev_mode:
        flags.append("--dev")
    if config.test_mode:
        flags.append("--test")
    if config.generate_docs:
        flags.append("--doc")
    if config.generate_abis:
        flags.append("--abi")
    return flags


def read_package_name(package_path: Path) -> str:
    manifest = package_path / "Move.toml"
    try:
        data = tomllib.loads(manifest.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise CompileError(f"unable to read {manifest}: {exc}", path=str(manifest)) from exc
    try:
        return str(data["package"]["name"])
    except (KeyError, TypeError):
        raise CompileError(f"{manifest}: missing [package] name", path=str(manifest)) from None


def load_compiled_package(package_path: Path) -> CompiledPackage:
    """Collect the root package's bytecode modules from the compiler's build directory."""
    name = read_package_name(package_path)
    build_dir = package_path / "build" / name
    modules_dir = build_dir / "bytecode_modules"
    modules: List[CompiledModule] = []
    if modules_dir.is_dir():
        # dependencies/ holds already-published modules; only the root package is deployed
        for mv in sorted(modules_dir.glob("*.mv")):
            modules.append(CompiledModule(name=mv.stem, path=mv, bytecode=mv.read_bytes()))
    return CompiledPackage(name=name, package_path=package_path, build_dir=build_dir, modules=modules)


class MoveCliCompiler:
    """Compiler capability backed by the `move` command line tool."""

    def __init__(self, move_bin: Optional[str] = None) -> None:
        self.move_bin = move_bin or os.environ.get(MOVE_BIN_ENV, DEFAULT_MOVE_BIN)

    def _run(self, args: Sequence[str], out: TextIO) -> Tuple[int, str]:
        cmd = [self.move_bin, *args]
        log.debug("running compiler", extra={"cmd": " ".join(cmd)})
        try:
            proc = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            )
        except FileNotFoundError as exc:
            raise CompileError(
                f"move compiler not found: {self.move_bin} (set {MOVE_BIN_ENV})", binary=self.move_bin
            ) from exc
        transcript: List[str] = []
        assert proc.stdout is not None
        for line in proc.stdout:
            transcript.append(line)
            out.write(line)
        return proc.wait(), "".join(transcript)

    def compile_package(self, package_path: Path, config: BuildConfig, out: TextIO) -> CompiledPackage:
        rc, transcript = self._run(["package", "build", "--path", str(package_path), *build_flags(config)], out)
        if rc != 0:
            raise CompileError(transcript, package=str(package_path), returncode=rc)
        return load_compiled_package(package_path)

    def run_unit_tests(self, package_path: Path, out: TextIO) -> None:
        rc, _ = self._run(["package", "test", "--path", str(package_path)], out)
        if rc != 0:
            raise TestRunnerError("move unit", returncode=rc, package=str(package_path))


def build_move_packages(
    project_path: Path,
    *,
    compiler: Optional[Compiler] = None,
    out: Optional[TextIO] = None,
) -> CompiledPackage:
    """Builds the main package of the Shuffle project."""
    sink = out if out is not None else sys.stdout
    sink.write("Building Examples...\n")
    pkgdir = main_package_path(Path(project_path))
    comp = compiler if compiler is not None else MoveCliCompiler()
    package = comp.compile_package(pkgdir, BuildConfig(), sink)
    log.info("built package", extra={"package": package.name, "modules": len(package.modules)})
    return package


__all__ = [
    "BuildConfig",
    "CompiledModule",
    "CompiledPackage",
    "Compiler",
    "MoveCliCompiler",
    "build_flags",
    "build_move_packages",
    "load_compiled_package",
    "read_package_name",
]

"""
Binding generation pipeline.

    build main package
      -> install serde runtime, install bcs runtime
      -> load bundled registry, replace TypeScript keywords
      -> install "diemTypes" (BCS encoding)
      -> read ABIs from the main package
      -> install "diemStdlib" transaction builders

Output lands in ``<project>/main/generated``. Each stage fails fast with a
typed error; nothing is retried and partially written modules are simply
overwritten on the next run.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, List, Optional, Protocol, Sequence, TextIO

from ..build import Compiler, build_move_packages
from ..errors import CodegenError, RuntimeInstallError
from ..logging import get_logger, stage_scope
from ..project import main_package_path
from .abi import ScriptABI, read_abis
from .registry import Registry, load_diem_registry, replace_keywords
from .typescript import CodeGeneratorConfig, Encoding, Installer, UnsupportedTypeError

log = get_logger(__name__)

GENERATED_DIR = "generated"
TYPES_MODULE = "diemTypes"
STDLIB_MODULE = "diemStdlib"


class BindingInstaller(Protocol):
    def install_serde_runtime(self) -> Path:
        ...

    def install_bcs_runtime(self) -> Path:
        ...

    def install_module(self, config: CodeGeneratorConfig, registry: Registry) -> Path:
        ...

    def install_transaction_builders(self, name: str, abis: Sequence[ScriptABI]) -> Path:
        ...


InstallerFactory = Callable[[Path], BindingInstaller]


def generated_path(project_path: Path) -> Path:
    return main_package_path(Path(project_path)) / GENERATED_DIR


def generate_runtime(installer: BindingInstaller) -> None:
    """Install the serde and bcs runtimes, then the diemTypes module."""
    for runtime, install in (("serde", installer.install_serde_runtime), ("bcs", installer.install_bcs_runtime)):
        try:
            install()
        except OSError as exc:
            raise RuntimeInstallError(runtime, str(exc)).with_cause(exc)
        log.debug("installed runtime", extra={"runtime": runtime})

    registry = load_diem_registry()
    replace_keywords(registry)
    config = CodeGeneratorConfig(TYPES_MODULE, encodings=(Encoding.BCS,))
    try:
        installer.install_module(config, registry)
    except (OSError, ValueError) as exc:
        raise CodegenError(TYPES_MODULE, str(exc)).with_cause(exc)
    log.info("installed module", extra={"target": TYPES_MODULE, "types": len(registry)})


def generate_transaction_builders(
    pkg_path: Path,
    target_dir: Path,
    *,
    installer_factory: InstallerFactory = Installer,
) -> List[ScriptABI]:
    abis = read_abis([pkg_path])
    installer = installer_factory(target_dir)
    try:
        installer.install_transaction_builders(STDLIB_MODULE, abis)
    except (OSError, UnsupportedTypeError) as exc:
        raise CodegenError(STDLIB_MODULE, str(exc)).with_cause(exc)
    log.info("installed module", extra={"target": STDLIB_MODULE, "builders": len(abis)})
    return abis


def generate_typescript_libraries(
    project_path: Path,
    *,
    compiler: Optional[Compiler] = None,
    out: Optional[TextIO] = None,
    installer_factory: InstallerFactory = Installer,
) -> Path:
    """Build the main package and (re)generate its TypeScript bindings; returns the generated dir."""
    project_path = Path(project_path)
    pkg_path = main_package_path(project_path)
    target_dir = generated_path(project_path)
    with stage_scope("codegen", project=project_path):
        build_move_packages(project_path, compiler=compiler, out=out)
        generate_runtime(installer_factory(target_dir))
        generate_transaction_builders(pkg_path, target_dir, installer_factory=installer_factory)
    return target_dir


__all__ = [
    "BindingInstaller",
    "GENERATED_DIR",
    "STDLIB_MODULE",
    "TYPES_MODULE",
    "generate_runtime",
    "generate_transaction_builders",
    "generate_typescript_libraries",
    "generated_path",
]

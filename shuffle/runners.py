"""
Test runners: Move unit tests through the compiler, and the generated
binding tests through Deno.

Deno tests get everything they need from the environment:

    PROJECT_PATH                project root
    SHUFFLE_BASE_NETWORKS_PATH  <home>/Networks.toml
    SENDER_ADDRESS              test account address (0x-prefixed)
    PRIVATE_KEY_PATH            test account key file
    SHUFFLE_NETWORK             JSON-RPC URL
    SHUFFLE_DEV_API_URL         dev API URL
"""

from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path
from typing import Dict, List, Optional, TextIO

from .build import Compiler, MoveCliCompiler
from .errors import TestRunnerError
from .home import Home
from .logging import get_logger, stage_scope
from .project import main_package_path

log = get_logger(__name__)

DENO_BIN_ENV = "SHUFFLE_DENO_BIN"
DEFAULT_DENO_BIN = "deno"
E2E_DIR = "e2e"
DENO_PERMISSIONS = ["--unstable", "--allow-env", "--allow-read", "--allow-write", "--allow-net"]


def run_move_unit_tests(
    project_path: Path,
    compiler: Optional[Compiler] = None,
    out: Optional[TextIO] = None,
) -> None:
    comp = compiler if compiler is not None else MoveCliCompiler()
    with stage_scope("test", project=project_path):
        comp.run_unit_tests(main_package_path(Path(project_path)), out if out is not None else sys.stdout)
        log.info("move unit tests passed")


def deno_env(
    home: Home,
    project_path: Path,
    network: str,
    dev_api_url: str,
    key_path: Path,
    sender_address: str,
) -> Dict[str, str]:
    env = os.environ.copy()
    env.update(
        {
            "PROJECT_PATH": str(project_path),
            "SHUFFLE_BASE_NETWORKS_PATH": str(home.get_networks_path()),
            "SENDER_ADDRESS": sender_address if sender_address.lower().startswith("0x") else f"0x{sender_address}",
            "PRIVATE_KEY_PATH": str(key_path),
            "SHUFFLE_NETWORK": network,
            "SHUFFLE_DEV_API_URL": dev_api_url,
        }
    )
    return env


def deno_command(test_path: Path, deno_bin: Optional[str] = None) -> List[str]:
    binary = deno_bin or os.environ.get(DENO_BIN_ENV, DEFAULT_DENO_BIN)
    return [binary, "test", *DENO_PERMISSIONS, str(test_path)]


def run_deno_test_at_path(
    home: Home,
    project_path: Path,
    network: str,
    dev_api_url: str,
    key_path: Path,
    sender_address: str,
    test_path: Path,
    *,
    deno_bin: Optional[str] = None,
) -> None:
    cmd = deno_command(Path(test_path), deno_bin)
    env = deno_env(home, Path(project_path), network, dev_api_url, Path(key_path), sender_address)
    with stage_scope("test", project=project_path, network=network):
        log.info("running deno tests", extra={"path": str(test_path)})
        try:
            proc = subprocess.run(cmd, cwd=str(project_path), env=env)
        except FileNotFoundError as exc:
            raise TestRunnerError(
                "deno", binary=cmd[0], detail=f"deno not found (set {DENO_BIN_ENV})"
            ).with_cause(exc)
        if proc.returncode != 0:
            raise TestRunnerError("deno", returncode=proc.returncode, path=str(test_path))


def run_deno_test(
    home: Home,
    project_path: Path,
    network: str,
    dev_api_url: str,
    key_path: Path,
    sender_address: str,
    *,
    deno_bin: Optional[str] = None,
) -> None:
    """Runs the project's e2e/ Deno tests."""
    run_deno_test_at_path(
        home,
        project_path,
        network,
        dev_api_url,
        key_path,
        sender_address,
        Path(project_path) / E2E_DIR,
        deno_bin=deno_bin,
    )


__all__ = [
    "run_move_unit_tests",
    "run_deno_test",
    "run_deno_test_at_path",
    "deno_env",
    "deno_command",
]

import io
from pathlib import Path

import pytest

from shuffle.errors import TestRunnerError
from shuffle.home import Home
from shuffle.runners import (
    DENO_PERMISSIONS,
    deno_command,
    deno_env,
    run_deno_test,
    run_deno_test_at_path,
    run_move_unit_tests,
)

from .fakes import FakeCompiler, write_script

RPC = "http://127.0.0.1:8080"
DEV_API = "http://127.0.0.1:8081"
ADDRESS = "24163AFCC6E33B0A9473852E18327FA9"

# dumps argv, cwd and the handed-over environment, then exits with $FAKE_DENO_RC
FAKE_DENO = """\
{
  echo "$@"
  pwd
  echo "$PROJECT_PATH"
  echo "$SHUFFLE_BASE_NETWORKS_PATH"
  echo "$SENDER_ADDRESS"
  echo "$PRIVATE_KEY_PATH"
  echo "$SHUFFLE_NETWORK"
  echo "$SHUFFLE_DEV_API_URL"
} > "$DENO_LOG"
exit "${FAKE_DENO_RC:-0}"
"""


def test_deno_env_prefixes_sender(home: Home, project: Path) -> None:
    env = deno_env(home, project, RPC, DEV_API, home.get_test_key_path(), ADDRESS)
    assert env["SENDER_ADDRESS"] == "0x" + ADDRESS
    assert env["PROJECT_PATH"] == str(project)
    assert env["SHUFFLE_BASE_NETWORKS_PATH"] == str(home.get_networks_path())
    assert env["SHUFFLE_NETWORK"] == RPC
    assert env["SHUFFLE_DEV_API_URL"] == DEV_API
    assert deno_env(home, project, RPC, DEV_API, Path("k"), "0xab")["SENDER_ADDRESS"] == "0xab"


def test_deno_command(monkeypatch) -> None:
    monkeypatch.setenv("SHUFFLE_DENO_BIN", "/usr/local/bin/deno")
    assert deno_command(Path("e2e")) == ["/usr/local/bin/deno", "test", *DENO_PERMISSIONS, "e2e"]
    assert deno_command(Path("e2e"), "mydeno")[0] == "mydeno"


def test_run_deno_test_hands_over_environment(home: Home, project: Path, tmp_path: Path, monkeypatch) -> None:
    log = tmp_path / "deno.log"
    monkeypatch.setenv("DENO_LOG", str(log))
    deno = write_script(tmp_path / "deno", FAKE_DENO)
    key = home.get_test_key_path()

    run_deno_test(home, project, RPC, DEV_API, key, ADDRESS, deno_bin=str(deno))

    argv, cwd, *env = log.read_text().splitlines()
    assert argv == " ".join(["test", *DENO_PERMISSIONS, str(project / "e2e")])
    assert Path(cwd).resolve() == project.resolve()
    assert env == [str(project), str(home.get_networks_path()), "0x" + ADDRESS, str(key), RPC, DEV_API]


def test_run_deno_test_failure(home: Home, project: Path, tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("DENO_LOG", str(tmp_path / "deno.log"))
    monkeypatch.setenv("FAKE_DENO_RC", "4")
    deno = write_script(tmp_path / "deno", FAKE_DENO)
    with pytest.raises(TestRunnerError) as ei:
        run_deno_test_at_path(
            home, project, RPC, DEV_API, home.get_test_key_path(), ADDRESS, project / "integration", deno_bin=str(deno)
        )
    assert ei.value.data["returncode"] == 4
    assert ei.value.data["runner"] == "deno"


def test_missing_deno_binary(home: Home, project: Path, tmp_path: Path) -> None:
    with pytest.raises(TestRunnerError) as ei:
        run_deno_test(home, project, RPC, DEV_API, Path("k"), ADDRESS, deno_bin=str(tmp_path / "missing"))
    assert ei.value.data["binary"] == str(tmp_path / "missing")


def test_move_unit_tests_run_in_main_package(project: Path) -> None:
    compiler = FakeCompiler()
    out = io.StringIO()
    run_move_unit_tests(project, compiler, out)
    assert compiler.unit_test_runs == [project / "main"]
    assert out.getvalue() == "Running Move unit tests\n"

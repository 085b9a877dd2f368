from __future__ import annotations

import io
import json
from pathlib import Path

from shuffle import logging as slog
from shuffle.errors import (
    AccountFundingError,
    CodegenError,
    DeploymentError,
    InternalError,
    ShuffleErrorCode,
    TransactionStatusError,
    wrap,
)


def test_json_lines_carry_stage_context() -> None:
    stream = io.StringIO()
    slog.configure(json=True, level="DEBUG", stream=stream)
    log = slog.get_logger("shuffle.test")
    with slog.stage_scope("codegen", project=Path("/tmp/proj")):
        log.info("installed module", extra={"target": "diemTypes", "blob": b"\x01\x02"})
    log.info("after")

    first, second = (json.loads(line) for line in stream.getvalue().splitlines())
    assert first["msg"] == "installed module"
    assert first["stage"] == "codegen"
    assert first["project"] == "/tmp/proj"
    assert first["target"] == "diemTypes"
    assert first["blob"] == "0102"
    assert first["logger"] == "shuffle.test"
    assert "stage" not in second
    assert slog.context() == {}


def test_text_format_and_level_filter() -> None:
    stream = io.StringIO()
    slog.configure(json=False, level="WARNING", stream=stream)
    log = slog.get_logger("shuffle.test")
    log.info("hidden")
    with slog.stage_scope("bootstrap", network="http://localhost:8080"):
        log.warning("funding low", extra={"address": "B1E55ED"})
    out = stream.getvalue()
    assert "hidden" not in out
    assert "| WARNING | shuffle.test | stage=bootstrap network=http://localhost:8080 | funding low address=B1E55ED" in out


def test_error_codes_and_data() -> None:
    err = CodegenError("diemStdlib", "unsupported argument type signer")
    assert err.to_dict() == {
        "code": "SHUFFLE/CODEGEN",
        "message": "unable to install module diemStdlib: unsupported argument type signer",
        "data": {"module": "diemStdlib"},
    }
    assert not err.retryable

    funding = AccountFundingError("B1E55ED")
    assert isinstance(funding, DeploymentError)
    assert funding.code == ShuffleErrorCode.ACCOUNT_FUNDING
    assert funding.data == {"address": "B1E55ED", "balance": 0}

    status = TransactionStatusError("move_abort", hash=b"\xaa")
    assert status.data == {"status": "move_abort", "hash": "aa"}
    assert str(status) == "transaction not executed: move_abort [status=move_abort, hash=aa]"


def test_wrap_tags_stage() -> None:
    cause = KeyError("sequence_number")
    wrapped = wrap(cause, stage="deploy")
    assert isinstance(wrapped, InternalError)
    assert wrapped.cause is cause
    assert wrapped.data["stage"] == "deploy"

    known = DeploymentError("boom")
    assert wrap(known, stage="deploy") is known
    assert known.data["stage"] == "deploy"
    assert wrapped.to_dict(include_cause=True)["cause"]["type"] == "KeyError"

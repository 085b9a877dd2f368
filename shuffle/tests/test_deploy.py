from __future__ import annotations

import asyncio
from pathlib import Path

import httpx
import pytest
import respx

from shuffle.build import CompiledModule, CompiledPackage
from shuffle.chain import LocalAccount
from shuffle.deploy import deploy
from shuffle.devapi import BCS_SIGNED_TRANSACTION, DevApiClient
from shuffle.errors import DeploymentError, RpcError, TransactionStatusError

from .fakes import FakeFactory

REST_URL = "http://localhost:8081"


def _package(*names: str) -> CompiledPackage:
    modules = [CompiledModule(name=n, path=Path(f"{n}.mv"), bytecode=n.encode()) for n in names]
    return CompiledPackage(name="Message", package_path=Path("main"), build_dir=Path("build"), modules=modules)


def _committed(txn_hash: str, **overrides) -> httpx.Response:
    body = {
        "type": "user_transaction",
        "hash": txn_hash,
        "version": "42",
        "success": True,
        "vm_status": "Executed successfully",
    }
    body.update(overrides)
    return httpx.Response(200, json=body)


def _run(account: LocalAccount, package: CompiledPackage):
    async def go():
        async with DevApiClient(REST_URL) as client:
            return await deploy(client, account, package, FakeFactory())

    return asyncio.run(go())


@respx.mock
def test_deploy_publishes_each_module_in_order() -> None:
    account = LocalAccount.generate()
    respx.get(f"{REST_URL}/accounts/{account.address}").mock(
        return_value=httpx.Response(200, json={"sequence_number": "5", "authentication_key": "0x00"})
    )
    post = respx.post(f"{REST_URL}/transactions").mock(
        side_effect=[
            httpx.Response(202, json={"type": "pending_transaction", "hash": "0xaa"}),
            httpx.Response(202, json={"type": "pending_transaction", "hash": "0xbb"}),
        ]
    )
    respx.get(f"{REST_URL}/transactions/0xaa").mock(
        side_effect=[
            httpx.Response(404, json={"code": 404, "message": "not found"}),
            httpx.Response(200, json={"type": "pending_transaction", "hash": "0xaa"}),
            _committed("0xaa"),
        ]
    )
    respx.get(f"{REST_URL}/transactions/0xbb").mock(return_value=_committed("0xbb"))

    hashes = _run(account, _package("Message", "Board"))

    assert hashes == ["0xaa", "0xbb"]
    assert account.sequence_number == 7
    first, second = post.calls
    assert first.request.headers["content-type"] == BCS_SIGNED_TRANSACTION
    assert repr((account.address, 5, ("module", b"Message"))).encode() == first.request.content
    assert repr((account.address, 6, ("module", b"Board"))).encode() == second.request.content


@respx.mock
def test_deploy_rejects_failed_execution() -> None:
    account = LocalAccount.generate()
    respx.get(f"{REST_URL}/accounts/{account.address}").mock(
        return_value=httpx.Response(200, json={"sequence_number": "0"})
    )
    respx.post(f"{REST_URL}/transactions").mock(
        return_value=httpx.Response(202, json={"type": "pending_transaction", "hash": "0xcc"})
    )
    respx.get(f"{REST_URL}/transactions/0xcc").mock(
        return_value=_committed("0xcc", success=False, vm_status="Move abort: EALREADY_PUBLISHED")
    )
    with pytest.raises(TransactionStatusError) as ei:
        _run(account, _package("Message"))
    assert ei.value.status == "Move abort: EALREADY_PUBLISHED"
    assert ei.value.data["hash"] == "0xcc"


@respx.mock
def test_deploy_reports_unknown_account() -> None:
    account = LocalAccount.generate()
    respx.get(f"{REST_URL}/accounts/{account.address}").mock(
        return_value=httpx.Response(404, json={"code": 404, "message": "account not found"})
    )
    with pytest.raises(DeploymentError) as ei:
        _run(account, _package("Message"))
    assert ei.value.data["address"] == account.address


@respx.mock
def test_deploy_rejected_submission() -> None:
    account = LocalAccount.generate()
    respx.get(f"{REST_URL}/accounts/{account.address}").mock(
        return_value=httpx.Response(200, json={"sequence_number": "0"})
    )
    respx.post(f"{REST_URL}/transactions").mock(
        return_value=httpx.Response(400, json={"code": 400, "message": "invalid signature"})
    )
    with pytest.raises(DeploymentError) as ei:
        _run(account, _package("Message"))
    assert ei.value.data["module"] == "Message"


def test_deploy_requires_modules() -> None:
    with pytest.raises(DeploymentError):
        _run(LocalAccount.generate(), _package())


@respx.mock
def test_deploy_reports_unconfirmed_module() -> None:
    account = LocalAccount.generate()
    respx.get(f"{REST_URL}/accounts/{account.address}").mock(
        return_value=httpx.Response(200, json={"sequence_number": "0"})
    )
    respx.post(f"{REST_URL}/transactions").mock(
        return_value=httpx.Response(202, json={"type": "pending_transaction", "hash": "0xdd"})
    )
    respx.get(f"{REST_URL}/transactions/0xdd").mock(return_value=httpx.Response(500, text="boom"))
    with pytest.raises(DeploymentError) as ei:
        _run(account, _package("Message"))
    assert ei.value.data["module"] == "Message"
    assert ei.value.data["hash"] == "0xdd"
    assert isinstance(ei.value.cause, RpcError)


@respx.mock
def test_deploy_account_without_sequence_number() -> None:
    account = LocalAccount.generate()
    respx.get(f"{REST_URL}/accounts/{account.address}").mock(return_value=httpx.Response(200, json={}))
    with pytest.raises(DeploymentError) as ei:
        _run(account, _package("Message"))
    assert ei.value.data["address"] == account.address
    assert isinstance(ei.value.cause, RpcError)
    assert ei.value.cause.message == "unexpected response shape"

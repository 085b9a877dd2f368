"""
Blocking JSON-RPC client for the chain's full node.

Implements the three calls the bootstrap needs (``submit``,
``get_account``, ``get_account_transaction``) plus
``wait_for_signed_transaction``, which polls until the transaction is
committed or the timeout elapses. There are no retries: a transport error,
a non-2xx status or a JSON-RPC error object raises RpcError immediately.

Example:
    from shuffle.rpc import JsonRpcClient
    with JsonRpcClient("http://127.0.0.1:8080") as client:
        account = client.get_account("0000000000000000000000000B1E55ED")
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from itertools import count
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence

import httpx

from .chain import AccountView, SignedTransaction, TransactionView
from .errors import RpcError, TransactionStatusError
from .version import __version__

DEFAULT_WAIT_DELAY = 0.5


def parse_transaction_view(raw: Mapping[str, Any]) -> TransactionView:
    status = raw.get("vm_status") or {}
    return TransactionView(
        hash=str(raw.get("hash", "")),
        version=int(raw.get("version", 0)),
        vm_status=str(status.get("type", "unknown")) if isinstance(status, Mapping) else str(status),
        raw=dict(raw),
    )


def parse_account_view(raw: Mapping[str, Any]) -> AccountView:
    balances: Dict[str, int] = {}
    for entry in raw.get("balances") or []:
        balances[str(entry["currency"])] = int(entry["amount"])
    return AccountView(
        address=str(raw.get("address", "")).upper(),
        sequence_number=int(raw.get("sequence_number", 0)),
        balances=balances,
    )


@dataclass
class JsonRpcClient:
    """Synchronous JSON-RPC 2.0 client over HTTP."""

    url: str
    timeout: float = 30.0
    headers: Optional[Mapping[str, str]] = None
    _id_counter: Iterable[int] = field(default_factory=lambda: count(start=1))
    _client: httpx.Client = field(init=False, repr=False)

    def __post_init__(self) -> None:
        merged: Dict[str, str] = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": f"shuffle/{__version__}",
        }
        if self.headers:
            merged.update(dict(self.headers))
        self._client = httpx.Client(timeout=self.timeout, headers=merged)

    def __enter__(self) -> "JsonRpcClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        self.close()

    def close(self) -> None:
        self._client.close()

    # --- public API ------------------------------------------------------

    def request(self, method: str, params: Sequence[Any] = ()) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._id_counter), "method": method, "params": list(params)}
        body = json.dumps(payload, separators=(",", ":"))
        try:
            r = self._client.post(self.url, content=body)
        except httpx.HTTPError as e:
            raise RpcError(f"network error: {e}", method=method, url=self.url).with_cause(e)
        try:
            resp = r.json()
        except ValueError as e:
            raise RpcError(
                f"non-JSON response (HTTP {r.status_code})", method=method, body=r.text[:256]
            ).with_cause(e)
        if not isinstance(resp, dict):
            raise RpcError("invalid JSON-RPC response type", method=method)
        if resp.get("error"):
            err = resp["error"]
            raise RpcError(
                str(err.get("message", "unknown error")), method=method, rpc_code=err.get("code"), rpc_data=err.get("data")
            )
        if r.status_code >= 400:
            raise RpcError(f"HTTP {r.status_code}", method=method)
        if "result" not in resp:
            raise RpcError("malformed JSON-RPC response", method=method)
        return resp["result"]

    def submit(self, txn: SignedTransaction) -> None:
        self.request("submit", [txn.to_bytes().hex()])

    def get_account(self, address: str) -> Optional[AccountView]:
        result = self.request("get_account", [address])
        return parse_account_view(result) if result else None

    def get_account_transaction(
        self, address: str, sequence_number: int, include_events: bool = False
    ) -> Optional[TransactionView]:
        result = self.request("get_account_transaction", [address, sequence_number, include_events])
        return parse_transaction_view(result) if result else None

    def wait_for_signed_transaction(
        self,
        txn: SignedTransaction,
        timeout: Optional[float] = None,
        delay: float = DEFAULT_WAIT_DELAY,
    ) -> TransactionView:
        deadline = time.monotonic() + (timeout if timeout is not None else self.timeout)
        while True:
            view = self.get_account_transaction(txn.sender, txn.sequence_number, False)
            if view is not None:
                return view
            if time.monotonic() >= deadline:
                raise TransactionStatusError(
                    "timeout", sender=txn.sender, sequence_number=txn.sequence_number
                )
            time.sleep(delay)


__all__ = ["JsonRpcClient", "parse_transaction_view", "parse_account_view"]

"""
Async client for the node's developer REST API.

    GET  /accounts/{address}           -> {"sequence_number": "...", ...}
    POST /transactions                 (BCS signed transaction body)
    GET  /transactions/{hash}          -> pending / committed transaction

Only deployment uses this client, and it runs inside a single
``asyncio.run`` owned by the bootstrap.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Dict, Optional

import httpx

from .chain import SignedTransaction
from .errors import RpcError, TransactionStatusError
from .logging import get_logger
from .version import __version__

log = get_logger(__name__)

BCS_SIGNED_TRANSACTION = "application/vnd.bcs+signed_transaction"
PENDING_TRANSACTION = "pending_transaction"
EXECUTED_VM_STATUS = "Executed successfully"
DEFAULT_WAIT_TIMEOUT = 60.0
DEFAULT_WAIT_DELAY = 0.5


class DevApiClient:
    def __init__(self, base_url: str, *, timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers={"User-Agent": f"shuffle/{__version__}"},
            transport=transport,
        )

    async def __aenter__(self) -> "DevApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise RpcError(f"network error: {e}", method=f"{method} {path}").with_cause(e)

    @staticmethod
    def _json(resp: httpx.Response, what: str) -> Dict[str, Any]:
        if resp.status_code >= 400:
            raise RpcError(f"HTTP {resp.status_code}: {resp.text[:256]}", method=what, status=resp.status_code)
        try:
            body = resp.json()
        except ValueError as e:
            raise RpcError("non-JSON response", method=what).with_cause(e)
        if not isinstance(body, dict):
            raise RpcError("unexpected response shape", method=what)
        return body

    async def account_sequence_number(self, address: str) -> int:
        what = f"GET /accounts/{address}"
        body = self._json(await self._request("GET", f"/accounts/{address}"), what)
        try:
            return int(body["sequence_number"])
        except (KeyError, TypeError, ValueError) as e:
            raise RpcError("unexpected response shape", method=what).with_cause(e)

    async def post_transactions(self, txn: SignedTransaction) -> Dict[str, Any]:
        resp = await self._request(
            "POST",
            "/transactions",
            content=txn.to_bytes(),
            headers={"Content-Type": BCS_SIGNED_TRANSACTION},
        )
        return self._json(resp, "POST /transactions")

    async def get_transaction(self, txn_hash: str) -> Optional[Dict[str, Any]]:
        resp = await self._request("GET", f"/transactions/{txn_hash}")
        if resp.status_code == 404:
            return None
        return self._json(resp, f"GET /transactions/{txn_hash}")

    async def wait_for_transaction(
        self,
        txn_hash: str,
        *,
        timeout: float = DEFAULT_WAIT_TIMEOUT,
        delay: float = DEFAULT_WAIT_DELAY,
    ) -> Dict[str, Any]:
        """Poll until the transaction leaves the pending state; it must have executed."""
        deadline = time.monotonic() + timeout
        while True:
            txn = await self.get_transaction(txn_hash)
            if txn is not None and txn.get("type") != PENDING_TRANSACTION:
                status = txn.get("vm_status")
                if not txn.get("success") or status != EXECUTED_VM_STATUS:
                    raise TransactionStatusError(status, hash=txn_hash)
                log.debug("transaction committed", extra={"hash": txn_hash, "version": txn.get("version")})
                return txn
            if time.monotonic() >= deadline:
                raise TransactionStatusError("timeout", hash=txn_hash)
            await asyncio.sleep(delay)


__all__ = ["DevApiClient", "BCS_SIGNED_TRANSACTION", "EXECUTED_VM_STATUS"]

"""
Publish the project's compiled modules through the dev API.

Modules are published one transaction at a time, in the order the compiler
reported them, each confirmed before the next is signed. The first failure
stops the deployment; earlier modules stay published.
"""

from __future__ import annotations

from typing import List

from .build import CompiledPackage
from .chain import LocalAccount, TransactionFactory
from .devapi import DevApiClient
from .errors import DeploymentError, RpcError
from .logging import get_logger

log = get_logger(__name__)


async def deploy(
    client: DevApiClient,
    account: LocalAccount,
    package: CompiledPackage,
    factory: TransactionFactory,
) -> List[str]:
    """Returns the committed transaction hashes, one per module."""
    if not package.modules:
        raise DeploymentError(f"package {package.name} has no compiled modules", package=package.name)
    try:
        account.sequence_number = await client.account_sequence_number(account.address)
    except RpcError as exc:
        raise DeploymentError(
            f"unable to fetch account {account.address}: {exc.message}", address=account.address
        ).with_cause(exc)

    hashes: List[str] = []
    for module in package.modules:
        txn = account.sign_with_transaction_builder(factory.module(module.bytecode))
        try:
            pending = await client.post_transactions(txn)
        except RpcError as exc:
            raise DeploymentError(
                f"unable to publish module {module.name}: {exc.message}", module=module.name
            ).with_cause(exc)
        if "hash" not in pending:
            raise DeploymentError(f"no transaction hash returned for module {module.name}", module=module.name)
        txn_hash = str(pending["hash"])
        try:
            await client.wait_for_transaction(txn_hash)
        except RpcError as exc:
            raise DeploymentError(
                f"unable to confirm module {module.name}: {exc.message}", module=module.name, hash=txn_hash
            ).with_cause(exc)
        log.info("published module", extra={"target": module.name, "hash": txn_hash})
        hashes.append(txn_hash)
    return hashes


__all__ = ["deploy"]

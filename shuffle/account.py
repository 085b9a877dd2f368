"""
On-chain account creation for the bootstrap harness.

Each new account is a parent VASP created by the treasury-compliance
account. Before anything is submitted the treasury's balance is checked:
an unfunded treasury is reported as AccountFundingError rather than as an
obscure transaction failure.
"""

from __future__ import annotations

from typing import Iterable, List

from .chain import XUS_CURRENCY, BlockingClient, LocalAccount, TransactionFactory, send
from .errors import AccountFundingError, DeploymentError, RpcError
from .logging import get_logger

log = get_logger(__name__)


def ensure_funded(client: BlockingClient, treasury: LocalAccount) -> int:
    try:
        view = client.get_account(treasury.address)
    except RpcError as exc:
        raise DeploymentError(
            f"unable to fetch treasury account {treasury.address}: {exc.message}", address=treasury.address
        ).with_cause(exc)
    balance = view.total_balance() if view is not None else 0
    if balance <= 0:
        raise AccountFundingError(treasury.address, balance=balance)
    return balance


def create_account_onchain(
    client: BlockingClient,
    factory: TransactionFactory,
    treasury: LocalAccount,
    account: LocalAccount,
    human_name: str = "shuffle",
) -> None:
    builder = factory.create_parent_vasp_account(
        XUS_CURRENCY,
        account.auth_key_prefix(),
        account.address,
        human_name,
        True,
    )
    send(client, treasury.sign_with_transaction_builder(builder))
    log.info("created account", extra={"address": account.address})


def create_accounts_onchain(
    client: BlockingClient,
    factory: TransactionFactory,
    treasury: LocalAccount,
    accounts: Iterable[LocalAccount],
) -> List[str]:
    """Check the treasury once, then create every account in order."""
    pending = list(accounts)
    ensure_funded(client, treasury)
    for acct in pending:
        create_account_onchain(client, factory, treasury, acct)
    return [a.address for a in pending]


__all__ = ["ensure_funded", "create_account_onchain", "create_accounts_onchain"]

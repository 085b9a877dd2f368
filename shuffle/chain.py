"""
Chain-side capabilities used by the bootstrap harness.

The transaction wire format, the network's RPC surface and the test network
itself are owned by other components; this module only states what it needs
from them as ``typing.Protocol``s and implements the small amount of logic
that sits on top:

- ``LocalAccount``: an Ed25519 key + address + sequence number that signs
  raw transactions produced by a ``TransactionBuilder``.
- ``send``: submit, wait (bounded at 60 s) and insist on the Executed status.
- ``enable_open_publishing``: the root-account policy change that lets any
  account publish modules.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Protocol

from cryptography.hazmat.primitives.asymmetric import ed25519

from .errors import NetworkPolicyError, ShuffleError, TransactionStatusError
from .home import authentication_key, derive_address, public_key_bytes
from .logging import get_logger

log = get_logger(__name__)

TRANSACTION_TIMEOUT_SECS = 60.0
XUS_CURRENCY = "XUS"


class VMStatus(str, Enum):
    EXECUTED = "executed"
    OUT_OF_GAS = "out_of_gas"
    MOVE_ABORT = "move_abort"
    EXECUTION_FAILURE = "execution_failure"
    MISCELLANEOUS_ERROR = "miscellaneous_error"


@dataclass(frozen=True)
class TransactionView:
    """Committed transaction as reported by the network."""

    hash: str
    version: int
    vm_status: str
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def executed(self) -> bool:
        return self.vm_status == VMStatus.EXECUTED.value


@dataclass(frozen=True)
class AccountView:
    address: str
    sequence_number: int
    balances: Dict[str, int] = field(default_factory=dict)

    def total_balance(self) -> int:
        return sum(self.balances.values())


# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------


class SignedTransaction(Protocol):
    sender: str
    sequence_number: int

    def to_bytes(self) -> bytes:
        ...


class RawTransaction(Protocol):
    def signing_message(self) -> bytes:
        ...

    def into_signed(self, public_key: bytes, signature: bytes) -> SignedTransaction:
        ...


class TransactionBuilder(Protocol):
    def sender(self, address: str) -> "TransactionBuilder":
        ...

    def sequence_number(self, sequence_number: int) -> "TransactionBuilder":
        ...

    def build(self) -> RawTransaction:
        ...


class TransactionFactory(Protocol):
    def open_publishing(self) -> TransactionBuilder:
        ...

    def create_parent_vasp_account(
        self,
        currency: str,
        auth_key_prefix: bytes,
        address: str,
        human_name: str,
        add_all_currencies: bool,
    ) -> TransactionBuilder:
        ...

    def module(self, code: bytes) -> TransactionBuilder:
        ...


class BlockingClient(Protocol):
    def submit(self, txn: SignedTransaction) -> None:
        ...

    def wait_for_signed_transaction(
        self, txn: SignedTransaction, timeout: Optional[float] = None
    ) -> TransactionView:
        ...

    def get_account(self, address: str) -> Optional[AccountView]:
        ...


class NetworkContext(Protocol):
    """What a test-network harness hands the bootstrap procedure."""

    client: BlockingClient
    factory: TransactionFactory
    root_account: "LocalAccount"
    treasury_compliance_account: "LocalAccount"
    json_rpc_url: str
    rest_api_url: str


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


class LocalAccount:
    """A locally held Ed25519 account. Signing bumps the sequence number."""

    def __init__(self, address: str, key: ed25519.Ed25519PrivateKey, sequence_number: int = 0) -> None:
        self.address = address.upper()
        self.key = key
        self.sequence_number = sequence_number

    @classmethod
    def from_private_key(cls, key: ed25519.Ed25519PrivateKey, sequence_number: int = 0) -> "LocalAccount":
        return cls(derive_address(public_key_bytes(key)), key, sequence_number)

    @classmethod
    def generate(cls) -> "LocalAccount":
        return cls.from_private_key(ed25519.Ed25519PrivateKey.generate())

    @property
    def public_key(self) -> bytes:
        return public_key_bytes(self.key)

    @property
    def authentication_key(self) -> bytes:
        return authentication_key(self.public_key)

    def auth_key_prefix(self) -> bytes:
        return self.authentication_key[:16]

    def sign_with_transaction_builder(self, builder: TransactionBuilder) -> SignedTransaction:
        raw = builder.sender(self.address).sequence_number(self.sequence_number).build()
        signature = self.key.sign(raw.signing_message())
        self.sequence_number += 1
        return raw.into_signed(self.public_key, signature)

    def __repr__(self) -> str:
        return f"LocalAccount(address={self.address}, sequence_number={self.sequence_number})"


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


def send(client: BlockingClient, txn: SignedTransaction) -> TransactionView:
    """Send a transaction to the blockchain through the blocking client."""
    client.submit(txn)
    view = client.wait_for_signed_transaction(txn, timeout=TRANSACTION_TIMEOUT_SECS)
    if not view.executed:
        raise TransactionStatusError(
            view.vm_status, sender=txn.sender, sequence_number=txn.sequence_number, hash=view.hash
        )
    log.info("transaction executed", extra={"sender": txn.sender, "version": view.version})
    return view


def enable_open_publishing(
    client: BlockingClient, factory: TransactionFactory, root_account: LocalAccount
) -> TransactionView:
    txn = root_account.sign_with_transaction_builder(factory.open_publishing())
    try:
        return send(client, txn)
    except ShuffleError as exc:
        raise NetworkPolicyError(f"unable to enable open publishing: {exc.message}").with_cause(exc)


__all__ = [
    "TRANSACTION_TIMEOUT_SECS",
    "VMStatus",
    "TransactionView",
    "AccountView",
    "SignedTransaction",
    "RawTransaction",
    "TransactionBuilder",
    "TransactionFactory",
    "BlockingClient",
    "NetworkContext",
    "LocalAccount",
    "send",
    "enable_open_publishing",
]

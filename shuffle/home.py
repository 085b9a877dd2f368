"""
The Shuffle home directory (``~/.shuffle`` by default).

Holds state shared across projects:

    ~/.shuffle/
      Networks.toml
      accounts/
        latest/dev.key       developer account key
        latest/address
        test/dev.key         key used by generated-binding tests
        test/address

The location is always passed in explicitly (``Home(path)``) so tests and the
bootstrap harness can point it at a throwaway directory; ``default_home_dir``
is the only place the user's home is consulted.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from pathlib import Path

from cryptography.hazmat.primitives.asymmetric import ed25519
from cryptography.hazmat.primitives import serialization

from .bcs import BcsDeserializer, BcsError, BcsSerializer
from .config import NetworksConfig, read_networks_config
from .errors import AccountError, IOErrorS

SHUFFLE_DIR_NAME = ".shuffle"
KEY_FILE_NAME = "dev.key"
ADDRESS_FILE_NAME = "address"
NETWORKS_FILE_NAME = "Networks.toml"

# Single-signature Ed25519 authentication scheme id.
ED25519_SCHEME = b"\x00"
ADDRESS_LENGTH = 16


def default_home_dir() -> Path:
    """Returns ~/.shuffle for the current user."""
    return Path.home() / SHUFFLE_DIR_NAME


def authentication_key(public_key: bytes) -> bytes:
    return hashlib.sha3_256(public_key + ED25519_SCHEME).digest()


def derive_address(public_key: bytes) -> str:
    """Account address: the trailing 16 bytes of the authentication key, hex encoded."""
    return authentication_key(public_key)[-ADDRESS_LENGTH:].hex().upper()


def public_key_bytes(key: ed25519.Ed25519PrivateKey) -> bytes:
    return key.public_key().public_bytes(
        encoding=serialization.Encoding.Raw, format=serialization.PublicFormat.Raw
    )


def _private_key_bytes(key: ed25519.Ed25519PrivateKey) -> bytes:
    return key.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )


@dataclass(frozen=True)
class Home:
    shuffle_path: Path

    @property
    def account_key_path(self) -> Path:
        return self.shuffle_path / "accounts" / "latest" / KEY_FILE_NAME

    @property
    def account_address_path(self) -> Path:
        return self.shuffle_path / "accounts" / "latest" / ADDRESS_FILE_NAME

    def get_test_key_path(self) -> Path:
        return self.shuffle_path / "accounts" / "test" / KEY_FILE_NAME

    def get_test_address_path(self) -> Path:
        return self.shuffle_path / "accounts" / "test" / ADDRESS_FILE_NAME

    def get_networks_path(self) -> Path:
        return self.shuffle_path / NETWORKS_FILE_NAME

    def generate_shuffle_path_if_nonexistent(self) -> None:
        self.shuffle_path.mkdir(parents=True, exist_ok=True)

    def write_default_networks_config_into_toml(self) -> Path:
        path = self.get_networks_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(NetworksConfig.default().to_toml(), encoding="utf-8")
        return path

    def read_networks_config(self) -> NetworksConfig:
        return read_networks_config(self.get_networks_path())

    # -- key material -------------------------------------------------------

    def generate_key_file(self, key_path: Path) -> ed25519.Ed25519PrivateKey:
        """Create a fresh Ed25519 key, store it BCS-encoded at `key_path`."""
        key = ed25519.Ed25519PrivateKey.generate()
        key_path.parent.mkdir(parents=True, exist_ok=True)
        key_path.write_bytes(BcsSerializer().bytes(_private_key_bytes(key)).output())
        return key

    def read_private_key(self, key_path: Path) -> ed25519.Ed25519PrivateKey:
        try:
            raw = key_path.read_bytes()
        except OSError as exc:
            raise IOErrorS(f"unable to read key file: {exc}", path=str(key_path)).with_cause(exc)
        try:
            de = BcsDeserializer(raw)
            secret = de.bytes()
            de.finish()
            return ed25519.Ed25519PrivateKey.from_private_bytes(secret)
        except (BcsError, ValueError) as exc:
            raise AccountError(f"malformed key file: {exc}", path=str(key_path)).with_cause(exc)

    def save_address(self, address_path: Path, key: ed25519.Ed25519PrivateKey) -> str:
        address = derive_address(public_key_bytes(key))
        address_path.parent.mkdir(parents=True, exist_ok=True)
        address_path.write_text(address, encoding="utf-8")
        return address

    def generate_test_account(self) -> str:
        """Write the test key + address pair; returns the address."""
        key = self.generate_key_file(self.get_test_key_path())
        return self.save_address(self.get_test_address_path(), key)

    def get_test_address(self) -> str:
        return self._read_address(self.get_test_address_path())

    def get_latest_address(self) -> str:
        return self._read_address(self.account_address_path)

    def _read_address(self, path: Path) -> str:
        try:
            text = path.read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError) as exc:
            raise IOErrorS(f"unable to read address file: {exc}", path=str(path)).with_cause(exc)
        hexpart = text[2:] if text.lower().startswith("0x") else text
        try:
            raw = bytes.fromhex(hexpart)
        except ValueError as exc:
            raise AccountError("address is not hex", path=str(path)).with_cause(exc)
        if len(raw) != ADDRESS_LENGTH:
            raise AccountError(
                f"address must be {ADDRESS_LENGTH} bytes, got {len(raw)}", path=str(path)
            )
        return hexpart.upper()


__all__ = [
    "Home",
    "default_home_dir",
    "derive_address",
    "authentication_key",
    "public_key_bytes",
]

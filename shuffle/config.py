"""
Shuffle configuration.

Two documents are handled here:

- ``Shuffle.toml`` at the project root (the marker file). Kebab-case keys,
  one required field ``blockchain`` naming the target network. Parsing is
  all-or-nothing: malformed TOML or a missing/mistyped ``blockchain`` is a
  ConfigParseError, never a partial Config. Other keys are ignored.
- ``Networks.toml`` in the Shuffle home directory, listing named network
  profiles (JSON-RPC URL, dev API URL, optional faucet).

TOML is read with the stdlib ``tomllib`` (Python 3.11+).
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .errors import ConfigParseError, IOErrorS
from .project import MARKER_FILE

DEFAULT_BLOCKCHAIN = "goodday"
DEFAULT_NETWORK = "localhost"
LOCALHOST_JSON_RPC_URL = "http://127.0.0.1:8080"
LOCALHOST_DEV_API_URL = "http://127.0.0.1:8081"


def _kebab(name: str) -> str:
    return name.replace("_", "-")


def _toml_str(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n").replace("\r", "\\r")
    return f'"{escaped}"'


def _read_toml(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise IOErrorS(f"unable to read {path.name}: {exc}", path=str(path)).with_cause(exc)
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigParseError(f"{path.name}: {exc}", path=str(path)).with_cause(exc)


@dataclass(frozen=True)
class Config:
    blockchain: str

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, source: str = MARKER_FILE) -> "Config":
        # keys other than the declared fields are ignored
        known = {_kebab(f.name): f.name for f in fields(cls)}
        values: Dict[str, Any] = {}
        for key, attr in known.items():
            if key not in data:
                raise ConfigParseError(f"{source}: missing field `{key}`", path=source)
            if not isinstance(data[key], str):
                raise ConfigParseError(
                    f"{source}: field `{key}` must be a string, got {type(data[key]).__name__}",
                    path=source,
                )
            values[attr] = data[key]
        return cls(**values)

    def to_toml(self) -> str:
        return "".join(f"{_kebab(f.name)} = {_toml_str(getattr(self, f.name))}\n" for f in fields(self))


def read_config(project_path: Path) -> Config:
    """Load the Config from the Shuffle.toml directly inside `project_path`."""
    path = Path(project_path) / MARKER_FILE
    return Config.from_mapping(_read_toml(path), source=str(path))


# ---------------------------------------------------------------------------
# Networks.toml
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Network:
    name: str
    json_rpc_url: str
    dev_api_url: str
    faucet_url: Optional[str] = None

    def to_toml(self) -> str:
        lines = [
            f"[networks.{_toml_str(self.name)}]",
            f"name = {_toml_str(self.name)}",
            f"json-rpc-url = {_toml_str(self.json_rpc_url)}",
            f"dev-api-url = {_toml_str(self.dev_api_url)}",
        ]
        if self.faucet_url:
            lines.append(f"faucet-url = {_toml_str(self.faucet_url)}")
        return "\n".join(lines) + "\n"


@dataclass
class NetworksConfig:
    networks: Dict[str, Network] = field(default_factory=dict)

    @classmethod
    def default(cls) -> "NetworksConfig":
        localhost = Network(
            name=DEFAULT_NETWORK,
            json_rpc_url=LOCALHOST_JSON_RPC_URL,
            dev_api_url=LOCALHOST_DEV_API_URL,
        )
        return cls(networks={localhost.name: localhost})

    def get(self, name: str) -> Network:
        try:
            return self.networks[name]
        except KeyError:
            known = ", ".join(sorted(self.networks)) or "<none>"
            raise ConfigParseError(f"unknown network `{name}` (known: {known})", network=name) from None

    def to_toml(self) -> str:
        return "\n".join(n.to_toml() for _, n in sorted(self.networks.items()))


def read_networks_config(path: Path) -> NetworksConfig:
    raw = _read_toml(path)
    table = raw.get("networks")
    if not isinstance(table, dict):
        raise ConfigParseError(f"{path.name}: missing [networks] table", path=str(path))
    networks: Dict[str, Network] = {}
    for key, entry in table.items():
        try:
            networks[key] = Network(
                name=str(entry.get("name", key)),
                json_rpc_url=str(entry["json-rpc-url"]),
                dev_api_url=str(entry["dev-api-url"]),
                faucet_url=entry.get("faucet-url"),
            )
        except (KeyError, AttributeError) as exc:
            raise ConfigParseError(
                f"{path.name}: network `{key}` is missing {exc}", path=str(path), network=key
            ) from exc
    return NetworksConfig(networks=networks)


__all__ = [
    "DEFAULT_BLOCKCHAIN",
    "DEFAULT_NETWORK",
    "Config",
    "read_config",
    "Network",
    "NetworksConfig",
    "read_networks_config",
]

"""
ABI descriptors emitted by the Move compiler.

Each ``.abi`` file is the BCS encoding of a ``ScriptABI``:

    ScriptABI = TransactionScript(TransactionScriptABI)   # variant 0
              | ScriptFunction(ScriptFunctionABI)         # variant 1

``read_abis`` walks the given directories recursively, decodes every
``.abi`` file and returns them sorted by (module, name) so generated output
does not depend on filesystem iteration order. No files is a valid result.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from ..bcs import BcsDeserializer, BcsError, BcsSerializer
from ..errors import AbiParseError, IOErrorS

ABI_EXTENSION = ".abi"
ADDRESS_LENGTH = 16


# -----------------
# TypeTag
# -----------------


@dataclass(frozen=True)
class StructTag:
    address: bytes
    module: str
    name: str
    type_params: Tuple["TypeTag", ...] = ()


@dataclass(frozen=True)
class TypeTag:
    """
    Move type tag. `kind` is one of: bool, u8, u64, u128, address, signer,
    vector (with `item`), struct (with `struct`).
    """

    kind: str
    item: Optional["TypeTag"] = None
    struct: Optional[StructTag] = None

    def canonical_str(self) -> str:
        if self.kind == "vector":
            return f"vector<{self.item.canonical_str()}>"  # type: ignore[union-attr]
        if self.kind == "struct":
            s = self.struct
            assert s is not None
            params = ""
            if s.type_params:
                params = "<" + ", ".join(t.canonical_str() for t in s.type_params) + ">"
            return f"0x{s.address.hex()}::{s.module}::{s.name}{params}"
        return self.kind


_TYPE_TAG_KINDS = ("bool", "u8", "u64", "u128", "address", "signer", "vector", "struct")

BOOL = TypeTag("bool")
U8 = TypeTag("u8")
U64 = TypeTag("u64")
U128 = TypeTag("u128")
ADDRESS = TypeTag("address")
SIGNER = TypeTag("signer")


def vector(item: TypeTag) -> TypeTag:
    return TypeTag("vector", item=item)


# -----------------
# ABI records
# -----------------


@dataclass(frozen=True)
class ModuleId:
    address: bytes
    name: str

    def __str__(self) -> str:
        return f"0x{self.address.hex()}::{self.name}"


@dataclass(frozen=True)
class ArgumentABI:
    name: str
    type_tag: TypeTag


@dataclass(frozen=True)
class TypeArgumentABI:
    name: str


@dataclass(frozen=True)
class TransactionScriptABI:
    name: str
    doc: str = ""
    code: bytes = field(default=b"", repr=False)
    ty_args: Tuple[TypeArgumentABI, ...] = ()
    args: Tuple[ArgumentABI, ...] = ()


@dataclass(frozen=True)
class ScriptFunctionABI:
    name: str
    module_name: ModuleId
    doc: str = ""
    ty_args: Tuple[TypeArgumentABI, ...] = ()
    args: Tuple[ArgumentABI, ...] = ()


ScriptABI = Union[TransactionScriptABI, ScriptFunctionABI]


def sort_key(abi: ScriptABI) -> Tuple[str, str]:
    module = abi.module_name.name if isinstance(abi, ScriptFunctionABI) else ""
    return (module, abi.name)


# -----------------
# BCS decoding
# -----------------


def _type_tag(de: BcsDeserializer) -> TypeTag:
    idx = de.variant_index()
    if idx >= len(_TYPE_TAG_KINDS):
        raise BcsError(f"unknown TypeTag variant {idx}")
    kind = _TYPE_TAG_KINDS[idx]
    if kind == "vector":
        return TypeTag("vector", item=_type_tag(de))
    if kind == "struct":
        address = de.fixed_bytes(ADDRESS_LENGTH)
        module = de.str()
        name = de.str()
        params = tuple(de.seq(_type_tag))
        return TypeTag("struct", struct=StructTag(address, module, name, params))
    return TypeTag(kind)


def _ty_arg(de: BcsDeserializer) -> TypeArgumentABI:
    return TypeArgumentABI(name=de.str())


def _arg(de: BcsDeserializer) -> ArgumentABI:
    name = de.str()
    return ArgumentABI(name=name, type_tag=_type_tag(de))


def decode_script_abi(data: bytes) -> ScriptABI:
    de = BcsDeserializer(data)
    variant = de.variant_index()
    abi: ScriptABI
    if variant == 0:
        abi = TransactionScriptABI(
            name=de.str(),
            doc=de.str(),
            code=de.bytes(),
            ty_args=tuple(de.seq(_ty_arg)),
            args=tuple(de.seq(_arg)),
        )
    elif variant == 1:
        name = de.str()
        module = ModuleId(address=de.fixed_bytes(ADDRESS_LENGTH), name=de.str())
        abi = ScriptFunctionABI(
            name=name,
            module_name=module,
            doc=de.str(),
            ty_args=tuple(de.seq(_ty_arg)),
            args=tuple(de.seq(_arg)),
        )
    else:
        raise BcsError(f"unknown ScriptABI variant {variant}")
    de.finish()
    return abi


# -----------------
# BCS encoding (used by tooling that fabricates descriptors)
# -----------------


def _write_type_tag(ser: BcsSerializer, tag: TypeTag) -> None:
    ser.variant_index(_TYPE_TAG_KINDS.index(tag.kind))
    if tag.kind == "vector":
        _write_type_tag(ser, tag.item)  # type: ignore[arg-type]
    elif tag.kind == "struct":
        s = tag.struct
        assert s is not None
        ser.fixed_bytes(s.address).str(s.module).str(s.name)
        ser.seq(list(s.type_params), _write_type_tag)


def _write_args(ser: BcsSerializer, abi: ScriptABI) -> None:
    ser.seq(list(abi.ty_args), lambda s, t: s.str(t.name))
    ser.seq(list(abi.args), lambda s, a: (s.str(a.name), _write_type_tag(s, a.type_tag)))


def encode_script_abi(abi: ScriptABI) -> bytes:
    ser = BcsSerializer()
    if isinstance(abi, TransactionScriptABI):
        ser.variant_index(0).str(abi.name).str(abi.doc).bytes(abi.code)
    else:
        ser.variant_index(1).str(abi.name)
        ser.fixed_bytes(abi.module_name.address).str(abi.module_name.name)
        ser.str(abi.doc)
    _write_args(ser, abi)
    return ser.output()


# -----------------
# Filesystem
# -----------------


def get_abi_paths(directory: Path) -> List[Path]:
    """Every *.abi file under `directory`, recursively; [] when it does not exist."""
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.rglob(f"*{ABI_EXTENSION}") if p.is_file())


def read_abis(dir_paths: Sequence[Path] | Iterable[Path]) -> List[ScriptABI]:
    abis: List[ScriptABI] = []
    for directory in dir_paths:
        for path in get_abi_paths(Path(directory)):
            try:
                data = path.read_bytes()
            except OSError as exc:
                raise IOErrorS(f"unable to read ABI: {exc}", path=str(path)).with_cause(exc)
            try:
                abis.append(decode_script_abi(data))
            except BcsError as exc:
                raise AbiParseError(f"{path.name}: {exc}", path=str(path)).with_cause(exc)
    abis.sort(key=sort_key)
    return abis


__all__ = [
    "TypeTag",
    "StructTag",
    "ModuleId",
    "ArgumentABI",
    "TypeArgumentABI",
    "TransactionScriptABI",
    "ScriptFunctionABI",
    "ScriptABI",
    "BOOL",
    "U8",
    "U64",
    "U128",
    "ADDRESS",
    "SIGNER",
    "vector",
    "decode_script_abi",
    "encode_script_abi",
    "get_abi_paths",
    "read_abis",
]

"""
TypeScript backend.

Emits Deno-flavoured TypeScript (``.ts`` import specifiers) into a target
directory laid out as:

    <target>/
      serde/       runtime: Serializer/Deserializer interfaces + binary base classes
      bcs/         runtime: BcsSerializer/BcsDeserializer
      <module>/mod.ts

Every install fully replaces its directory and the emitted text contains no
timestamps or absolute paths, so regenerating from the same inputs yields
byte-identical files.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from enum import Enum
from importlib import resources
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

from .abi import ArgumentABI, ScriptABI, ScriptFunctionABI, TransactionScriptABI
from .registry import TS_KEYWORDS, ContainerFormat, Format, Named, Registry, iter_formats

GENERATED_HEADER = "// This file was generated by shuffle codegen (TypeScript). Do not edit by hand.\n"
MODULE_FILE = "mod.ts"
SERDE_DIR = "serde"
BCS_DIR = "bcs"
TYPES_NAMESPACE = "DiemTypes"


class UnsupportedTypeError(ValueError):
    """A Move argument type the transaction builders cannot encode."""


class Encoding(str, Enum):
    BCS = "bcs"


@dataclass(frozen=True)
class CodeGeneratorConfig:
    module_name: str
    encodings: Tuple[Encoding, ...] = field(default=())


# --- identifiers -----------------------------------------------------------


def ts_ident(s: str) -> str:
    s2 = "".join(ch if (ch.isalnum() or ch == "_") else "_" for ch in s.strip())
    if not s2:
        s2 = "x"
    if s2 in TS_KEYWORDS:
        s2 += "_"
    if s2[0].isdigit():
        s2 = "_" + s2
    return s2


def pascal(s: str) -> str:
    return "".join(p[:1].upper() + p[1:] for p in s.split("_") if p)


# --- registry formats ------------------------------------------------------

_PRIMITIVE_TS = {
    "UNIT": "unit",
    "BOOL": "bool",
    "I8": "int8",
    "I16": "int16",
    "I32": "int32",
    "I64": "int64",
    "I128": "int128",
    "U8": "uint8",
    "U16": "uint16",
    "U32": "uint32",
    "U64": "uint64",
    "U128": "uint128",
    "F32": "float32",
    "F64": "float64",
    "CHAR": "char",
    "STR": "str",
    "BYTES": "bytes",
}

_SERDE_IMPORTS = "Optional, Seq, Tuple, ListTuple, " + ", ".join(dict.fromkeys(_PRIMITIVE_TS.values()))


def ts_type(fmt: Format, ns: str = "") -> str:
    k = fmt.kind
    if k == "primitive":
        return _PRIMITIVE_TS[fmt.name]
    if k == "typename":
        return f"{ns}{fmt.name}"
    if k == "option":
        return f"Optional<{ts_type(fmt.items[0], ns)}>"
    if k in ("seq", "tuplearray"):
        return f"Seq<{ts_type(fmt.items[0], ns)}>"
    if k == "map":
        return f"Map<{ts_type(fmt.items[0], ns)},{ts_type(fmt.items[1], ns)}>"
    if k == "tuple":
        return "Tuple<[" + ", ".join(ts_type(i, ns) for i in fmt.items) + "]>"
    raise ValueError(f"unknown format kind {k!r}")


def helper_id(fmt: Format) -> str:
    k = fmt.kind
    if k == "primitive":
        return fmt.name.capitalize()
    if k == "typename":
        return fmt.name
    if k == "option":
        return "Option" + helper_id(fmt.items[0])
    if k == "seq":
        return "Vector" + helper_id(fmt.items[0])
    if k == "map":
        return "Map" + helper_id(fmt.items[0]) + "To" + helper_id(fmt.items[1])
    if k == "tuple":
        return "Tuple" + "".join(helper_id(i) for i in fmt.items)
    if k == "tuplearray":
        return f"TupleArray{fmt.size}" + helper_id(fmt.items[0])
    raise ValueError(f"unknown format kind {k!r}")


def _is_compound(fmt: Format) -> bool:
    return fmt.kind not in ("primitive", "typename")


def ser_stmt(fmt: Format, value: str) -> str:
    if fmt.kind == "primitive":
        return f"serializer.serialize{fmt.name.capitalize()}({value});"
    if fmt.kind == "typename":
        return f"{value}.serialize(serializer);"
    return f"Helpers.serialize{helper_id(fmt)}({value}, serializer);"


def de_expr(fmt: Format) -> str:
    if fmt.kind == "primitive":
        return f"deserializer.deserialize{fmt.name.capitalize()}()"
    if fmt.kind == "typename":
        return f"{fmt.name}.deserialize(deserializer)"
    return f"Helpers.deserialize{helper_id(fmt)}(deserializer)"


def _collect_compound(fmt: Format, acc: Dict[str, Format]) -> None:
    for it in fmt.items:
        _collect_compound(it, acc)
    if _is_compound(fmt):
        acc.setdefault(helper_id(fmt), fmt)


# --- diemTypes module ------------------------------------------------------


class _TypesEmitter:
    def __init__(self, config: CodeGeneratorConfig, registry: Registry) -> None:
        self.config = config
        self.registry = registry
        self.bcs = Encoding.BCS in config.encodings
        self.lines: List[str] = []

    def w(self, line: str = "") -> None:
        self.lines.append(line + "\n")

    def emit(self) -> str:
        self.lines.append(GENERATED_HEADER)
        self.w(f"import {{ Serializer, Deserializer }} from '../{SERDE_DIR}/{MODULE_FILE}';")
        if self.bcs:
            self.w(f"import {{ BcsSerializer, BcsDeserializer }} from '../{BCS_DIR}/{MODULE_FILE}';")
        self.w(f"import {{ {_SERDE_IMPORTS} }} from '../{SERDE_DIR}/{MODULE_FILE}';")
        self.w()
        for name in sorted(self.registry):
            container = self.registry[name]
            if container.kind == "enum":
                self._enum(name, container)
            else:
                self._struct(name, self._fields(container))
        self._helpers()
        return "".join(self.lines)

    @staticmethod
    def _fields(container: ContainerFormat) -> List[Named]:
        if container.kind == "struct":
            return container.fields
        if container.kind == "newtypestruct":
            return [Named("value", container.items[0])]
        if container.kind == "tuplestruct":
            return [Named(f"field{i}", f) for i, f in enumerate(container.items)]
        return []

    def _bcs_methods(self, name: str) -> None:
        if not self.bcs:
            return
        self.w()
        self.w("public bcsSerialize(): Uint8Array {")
        self.w("  const serializer = new BcsSerializer();")
        self.w("  this.serialize(serializer);")
        self.w("  return serializer.getBytes();")
        self.w("}")
        self.w()
        self.w(f"static bcsDeserialize(input: Uint8Array): {name} {{")
        self.w("  const deserializer = new BcsDeserializer(input);")
        self.w(f"  const value = {name}.deserialize(deserializer);")
        self.w("  if (deserializer.getBufferOffset() !== input.length) {")
        self.w("    throw new Error('Some input bytes were not read');")
        self.w("  }")
        self.w("  return value;")
        self.w("}")

    def _constructor(self, fields: Sequence[Named], call_super: bool) -> None:
        params = ", ".join(f"public {f.name}: {ts_type(f.format)}" for f in fields)
        self.w(f"constructor ({params}) {{")
        if call_super:
            self.w("  super();")
        self.w("}")

    def _struct(self, name: str, fields: Sequence[Named]) -> None:
        self.w(f"export class {name} {{")
        self.w()
        self._constructor(fields, call_super=False)
        self.w()
        self.w("public serialize(serializer: Serializer): void {")
        for f in fields:
            self.w("  " + ser_stmt(f.format, f"this.{f.name}"))
        self.w("}")
        self.w()
        self.w(f"static deserialize(deserializer: Deserializer): {name} {{")
        for f in fields:
            self.w(f"  const {f.name} = {de_expr(f.format)};")
        self.w(f"  return new {name}({','.join(f.name for f in fields)});")
        self.w("}")
        self._bcs_methods(name)
        self.w()
        self.w("}")

    def _enum(self, name: str, container: ContainerFormat) -> None:
        self.w(f"export abstract class {name} {{")
        self.w("abstract serialize(serializer: Serializer): void;")
        self.w()
        self.w(f"static deserialize(deserializer: Deserializer): {name} {{")
        self.w("  const index = deserializer.deserializeVariantIndex();")
        self.w("  switch (index) {")
        for v in container.variants:
            self.w(f"    case {v.index}: return {name}Variant{v.name}.load(deserializer);")
        self.w(f"    default: throw new Error(\"Unknown variant index for {name}: \" + index);")
        self.w("  }")
        self.w("}")
        self._bcs_methods(name)
        self.w("}")
        self.w()
        for v in container.variants:
            vf = v.format
            if vf.kind == "newtype":
                fields = [Named("value", vf.items[0])]
            elif vf.kind == "tuple":
                fields = [Named(f"field{i}", f) for i, f in enumerate(vf.items)]
            else:
                fields = list(vf.fields)
            cls = f"{name}Variant{v.name}"
            self.w(f"export class {cls} extends {name} {{")
            self.w()
            self._constructor(fields, call_super=True)
            self.w()
            self.w("public serialize(serializer: Serializer): void {")
            self.w(f"  serializer.serializeVariantIndex({v.index});")
            for f in fields:
                self.w("  " + ser_stmt(f.format, f"this.{f.name}"))
            self.w("}")
            self.w()
            self.w(f"static load(deserializer: Deserializer): {cls} {{")
            for f in fields:
                self.w(f"  const {f.name} = {de_expr(f.format)};")
            self.w(f"  return new {cls}({','.join(f.name for f in fields)});")
            self.w("}")
            self.w()
            self.w("}")
        self.w()

    def _helpers(self) -> None:
        compounds: Dict[str, Format] = {}
        for container in self.registry.values():
            for fmt in iter_formats(container):
                _collect_compound(fmt, compounds)
        if not compounds:
            return
        self.w("export class Helpers {")
        for hid in sorted(compounds):
            fmt = compounds[hid]
            ty = ts_type(fmt)
            self.w(f"  static serialize{hid}(value: {ty}, serializer: Serializer): void {{")
            for line in self._helper_ser(fmt):
                self.w("    " + line)
            self.w("  }")
            self.w()
            self.w(f"  static deserialize{hid}(deserializer: Deserializer): {ty} {{")
            for line in self._helper_de(fmt, ty):
                self.w("    " + line)
            self.w("  }")
            self.w()
        self.w("}")
        self.w()

    @staticmethod
    def _helper_ser(fmt: Format) -> List[str]:
        k = fmt.kind
        if k == "option":
            return [
                "if (value !== null) {",
                "  serializer.serializeOptionTag(true);",
                "  " + ser_stmt(fmt.items[0], "value"),
                "} else {",
                "  serializer.serializeOptionTag(false);",
                "}",
            ]
        if k == "seq":
            return [
                "serializer.serializeLen(value.length);",
                "value.forEach((item) => {",
                "  " + ser_stmt(fmt.items[0], "item"),
                "});",
            ]
        if k == "tuplearray":
            return [
                "value.forEach((item) => {",
                "  " + ser_stmt(fmt.items[0], "item"),
                "});",
            ]
        if k == "map":
            return [
                "serializer.serializeLen(value.size);",
                "const offsets: number[] = [];",
                "for (const [k, v] of value.entries()) {",
                "  offsets.push(serializer.getBufferOffset());",
                "  " + ser_stmt(fmt.items[0], "k"),
                "  " + ser_stmt(fmt.items[1], "v"),
                "}",
                "serializer.sortMapEntries(offsets);",
            ]
        if k == "tuple":
            return [ser_stmt(item, f"value[{i}]") for i, item in enumerate(fmt.items)]
        raise ValueError(f"not a compound format: {k!r}")

    @staticmethod
    def _helper_de(fmt: Format, ty: str) -> List[str]:
        k = fmt.kind
        if k == "option":
            return [
                "const tag = deserializer.deserializeOptionTag();",
                "if (!tag) {",
                "  return null;",
                "} else {",
                f"  return {de_expr(fmt.items[0])};",
                "}",
            ]
        if k in ("seq", "tuplearray"):
            head = (
                ["const length = deserializer.deserializeLen();"]
                if k == "seq"
                else [f"const length = {fmt.size};"]
            )
            return head + [
                f"const list: {ty} = [];",
                "for (let i = 0; i < length; i++) {",
                f"  list.push({de_expr(fmt.items[0])});",
                "}",
                "return list;",
            ]
        if k == "map":
            return [
                "const length = deserializer.deserializeLen();",
                f"const obj: {ty} = new Map();",
                "let previousKeyStart = 0;",
                "let previousKeyEnd = 0;",
                "for (let i = 0; i < length; i++) {",
                "  const keyStart = deserializer.getBufferOffset();",
                f"  const key = {de_expr(fmt.items[0])};",
                "  const keyEnd = deserializer.getBufferOffset();",
                "  if (i > 0) {",
                "    deserializer.checkThatKeySlicesAreIncreasing(",
                "      [previousKeyStart, previousKeyEnd],",
                "      [keyStart, keyEnd]);",
                "  }",
                "  previousKeyStart = keyStart;",
                "  previousKeyEnd = keyEnd;",
                f"  const value = {de_expr(fmt.items[1])};",
                "  obj.set(key, value);",
                "}",
                "return obj;",
            ]
        if k == "tuple":
            return ["return [" + ", ".join(de_expr(i) for i in fmt.items) + "];"]
        raise ValueError(f"not a compound format: {k!r}")


def emit_types_module(config: CodeGeneratorConfig, registry: Registry) -> str:
    return _TypesEmitter(config, registry).emit()


# --- diemStdlib module -----------------------------------------------------

# Move type -> (TS parameter type, TransactionArgument variant, serializer call)
_ARG_KINDS: Dict[str, Tuple[str, str, str]] = {
    "bool": ("boolean", "Bool", "serializer.serializeBool(arg);"),
    "u8": ("number", "U8", "serializer.serializeU8(arg);"),
    "u64": ("bigint", "U64", "serializer.serializeU64(arg);"),
    "u128": ("bigint", "U128", "serializer.serializeU128(arg);"),
    "address": (f"{TYPES_NAMESPACE}.AccountAddress", "Address", "arg.serialize(serializer);"),
    "vector<u8>": ("Uint8Array", "U8Vector", "serializer.serializeBytes(arg);"),
}


def _arg_kind(arg: ArgumentABI, builder: str) -> str:
    key = arg.type_tag.canonical_str()
    if key not in _ARG_KINDS:
        raise UnsupportedTypeError(f"{builder}: unsupported argument type {key} for `{arg.name}`")
    return key


def builder_names(abis: Sequence[ScriptABI]) -> List[str]:
    """`encode<Name>Script` / `encode<Name>ScriptFunction`; clashing function names get the module prefixed."""
    counts: Dict[str, int] = {}
    for abi in abis:
        if isinstance(abi, ScriptFunctionABI):
            counts[abi.name] = counts.get(abi.name, 0) + 1
    out: List[str] = []
    for abi in abis:
        if isinstance(abi, TransactionScriptABI):
            out.append(f"encode{pascal(abi.name)}Script")
        elif counts[abi.name] > 1:
            out.append(f"encode{pascal(abi.module_name.name)}{pascal(abi.name)}ScriptFunction")
        else:
            out.append(f"encode{pascal(abi.name)}ScriptFunction")
    return out


def _doc(lines: List[str], doc: str) -> None:
    text = doc.strip()
    if not text:
        return
    lines.append("  /**\n")
    for dl in text.splitlines():
        dl = dl.replace("*/", "*\\/").rstrip()
        lines.append(f"   * {dl}\n" if dl else "   *\n")
    lines.append("   */\n")


def _address_literal(address: bytes) -> str:
    return f"new {TYPES_NAMESPACE}.AccountAddress([" + ", ".join(str(b) for b in address) + "])"


def emit_transaction_builders(abis: Sequence[ScriptABI], types_module: str = "diemTypes") -> str:
    names = builder_names(abis)
    arg_encoders: Dict[str, None] = {}
    code_consts: List[Tuple[str, bytes]] = []
    ns = TYPES_NAMESPACE

    lines: List[str] = [GENERATED_HEADER]
    lines.append(f"import {{ BcsSerializer }} from '../{BCS_DIR}/{MODULE_FILE}';\n")
    lines.append(f"import {{ Seq, bytes }} from '../{SERDE_DIR}/{MODULE_FILE}';\n")
    lines.append(f"import * as {ns} from '../{types_module}/{MODULE_FILE}';\n\n")
    lines.append("export class Stdlib {\n")
    lines.append("  private static fromHexString(hexString: string): Uint8Array {\n")
    lines.append("    return new Uint8Array((hexString.match(/.{1,2}/g) ?? []).map((byte) => parseInt(byte, 16)));\n")
    lines.append("  }\n\n")

    for abi, bname in zip(abis, names):
        tparams = [f"{ts_ident(t.name)}: {ns}.TypeTag" for t in abi.ty_args]
        kinds = [_arg_kind(a, bname) for a in abi.args]
        params = tparams + [f"{ts_ident(a.name)}: {_ARG_KINDS[k][0]}" for a, k in zip(abi.args, kinds)]
        ty_list = ", ".join(ts_ident(t.name) for t in abi.ty_args)
        _doc(lines, abi.doc)
        if isinstance(abi, TransactionScriptABI):
            const = f"{abi.name.upper()}_CODE"
            code_consts.append((const, abi.code))
            arg_list = ", ".join(
                f"new {ns}.TransactionArgumentVariant{_ARG_KINDS[k][1]}({ts_ident(a.name)})"
                for a, k in zip(abi.args, kinds)
            )
            lines.append(f"  static {bname}({', '.join(params)}): {ns}.Script {{\n")
            lines.append(f"    const code = Stdlib.{const};\n")
            lines.append(f"    const tyArgs: Seq<{ns}.TypeTag> = [{ty_list}];\n")
            lines.append(f"    const args: Seq<{ns}.TransactionArgument> = [{arg_list}];\n")
            lines.append(f"    return new {ns}.Script(code, tyArgs, args);\n")
            lines.append("  }\n\n")
        else:
            for k in kinds:
                arg_encoders[k] = None
            arg_list = ", ".join(
                f"encode{_ARG_KINDS[k][1]}Argument({ts_ident(a.name)})" for a, k in zip(abi.args, kinds)
            )
            mod = abi.module_name
            lines.append(f"  static {bname}({', '.join(params)}): {ns}.TransactionPayload {{\n")
            lines.append(f"    const tyArgs: Seq<{ns}.TypeTag> = [{ty_list}];\n")
            lines.append(f"    const args: Seq<bytes> = [{arg_list}];\n")
            lines.append(
                f"    const moduleId: {ns}.ModuleId = new {ns}.ModuleId("
                f"{_address_literal(mod.address)}, new {ns}.Identifier(\"{mod.name}\"));\n"
            )
            lines.append(f"    const functionName: {ns}.Identifier = new {ns}.Identifier(\"{abi.name}\");\n")
            lines.append(f"    const script = new {ns}.ScriptFunction(moduleId, functionName, tyArgs, args);\n")
            lines.append(f"    return new {ns}.TransactionPayloadVariantScriptFunction(script);\n")
            lines.append("  }\n\n")

    for const, code in code_consts:
        lines.append(f"  static {const} = Stdlib.fromHexString('{code.hex()}');\n")
    lines.append("}\n")

    for k in sorted(arg_encoders, key=lambda k: _ARG_KINDS[k][1]):
        ty, variant, call = _ARG_KINDS[k]
        lines.append("\n")
        lines.append(f"function encode{variant}Argument(arg: {ty}): Uint8Array {{\n")
        lines.append("  const serializer = new BcsSerializer();\n")
        lines.append(f"  {call}\n")
        lines.append("  return serializer.getBytes();\n")
        lines.append("}\n")
    return "".join(lines)


# --- installer -------------------------------------------------------------


def _runtime_files(name: str) -> List[Tuple[str, bytes]]:
    root = resources.files(__package__).joinpath("runtime", "typescript", name)
    return sorted(
        (entry.name, entry.read_bytes()) for entry in root.iterdir() if entry.name.endswith(".ts")
    )


def _replace_dir(path: Path) -> Path:
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True)
    return path


class Installer:
    """Writes runtimes and generated modules under `install_dir`."""

    def __init__(self, install_dir: Path) -> None:
        self.install_dir = Path(install_dir)

    def _install_runtime(self, name: str) -> Path:
        target = _replace_dir(self.install_dir / name)
        for filename, data in _runtime_files(name):
            (target / filename).write_bytes(data)
        return target

    def install_serde_runtime(self) -> Path:
        return self._install_runtime(SERDE_DIR)

    def install_bcs_runtime(self) -> Path:
        return self._install_runtime(BCS_DIR)

    def install_module(self, config: CodeGeneratorConfig, registry: Registry) -> Path:
        source = emit_types_module(config, registry)
        target = _replace_dir(self.install_dir / config.module_name)
        (target / MODULE_FILE).write_text(source, encoding="utf-8")
        return target / MODULE_FILE

    def install_transaction_builders(self, name: str, abis: Sequence[ScriptABI]) -> Path:
        source = emit_transaction_builders(abis)
        target = _replace_dir(self.install_dir / name)
        (target / MODULE_FILE).write_text(source, encoding="utf-8")
        return target / MODULE_FILE


__all__ = [
    "Encoding",
    "CodeGeneratorConfig",
    "Installer",
    "UnsupportedTypeError",
    "emit_types_module",
    "emit_transaction_builders",
    "builder_names",
    "ts_ident",
    "ts_type",
    "pascal",
]

"""
Type registry (serde-reflection format).

The registry describing the chain's built-in types ships inside the package
(``data/diem.yaml``) and is loaded fresh on every generation run. It is
parsed into a small typed model so emitters never touch raw YAML:

    Format     := PRIMITIVE | TYPENAME | OPTION | SEQ | MAP | TUPLE | TUPLEARRAY
    Container  := UNITSTRUCT | NEWTYPESTRUCT | TUPLESTRUCT | STRUCT | ENUM

``replace_keywords`` renames every identifier (type names, TYPENAME
references, field names, variant names) that collides with a TypeScript
reserved word by appending ``_``. It mutates the in-memory registry only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from importlib import resources
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import yaml

from ..errors import RegistryParseError

REGISTRY_RESOURCE = "diem.yaml"

PRIMITIVES = frozenset(
    (
        "UNIT",
        "BOOL",
        "I8",
        "I16",
        "I32",
        "I64",
        "I128",
        "U8",
        "U16",
        "U32",
        "U64",
        "U128",
        "F32",
        "F64",
        "CHAR",
        "STR",
        "BYTES",
    )
)

TS_KEYWORDS = frozenset(
    {
        "break", "case", "catch", "class", "const", "continue", "debugger", "default",
        "delete", "do", "else", "enum", "export", "extends", "false", "finally", "for",
        "function", "if", "import", "in", "instanceof", "new", "null", "return", "super",
        "switch", "this", "throw", "true", "try", "typeof", "var", "void", "while", "with",
        "as", "implements", "interface", "let", "package", "private", "protected", "public",
        "static", "yield", "any", "boolean", "constructor", "declare", "get", "module",
        "require", "number", "set", "string", "symbol", "type", "from", "of",
    }
)


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------


@dataclass
class Format:
    """
    kind: "primitive" (name), "typename" (name), "option" (items[0]),
    "seq" (items[0]), "map" (items[0]=key, items[1]=value), "tuple" (items),
    "tuplearray" (items[0], size).
    """

    kind: str
    name: str = ""
    items: List["Format"] = field(default_factory=list)
    size: int = 0


@dataclass
class Named:
    name: str
    format: Format


@dataclass
class VariantFormat:
    """kind: "unit" | "newtype" (items[0]) | "tuple" (items) | "struct" (fields)."""

    kind: str
    items: List[Format] = field(default_factory=list)
    fields: List[Named] = field(default_factory=list)


@dataclass
class Variant:
    index: int
    name: str
    format: VariantFormat


@dataclass
class ContainerFormat:
    """kind: "unitstruct" | "newtypestruct" | "tuplestruct" | "struct" | "enum"."""

    kind: str
    items: List[Format] = field(default_factory=list)
    fields: List[Named] = field(default_factory=list)
    variants: List[Variant] = field(default_factory=list)


Registry = Dict[str, ContainerFormat]


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _single(obj: Mapping[str, Any], where: str) -> Tuple[str, Any]:
    if not isinstance(obj, Mapping) or len(obj) != 1:
        raise RegistryParseError(f"{where}: expected a single-key mapping, got {obj!r}")
    (key, value), = obj.items()
    return str(key), value


def parse_format(raw: Any, where: str) -> Format:
    if isinstance(raw, str):
        if raw not in PRIMITIVES:
            raise RegistryParseError(f"{where}: unknown primitive {raw!r}")
        return Format("primitive", name=raw)
    tag, value = _single(raw, where)
    if tag == "TYPENAME":
        return Format("typename", name=str(value))
    if tag in ("OPTION", "SEQ"):
        return Format(tag.lower(), items=[parse_format(value, where)])
    if tag == "MAP":
        if not isinstance(value, Mapping) or "KEY" not in value or "VALUE" not in value:
            raise RegistryParseError(f"{where}: MAP needs KEY and VALUE")
        return Format("map", items=[parse_format(value["KEY"], where), parse_format(value["VALUE"], where)])
    if tag == "TUPLE":
        if not isinstance(value, list):
            raise RegistryParseError(f"{where}: TUPLE needs a list")
        return Format("tuple", items=[parse_format(v, where) for v in value])
    if tag == "TUPLEARRAY":
        if not isinstance(value, Mapping) or "CONTENT" not in value or not isinstance(value.get("SIZE"), int):
            raise RegistryParseError(f"{where}: TUPLEARRAY needs CONTENT and integer SIZE")
        return Format("tuplearray", items=[parse_format(value["CONTENT"], where)], size=int(value["SIZE"]))
    raise RegistryParseError(f"{where}: unknown format tag {tag!r}")


def _parse_fields(raw: Any, where: str) -> List[Named]:
    if not isinstance(raw, list):
        raise RegistryParseError(f"{where}: STRUCT needs a list of fields")
    out: List[Named] = []
    for entry in raw:
        name, fmt = _single(entry, where)
        out.append(Named(name, parse_format(fmt, f"{where}.{name}")))
    return out


def _parse_variant_format(raw: Any, where: str) -> VariantFormat:
    if raw == "UNIT":
        return VariantFormat("unit")
    tag, value = _single(raw, where)
    if tag == "NEWTYPE":
        return VariantFormat("newtype", items=[parse_format(value, where)])
    if tag == "TUPLE":
        if not isinstance(value, list):
            raise RegistryParseError(f"{where}: TUPLE needs a list")
        return VariantFormat("tuple", items=[parse_format(v, where) for v in value])
    if tag == "STRUCT":
        return VariantFormat("struct", fields=_parse_fields(value, where))
    raise RegistryParseError(f"{where}: unknown variant format {tag!r}")


def parse_container(name: str, raw: Any) -> ContainerFormat:
    if raw == "UNITSTRUCT":
        return ContainerFormat("unitstruct")
    tag, value = _single(raw, name)
    if tag == "NEWTYPESTRUCT":
        return ContainerFormat("newtypestruct", items=[parse_format(value, name)])
    if tag == "TUPLESTRUCT":
        if not isinstance(value, list):
            raise RegistryParseError(f"{name}: TUPLESTRUCT needs a list")
        return ContainerFormat("tuplestruct", items=[parse_format(v, name) for v in value])
    if tag == "STRUCT":
        return ContainerFormat("struct", fields=_parse_fields(value, name))
    if tag == "ENUM":
        if not isinstance(value, Mapping):
            raise RegistryParseError(f"{name}: ENUM needs an index mapping")
        for index in value:
            if not isinstance(index, int):
                raise RegistryParseError(f"{name}: variant index {index!r} is not an integer")
        variants: List[Variant] = []
        for index in sorted(value):
            vname, vfmt = _single(value[index], f"{name}[{index}]")
            variants.append(Variant(index, vname, _parse_variant_format(vfmt, f"{name}::{vname}")))
        if [v.index for v in variants] != list(range(len(variants))):
            raise RegistryParseError(f"{name}: variant indexes must be contiguous from 0")
        return ContainerFormat("enum", variants=variants)
    raise RegistryParseError(f"{name}: unknown container tag {tag!r}")


def _typenames(fmt: Format) -> List[str]:
    if fmt.kind == "typename":
        return [fmt.name]
    out: List[str] = []
    for it in fmt.items:
        out.extend(_typenames(it))
    return out


def iter_formats(container: ContainerFormat) -> List[Format]:
    formats = list(container.items) + [f.format for f in container.fields]
    for v in container.variants:
        formats.extend(v.format.items)
        formats.extend(f.format for f in v.format.fields)
    return formats


def parse_registry(text: str, *, source: str = REGISTRY_RESOURCE) -> Registry:
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise RegistryParseError(f"{source}: {exc}", source=source).with_cause(exc)
    if not isinstance(raw, Mapping) or not raw:
        raise RegistryParseError(f"{source}: expected a mapping of type names", source=source)
    registry: Registry = {str(name): parse_container(str(name), body) for name, body in raw.items()}
    for name, container in registry.items():
        for fmt in iter_formats(container):
            for ref in _typenames(fmt):
                if ref not in registry:
                    raise RegistryParseError(f"{name}: reference to unknown type {ref!r}", source=source)
    return registry


def load_diem_registry() -> Registry:
    """Parse the bundled diem types registry."""
    text = resources.files(__package__).joinpath("data", REGISTRY_RESOURCE).read_text(encoding="utf-8")
    return parse_registry(text)


# ---------------------------------------------------------------------------
# Keyword sanitization
# ---------------------------------------------------------------------------


def _safe(name: str, keywords: frozenset) -> str:
    return f"{name}_" if name in keywords else name


def _rename_format(fmt: Format, keywords: frozenset) -> None:
    if fmt.kind == "typename":
        fmt.name = _safe(fmt.name, keywords)
    for it in fmt.items:
        _rename_format(it, keywords)


def _rename_fields(named: List[Named], keywords: frozenset) -> None:
    for f in named:
        f.name = _safe(f.name, keywords)


def replace_keywords(registry: Registry, keywords: Optional[frozenset] = None) -> None:
    kw = TS_KEYWORDS if keywords is None else keywords
    for name in [n for n in registry if n in kw]:
        registry[_safe(name, kw)] = registry.pop(name)
    for container in registry.values():
        for fmt in iter_formats(container):
            _rename_format(fmt, kw)
        _rename_fields(container.fields, kw)
        for v in container.variants:
            v.name = _safe(v.name, kw)
            _rename_fields(v.format.fields, kw)


__all__ = [
    "Format",
    "Named",
    "Variant",
    "VariantFormat",
    "ContainerFormat",
    "Registry",
    "TS_KEYWORDS",
    "parse_registry",
    "load_diem_registry",
    "replace_keywords",
]

import textwrap

import pytest

from shuffle.codegen.registry import load_diem_registry, parse_registry, replace_keywords
from shuffle.errors import RegistryParseError


def test_bundled_registry_loads() -> None:
    registry = load_diem_registry()
    for name in ("AccountAddress", "Script", "ScriptFunction", "TransactionPayload", "TypeTag"):
        assert name in registry
    addr = registry["AccountAddress"]
    assert addr.kind == "newtypestruct"
    assert addr.items[0].kind == "tuplearray" and addr.items[0].size == 16
    payload = registry["TransactionPayload"]
    assert [v.name for v in payload.variants] == ["WriteSet", "Script", "Module", "ScriptFunction"]


def test_replace_keywords_renames_fields() -> None:
    registry = load_diem_registry()
    replace_keywords(registry)
    fields = [f.name for f in registry["ScriptFunction"].fields]
    assert fields == ["module_", "function_", "ty_args", "args"]
    assert [f.name for f in registry["StructTag"].fields][:2] == ["address", "module_"]


def test_replace_keywords_renames_types_and_references() -> None:
    registry = parse_registry(
        textwrap.dedent(
            """
        Holder:
          STRUCT:
            - inner:
                TYPENAME: enum
            - maybe:
                OPTION:
                  TYPENAME: enum
        enum:
          ENUM:
            0:
              default: UNIT
            1:
              Other:
                NEWTYPE: U8
        """
        )
    )
    replace_keywords(registry)
    assert "enum_" in registry and "enum" not in registry
    holder = registry["Holder"]
    assert holder.fields[0].format.name == "enum_"
    assert holder.fields[1].format.items[0].name == "enum_"
    assert [v.name for v in registry["enum_"].variants] == ["default_", "Other"]


@pytest.mark.parametrize(
    "text",
    [
        "Foo: [unclosed",
        "- just\n- a list\n",
        "Foo:\n  STRUCT:\n    - x:\n        TYPENAME: Missing\n",
        "Foo:\n  ENUM:\n    1:\n      A: UNIT\n",
        "Foo:\n  NEWTYPESTRUCT: U256\n",
        "Foo:\n  WHATEVER: U8\n",
    ],
)
def test_malformed_registries(text: str) -> None:
    with pytest.raises(RegistryParseError):
        parse_registry(text)

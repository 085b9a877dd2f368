from pathlib import Path

import pytest

from shuffle.bcs import BcsSerializer
from shuffle.codegen.abi import (
    BOOL,
    U8,
    ScriptFunctionABI,
    StructTag,
    TransactionScriptABI,
    TypeTag,
    decode_script_abi,
    encode_script_abi,
    get_abi_paths,
    read_abis,
    vector,
)
from shuffle.errors import AbiParseError

from .fakes import SENDER, set_message_function, set_message_script, transfer_function


def test_decode_hand_encoded_script_function() -> None:
    ser = BcsSerializer()
    ser.variant_index(1).str("set_message").fixed_bytes(SENDER).str("Message").str("doc")
    ser.uleb128(0)  # ty_args
    ser.uleb128(1).str("message_bytes").variant_index(6).variant_index(1)  # vector<u8>
    abi = decode_script_abi(ser.output())
    assert isinstance(abi, ScriptFunctionABI)
    assert abi.name == "set_message"
    assert abi.module_name.name == "Message"
    assert abi.module_name.address == SENDER
    assert abi.args[0].type_tag == vector(U8)


def test_transaction_script_keeps_code() -> None:
    abi = decode_script_abi(encode_script_abi(set_message_script()))
    assert isinstance(abi, TransactionScriptABI)
    assert abi.code == bytes.fromhex("a11ceb0b0100")


def test_struct_type_tag_canonical_str() -> None:
    tag = TypeTag("struct", struct=StructTag(b"\x00" * 15 + b"\x01", "XUS", "XUS", (BOOL,)))
    assert tag.canonical_str() == "0x00000000000000000000000000000001::XUS::XUS<bool>"


@pytest.mark.parametrize("data", [b"", b"\x07", b"\x01\x03ab"])
def test_malformed_descriptors(data: bytes, tmp_path: Path) -> None:
    (tmp_path / "bad.abi").write_bytes(data)
    with pytest.raises(AbiParseError):
        read_abis([tmp_path])


def test_trailing_bytes_rejected(tmp_path: Path) -> None:
    (tmp_path / "x.abi").write_bytes(encode_script_abi(transfer_function()) + b"\x00")
    with pytest.raises(AbiParseError):
        read_abis([tmp_path])


def test_read_abis_is_recursive_and_sorted(tmp_path: Path) -> None:
    (tmp_path / "b" / "deep").mkdir(parents=True)
    (tmp_path / "a").mkdir()
    (tmp_path / "b" / "deep" / "set_message.abi").write_bytes(encode_script_abi(set_message_function()))
    (tmp_path / "a" / "transfer.abi").write_bytes(encode_script_abi(transfer_function()))
    (tmp_path / "a" / "notes.txt").write_text("ignored")
    abis = read_abis([tmp_path])
    assert [(a.module_name.name, a.name) for a in abis] == [("Coin", "transfer"), ("Message", "set_message")]


def test_empty_and_missing_directories(tmp_path: Path) -> None:
    assert read_abis([tmp_path]) == []
    assert get_abi_paths(tmp_path / "missing") == []

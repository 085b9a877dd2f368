import io
from pathlib import Path

import pytest

from shuffle import new
from shuffle.config import read_config
from shuffle.errors import IOErrorS
from shuffle.home import Home

from .fakes import FakeCompiler


def test_substitute_placeholders_keeps_unknown():
    text = 'Sender = "{{ sender_address }}"\nOther = "{{other}}"\n'
    assert new.substitute_placeholders(text, {"sender_address": "0xAB"}) == 'Sender = "0xAB"\nOther = "{{other}}"\n'


def test_template_files_bundle():
    files = new.template_files()
    assert sorted(files) == [
        "e2e/message.test.ts",
        "integration/integration.test.ts",
        "main/Move.toml",
        "main/move.ts",
        "main/sources/Message.move",
    ]
    assert "{{sender_address}}" in files["main/Move.toml"]


def test_sender_address_falls_back_without_account(home: Home):
    assert new.sender_address_for(home) == "0x1"
    key = home.generate_key_file(home.account_key_path)
    address = home.save_address(home.account_address_path, key)
    assert new.sender_address_for(home) == "0x" + address


def test_new_project_without_codegen(home: Home, tmp_path: Path):
    path = new.handle(home, "goodday", tmp_path / "hello", generate=False)
    assert path == tmp_path / "hello"
    assert read_config(path).blockchain == "goodday"
    assert (path / "main" / "sources" / "Message.move").is_file()
    assert (path / "e2e" / "message.test.ts").is_file()
    assert 'Sender = "0x1"' in (path / "main" / "Move.toml").read_text()
    assert not (path / "main" / "generated").exists()


def test_new_project_generates_bindings(home: Home, tmp_path: Path):
    compiler = FakeCompiler()
    out = io.StringIO()
    path = new.handle(home, "goodday", tmp_path / "hello", compiler=compiler, out=out)
    assert compiler.builds[0][0] == path / "main"
    assert (path / "main" / "generated" / "diemTypes" / "mod.ts").is_file()
    assert "Building Examples..." in out.getvalue()


def test_new_accepts_existing_empty_directory(home: Home, tmp_path: Path):
    (tmp_path / "empty").mkdir()
    new.handle(home, "goodday", tmp_path / "empty", generate=False)
    assert (tmp_path / "empty" / "Shuffle.toml").is_file()


def test_new_refuses_non_empty_directory(home: Home, tmp_path: Path):
    target = tmp_path / "taken"
    target.mkdir()
    (target / "notes.txt").write_text("keep me")
    with pytest.raises(IOErrorS):
        new.handle(home, "goodday", target, generate=False)
    assert sorted(p.name for p in target.iterdir()) == ["notes.txt"]

import io
from pathlib import Path
from typing import Dict

import pytest

from shuffle.codegen import generate_typescript_libraries, generated_path
from shuffle.codegen.abi import SIGNER, ArgumentABI, ScriptFunctionABI, ModuleId
from shuffle.codegen.typescript import Installer, builder_names, emit_transaction_builders
from shuffle.errors import CodegenError, CompileError, RuntimeInstallError

from .fakes import SENDER, FakeCompiler, set_message_function, set_message_script, transfer_function


def _snapshot(root: Path) -> Dict[str, bytes]:
    return {str(p.relative_to(root)): p.read_bytes() for p in sorted(root.rglob("*")) if p.is_file()}


def _generate(project: Path, compiler: FakeCompiler) -> Path:
    return generate_typescript_libraries(project, compiler=compiler, out=io.StringIO())


def test_generates_runtimes_and_modules(project: Path) -> None:
    target = _generate(project, FakeCompiler([set_message_function()]))
    assert target == generated_path(project) == project / "main" / "generated"
    for rel in (
        "serde/mod.ts",
        "serde/binarySerializer.ts",
        "bcs/mod.ts",
        "bcs/bcsSerializer.ts",
        "diemTypes/mod.ts",
        "diemStdlib/mod.ts",
    ):
        assert (target / rel).is_file(), rel


def test_build_runs_first_with_fixed_config(project: Path) -> None:
    compiler = FakeCompiler()
    out = io.StringIO()
    generate_typescript_libraries(project, compiler=compiler, out=out)
    assert out.getvalue().startswith("Building Examples...\n")
    (pkg, config), = compiler.builds
    assert pkg == project / "main"
    assert (config.dev_mode, config.test_mode, config.generate_docs, config.generate_abis) == (
        True,
        False,
        False,
        True,
    )


def test_types_module_uses_sanitized_names(project: Path) -> None:
    target = _generate(project, FakeCompiler())
    types_ts = (target / "diemTypes" / "mod.ts").read_text()
    assert "export class ScriptFunction {" in types_ts
    assert "public module_: ModuleId, public function_: Identifier" in types_ts
    assert "export abstract class TransactionPayload {" in types_ts
    assert "export class TransactionPayloadVariantScriptFunction extends TransactionPayload {" in types_ts
    assert "static bcsDeserialize(input: Uint8Array): SignedTransaction {" in types_ts
    assert "static serializeTupleArray16U8(value: Seq<uint8>, serializer: Serializer): void {" in types_ts
    assert "import { BcsSerializer, BcsDeserializer } from '../bcs/mod.ts';" in types_ts


def test_regeneration_is_idempotent(project: Path) -> None:
    compiler = FakeCompiler([set_message_function(), transfer_function(), set_message_script()])
    target = _generate(project, compiler)
    first = _snapshot(target)
    (target / "diemStdlib" / "stale.ts").write_text("// left over")
    _generate(project, compiler)
    assert _snapshot(target) == first


def test_empty_abi_set_generates_empty_stdlib(project: Path) -> None:
    target = _generate(project, FakeCompiler([]))
    stdlib = (target / "diemStdlib" / "mod.ts").read_text()
    assert "export class Stdlib {" in stdlib
    assert stdlib.count("static encode") == 0
    assert (target / "diemTypes" / "mod.ts").is_file()


def test_single_zero_arg_function_yields_one_builder(project: Path) -> None:
    abi = ScriptFunctionABI(name="ping", module_name=ModuleId(SENDER, "Message"))
    target = _generate(project, FakeCompiler([abi]))
    stdlib = (target / "diemStdlib" / "mod.ts").read_text()
    assert stdlib.count("static encode") == 1
    assert "static encodePingScriptFunction(): DiemTypes.TransactionPayload {" in stdlib


def test_builder_signatures(project: Path) -> None:
    target = _generate(project, FakeCompiler([set_message_script(), set_message_function(), transfer_function()]))
    stdlib = (target / "diemStdlib" / "mod.ts").read_text()
    assert "static encodeSetMessageScript(message: Uint8Array): DiemTypes.Script" in stdlib
    assert (
        "static encodeSetMessageScriptFunction(message_bytes: Uint8Array): DiemTypes.TransactionPayload"
        in stdlib
    )
    assert (
        "static encodeTransferScriptFunction(payee: DiemTypes.AccountAddress, amount: bigint)"
        in stdlib
    )
    assert "new DiemTypes.TransactionArgumentVariantU8Vector(message)" in stdlib
    assert "function encodeU8VectorArgument(arg: Uint8Array): Uint8Array {" in stdlib
    assert "static SET_MESSAGE_CODE = Stdlib.fromHexString('a11ceb0b0100');" in stdlib
    assert "   * Sets the message for the sender." in stdlib


def test_builder_names_disambiguate_modules() -> None:
    a = set_message_function()
    b = set_message_function(module_name=ModuleId(SENDER, "Board"))
    assert builder_names([a, b]) == [
        "encodeMessageSetMessageScriptFunction",
        "encodeBoardSetMessageScriptFunction",
    ]


def test_generated_stdlib_text_is_deterministic() -> None:
    abis = [set_message_function(), transfer_function()]
    assert emit_transaction_builders(abis) == emit_transaction_builders(list(abis))


def test_unsupported_argument_type_is_codegen_error(project: Path) -> None:
    abi = set_message_function(args=(ArgumentABI("account", SIGNER),))
    with pytest.raises(CodegenError) as ei:
        _generate(project, FakeCompiler([abi]))
    assert ei.value.data["module"] == "diemStdlib"


def test_compile_error_stops_before_generation(project: Path) -> None:
    with pytest.raises(CompileError) as ei:
        _generate(project, FakeCompiler(diagnostic="error[E01001]: unbound module"))
    assert ei.value.diagnostic == "error[E01001]: unbound module"
    assert not generated_path(project).exists()


class _BrokenBcsInstaller(Installer):
    def install_bcs_runtime(self) -> Path:
        raise PermissionError("read-only file system")


def test_runtime_install_failure(project: Path) -> None:
    with pytest.raises(RuntimeInstallError) as ei:
        generate_typescript_libraries(
            project, compiler=FakeCompiler(), out=io.StringIO(), installer_factory=_BrokenBcsInstaller
        )
    assert ei.value.data["runtime"] == "bcs"
    assert (generated_path(project) / "serde" / "mod.ts").is_file()
    assert not (generated_path(project) / "diemTypes").exists()

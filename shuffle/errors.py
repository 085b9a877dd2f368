"""
Shuffle - errors
----------------

A small, consistent error system for the build/codegen/bootstrap pipeline.

Design goals
------------
- One root `ShuffleError` with machine-friendly `code` and optional `data`.
- One concrete subclass per failure stage (discovery, config, compile,
  codegen, network policy, deployment, transaction status, test runners).
- `data` always names the file, module or stage that failed so callers can
  diagnose without re-running.
- Every error is permanent: inputs are fixed (source, registry, network
  state), so nothing in this package retries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class ShuffleErrorCode(str, Enum):
    INTERNAL = "SHUFFLE/INTERNAL"

    # Project discovery / configuration
    PROJECT_NOT_FOUND = "SHUFFLE/PROJECT_NOT_FOUND"
    IO = "SHUFFLE/IO"
    CONFIG_PARSE = "SHUFFLE/CONFIG_PARSE"
    ACCOUNT = "SHUFFLE/ACCOUNT"

    # Build / codegen
    COMPILE = "SHUFFLE/COMPILE"
    REGISTRY_PARSE = "SHUFFLE/REGISTRY_PARSE"
    ABI_PARSE = "SHUFFLE/ABI_PARSE"
    RUNTIME_INSTALL = "SHUFFLE/RUNTIME_INSTALL"
    CODEGEN = "SHUFFLE/CODEGEN"

    # Network bootstrap
    NETWORK_POLICY = "SHUFFLE/NETWORK_POLICY"
    DEPLOYMENT = "SHUFFLE/DEPLOYMENT"
    ACCOUNT_FUNDING = "SHUFFLE/ACCOUNT_FUNDING"
    TX_STATUS = "SHUFFLE/TX_STATUS"
    RPC = "SHUFFLE/RPC"
    TEST_RUNNER = "SHUFFLE/TEST_RUNNER"


@dataclass(eq=False)
class ShuffleError(Exception):
    """
    Root error for Shuffle components.

    Attributes
    ----------
    code: str
        Machine-stable error code (see ShuffleErrorCode).
    message: str
        Human hint suitable for terminals and logs.
    data: dict
        Machine data (paths, module names, statuses). JSON-serializable.
    cause: Optional[BaseException]
        Wrapped original exception; not included in equality comparison.
    """

    code: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)
    cause: Optional[BaseException] = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        super().__init__(f"{self.code}: {self.message}")

    @property
    def retryable(self) -> bool:
        return False

    def with_context(self, **ctx: Any) -> "ShuffleError":
        """Merge extra context into `data` and return self for chaining."""
        for k, v in ctx.items():
            self.data[k] = _coerce_json(v)
        return self

    def with_cause(self, exc: BaseException) -> "ShuffleError":
        self.cause = exc
        self.__cause__ = exc
        return self

    def to_dict(self, include_cause: bool = False) -> Dict[str, Any]:
        """JSON-safe shape suitable for logs."""
        out: Dict[str, Any] = {
            "code": str(getattr(self.code, "value", self.code)),
            "message": self.message,
            "data": _jsonmap(self.data),
        }
        if include_cause and self.cause is not None:
            out["cause"] = {
                "type": type(self.cause).__name__,
                "message": str(self.cause),
            }
        return out

    def __str__(self) -> str:
        parts = [self.message]
        if self.data:
            preview = ", ".join(f"{k}={_preview(v)}" for k, v in self.data.items())
            parts.append(f"[{preview}]")
        return " ".join(parts)


class InternalError(ShuffleError):
    def __init__(self, message: str = "internal error", **data: Any) -> None:
        super().__init__(code=ShuffleErrorCode.INTERNAL, message=message, data=_jsonmap(data))


class ProjectNotFound(ShuffleError):
    """No marker file in the start directory or any of its ancestors."""

    def __init__(self, start: Any, marker: str = "Shuffle.toml") -> None:
        super().__init__(
            code=ShuffleErrorCode.PROJECT_NOT_FOUND,
            message=f"unable to find {marker}; are you in a Shuffle project?",
            data={"start": _coerce_json(start), "marker": marker},
        )


class IOErrorS(ShuffleError):
    def __init__(self, message: str = "I/O error", **data: Any) -> None:
        super().__init__(code=ShuffleErrorCode.IO, message=message, data=_jsonmap(data))


class ConfigParseError(ShuffleError):
    def __init__(self, message: str = "invalid configuration", **data: Any) -> None:
        super().__init__(code=ShuffleErrorCode.CONFIG_PARSE, message=message, data=_jsonmap(data))


class AccountError(ShuffleError):
    def __init__(self, message: str = "invalid account material", **data: Any) -> None:
        super().__init__(code=ShuffleErrorCode.ACCOUNT, message=message, data=_jsonmap(data))


class CompileError(ShuffleError):
    """External compiler failure; `diagnostic` is passed through verbatim."""

    def __init__(self, diagnostic: str, **data: Any) -> None:
        super().__init__(
            code=ShuffleErrorCode.COMPILE,
            message=diagnostic.rstrip() or "compilation failed",
            data=_jsonmap(data),
        )
        self.diagnostic = diagnostic


class RegistryParseError(ShuffleError):
    def __init__(self, message: str = "malformed type registry", **data: Any) -> None:
        super().__init__(code=ShuffleErrorCode.REGISTRY_PARSE, message=message, data=_jsonmap(data))


class AbiParseError(ShuffleError):
    def __init__(self, message: str = "malformed ABI descriptor", **data: Any) -> None:
        super().__init__(code=ShuffleErrorCode.ABI_PARSE, message=message, data=_jsonmap(data))


class RuntimeInstallError(ShuffleError):
    def __init__(self, runtime: str, detail: str = "") -> None:
        msg = f"unable to install {runtime} runtime"
        if detail:
            msg += f": {detail}"
        super().__init__(
            code=ShuffleErrorCode.RUNTIME_INSTALL,
            message=msg,
            data={"runtime": runtime},
        )


class CodegenError(ShuffleError):
    def __init__(self, module: str, detail: str = "") -> None:
        msg = f"unable to install module {module}"
        if detail:
            msg += f": {detail}"
        super().__init__(
            code=ShuffleErrorCode.CODEGEN,
            message=msg,
            data={"module": module},
        )


class NetworkPolicyError(ShuffleError):
    def __init__(self, message: str = "unable to enable open publishing", **data: Any) -> None:
        super().__init__(code=ShuffleErrorCode.NETWORK_POLICY, message=message, data=_jsonmap(data))


class DeploymentError(ShuffleError):
    def __init__(self, message: str = "deployment failed", **data: Any) -> None:
        super().__init__(code=ShuffleErrorCode.DEPLOYMENT, message=message, data=_jsonmap(data))


class AccountFundingError(DeploymentError):
    def __init__(self, address: str, balance: int = 0) -> None:
        super().__init__(
            message=f"treasury account {address} has no funds to create test accounts",
            address=address,
            balance=balance,
        )
        self.code = ShuffleErrorCode.ACCOUNT_FUNDING


class TransactionStatusError(ShuffleError):
    """A submitted transaction did not reach the Executed status."""

    def __init__(self, status: Any, **data: Any) -> None:
        super().__init__(
            code=ShuffleErrorCode.TX_STATUS,
            message=f"transaction not executed: {status}",
            data=_jsonmap({"status": status, **data}),
        )
        self.status = status


class RpcError(ShuffleError):
    """JSON-RPC or dev API failure (transport, HTTP status or error object)."""

    def __init__(self, message: str, *, method: Optional[str] = None, **data: Any) -> None:
        super().__init__(
            code=ShuffleErrorCode.RPC,
            message=message,
            data=_jsonmap({"method": method, **data}),
        )
        self.method = method


class TestRunnerError(ShuffleError):
    __test__ = False  # not a pytest class

    def __init__(self, runner: str, returncode: Optional[int] = None, **data: Any) -> None:
        msg = f"{runner} tests failed"
        if returncode is not None:
            msg += f" (exit code {returncode})"
        super().__init__(
            code=ShuffleErrorCode.TEST_RUNNER,
            message=msg,
            data=_jsonmap({"runner": runner, "returncode": returncode, **data}),
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def wrap(exc: BaseException, *, stage: str) -> ShuffleError:
    """Coerce unknown exceptions to InternalError, tagging the stage."""
    if isinstance(exc, ShuffleError):
        return exc.with_context(stage=stage)
    return InternalError(f"{stage} failed: {exc}", stage=stage).with_cause(exc)


def _jsonmap(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: _coerce_json(v) for k, v in data.items()}


def _coerce_json(v: Any) -> Any:
    if v is None or isinstance(v, (bool, int, float, str, list, dict)):
        return v
    if isinstance(v, (bytes, bytearray)):
        return v.hex()
    if isinstance(v, Enum):
        return v.value
    return str(v)


def _preview(v: Any, limit: int = 96) -> str:
    s = str(_coerce_json(v))
    return s if len(s) <= limit else s[:limit] + "…"


__all__ = [
    "ShuffleErrorCode",
    "ShuffleError",
    "InternalError",
    "ProjectNotFound",
    "IOErrorS",
    "ConfigParseError",
    "AccountError",
    "CompileError",
    "RegistryParseError",
    "AbiParseError",
    "RuntimeInstallError",
    "CodegenError",
    "NetworkPolicyError",
    "DeploymentError",
    "AccountFundingError",
    "TransactionStatusError",
    "RpcError",
    "TestRunnerError",
    "wrap",
]

"""
Slipstream — core.errors
------------------------

A small, consistent error system for the gasless transfer engine.

Design goals
------------
- One root `SlipstreamError` with machine-friendly `code` and optional `data`.
- Concrete subclasses for every way a relayed request can be rejected, plus a
  few ambient ones (config, decoding, internal).
- Non-invasive helpers to enrich errors with contextual fields.
- Safe JSON representation (`to_dict`) suitable for logs and relayer replies.

Every request-level failure aborts the whole request; nothing here is
retryable without changing the inputs (new signature, nonce or deadline).

This module uses only stdlib to avoid boot-time dependency cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, Mapping, Optional, Type, TypeVar

# ---------------------------------------------------------------------------
# Error codes & classes
# ---------------------------------------------------------------------------


class Severity(IntEnum):
    """Optional severity hint for operators/metrics."""

    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50


class ErrorCode(str, Enum):
    # Generic
    INTERNAL = "CORE/INTERNAL"
    CONFIG = "CORE/CONFIG"
    DESERIALIZATION = "CORE/DESERIALIZATION"

    # Request validation / execution
    SIGNATURE_INVALID = "GASLESS/SIGNATURE_INVALID"
    NONCE_MISMATCH = "GASLESS/NONCE_MISMATCH"
    REQUEST_EXPIRED = "GASLESS/REQUEST_EXPIRED"
    TOKEN_UNSUPPORTED = "GASLESS/TOKEN_UNSUPPORTED"
    RELAYER_UNAUTHORIZED = "GASLESS/RELAYER_UNAUTHORIZED"
    ALLOWANCE_INSUFFICIENT = "GASLESS/ALLOWANCE_INSUFFICIENT"
    PERMIT_UNSUPPORTED = "GASLESS/PERMIT_UNSUPPORTED"
    TRANSFER_FAILED = "GASLESS/TRANSFER_FAILED"

    # Administration
    CALLER_UNAUTHORIZED = "ADMIN/CALLER_UNAUTHORIZED"

    def __str__(self) -> str:
        return self.value


@dataclass(eq=False)
class SlipstreamError(Exception):
    """
    Root error for Slipstream components.

    Attributes
    ----------
    code: str
        Machine-stable error code (see ErrorCode).
    message: str
        Human hint suitable for logs; avoid leaking secrets.
    data: dict
        Optional machine data (addresses, nonces, amounts). Must be JSON-serializable.
    severity: Severity
        Optional severity hint (default ERROR).
    retryable: bool
        Whether the operation may succeed on retry without changing inputs.
    cause: Optional[BaseException]
        Wrapped original exception; not included in equality comparison.
    """

    code: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)
    severity: Severity = Severity.ERROR
    retryable: bool = False
    cause: Optional[BaseException] = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        # Make Exception(args) meaningful for interop
        super().__init__(f"{_code_str(self.code)}: {self.message}")

    # ---------------- Public API ----------------

    def with_context(self, **ctx: Any) -> "SlipstreamError":
        """Return a *new* error of the same type with extra context merged (does not mutate)."""
        d = dict(self.data)
        for k, v in ctx.items():
            d[k] = _coerce_json(v)
        return self._clone(data=d)

    def with_cause(self, exc: BaseException) -> "SlipstreamError":
        """Attach/replace the causal exception (returns a new instance)."""
        return self._clone(data=dict(self.data), cause=exc)

    def to_dict(self, include_cause: bool = False) -> Dict[str, Any]:
        """JSON-safe shape suitable for logs/relayer replies."""
        out = {
            "code": _code_str(self.code),
            "message": self.message,
            "data": _coerce_json(self.data),
            "severity": int(self.severity),
            "retryable": self.retryable,
        }
        if include_cause and self.cause is not None:
            out["cause"] = {
                "type": type(self.cause).__name__,
                "message": str(self.cause),
            }
        return out

    def _clone(self, **changes: Any) -> "SlipstreamError":
        # Subclasses have bespoke __init__ signatures; bypass them and copy fields.
        new = Exception.__new__(type(self))
        SlipstreamError.__init__(
            new,
            code=self.code,
            message=self.message,
            data=changes.get("data", dict(self.data)),
            severity=self.severity,
            retryable=self.retryable,
            cause=changes.get("cause", self.cause),
        )
        return new

    def __str__(self) -> str:  # pragma: no cover - human formatting
        parts = [f"{_code_str(self.code)}: {self.message}"]
        if self.data:
            preview = ", ".join(f"{k}={_preview(v)}" for k, v in self.data.items())
            parts.append(f"[{preview}]")
        return " ".join(parts)


# Ambient subclasses (thin wrappers for ergonomics)
class InternalError(SlipstreamError):
    def __init__(self, message="internal error", **data: Any) -> None:
        super().__init__(
            code=ErrorCode.INTERNAL, message=message, data=_jsonmap(data)
        )


class ConfigError(SlipstreamError):
    def __init__(self, message="invalid configuration", **data: Any) -> None:
        super().__init__(
            code=ErrorCode.CONFIG,
            message=message,
            data=_jsonmap(data),
            retryable=False,
        )


class DeserializationError(SlipstreamError):
    def __init__(self, message="deserialization failed", **data: Any) -> None:
        super().__init__(
            code=ErrorCode.DESERIALIZATION, message=message, data=_jsonmap(data)
        )


# ---------------------------------------------------------------------------
# Request rejection taxonomy
# ---------------------------------------------------------------------------


class SignatureInvalid(SlipstreamError):
    """
    Malformed signature, failed recovery, or signer != claimed sender.

    The reason is deliberately not exposed in the message; it is kept in
    `data["reason"]` for operator logs only.
    """

    def __init__(self, message="invalid signature", **data: Any) -> None:
        super().__init__(
            code=ErrorCode.SIGNATURE_INVALID, message=message, data=_jsonmap(data)
        )


class NonceMismatch(SlipstreamError):
    """Replay or out-of-order submission."""

    def __init__(self, account: str, expected: int, got: int) -> None:
        super().__init__(
            code=ErrorCode.NONCE_MISMATCH,
            message="nonce mismatch",
            data={"account": account, "expected": expected, "got": got},
        )


class RequestExpired(SlipstreamError):
    def __init__(self, deadline: int, now: int, subject: str = "transfer") -> None:
        super().__init__(
            code=ErrorCode.REQUEST_EXPIRED,
            message=f"{subject} deadline passed",
            data={"deadline": deadline, "now": now, "subject": subject},
        )


class TokenUnsupported(SlipstreamError):
    def __init__(self, token: str) -> None:
        super().__init__(
            code=ErrorCode.TOKEN_UNSUPPORTED,
            message="token not supported",
            data={"token": token},
        )


class RelayerUnauthorized(SlipstreamError):
    def __init__(self, relayer: str) -> None:
        super().__init__(
            code=ErrorCode.RELAYER_UNAUTHORIZED,
            message="relayer not authorized",
            data={"relayer": relayer},
        )


class AllowanceInsufficient(SlipstreamError):
    def __init__(self, needed: int, available: int, **data: Any) -> None:
        super().__init__(
            code=ErrorCode.ALLOWANCE_INSUFFICIENT,
            message="allowance insufficient",
            data=_jsonmap({"needed": needed, "available": available, **data}),
        )


class PermitUnsupported(SlipstreamError):
    def __init__(self, token: str) -> None:
        super().__init__(
            code=ErrorCode.PERMIT_UNSUPPORTED,
            message="token does not support EIP-2612 permit",
            data={"token": token},
        )


class CallerUnauthorized(SlipstreamError):
    def __init__(self, caller: str, action: str = "") -> None:
        super().__init__(
            code=ErrorCode.CALLER_UNAUTHORIZED,
            message="caller is not the owner",
            data={"caller": caller, "action": action},
        )


class TransferFailed(SlipstreamError):
    def __init__(self, message="token transfer failed", **data: Any) -> None:
        super().__init__(
            code=ErrorCode.TRANSFER_FAILED, message=message, data=_jsonmap(data)
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

T = TypeVar("T", bound=SlipstreamError)


def wrap(exc: BaseException, *, as_: Type[T] = InternalError, **ctx: Any) -> T:
    """
    Wrap any exception into a SlipstreamError subclass, attaching context.
    If `exc` is already a SlipstreamError, returns a context-enriched copy.
    """
    if isinstance(exc, SlipstreamError):
        return exc.with_context(**ctx)  # type: ignore[return-value]
    err = as_(str(exc) or "wrapped exception", **ctx)  # type: ignore[call-arg]
    return err.with_cause(exc)  # type: ignore[return-value]


def ensure_slipstream_error(exc: BaseException) -> SlipstreamError:
    """Coerce unknown exceptions to InternalError with cause attached."""
    return exc if isinstance(exc, SlipstreamError) else InternalError().with_cause(exc)


def _code_str(code: Any) -> str:
    return str(getattr(code, "value", code))


def _jsonmap(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: _coerce_json(v) for k, v in data.items()}


def _coerce_json(v: Any) -> Any:
    # Keep JSON primitives; stringify the rest; hex-encode bytes.
    if v is None or isinstance(v, (bool, int, float, str, list, dict)):
        return v
    if isinstance(v, (bytes, bytearray)):
        return "0x" + bytes(v).hex()
    try:
        return str(v)
    except Exception:
        return "<unprintable>"


def _preview(v: Any, limit: int = 96) -> str:
    s = _coerce_json(v)
    s = str(s)
    return s if len(s) <= limit else s[:limit] + "…"


__all__ = [
    "Severity",
    "ErrorCode",
    "SlipstreamError",
    "InternalError",
    "ConfigError",
    "DeserializationError",
    "SignatureInvalid",
    "NonceMismatch",
    "RequestExpired",
    "TokenUnsupported",
    "RelayerUnauthorized",
    "AllowanceInsufficient",
    "PermitUnsupported",
    "CallerUnauthorized",
    "TransferFailed",
    "wrap",
    "ensure_slipstream_error",
]

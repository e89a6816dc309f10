"""
Slipstream — core.logging
-------------------------

Structured logging for the relayer-facing engine:

- JSON (services) or one-line text (terminals) output
- request-scoped fields via `contextvars`: trace_id, chain_id, component,
  relayer, account
- fields that could carry key material (`signature`, `private_key`, ...)
  are replaced by a placeholder before formatting

Usage
-----
    from core import logging as clog

    clog.configure_from_config(cfg)  # once at process start
    log = clog.get_logger(__name__)

    with clog.trace_scope():
        clog.bind(component="gasless", relayer=relayer)
        log.info("request executed", extra={"nonce": 7})

Env: SLIPSTREAM_LOG_FORMAT=(json|text) picks the format when `configure` is
not told explicitly; otherwise JSON is used unless stderr is a TTY.
"""

from __future__ import annotations

import datetime as _dt
import json
import logging
import os
import sys
import traceback
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, Optional, TextIO

_LOG_CONTEXT: ContextVar[Dict[str, Any]] = ContextVar("_LOG_CONTEXT", default={})

CONTEXT_KEYS = ("trace_id", "chain_id", "component", "relayer", "account")

REDACTED = "<redacted>"
SECRET_FIELDS = frozenset({"signature", "sig", "private_key", "key", "permit_r", "permit_s"})

# LogRecord attributes that are never treated as structured extras.
_RECORD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime", "taskName"}


def context() -> Dict[str, Any]:
    """Copy of the active logging context."""
    return dict(_LOG_CONTEXT.get())


def bind(**fields: Any) -> None:
    cur = dict(_LOG_CONTEXT.get())
    cur.update({k: _field(k, v) for k, v in fields.items()})
    _LOG_CONTEXT.set(cur)


def clear_context() -> None:
    _LOG_CONTEXT.set({})


@contextmanager
def trace_scope(trace_id: Optional[str] = None) -> Iterator[str]:
    """
    Ensure a trace_id for the scope (inheriting an enclosing one) and restore
    the previous context on exit, including fields bound inside the scope.
    """
    prev = dict(_LOG_CONTEXT.get())
    tid = trace_id or prev.get("trace_id") or uuid.uuid4().hex[:12]
    try:
        bind(trace_id=tid)
        yield tid
    finally:
        _LOG_CONTEXT.set(prev)


def _coerce(v: Any) -> Any:
    if v is None or isinstance(v, (bool, int, float, str)):
        return v
    if isinstance(v, (bytes, bytearray, memoryview)):
        return "0x" + bytes(v).hex()
    if isinstance(v, dict):
        return {str(k): _field(str(k), x) for k, x in v.items()}
    if isinstance(v, (list, tuple)):
        return [_coerce(x) for x in v]
    return str(v)


def _field(name: str, v: Any) -> Any:
    return REDACTED if name in SECRET_FIELDS else _coerce(v)


def _extras(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        k: _field(k, v)
        for k, v in record.__dict__.items()
        if not k.startswith("_") and k not in _RECORD_ATTRS
    }


def _ts(record: logging.LogRecord) -> str:
    return _dt.datetime.fromtimestamp(record.created, _dt.timezone.utc).isoformat(timespec="milliseconds")


class JSONFormatter(logging.Formatter):
    """One JSON object per line; context fields win over call-site extras of the same name."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": _ts(record),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update(context())
        for k, v in _extras(record).items():
            payload.setdefault(k, v)
        if record.exc_info:
            payload["err"] = "".join(traceback.format_exception(*record.exc_info)).rstrip()
        return json.dumps(payload, separators=(",", ":"), default=str)


class TextFormatter(logging.Formatter):
    """
    2026-01-05T12:34:56.789+00:00 | INFO  | slipstream.executor | trace_id=… component=gasless | request executed nonce=3
    """

    def format(self, record: logging.LogRecord) -> str:
        ctx = context()
        head = f"{_ts(record)} | {record.levelname:<5} | {record.name}"
        ctx_str = " ".join(f"{k}={ctx[k]}" for k in CONTEXT_KEYS if ctx.get(k) is not None)
        if ctx_str:
            head += f" | {ctx_str}"
        extras = " ".join(f"{k}={v}" for k, v in _extras(record).items() if k not in ctx)
        line = f"{head} | {record.getMessage()}"
        if extras:
            line += " " + extras
        if record.exc_info:
            line += "\n" + "".join(traceback.format_exception(*record.exc_info)).rstrip()
        return line


def configure(
    *,
    json: Optional[bool] = None,
    level: str | int = "INFO",
    stream: Optional[TextIO] = None,
) -> None:
    """
    Replace the root logger's handlers with one console handler.

    `json=None` defers to SLIPSTREAM_LOG_FORMAT, then to TTY detection.
    """
    stream = stream if stream is not None else sys.stderr
    lvl = _coerce_level(level)
    root = logging.getLogger()
    root.setLevel(lvl)
    for h in list(root.handlers):
        root.removeHandler(h)

    console = logging.StreamHandler(stream)
    console.setLevel(lvl)
    console.setFormatter(JSONFormatter() if _decide_json(json, stream) else TextFormatter())
    root.addHandler(console)

    # eth-* libraries are chatty at DEBUG
    for noisy in ("eth_utils", "eth_abi", "eth_keys"):
        logging.getLogger(noisy).setLevel(max(lvl, logging.WARNING))


def configure_from_config(cfg: Any, *, stream: Optional[TextIO] = None) -> None:
    """Apply `Config.log_level` and bind the chain id for every later record."""
    configure(level=cfg.log_level, stream=stream)
    bind(chain_id=cfg.chain.chain_id)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name or "slipstream")


def _coerce_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    lvl = logging.getLevelName(level.strip().upper())
    return lvl if isinstance(lvl, int) else logging.INFO


def _decide_json(json_flag: Optional[bool], stream: TextIO) -> bool:
    if json_flag is not None:
        return json_flag
    env = os.environ.get("SLIPSTREAM_LOG_FORMAT", "").strip().lower()
    if env in ("json", "text"):
        return env == "json"
    try:
        return not stream.isatty()
    except (AttributeError, ValueError):
        return True


__all__ = [
    "CONTEXT_KEYS",
    "REDACTED",
    "SECRET_FIELDS",
    "context",
    "bind",
    "clear_context",
    "trace_scope",
    "JSONFormatter",
    "TextFormatter",
    "configure",
    "configure_from_config",
    "get_logger",
]

from __future__ import annotations

import io
import json
import logging

import pytest

from core import logging as clog
from core.config import load as load_config
from core.errors import (
    AllowanceInsufficient,
    ErrorCode,
    InternalError,
    NonceMismatch,
    RequestExpired,
    SignatureInvalid,
    SlipstreamError,
    TransferFailed,
    ensure_slipstream_error,
    wrap,
)

# ---------------------------------------------------------------------------
# errors
# ---------------------------------------------------------------------------


def test_with_context_preserves_type_and_does_not_mutate():
    err = NonceMismatch(account="0x" + "aa" * 20, expected=3, got=1)
    enriched = err.with_context(batch_index=2, raw=b"\x01\x02")
    assert isinstance(enriched, NonceMismatch)
    assert enriched.data["batch_index"] == 2
    assert enriched.data["raw"] == "0x0102"
    assert "batch_index" not in err.data
    assert enriched.code == ErrorCode.NONCE_MISMATCH


def test_with_cause_and_to_dict():
    cause = RuntimeError("ERC20: transfer amount exceeds balance")
    err = TransferFailed(step="transfer_from").with_cause(cause)
    assert isinstance(err, TransferFailed)
    d = err.to_dict(include_cause=True)
    assert d["code"] == ErrorCode.TRANSFER_FAILED
    assert d["retryable"] is False
    assert d["cause"] == {"type": "RuntimeError", "message": str(cause)}
    json.dumps(d)  # JSON-safe


def test_wrap_and_ensure():
    boom = ValueError("boom")
    w = wrap(boom, component="gasless")
    assert isinstance(w, InternalError) and w.cause is boom and w.data["component"] == "gasless"
    existing = SignatureInvalid(reason="length")
    assert wrap(existing, extra=1).data == {"reason": "length", "extra": 1}
    assert ensure_slipstream_error(existing) is existing
    assert isinstance(ensure_slipstream_error(KeyError("x")), InternalError)


def test_all_rejections_are_slipstream_errors():
    err = AllowanceInsufficient(needed=101, available=100, token="0x" + "bb" * 20)
    assert isinstance(err, SlipstreamError)
    with pytest.raises(SlipstreamError):
        raise err
    assert str(err).startswith("GASLESS/ALLOWANCE_INSUFFICIENT")


def test_codes_render_as_wire_strings():
    assert str(ErrorCode.NONCE_MISMATCH) == "GASLESS/NONCE_MISMATCH"
    err = RequestExpired(deadline=1, now=2)
    assert str(err).startswith("GASLESS/REQUEST_EXPIRED: ")
    assert err.args[0].startswith("GASLESS/REQUEST_EXPIRED: ")
    assert type(err.to_dict()["code"]) is str
    assert json.loads(json.dumps(err.to_dict()))["code"] == "GASLESS/REQUEST_EXPIRED"


# ---------------------------------------------------------------------------
# logging
# ---------------------------------------------------------------------------


@pytest.fixture()
def json_stream():
    stream = io.StringIO()
    clog.configure(json=True, level="DEBUG", stream=stream)
    yield stream


def _lines(stream: io.StringIO):
    return [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]


def test_json_logs_carry_bound_context(json_stream):
    log = clog.get_logger("slipstream.test")
    with clog.trace_scope("abc123"):
        clog.bind(component="gasless", relayer="0x" + "22" * 20)
        log.info("hello", extra={"nonce": 7})
    log.info("after")

    first, second = _lines(json_stream)
    assert first["msg"] == "hello"
    assert first["trace_id"] == "abc123"
    assert first["component"] == "gasless"
    assert first["nonce"] == 7
    assert "trace_id" not in second


def test_secret_fields_are_redacted(json_stream):
    log = clog.get_logger("slipstream.test")
    log.warning("w", extra={"signature": b"\x01" * 65, "data": {"private_key": "0xdead", "nonce": 1}})
    (rec,) = _lines(json_stream)
    assert rec["signature"] == clog.REDACTED
    assert rec["data"] == {"private_key": clog.REDACTED, "nonce": 1}
    assert rec["level"] == "WARNING"


def test_configure_from_config_applies_level_and_chain(monkeypatch):
    monkeypatch.setenv("SLIPSTREAM_LOG_LEVEL", "debug")
    monkeypatch.setenv("SLIPSTREAM_NETWORK", "base_sepolia")
    monkeypatch.setenv("SLIPSTREAM_LOG_FORMAT", "text")
    stream = io.StringIO()
    clog.configure_from_config(load_config(), stream=stream)
    clog.get_logger("slipstream.test").debug("visible")
    assert logging.getLogger().level == logging.DEBUG
    assert "chain_id=84532" in stream.getvalue()
    assert "visible" in stream.getvalue()


def test_executor_logs_rejection_without_signature(json_stream, proxy, relayer, make_request, sign):
    req = make_request()
    sig = sign(req)
    with pytest.raises(AllowanceInsufficient):
        proxy.process_direct_gasless_transfer(relayer.address, req, sig)
    records = [r for r in _lines(json_stream) if r.get("msg") == "request rejected"]
    assert len(records) == 1
    rec = records[0]
    assert rec["code"] == "GASLESS/ALLOWANCE_INSUFFICIENT"
    assert rec["component"] == "gasless"
    assert sig.hex() not in json_stream.getvalue()


def test_get_logger_default_name():
    assert clog.get_logger().name == "slipstream"
    assert isinstance(clog.get_logger("x"), logging.Logger)

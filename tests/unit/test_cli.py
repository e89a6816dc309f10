from __future__ import annotations

import json
import logging
from typing import Any

import pytest
from typer.testing import CliRunner

from slipstream import cli
from slipstream.codec import AuthorizationCodec
from slipstream.types import Eip712Domain, TransferRequest
from tests.harness import NOW
from tests.harness.accounts import account, det_address

runner = CliRunner()

PROXY = det_address("cli-proxy")
CHAIN = ["--chain-id", "5920", "--proxy", PROXY]


@pytest.fixture()
def request_file(tmp_path) -> Any:
    msg = {
        "from": account("user").address,
        "to": account("recipient").address,
        "token": det_address("testnet-usdc"),
        "amount": 100,
        "relayerFee": 1,
        "nonce": 0,
        "deadline": NOW,
    }
    path = tmp_path / "request.json"
    path.write_text(json.dumps(msg), encoding="utf-8")
    return path


def _codec() -> AuthorizationCodec:
    return AuthorizationCodec(Eip712Domain("SlipstreamGaslessProxy", "1", 5920, PROXY))


def test_hash(request_file):
    result = runner.invoke(cli.app, CHAIN + ["hash", str(request_file)])
    assert result.exit_code == 0, result.output
    req = TransferRequest.from_message(json.loads(request_file.read_text()))
    assert result.output.strip() == "0x" + _codec().digest(req).hex()


def test_hash_json(request_file):
    result = runner.invoke(cli.app, CHAIN + ["--json", "hash", str(request_file)])
    assert result.exit_code == 0, result.output
    out = json.loads(result.output)
    assert out["domainSeparator"] == "0x" + _codec().domain_separator.hex()
    assert set(out) == {"digest", "domainSeparator", "structHash"}


def test_typed_data(request_file):
    result = runner.invoke(cli.app, CHAIN + ["typed-data", str(request_file)])
    assert result.exit_code == 0, result.output
    td = json.loads(result.output)
    assert td["primaryType"] == "Transfer"
    assert td["domain"]["chainId"] == 5920


def test_sign_then_recover(request_file):
    user = account("user")
    signed = runner.invoke(cli.app, CHAIN + ["sign", str(request_file), "--key", "0x" + user.key.hex()])
    assert signed.exit_code == 0, signed.output
    signature = signed.output.strip()
    assert len(signature) == 2 + 130

    recovered = runner.invoke(cli.app, CHAIN + ["--json", "recover", str(request_file), signature])
    assert recovered.exit_code == 0, recovered.output
    out = json.loads(recovered.output)
    assert out["signer"] == user.address
    assert out["valid"] is True


def test_sign_with_foreign_key_refused(request_file):
    result = runner.invoke(
        cli.app, CHAIN + ["sign", str(request_file), "--key", "0x" + account("stranger").key.hex()]
    )
    assert result.exit_code == 1


def test_recover_on_other_chain_is_not_valid(request_file):
    user = account("user")
    signature = runner.invoke(
        cli.app, CHAIN + ["sign", str(request_file), "--key", "0x" + user.key.hex()]
    ).output.strip()
    result = runner.invoke(
        cli.app, ["--chain-id", "84532", "--proxy", PROXY, "recover", str(request_file), signature]
    )
    assert result.exit_code == 1
    assert "Valid: no" in result.output


def test_malformed_signature(request_file):
    result = runner.invoke(cli.app, CHAIN + ["recover", str(request_file), "0x1234"])
    assert result.exit_code == 1


def test_bad_request_file(tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"from": "0x00"}), encoding="utf-8")
    result = runner.invoke(cli.app, CHAIN + ["hash", str(bad)])
    assert result.exit_code == 1


def test_config_command(monkeypatch):
    monkeypatch.setenv("SLIPSTREAM_NETWORK", "arbitrum_sepolia")
    result = runner.invoke(cli.app, ["config"])
    assert result.exit_code == 0, result.output
    cfg = json.loads(result.output)
    assert cfg["chain"]["chain_id"] == 421614
    assert len(cfg["registry"]["tokens"]) == 2


def test_log_level_from_environment_is_applied(monkeypatch):
    monkeypatch.setenv("SLIPSTREAM_LOG_LEVEL", "DEBUG")
    result = runner.invoke(cli.app, ["config"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["log_level"] == "DEBUG"
    assert logging.getLogger().level == logging.DEBUG

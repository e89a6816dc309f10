"""
slipstream — command line for relayer operators and wallet integrators.

Commands:
  slipstream hash REQUEST.json          EIP-712 digest of a transfer request
  slipstream typed-data REQUEST.json    Full eth_signTypedData_v4 payload
  slipstream sign REQUEST.json --key    Sign a request with a local key
  slipstream recover REQUEST.json SIG   Recover the signer of a request
  slipstream config                     Print the effective configuration

Global options:
  --config PATH          Path to config file (TOML/JSON)
  --chain-id INTEGER     Override chain ID
  --proxy ADDRESS        Override the proxy (verifying contract) address
  --json                 Output JSON instead of human-readable text

REQUEST.json holds the wire form of a request:
  {"from": "0x…", "to": "0x…", "token": "0x…", "amount": 100,
   "relayerFee": 1, "nonce": 0, "deadline": 1700000000}
Use "-" to read it from stdin.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import typer

from core import config as core_config
from core import logging as clog
from core.errors import SlipstreamError
from core.utils.bytes import to_hex

from .codec import AuthorizationCodec
from .signatures import EcdsaVerifier
from .signer import address_of, sign_transfer_request
from .types import Eip712Domain, TransferRequest

app = typer.Typer(
    name="slipstream",
    help="Gasless transfer tooling: hash, sign and verify transfer requests",
    no_args_is_help=True,
    add_completion=False,
)


class GlobalContext:
    def __init__(self) -> None:
        self.config_path: Optional[str] = None
        self.chain_id: Optional[int] = None
        self.proxy: Optional[str] = None
        self.json_output: bool = False


_ctx = GlobalContext()


@app.callback()
def main_callback(
    config_path: Optional[str] = typer.Option(
        None, "--config", help="Path to config file", envvar="SLIPSTREAM_CONFIG"
    ),
    chain_id: Optional[int] = typer.Option(None, "--chain-id", help="Override chain ID"),
    proxy: Optional[str] = typer.Option(
        None, "--proxy", help="Override proxy (verifying contract) address"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    _ctx.config_path = config_path
    _ctx.chain_id = chain_id
    _ctx.proxy = proxy
    _ctx.json_output = json_output


def _pretty(obj: Any) -> str:
    return json.dumps(obj, indent=2, ensure_ascii=False)


def _fail(err: SlipstreamError) -> None:
    if _ctx.json_output:
        typer.echo(_pretty({"error": err.to_dict()}), err=True)
    else:
        typer.echo(f"Error: {str(err.code)}: {err.message}", err=True)
    raise typer.Exit(1)


def _load_config() -> core_config.Config:
    overrides: Dict[str, Any] = {}
    if _ctx.chain_id is not None:
        overrides["chain"] = {"chain_id": _ctx.chain_id}
    if _ctx.proxy is not None:
        overrides["domain"] = {"verifying_contract": _ctx.proxy}
    cfg = core_config.load(_ctx.config_path, **overrides)
    clog.configure_from_config(cfg)
    return cfg


def _codec() -> AuthorizationCodec:
    cfg = _load_config()
    return AuthorizationCodec(
        Eip712Domain(
            name=cfg.domain.name,
            version=cfg.domain.version,
            chain_id=cfg.chain.chain_id,
            verifying_contract=cfg.domain.verifying_contract,
        )
    )


def _read_request(path: str) -> TransferRequest:
    try:
        text = sys.stdin.read() if path == "-" else Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise typer.BadParameter(f"cannot read request: {e}") from e
    try:
        msg = json.loads(text)
    except json.JSONDecodeError as e:
        raise typer.BadParameter(f"request is not valid JSON: {e}") from e
    # Accept either a bare message or a full typed-data document.
    if isinstance(msg, dict) and "message" in msg:
        msg = msg["message"]
    return TransferRequest.from_message(msg)


@app.command("hash")
def hash_cmd(request: str = typer.Argument(..., help="Request JSON file ('-' for stdin)")) -> None:
    """Print the EIP-712 digest the sender must sign."""
    try:
        codec = _codec()
        req = _read_request(request)
    except SlipstreamError as e:
        _fail(e)
        return
    digest = to_hex(codec.digest(req))
    if _ctx.json_output:
        typer.echo(
            _pretty(
                {
                    "digest": digest,
                    "domainSeparator": to_hex(codec.domain_separator),
                    "structHash": to_hex(codec.struct_hash(req)),
                }
            )
        )
    else:
        typer.echo(digest)


@app.command("typed-data")
def typed_data_cmd(request: str = typer.Argument(..., help="Request JSON file ('-' for stdin)")) -> None:
    """Print the eth_signTypedData_v4 payload for a request."""
    try:
        codec = _codec()
        req = _read_request(request)
    except SlipstreamError as e:
        _fail(e)
        return
    typer.echo(_pretty(codec.typed_data(req)))


@app.command("sign")
def sign_cmd(
    request: str = typer.Argument(..., help="Request JSON file ('-' for stdin)"),
    key: str = typer.Option(
        ..., "--key", help="Hex private key of the sender", envvar="SLIPSTREAM_SIGNER_KEY"
    ),
) -> None:
    """Sign a request; the key must control the request's `from` address."""
    try:
        codec = _codec()
        req = _read_request(request)
    except SlipstreamError as e:
        _fail(e)
        return
    try:
        signer = address_of(key)
    except ValueError as e:
        raise typer.BadParameter(f"invalid private key: {e}") from e
    if signer != req.from_address:
        typer.echo(f"Error: key controls {signer}, request is from {req.from_address}", err=True)
        raise typer.Exit(1)
    signature = to_hex(sign_transfer_request(key, codec, req))
    if _ctx.json_output:
        typer.echo(_pretty({"signer": signer, "signature": signature, "digest": to_hex(codec.digest(req))}))
    else:
        typer.echo(signature)


@app.command("recover")
def recover_cmd(
    request: str = typer.Argument(..., help="Request JSON file ('-' for stdin)"),
    signature: str = typer.Argument(..., help="0x-hex 65-byte signature"),
) -> None:
    """Recover the signer and check it against the request's `from`."""
    try:
        codec = _codec()
        req = _read_request(request)
        signer = EcdsaVerifier().recover(codec.digest(req), signature)
    except SlipstreamError as e:
        _fail(e)
        return
    matches = signer == req.from_address
    if _ctx.json_output:
        typer.echo(_pretty({"signer": signer, "from": req.from_address, "valid": matches}))
    else:
        typer.echo(f"Signer: {signer}")
        typer.echo("Valid: yes" if matches else "Valid: no (signer is not the request sender)")
    if not matches:
        raise typer.Exit(1)


@app.command("config")
def config_cmd() -> None:
    """Print the effective configuration."""
    try:
        cfg = _load_config()
    except SlipstreamError as e:
        _fail(e)
        return
    typer.echo(_pretty(cfg.to_dict()))


def main() -> None:
    app()


if __name__ == "__main__":
    main()

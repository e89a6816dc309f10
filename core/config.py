"""
Slipstream core configuration loader.

Goals
-----
- Zero external deps beyond the address helpers.
- Layered config with clear precedence:
    1) Explicit overrides passed to `load()` (highest)
    2) Environment variables (SLIPSTREAM_*)
    3) Config file (TOML or JSON)
    4) Built-in defaults / network preset (lowest)
- Safe, typed dataclasses with validation.

This module configures only what a proxy instance needs at construction:
  - chain identity (part of the EIP-712 domain)
  - the EIP-712 domain name/version and the proxy (verifying contract) address
  - the single owner and the initial relayer / token allow-lists
  - log level

Network presets mirror the networks the proxy has been deployed to, together
with the stablecoins it was seeded with there.
"""

from __future__ import annotations

import json
import os
import sys
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

try:  # py311+
    import tomllib as _toml  # type: ignore[attr-defined]
except Exception:  # py310 or missing
    _toml = None  # type: ignore[assignment]

from .errors import ConfigError
from .utils.address import ZERO_ADDRESS, normalize_address


# ------------------------------
# Defaults & presets
# ------------------------------

DEFAULT_DOMAIN_NAME = "SlipstreamGaslessProxy"
DEFAULT_DOMAIN_VERSION = "1"

DEVNET_CHAIN_ID = 1337


@dataclass(frozen=True)
class NetworkPreset:
    name: str
    chain_id: int
    tokens: Dict[str, str] = field(default_factory=dict)  # label -> address


NETWORK_PRESETS: Dict[str, NetworkPreset] = {
    "devnet": NetworkPreset("devnet", DEVNET_CHAIN_ID),
    "kadena_testnet": NetworkPreset(
        "kadena_testnet",
        5920,
        {"TestnetUSDC": "0x7EDfA2193d4c2664C9e0128Ae25Ae5c9eC72D365"},
    ),
    "arbitrum_sepolia": NetworkPreset(
        "arbitrum_sepolia",
        421614,
        {
            "PYUSD": "0x637A1259C6afd7E3AdF63993cA7E58BB438aB1B1",
            "USDC": "0x75faf114eafb1BDbe2F0316DF893fd58CE46AA4d",
        },
    ),
    "base_sepolia": NetworkPreset(
        "base_sepolia",
        84532,
        {"USDC": "0x036CbD53842c5426634e7929541eC2318f3dCF7e"},
    ),
}


def _expand(p: str | Path) -> Path:
    return Path(p).expanduser().resolve()


def _split_list(v: str) -> List[str]:
    return [s.strip() for s in v.split(",") if s.strip()]


def _env_int(name: str, default: int) -> int:
    v = os.environ.get(name)
    if v is None or v == "":
        return default
    try:
        return int(v, 0)
    except Exception as e:
        raise ConfigError(f"{name} must be int, got {v!r}", env=name) from e


def preset_for(network: str) -> NetworkPreset:
    key = network.strip().lower().replace("-", "_")
    try:
        return NETWORK_PRESETS[key]
    except KeyError:
        raise ConfigError(
            f"unknown network {network!r}", known=sorted(NETWORK_PRESETS)
        ) from None


# ------------------------------
# Typed configuration model
# ------------------------------

@dataclass
class ChainConfig:
    chain_id: int = DEVNET_CHAIN_ID
    network_name: str = "devnet"

    @staticmethod
    def infer_from_env(default: int = DEVNET_CHAIN_ID) -> "ChainConfig":
        # Priority: explicit chain id → network name
        if "SLIPSTREAM_CHAIN_ID" in os.environ:
            cid = _env_int("SLIPSTREAM_CHAIN_ID", default)
            name = next(
                (p.name for p in NETWORK_PRESETS.values() if p.chain_id == cid),
                f"chain-{cid}",
            )
            return ChainConfig(chain_id=cid, network_name=name)

        net = (os.environ.get("SLIPSTREAM_NETWORK") or "").strip()
        if net:
            p = preset_for(net)
            return ChainConfig(chain_id=p.chain_id, network_name=p.name)
        return ChainConfig(chain_id=default, network_name="devnet")


@dataclass
class DomainConfig:
    name: str = DEFAULT_DOMAIN_NAME
    version: str = DEFAULT_DOMAIN_VERSION
    verifying_contract: str = ZERO_ADDRESS  # the proxy's own address


@dataclass
class RegistryConfig:
    owner: str = ZERO_ADDRESS
    relayers: List[str] = field(default_factory=list)
    tokens: List[str] = field(default_factory=list)


@dataclass
class Config:
    chain: ChainConfig
    domain: DomainConfig
    registry: RegistryConfig
    log_level: str = "INFO"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ------------------------------
# File loader (TOML / JSON)
# ------------------------------

def _load_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}", path=str(path))
    suffix = path.suffix.lower()
    with path.open("rb") as f:
        if suffix in {".toml", ".tml"}:
            if not _toml:
                raise ConfigError("tomllib is unavailable (Python < 3.11). Use JSON config or upgrade Python.")
            return _toml.load(f)  # type: ignore[no-any-return]
        if suffix in {".json"}:
            return json.load(f)
        raise ConfigError(f"Unsupported config format: {suffix}. Use .toml or .json")


def _merge_dict(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    """Shallow + nested dict merge: values in b override a."""
    out = dict(a)
    for k, v in b.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _merge_dict(out[k], v)  # type: ignore[arg-type]
        else:
            out[k] = v
    return out


# ------------------------------
# Main loader
# ------------------------------

def load(config_file: Optional[str | Path] = None, **overrides: Any) -> Config:
    """
    Load the proxy configuration.

    Precedence: overrides > env > file > defaults.

    Parameters
    ----------
    config_file : str | Path | None
        Optional path to a TOML or JSON file with keys:
          chain:    { chain_id, network_name }
          domain:   { name, version, verifying_contract }
          registry: { owner, relayers, tokens }
          log_level
        Falls back to env SLIPSTREAM_CONFIG when omitted.

    overrides : Any
        Keyword overrides, e.g. load(chain={"chain_id": 5920}, registry={"owner": "0x.."})
    """
    # 1) Defaults
    chain = ChainConfig()
    base: Dict[str, Any] = {
        "chain": asdict(chain),
        "domain": asdict(DomainConfig()),
        "registry": asdict(RegistryConfig()),
        "log_level": "INFO",
    }

    # 2) File
    config_file = config_file or os.environ.get("SLIPSTREAM_CONFIG")
    if config_file:
        base = _merge_dict(base, _load_file(_expand(config_file)))

    # 3) Env
    if "SLIPSTREAM_CHAIN_ID" in os.environ or "SLIPSTREAM_NETWORK" in os.environ:
        chain_env = ChainConfig.infer_from_env(int(base["chain"]["chain_id"]))
        base = _merge_dict(base, {"chain": asdict(chain_env)})
    if "SLIPSTREAM_DOMAIN_NAME" in os.environ:
        base["domain"]["name"] = os.environ["SLIPSTREAM_DOMAIN_NAME"]
    if "SLIPSTREAM_DOMAIN_VERSION" in os.environ:
        base["domain"]["version"] = os.environ["SLIPSTREAM_DOMAIN_VERSION"]
    if "SLIPSTREAM_PROXY_ADDRESS" in os.environ:
        base["domain"]["verifying_contract"] = os.environ["SLIPSTREAM_PROXY_ADDRESS"].strip()
    if "SLIPSTREAM_OWNER" in os.environ:
        base["registry"]["owner"] = os.environ["SLIPSTREAM_OWNER"].strip()
    if "SLIPSTREAM_RELAYERS" in os.environ:
        base["registry"]["relayers"] = _split_list(os.environ["SLIPSTREAM_RELAYERS"])
    if "SLIPSTREAM_TOKENS" in os.environ:
        base["registry"]["tokens"] = _split_list(os.environ["SLIPSTREAM_TOKENS"])
    if "SLIPSTREAM_LOG_LEVEL" in os.environ:
        base["log_level"] = os.environ["SLIPSTREAM_LOG_LEVEL"].strip().upper()

    # 4) Overrides (highest)
    if overrides:
        base = _merge_dict(base, overrides)

    # A known network with no explicit token list seeds the preset's tokens.
    if not base["registry"].get("tokens"):
        preset = NETWORK_PRESETS.get(str(base["chain"].get("network_name", "")))
        if preset is not None:
            base["registry"]["tokens"] = list(preset.tokens.values())

    try:
        cfg = Config(
            chain=ChainConfig(
                chain_id=int(base["chain"]["chain_id"]),
                network_name=str(base["chain"]["network_name"]),
            ),
            domain=DomainConfig(
                name=str(base["domain"]["name"]),
                version=str(base["domain"]["version"]),
                verifying_contract=normalize_address(
                    base["domain"]["verifying_contract"], name="verifying_contract"
                ),
            ),
            registry=RegistryConfig(
                owner=normalize_address(base["registry"]["owner"], name="owner"),
                relayers=[normalize_address(a, name="relayer") for a in base["registry"].get("relayers") or []],
                tokens=[normalize_address(a, name="token") for a in base["registry"].get("tokens") or []],
            ),
            log_level=str(base.get("log_level") or "INFO"),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigError(f"invalid configuration: {e}") from e

    _validate_config(cfg)
    return cfg


def _validate_config(cfg: Config) -> None:
    if cfg.chain.chain_id <= 0:
        raise ConfigError("chain_id must be positive", chain_id=cfg.chain.chain_id)
    if not cfg.domain.name:
        raise ConfigError("domain name must not be empty")


# ------------------------------
# CLI helper
# ------------------------------

def main(argv: List[str] | None = None) -> int:
    """
    CLI usage:

        python -m core.config                      # load defaults/env; print JSON
        python -m core.config path/to/config.toml  # load file; print JSON
    """
    argv = sys.argv[1:] if argv is None else list(argv)
    path = argv[0] if argv else None
    try:
        cfg = load(path)
    except ConfigError as e:
        print(f"config error: {e}", file=sys.stderr)
        return 2
    print(json.dumps(cfg.to_dict(), indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

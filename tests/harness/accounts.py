"""
Deterministic test accounts.

Private keys are derived from a label via keccak over a fixed seed, so the
same label always yields the same address across runs and machines. Not for
use outside tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from eth_keys import keys

from core.utils.address import normalize_address
from core.utils.hash import keccak256

PROJECT_TEST_SEED = 1337

SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


@dataclass(frozen=True)
class TestAccount:
    __test__ = False  # not a pytest class

    label: str
    key: bytes
    address: str

    @property
    def private_key(self) -> keys.PrivateKey:
        return keys.PrivateKey(self.key)


def _derive_key(label: str) -> bytes:
    ctr = 0
    while True:
        k = keccak256(f"slipstream-tests|{PROJECT_TEST_SEED}|{label}|{ctr}".encode("utf-8"))
        if 0 < int.from_bytes(k, "big") < SECP256K1_N:
            return k
        ctr += 1


@lru_cache(maxsize=None)
def account(label: str) -> TestAccount:
    key = _derive_key(label)
    return TestAccount(label=label, key=key, address=keys.PrivateKey(key).public_key.to_checksum_address())


def det_address(tag: str) -> str:
    """A stable contract-style address (no known private key) from a tag."""
    return normalize_address(keccak256(f"slipstream-contract|{tag}".encode("utf-8"))[-20:])

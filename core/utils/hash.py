"""
core.utils.hash
===============

Thin wrappers for the digests used by the engine (all return `bytes`):

- keccak256(data)   Ethereum Keccak-256 (pre-NIST padding), via eth-utils
- keccak_text(s)    Keccak-256 of a UTF-8 string
"""

from __future__ import annotations

from eth_utils import keccak as _keccak

from .bytes import BytesLike
from .bytes import b as _b


def keccak256(data: BytesLike) -> bytes:
    """Keccak-256 digest (Ethereum-style)."""
    return bytes(_keccak(_b(data)))


def keccak_text(text: str) -> bytes:
    """Keccak-256 of the UTF-8 encoding of `text` (EIP-712 `string` members)."""
    return bytes(_keccak(text=text))


__all__ = ["keccak256", "keccak_text"]

"""
core.utils.address
==================

EVM account addresses as they flow through the engine: 20-byte values
carried as EIP-55 checksum strings. Every address entering the core is passed
through `normalize_address` once, so registry lookups and nonce keys never
depend on the caller's casing.
"""

from __future__ import annotations

from typing import Union

from eth_utils import is_address, to_checksum_address

from .bytes import BytesLike, is_byteslike, to_hex

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def normalize_address(value: Union[str, BytesLike], *, name: str = "address") -> str:
    """
    Return the EIP-55 checksum form of `value`.

    Raises
    ------
    ValueError
        If `value` is not a 20-byte address (or a mixed-case string with a bad checksum).
    """
    if is_byteslike(value):
        raw = bytes(value)  # type: ignore[arg-type]
        if len(raw) != 20:
            raise ValueError(f"{name} must be 20 bytes, got {len(raw)}")
        return to_checksum_address(to_hex(raw))
    if not isinstance(value, str) or not is_address(value):
        raise ValueError(f"invalid {name}: {value!r}")
    return to_checksum_address(value)


__all__ = ["ZERO_ADDRESS", "normalize_address"]

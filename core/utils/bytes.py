"""
core.utils.bytes
================

Lightweight, dependency-free helpers around byte handling:

- Hex helpers: to_hex/from_hex
- Length guards: ensure_len
- Range guards: u256, bytes32
- Bytes-like normalization: b(), is_byteslike()

Examples
--------
>>> to_hex(b"\\x01\\x02")
'0x0102'
>>> from_hex('0xdeadbeef')
b'\\xde\\xad\\xbe\\xef'
"""

from __future__ import annotations

from typing import Union

BytesLike = Union[bytes, bytearray, memoryview]

UINT256_MAX = (1 << 256) - 1


# -----------------------
# Basic bytes/hex helpers
# -----------------------

def is_byteslike(x: object) -> bool:
    return isinstance(x, (bytes, bytearray, memoryview))


def strip0x(s: str) -> str:
    return s[2:] if s.startswith(("0x", "0X")) else s


def to_hex(data: BytesLike, *, prefix: bool = True) -> str:
    """Return lowercase hex string of data."""
    if isinstance(data, memoryview):
        data = data.tobytes()
    elif isinstance(data, bytearray):
        data = bytes(data)
    if not isinstance(data, bytes):
        raise TypeError("to_hex expects bytes-like")
    h = data.hex()
    return f"0x{h}" if prefix else h


def from_hex(h: str) -> bytes:
    """Parse hex string with or without 0x prefix; ignores surrounding whitespace."""
    if not isinstance(h, str):
        raise TypeError("from_hex expects str")
    h = strip0x(h.strip().replace(" ", ""))
    if len(h) % 2 == 1:  # pad leading zero if odd length
        h = "0" + h
    try:
        return bytes.fromhex(h)
    except ValueError as e:
        raise ValueError(f"invalid hex string: {e}") from e


def b(x: Union[BytesLike, str, int]) -> bytes:
    """
    Normalize input to bytes:
    - bytes/bytearray/memoryview → bytes
    - str → if startswith '0x' parse hex, else utf-8 encode
    - int → big-endian minimal length
    """
    if isinstance(x, bytes):
        return x
    if isinstance(x, bytearray):
        return bytes(x)
    if isinstance(x, memoryview):
        return x.tobytes()
    if isinstance(x, str):
        return from_hex(x) if x.startswith(("0x", "0X")) else x.encode("utf-8")
    if isinstance(x, int):
        if x < 0:
            raise ValueError("b(int): negative not supported")
        length = max(1, (x.bit_length() + 7) // 8)
        return x.to_bytes(length, "big")
    raise TypeError(f"unsupported type for b(): {type(x)!r}")


def ensure_len(data: BytesLike, n: int, *, name: str = "bytes") -> bytes:
    data_b = b(data)
    if len(data_b) != n:
        raise ValueError(f"{name} must be length {n}, got {len(data_b)}")
    return data_b


# -------------------------
# Range guards
# -------------------------

def u256(x: int, *, name: str = "value") -> int:
    """Validate that `x` is a non-bool int in [0, 2**256 - 1] and return it."""
    if isinstance(x, bool) or not isinstance(x, int):
        raise TypeError(f"{name} must be int, got {type(x).__name__}")
    if x < 0 or x > UINT256_MAX:
        raise ValueError(f"{name} out of uint256 range: {x}")
    return x


def bytes32(x: Union[BytesLike, str], *, name: str = "bytes32") -> bytes:
    """Accept 32 raw bytes or a 0x-hex string of 32 bytes."""
    raw = from_hex(x) if isinstance(x, str) else b(x)
    return ensure_len(raw, 32, name=name)


__all__ = [
    "BytesLike",
    "UINT256_MAX",
    "is_byteslike",
    "strip0x",
    "to_hex",
    "from_hex",
    "b",
    "ensure_len",
    "u256",
    "bytes32",
]

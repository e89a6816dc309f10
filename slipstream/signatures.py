"""
Recover the signer of a 32-byte digest.

The executor depends only on the `SignatureVerifier` protocol:

    recover(digest: bytes, signature: bytes) -> checksum address

so the cryptographic scheme can be swapped without touching execution.
`EcdsaVerifier` is the secp256k1 implementation Ethereum wallets produce
(65-byte `r || s || v`).

Every malformation (length, `v`, `r`/`s` range, high-`s` malleability, failed
recovery) raises the same `SignatureInvalid`; the concrete reason is kept in
the error data for operators but never in the message returned to relayers.
"""

from __future__ import annotations

from typing import Protocol, Tuple, Union, runtime_checkable

from eth_keys import keys
from eth_keys.exceptions import BadSignature
from eth_keys.exceptions import ValidationError as KeysValidationError

from core.errors import SignatureInvalid
from core.utils.address import normalize_address
from core.utils.bytes import BytesLike, b, from_hex

SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
SECP256K1_HALF_N = SECP256K1_N // 2

SIGNATURE_LENGTH = 65

SignatureLike = Union[BytesLike, str]


@runtime_checkable
class SignatureVerifier(Protocol):
    def recover(self, digest: bytes, signature: SignatureLike) -> str:
        """Return the checksum address that signed `digest`, or raise SignatureInvalid."""


def _as_bytes(signature: SignatureLike) -> bytes:
    if isinstance(signature, str):
        try:
            return from_hex(signature)
        except ValueError:
            raise SignatureInvalid(reason="encoding") from None
    try:
        return b(signature)
    except TypeError:
        raise SignatureInvalid(reason="encoding") from None


def split_signature(signature: SignatureLike) -> Tuple[int, bytes, bytes]:
    """Split a 65-byte signature into `(v, r, s)` with `v` normalized to 27/28."""
    raw = _as_bytes(signature)
    if len(raw) != SIGNATURE_LENGTH:
        raise SignatureInvalid(reason="length", length=len(raw))
    r, s, v = raw[:32], raw[32:64], raw[64]
    if v in (0, 1):
        v += 27
    if v not in (27, 28):
        raise SignatureInvalid(reason="v", v=v)
    return v, r, s


def join_signature(v: int, r: BytesLike, s: BytesLike) -> bytes:
    """Inverse of `split_signature`: `r || s || v` with `v` in 27/28."""
    r_b, s_b = b(r), b(s)
    if len(r_b) != 32 or len(s_b) != 32:
        raise SignatureInvalid(reason="component length")
    if v in (0, 1):
        v += 27
    if v not in (27, 28):
        raise SignatureInvalid(reason="v", v=v)
    return r_b + s_b + bytes([v])


class EcdsaVerifier:
    """secp256k1 public-key recovery with canonical (low-s) enforcement."""

    def recover(self, digest: bytes, signature: SignatureLike) -> str:
        if len(digest) != 32:
            raise SignatureInvalid(reason="digest length", length=len(digest))
        v, r_b, s_b = split_signature(signature)
        r = int.from_bytes(r_b, "big")
        s = int.from_bytes(s_b, "big")
        if not 0 < r < SECP256K1_N:
            raise SignatureInvalid(reason="r range")
        if not 0 < s <= SECP256K1_HALF_N:
            raise SignatureInvalid(reason="s range")
        try:
            sig = keys.Signature(vrs=(v - 27, r, s))
            public_key = sig.recover_public_key_from_msg_hash(digest)
        except (BadSignature, KeysValidationError, ValueError) as e:
            raise SignatureInvalid(reason="recovery").with_cause(e) from e
        return public_key.to_checksum_address()


def verify_signer(
    verifier: SignatureVerifier, digest: bytes, signature: SignatureLike, expected: str
) -> str:
    """
    Recover and compare with `expected`; a mismatch is reported exactly like a
    malformed signature.
    """
    signer = verifier.recover(digest, signature)
    if signer != normalize_address(expected):
        raise SignatureInvalid(reason="signer mismatch")
    return signer


__all__ = [
    "SECP256K1_N",
    "SECP256K1_HALF_N",
    "SIGNATURE_LENGTH",
    "SignatureLike",
    "SignatureVerifier",
    "EcdsaVerifier",
    "split_signature",
    "join_signature",
    "verify_signer",
]

"""
slipstream.signer — the sender's side: build and sign requests and permits.

Used by relayer tooling, the CLI and the test-suite. Signatures are produced
over exactly the digests the proxy verifies:

- `sign_transfer_request` signs `AuthorizationCodec.digest(request)`;
- `sign_permit` signs the token's EIP-2612 `Permit` digest and returns the
  `PermitData` the permit path expects.

Private keys never leave this module in any form other than the signature.
"""

from __future__ import annotations

import time
from typing import Optional, Union

from eth_keys import keys

from core.utils.address import normalize_address
from core.utils.bytes import BytesLike, bytes32

from .codec import PERMIT_TYPE, AuthorizationCodec, domain_separator, typed_digest
from .signatures import join_signature
from .types import Eip712Domain, PermitData, TransferRequest

PrivateKeyLike = Union[keys.PrivateKey, BytesLike, str]

DEFAULT_TTL = 3600


def as_private_key(key: PrivateKeyLike) -> keys.PrivateKey:
    if isinstance(key, keys.PrivateKey):
        return key
    return keys.PrivateKey(bytes32(key, name="private key"))


def address_of(key: PrivateKeyLike) -> str:
    """Checksum address controlled by `key`."""
    return as_private_key(key).public_key.to_checksum_address()


def sign_digest(key: PrivateKeyLike, digest: bytes) -> bytes:
    """65-byte `r || s || v` signature (v in 27/28, low-s) over a 32-byte digest."""
    sig = as_private_key(key).sign_msg_hash(digest)
    return join_signature(sig.v + 27, sig.r.to_bytes(32, "big"), sig.s.to_bytes(32, "big"))


def build_transfer_request(
    from_address: str,
    to_address: str,
    token: str,
    amount: int,
    *,
    relayer_fee: int = 0,
    nonce: int = 0,
    deadline: Optional[int] = None,
    ttl: int = DEFAULT_TTL,
    now: Optional[int] = None,
) -> TransferRequest:
    """A `TransferRequest` whose deadline defaults to `now + ttl`."""
    if deadline is None:
        deadline = (int(time.time()) if now is None else now) + ttl
    return TransferRequest(
        from_address=from_address,
        to_address=to_address,
        token=token,
        amount=amount,
        relayer_fee=relayer_fee,
        nonce=nonce,
        deadline=deadline,
    )


def sign_transfer_request(key: PrivateKeyLike, codec: AuthorizationCodec, request: TransferRequest) -> bytes:
    return sign_digest(key, codec.digest(request))


def permit_digest(
    token_domain: Union[Eip712Domain, bytes],
    owner: str,
    spender: str,
    value: int,
    nonce: int,
    deadline: int,
) -> bytes:
    """
    EIP-2612 digest. `token_domain` is the token's EIP-712 domain, or its
    already computed `DOMAIN_SEPARATOR()`.
    """
    separator = token_domain if isinstance(token_domain, bytes) else domain_separator(token_domain)
    struct_hash = PERMIT_TYPE.hash_struct(
        {
            "owner": normalize_address(owner, name="owner"),
            "spender": normalize_address(spender, name="spender"),
            "value": value,
            "nonce": nonce,
            "deadline": deadline,
        }
    )
    return typed_digest(separator, struct_hash)


def sign_permit(
    key: PrivateKeyLike,
    token_domain: Union[Eip712Domain, bytes],
    owner: str,
    spender: str,
    value: int,
    nonce: int,
    deadline: int,
) -> PermitData:
    sig = as_private_key(key).sign_msg_hash(
        permit_digest(token_domain, owner, spender, value, nonce, deadline)
    )
    return PermitData(
        approval_value=value,
        permit_deadline=deadline,
        v=sig.v + 27,
        r=sig.r.to_bytes(32, "big"),
        s=sig.s.to_bytes(32, "big"),
    )


__all__ = [
    "DEFAULT_TTL",
    "PrivateKeyLike",
    "as_private_key",
    "address_of",
    "sign_digest",
    "build_transfer_request",
    "sign_transfer_request",
    "permit_digest",
    "sign_permit",
]

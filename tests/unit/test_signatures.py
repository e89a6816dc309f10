from __future__ import annotations

import pytest

from core.errors import ErrorCode, SignatureInvalid
from core.utils.hash import keccak256
from slipstream.signatures import (
    SECP256K1_N,
    EcdsaVerifier,
    SignatureVerifier,
    join_signature,
    split_signature,
    verify_signer,
)
from slipstream.signer import address_of, sign_digest

DIGEST = keccak256(b"slipstream signature test")


@pytest.fixture()
def verifier() -> EcdsaVerifier:
    return EcdsaVerifier()


def test_recover_roundtrip(verifier, user):
    sig = sign_digest(user.key, DIGEST)
    assert len(sig) == 65 and sig[64] in (27, 28)
    assert verifier.recover(DIGEST, sig) == user.address
    assert verifier.recover(DIGEST, "0x" + sig.hex()) == user.address


def test_accepts_v_0_1(verifier, user):
    sig = sign_digest(user.key, DIGEST)
    legacy = sig[:64] + bytes([sig[64] - 27])
    assert verifier.recover(DIGEST, legacy) == user.address


def test_is_a_signature_verifier():
    assert isinstance(EcdsaVerifier(), SignatureVerifier)


@pytest.mark.parametrize(
    "mutate, reason",
    [
        (lambda s: s[:64], "length"),
        (lambda s: s + b"\x00", "length"),
        (lambda s: s[:64] + b"\x05", "v"),
        (lambda s: b"\x00" * 32 + s[32:], "r range"),
        (lambda s: s[:32] + b"\x00" * 32 + s[64:], "s range"),
        (lambda s: SECP256K1_N.to_bytes(32, "big") + s[32:], "r range"),
    ],
)
def test_malformed_signatures(verifier, user, mutate, reason):
    sig = sign_digest(user.key, DIGEST)
    with pytest.raises(SignatureInvalid) as ei:
        verifier.recover(DIGEST, mutate(sig))
    assert ei.value.code == ErrorCode.SIGNATURE_INVALID
    assert ei.value.data["reason"] == reason
    # the reason stays out of the relayer-facing message
    assert ei.value.message == "invalid signature"


def test_rejects_high_s(verifier, user):
    v, r, s = split_signature(sign_digest(user.key, DIGEST))
    high_s = SECP256K1_N - int.from_bytes(s, "big")
    flipped = join_signature(55 - v, r, high_s.to_bytes(32, "big"))
    with pytest.raises(SignatureInvalid) as ei:
        verifier.recover(DIGEST, flipped)
    assert ei.value.data["reason"] == "s range"


def test_rejects_non_hex_string(verifier):
    with pytest.raises(SignatureInvalid):
        verifier.recover(DIGEST, "0xzz")


def test_verify_signer_mismatch_is_signature_invalid(verifier, user, stranger):
    sig = sign_digest(stranger.key, DIGEST)
    with pytest.raises(SignatureInvalid) as ei:
        verify_signer(verifier, DIGEST, sig, user.address)
    assert ei.value.data["reason"] == "signer mismatch"
    assert verify_signer(verifier, DIGEST, sig, stranger.address.lower()) == stranger.address


def test_split_join_inverse(user):
    sig = sign_digest(user.key, DIGEST)
    assert join_signature(*split_signature(sig)) == sig


def test_address_of(user):
    assert address_of(user.key) == user.address
    assert address_of("0x" + user.key.hex()) == user.address

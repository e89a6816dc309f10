"""
EIP-712 hashing of transfer requests.

Type hashes are checked against their published values; the full digest is
checked against `eth_account`'s independent typed-data encoder, so a wallet
signing `typed_data(request)` produces something the proxy accepts.
"""

from __future__ import annotations

import pytest
from eth_abi import encode as abi_encode
from eth_account import Account
from eth_account.messages import encode_typed_data

from core.utils.hash import keccak256, keccak_text
from slipstream.codec import (
    DOMAIN_TYPE,
    PERMIT_TYPE,
    TRANSFER_TYPE,
    AuthorizationCodec,
    StructType,
    domain_separator,
    typed_digest,
)
from slipstream.signatures import EcdsaVerifier
from slipstream.types import Eip712Domain

EIP712_DOMAIN_TYPEHASH = bytes.fromhex("8b73c3c69bb8fe3d512ecc4cf759cc79239f7b179b0ffacaa9a75d522b39400f")
PERMIT_TYPEHASH = bytes.fromhex("6e71edae12b1b97f4d1f60370fef10105fa2faae0126114a169c64845d6126c9")


def test_type_strings_and_hashes():
    assert DOMAIN_TYPE.type_string == (
        "EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)"
    )
    assert DOMAIN_TYPE.type_hash == EIP712_DOMAIN_TYPEHASH
    assert PERMIT_TYPE.type_hash == PERMIT_TYPEHASH
    assert TRANSFER_TYPE.type_string == (
        "Transfer(address from,address to,address token,uint256 amount,"
        "uint256 relayerFee,uint256 nonce,uint256 deadline)"
    )
    assert TRANSFER_TYPE.type_hash == keccak_text(TRANSFER_TYPE.type_string)


def test_domain_separator_matches_manual_encoding(proxy):
    d = proxy.codec.domain
    manual = keccak256(
        abi_encode(
            ["bytes32", "bytes32", "bytes32", "uint256", "address"],
            [
                EIP712_DOMAIN_TYPEHASH,
                keccak_text(d.name),
                keccak_text(d.version),
                d.chain_id,
                d.verifying_contract,
            ],
        )
    )
    assert proxy.domain_separator == manual
    assert proxy.codec.domain_separator is proxy.codec.domain_separator  # cached


def test_digest_matches_eth_account(proxy, user, make_request):
    req = make_request(amount=123_456, relayer_fee=789, nonce=4)
    signable = encode_typed_data(full_message=proxy.codec.typed_data(req))
    signed = Account.sign_message(signable, private_key=user.key)

    assert signed.message_hash == proxy.hash_transfer_request(req)
    assert EcdsaVerifier().recover(proxy.hash_transfer_request(req), signed.signature) == user.address


def test_digest_depends_on_domain(make_request, user):
    req = make_request()
    base = dict(name="SlipstreamGaslessProxy", version="1", chain_id=5920, verifying_contract=user.address)
    digests = {
        AuthorizationCodec(Eip712Domain(**base)).digest(req),
        AuthorizationCodec(Eip712Domain(**{**base, "chain_id": 421614})).digest(req),
        AuthorizationCodec(Eip712Domain(**{**base, "version": "2"})).digest(req),
        AuthorizationCodec(Eip712Domain(**{**base, "name": "Other"})).digest(req),
    }
    assert len(digests) == 4


def test_typed_data_shape(proxy, make_request):
    req = make_request()
    td = proxy.codec.typed_data(req)
    assert td["primaryType"] == "Transfer"
    assert [f["name"] for f in td["types"]["Transfer"]] == [
        "from", "to", "token", "amount", "relayerFee", "nonce", "deadline"
    ]
    assert td["domain"]["verifyingContract"] == proxy.address
    assert td["message"]["relayerFee"] == 1


def test_typed_digest_rejects_bad_lengths():
    with pytest.raises(ValueError):
        typed_digest(b"\x00" * 31, b"\x00" * 32)


def test_struct_type_rejects_nested_types():
    with pytest.raises(ValueError):
        StructType("Outer", [("inner", "Inner")])


def test_permit_domain_separator_of_token(token):
    assert token.DOMAIN_SEPARATOR() == domain_separator(token.domain)

"""
slipstream.codec — EIP-712 canonical hashing of transfer intents.

The digest a sender signs is

    keccak256(0x19 0x01 || domainSeparator || hashStruct(Transfer))

with

    domainSeparator = keccak256(abi.encode(
        keccak256("EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)"),
        keccak256(name), keccak256(version), chainId, verifyingContract))

    hashStruct(Transfer) = keccak256(abi.encode(
        keccak256("Transfer(address from,address to,address token,uint256 amount,"
                  "uint256 relayerFee,uint256 nonce,uint256 deadline)"),
        from, to, token, amount, relayerFee, nonce, deadline))

Any wallet implementing `eth_signTypedData_v4` over `typed_data(request)`
produces a signature that validates against `digest(request)`.

Domain separator and type hashes are computed once per codec and cached;
nothing about them is derived from request content.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Sequence, Tuple

from eth_abi import encode as abi_encode

from core.utils.hash import keccak256, keccak_text

from .types import PERMIT_FIELDS, TRANSFER_FIELDS, Eip712Domain, TransferRequest

EIP712_PREFIX = b"\x19\x01"

DOMAIN_FIELDS = (
    ("name", "string"),
    ("version", "string"),
    ("chainId", "uint256"),
    ("verifyingContract", "address"),
)

# Only flat structs of atomic members are needed here.
_ATOMIC = {"address", "uint256", "bytes32", "bool"}
_DYNAMIC = {"string", "bytes"}


class StructType:
    """
    A flat EIP-712 struct type: a name plus an ordered member list.

    Members of type `string`/`bytes` are hashed (keccak) before ABI encoding,
    as EIP-712 requires; atomic members are ABI-encoded as-is.
    """

    def __init__(self, name: str, fields: Sequence[Tuple[str, str]]) -> None:
        for _, typ in fields:
            if typ not in _ATOMIC and typ not in _DYNAMIC:
                raise ValueError(f"unsupported EIP-712 member type {typ!r}")
        self.name = name
        self.fields: Tuple[Tuple[str, str], ...] = tuple(fields)
        self.type_string = f"{name}(" + ",".join(f"{t} {n}" for n, t in self.fields) + ")"
        self.type_hash = keccak_text(self.type_string)
        self._abi_types = ["bytes32"] + [
            "bytes32" if t in _DYNAMIC else t for _, t in self.fields
        ]

    def hash_struct(self, values: Mapping[str, Any]) -> bytes:
        encoded: List[Any] = [self.type_hash]
        for name, typ in self.fields:
            v = values[name]
            if typ == "string":
                v = keccak_text(v)
            elif typ == "bytes":
                v = keccak256(v)
            encoded.append(v)
        return keccak256(abi_encode(self._abi_types, encoded))

    def eip712_types(self) -> List[Dict[str, str]]:
        return [{"name": n, "type": t} for n, t in self.fields]

    def __repr__(self) -> str:  # pragma: no cover
        return f"StructType({self.type_string!r})"


DOMAIN_TYPE = StructType("EIP712Domain", DOMAIN_FIELDS)
TRANSFER_TYPE = StructType("Transfer", TRANSFER_FIELDS)
PERMIT_TYPE = StructType("Permit", PERMIT_FIELDS)


def domain_separator(domain: Eip712Domain) -> bytes:
    return DOMAIN_TYPE.hash_struct(domain.to_dict())


def typed_digest(separator: bytes, struct_hash: bytes) -> bytes:
    """Final EIP-712 digest for an already computed domain separator and struct hash."""
    if len(separator) != 32 or len(struct_hash) != 32:
        raise ValueError("domain separator and struct hash must be 32 bytes")
    return keccak256(EIP712_PREFIX + separator + struct_hash)


class AuthorizationCodec:
    """
    Canonical hashing of `TransferRequest`s for one proxy deployment.

    Parameters
    ----------
    domain : Eip712Domain
        Fixed for the lifetime of the codec; the separator is cached.
    """

    def __init__(self, domain: Eip712Domain) -> None:
        self._domain = domain
        self._separator = domain_separator(domain)

    @property
    def domain(self) -> Eip712Domain:
        return self._domain

    @property
    def domain_separator(self) -> bytes:
        return self._separator

    @property
    def type_hash(self) -> bytes:
        return TRANSFER_TYPE.type_hash

    def struct_hash(self, request: TransferRequest) -> bytes:
        return TRANSFER_TYPE.hash_struct(request.to_message())

    def digest(self, request: TransferRequest) -> bytes:
        """The 32-byte hash the sender signs."""
        return typed_digest(self._separator, self.struct_hash(request))

    def typed_data(self, request: TransferRequest) -> Dict[str, Any]:
        """Full EIP-712 structure (`eth_signTypedData_v4` / `eth_account` input)."""
        return {
            "types": {
                "EIP712Domain": DOMAIN_TYPE.eip712_types(),
                "Transfer": TRANSFER_TYPE.eip712_types(),
            },
            "primaryType": "Transfer",
            "domain": self._domain.to_dict(),
            "message": request.to_message(),
        }


__all__ = [
    "EIP712_PREFIX",
    "StructType",
    "DOMAIN_TYPE",
    "TRANSFER_TYPE",
    "PERMIT_TYPE",
    "domain_separator",
    "typed_digest",
    "AuthorizationCodec",
]

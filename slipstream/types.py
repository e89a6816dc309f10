"""
slipstream.types — value objects that cross the engine boundary.

TransferRequest
    One signed intent: move `amount` of `token` from `from` to `to`, paying the
    submitting relayer `relayerFee` out of the same balance. Immutable.
PermitData
    The EIP-2612 authorization bundled with a request on the permit path.
Eip712Domain
    The `{name, version, chainId, verifyingContract}` tuple mixed into every
    signed digest.

Wire names (`from`, `relayerFee`, ...) are the EIP-712 member names a wallet
signs; Python attributes use snake_case. `to_message()` / `from_message()`
translate between the two.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Union

from core.errors import DeserializationError
from core.utils.address import normalize_address
from core.utils.bytes import bytes32, to_hex, u256

# Field order is part of the signed type string; do not reorder.
TRANSFER_FIELDS = (
    ("from", "address"),
    ("to", "address"),
    ("token", "address"),
    ("amount", "uint256"),
    ("relayerFee", "uint256"),
    ("nonce", "uint256"),
    ("deadline", "uint256"),
)

PERMIT_FIELDS = (
    ("owner", "address"),
    ("spender", "address"),
    ("value", "uint256"),
    ("nonce", "uint256"),
    ("deadline", "uint256"),
)


@dataclass(frozen=True)
class Eip712Domain:
    name: str
    version: str
    chain_id: int
    verifying_contract: str

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "verifying_contract",
            normalize_address(self.verifying_contract, name="verifying_contract"),
        )
        u256(self.chain_id, name="chain_id")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "chainId": self.chain_id,
            "verifyingContract": self.verifying_contract,
        }


@dataclass(frozen=True)
class TransferRequest:
    from_address: str
    to_address: str
    token: str
    amount: int
    relayer_fee: int
    nonce: int
    deadline: int

    def __post_init__(self) -> None:
        for attr in ("from_address", "to_address", "token"):
            object.__setattr__(self, attr, normalize_address(getattr(self, attr), name=attr))
        for attr in ("amount", "relayer_fee", "nonce", "deadline"):
            u256(getattr(self, attr), name=attr)

    @property
    def total_debit(self) -> int:
        """What leaves the sender's balance: amount plus relayer fee."""
        return self.amount + self.relayer_fee

    def to_message(self) -> Dict[str, Any]:
        return {
            "from": self.from_address,
            "to": self.to_address,
            "token": self.token,
            "amount": self.amount,
            "relayerFee": self.relayer_fee,
            "nonce": self.nonce,
            "deadline": self.deadline,
        }

    @classmethod
    def from_message(cls, msg: Mapping[str, Any]) -> "TransferRequest":
        """Build from wire names; integers may be given as decimal or 0x strings."""
        try:
            return cls(
                from_address=msg["from"],
                to_address=msg["to"],
                token=msg["token"],
                amount=_as_int(msg["amount"]),
                relayer_fee=_as_int(msg["relayerFee"]),
                nonce=_as_int(msg["nonce"]),
                deadline=_as_int(msg["deadline"]),
            )
        except KeyError as e:
            raise DeserializationError(f"missing field {e.args[0]!r}", subject="TransferRequest") from e
        except (TypeError, ValueError) as e:
            raise DeserializationError(str(e), subject="TransferRequest") from e


@dataclass(frozen=True)
class PermitData:
    approval_value: int
    permit_deadline: int
    v: int
    r: bytes
    s: bytes

    def __post_init__(self) -> None:
        u256(self.approval_value, name="approval_value")
        u256(self.permit_deadline, name="permit_deadline")
        if isinstance(self.v, bool) or not isinstance(self.v, int) or not 0 <= self.v <= 255:
            raise ValueError(f"signature v must be a uint8, got {self.v!r}")
        object.__setattr__(self, "r", bytes32(self.r, name="signature r"))
        object.__setattr__(self, "s", bytes32(self.s, name="signature s"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "approvalValue": self.approval_value,
            "permitDeadline": self.permit_deadline,
            "signatureV": self.v,
            "signatureR": to_hex(self.r),
            "signatureS": to_hex(self.s),
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "PermitData":
        try:
            return cls(
                approval_value=_as_int(d["approvalValue"]),
                permit_deadline=_as_int(d["permitDeadline"]),
                v=_as_int(d["signatureV"]),
                r=d["signatureR"],
                s=d["signatureS"],
            )
        except KeyError as e:
            raise DeserializationError(f"missing field {e.args[0]!r}", subject="PermitData") from e
        except (TypeError, ValueError) as e:
            raise DeserializationError(str(e), subject="PermitData") from e


def _as_int(v: Union[int, str]) -> int:
    if isinstance(v, bool):
        raise TypeError("expected integer, got bool")
    if isinstance(v, int):
        return v
    if isinstance(v, str):
        return int(v, 0)
    raise TypeError(f"expected integer, got {type(v).__name__}")


__all__ = [
    "TRANSFER_FIELDS",
    "PERMIT_FIELDS",
    "Eip712Domain",
    "TransferRequest",
    "PermitData",
]

"""
Slipstream — gasless token transfers.

A token holder signs an EIP-712 `Transfer` intent off-chain; an authorized
relayer submits it together with the signature (and optionally an EIP-2612
permit); `GaslessProxy` verifies and executes it, paying the relayer its fee
out of the same transfer.

    from slipstream import GaslessProxy, TransferRequest

    proxy = GaslessProxy(owner, [relayer], [usdc], address=proxy_addr, chain_id=5920,
                         tokens={usdc: usdc_token})
    proxy.process_permit_based_gasless_transfer(relayer, request, signature, permit)

Submodules
----------
- types      : TransferRequest, PermitData, Eip712Domain
- codec      : EIP-712 hashing (AuthorizationCodec)
- signatures : signer recovery (EcdsaVerifier)
- nonces     : NonceLedger
- registry   : relayer / token allow-lists
- admin      : owner-gated allow-list changes
- permit     : EIP-2612 probe and allowance grant
- executor   : GaslessProxy
- events     : emitted records and sinks
- journal    : checkpoint / revert
- signer     : sender-side signing helpers
- cli        : `slipstream` command line
"""

from __future__ import annotations

from core.version import __version__

from .codec import AuthorizationCodec
from .events import (
    GaslessTokenTransferCompleted,
    InMemoryEventSink,
    JsonlEventSink,
    NullEventSink,
    RelayerAuthorizationUpdated,
    TokenSupportStatusUpdated,
)
from .executor import GaslessProxy
from .signatures import EcdsaVerifier, SignatureVerifier
from .types import Eip712Domain, PermitData, TransferRequest

__all__ = [
    "__version__",
    "AuthorizationCodec",
    "EcdsaVerifier",
    "Eip712Domain",
    "GaslessProxy",
    "GaslessTokenTransferCompleted",
    "InMemoryEventSink",
    "JsonlEventSink",
    "NullEventSink",
    "PermitData",
    "RelayerAuthorizationUpdated",
    "SignatureVerifier",
    "TokenSupportStatusUpdated",
    "TransferRequest",
]

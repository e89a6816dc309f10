"""
slipstream.executor — the gasless transfer proxy.

`GaslessProxy` is the single state object of the engine: it owns the nonce
ledger, the allow-lists, the journal and the event sink of one deployment,
and runs the two execution paths.

Pipeline (both paths)
---------------------
1. relayer is authorized                 -> RelayerUnauthorized
2. token is supported                    -> TokenUnsupported
3. now <= request.deadline               -> RequestExpired
4. signer(digest(request)) == from       -> SignatureInvalid
5. (permit path) approval_value covers amount + fee, permit deadline not
   passed                                -> AllowanceInsufficient / RequestExpired
6. nonce consumed                        -> NonceMismatch
7. allowance: checked (direct) or granted via permit
                                         -> AllowanceInsufficient / PermitUnsupported
8. pull amount + fee from the sender into the proxy, pay `amount` to the
   recipient and `fee` to the submitting relayer
                                         -> TransferFailed
9. GaslessTokenTransferCompleted is recorded

The deadline is checked before the signature, so an expired request is
reported as expired whatever its signature. Nothing external is called before
the nonce is consumed; a token calling back into the proxy therefore sees the
advanced nonce.

Every request runs inside one journal checkpoint: any failure undoes the
nonce, registry and journaled token writes, and drops the request's records.
Batches are one checkpoint around all items (all-or-nothing).
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from core import logging as clog
from core.config import DEFAULT_DOMAIN_NAME, DEFAULT_DOMAIN_VERSION, DEVNET_CHAIN_ID, Config
from core.errors import (
    AllowanceInsufficient,
    RelayerUnauthorized,
    RequestExpired,
    SlipstreamError,
    TokenUnsupported,
    TransferFailed,
)
from core.utils.address import normalize_address
from core.utils.bytes import UINT256_MAX

from .admin import AdminController
from .codec import AuthorizationCodec
from .events import EventSink, GaslessTokenTransferCompleted, InMemoryEventSink
from .journal import Journal
from .nonces import NonceLedger
from .permit import PermitAdapter
from .registry import RegistryStore
from .signatures import EcdsaVerifier, SignatureLike, SignatureVerifier, verify_signer
from .token import Token, TokenSource
from .types import Eip712Domain, PermitData, TransferRequest

log = clog.get_logger("slipstream.executor")

Clock = Callable[[], int]
DirectItem = Tuple[TransferRequest, SignatureLike]
PermitItem = Tuple[TransferRequest, SignatureLike, PermitData]


def system_clock() -> int:
    return int(time.time())


class GaslessProxy:
    """
    Relayed, signature-authorized token transfers for one deployment.

    Parameters
    ----------
    owner : str
        The only account allowed to change the allow-lists.
    initial_relayers, initial_tokens : iterable of str
        Seed contents of the allow-lists.
    address : str
        The proxy's own account: EIP-712 verifying contract, the spender the
        sender approves, and the transit account funds pass through.
    chain_id : int
        Chain identifier mixed into every signed digest.
    tokens : mapping or callable, optional
        Resolves a token address to the token object to drive.
    sink : EventSink, optional
        Where committed records go (default: in-memory).
    verifier : SignatureVerifier, optional
        Signature scheme (default: secp256k1 ECDSA).
    clock : callable, optional
        Current time in integer seconds (default: wall clock).
    journal : Journal, optional
        Share a journal with tokens whose state must roll back with requests.
    """

    def __init__(
        self,
        owner: str,
        initial_relayers: Sequence[str] = (),
        initial_tokens: Sequence[str] = (),
        *,
        address: str,
        chain_id: int = DEVNET_CHAIN_ID,
        domain_name: str = DEFAULT_DOMAIN_NAME,
        domain_version: str = DEFAULT_DOMAIN_VERSION,
        tokens: Optional[TokenSource] = None,
        sink: Optional[EventSink] = None,
        verifier: Optional[SignatureVerifier] = None,
        clock: Optional[Clock] = None,
        journal: Optional[Journal] = None,
    ) -> None:
        self._address = normalize_address(address, name="proxy address")
        self._lock = threading.RLock()
        self._journal = journal if journal is not None else Journal()
        self._sink: EventSink = sink if sink is not None else InMemoryEventSink()
        self._clock: Clock = clock if clock is not None else system_clock
        self._verifier: SignatureVerifier = verifier if verifier is not None else EcdsaVerifier()
        self._codec = AuthorizationCodec(
            Eip712Domain(
                name=domain_name,
                version=domain_version,
                chain_id=chain_id,
                verifying_contract=self._address,
            )
        )
        self._nonces = NonceLedger(self._journal)
        self._registry = RegistryStore(initial_relayers, initial_tokens, journal=self._journal)
        self._admin = AdminController(
            owner, self._registry, journal=self._journal, sink=self._sink, lock=self._lock
        )
        self._permits = PermitAdapter()
        self._token_objects: Dict[str, Token] = {}
        self._token_resolver: Optional[Callable[[str], Token]] = None
        if callable(tokens):
            self._token_resolver = tokens  # type: ignore[assignment]
        elif tokens is not None:
            for addr, tok in tokens.items():
                self.attach_token(addr, tok)

    @classmethod
    def from_config(cls, cfg: Config, **kwargs: Any) -> "GaslessProxy":
        """Build a proxy from `core.config.Config`; kwargs are passed through (tokens, sink, clock, ...)."""
        return cls(
            cfg.registry.owner,
            cfg.registry.relayers,
            cfg.registry.tokens,
            address=cfg.domain.verifying_contract,
            chain_id=cfg.chain.chain_id,
            domain_name=cfg.domain.name,
            domain_version=cfg.domain.version,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def address(self) -> str:
        return self._address

    @property
    def owner(self) -> str:
        return self._admin.owner

    @property
    def chain_id(self) -> int:
        return self._codec.domain.chain_id

    @property
    def codec(self) -> AuthorizationCodec:
        return self._codec

    @property
    def journal(self) -> Journal:
        return self._journal

    @property
    def sink(self) -> EventSink:
        return self._sink

    @property
    def registry(self) -> RegistryStore:
        return self._registry

    @property
    def admin(self) -> AdminController:
        return self._admin

    @property
    def domain_separator(self) -> bytes:
        return self._codec.domain_separator

    def hash_transfer_request(self, request: TransferRequest) -> bytes:
        """The EIP-712 digest `request.from_address` must sign for this proxy."""
        return self._codec.digest(request)

    def get_current_user_nonce(self, account: str) -> int:
        return self._nonces.peek(account)

    def is_relayer_authorized(self, relayer: str) -> bool:
        return self._registry.is_relayer_authorized(relayer)

    def is_token_supported(self, token: str) -> bool:
        return self._registry.is_token_supported(token)

    def check_erc2612_permit_support(self, token: str) -> bool:
        try:
            obj = self._resolve_token(token)
        except TransferFailed:
            return False
        return self._permits.check_permit_support(token, obj)

    def attach_token(self, address: str, token: Token) -> None:
        """Make a token object reachable by address (does not change the allow-list)."""
        self._token_objects[normalize_address(address, name="token")] = token

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def update_relayer_authorization_status(self, caller: str, relayer: str, authorized: bool) -> None:
        self._admin.set_relayer_authorization(caller, relayer, authorized)

    def update_token_support_status(self, caller: str, token: str, supported: bool) -> None:
        self._admin.set_token_support(caller, token, supported)

    # ------------------------------------------------------------------
    # Execution paths
    # ------------------------------------------------------------------

    def process_direct_gasless_transfer(
        self, relayer: str, request: TransferRequest, signature: SignatureLike
    ) -> GaslessTokenTransferCompleted:
        """Execute a request whose sender already approved the proxy for amount + fee."""
        with self._lock, self._logged("direct", relayer, request):
            with self._journal.atomic():
                relayer, token = self._validate(relayer, request, signature)
                self._nonces.consume(request.from_address, request.nonce)
                available = self._call_token(
                    "allowance", token.allowance, request.from_address, self._address
                )
                if available < request.total_debit:
                    raise AllowanceInsufficient(
                        needed=request.total_debit, available=available, token=request.token
                    )
                return self._settle(relayer, token, request)

    def process_permit_based_gasless_transfer(
        self,
        relayer: str,
        request: TransferRequest,
        signature: SignatureLike,
        permit: PermitData,
    ) -> GaslessTokenTransferCompleted:
        """Execute a request bundled with the sender's EIP-2612 permit for the proxy."""
        with self._lock, self._logged("permit", relayer, request):
            with self._journal.atomic():
                relayer, token = self._validate(relayer, request, signature, permit=permit)
                self._nonces.consume(request.from_address, request.nonce)
                self._permits.grant_allowance(
                    request.token,
                    token,
                    request.from_address,
                    self._address,
                    permit.approval_value,
                    permit.permit_deadline,
                    permit.v,
                    permit.r,
                    permit.s,
                    needed=request.total_debit,
                )
                return self._settle(relayer, token, request)

    def process_batch_direct_gasless_transfers(
        self, relayer: str, items: Sequence[DirectItem]
    ) -> List[GaslessTokenTransferCompleted]:
        """All-or-nothing: the first failing item aborts the batch (error carries `batch_index`)."""
        with self._lock, self._journal.atomic():
            out: List[GaslessTokenTransferCompleted] = []
            for i, (request, signature) in enumerate(items):
                try:
                    out.append(self.process_direct_gasless_transfer(relayer, request, signature))
                except SlipstreamError as e:
                    raise e.with_context(batch_index=i, batch_size=len(items)) from e
        log.info("batch executed", extra={"kind": "direct", "relayer": relayer, "size": len(out)})
        return out

    def process_batch_permit_based_gasless_transfers(
        self, relayer: str, items: Sequence[PermitItem]
    ) -> List[GaslessTokenTransferCompleted]:
        """All-or-nothing: the first failing item aborts the batch (error carries `batch_index`)."""
        with self._lock, self._journal.atomic():
            out: List[GaslessTokenTransferCompleted] = []
            for i, (request, signature, permit) in enumerate(items):
                try:
                    out.append(
                        self.process_permit_based_gasless_transfer(relayer, request, signature, permit)
                    )
                except SlipstreamError as e:
                    raise e.with_context(batch_index=i, batch_size=len(items)) from e
        log.info("batch executed", extra={"kind": "permit", "relayer": relayer, "size": len(out)})
        return out

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _validate(
        self,
        relayer: str,
        request: TransferRequest,
        signature: SignatureLike,
        *,
        permit: Optional[PermitData] = None,
    ) -> Tuple[str, Token]:
        try:
            relayer = normalize_address(relayer, name="relayer")
        except ValueError:
            raise RelayerUnauthorized(relayer=str(relayer)) from None
        if not self._registry.is_relayer_authorized(relayer):
            raise RelayerUnauthorized(relayer=relayer)
        if not self._registry.is_token_supported(request.token):
            raise TokenUnsupported(token=request.token)

        now = int(self._clock())
        if now > request.deadline:
            raise RequestExpired(deadline=request.deadline, now=now)

        verify_signer(self._verifier, self._codec.digest(request), signature, request.from_address)
        if request.total_debit > UINT256_MAX:
            raise TransferFailed("amount + fee overflows uint256", token=request.token)

        if permit is not None:
            if permit.approval_value < request.total_debit:
                raise AllowanceInsufficient(
                    needed=request.total_debit,
                    available=permit.approval_value,
                    token=request.token,
                    reason="permit value below amount + fee",
                )
            if now > permit.permit_deadline:
                raise RequestExpired(deadline=permit.permit_deadline, now=now, subject="permit")

        return relayer, self._resolve_token(request.token)

    def _settle(
        self, relayer: str, token: Token, request: TransferRequest
    ) -> GaslessTokenTransferCompleted:
        self._call_token(
            "transfer_from",
            token.transfer_from,
            self._address,
            request.from_address,
            self._address,
            request.total_debit,
        )
        self._call_token("transfer", token.transfer, self._address, request.to_address, request.amount)
        if request.relayer_fee:
            self._call_token("transfer", token.transfer, self._address, relayer, request.relayer_fee)

        ev = GaslessTokenTransferCompleted(
            from_address=request.from_address,
            to_address=request.to_address,
            token=request.token,
            amount=request.amount,
            relayer_fee=request.relayer_fee,
            executing_relayer=relayer,
            nonce=request.nonce,
        )
        self._journal.on_commit(lambda: self._sink.append(ev))
        return ev

    def _call_token(self, step: str, fn: Callable[..., Any], *args: Any) -> Any:
        try:
            result = fn(*args)
        except Exception as e:
            raise TransferFailed(step=step, error=type(e).__name__).with_cause(e) from e
        if result is False:
            raise TransferFailed(step=step, error="returned false")
        return result

    def _resolve_token(self, address: str) -> Token:
        address = normalize_address(address, name="token")
        token = self._token_objects.get(address)
        if token is None and self._token_resolver is not None:
            token = self._token_resolver(address)
        if token is None:
            raise TransferFailed("token contract not reachable", token=address)
        return token

    @contextmanager
    def _logged(self, kind: str, relayer: str, request: TransferRequest) -> Iterator[None]:
        nested = self._journal.in_checkpoint()
        with clog.trace_scope():
            clog.bind(component="gasless", relayer=str(relayer), account=request.from_address)
            fields = {"kind": kind, "token": request.token, "nonce": request.nonce}
            try:
                yield
            except SlipstreamError as e:
                code = str(e.code)
                log.warning("request rejected", extra={**fields, "code": code, "data": e.data})
                raise
            # Inside an enclosing checkpoint (a batch) the request is not final yet.
            level = logging.DEBUG if nested else logging.INFO
            log.log(
                level,
                "request executed",
                extra={**fields, "amount": request.amount, "relayer_fee": request.relayer_fee},
            )


__all__ = ["GaslessProxy", "system_clock", "Clock", "DirectItem", "PermitItem"]

"""
Shared pytest fixtures:
- Deterministic accounts (owner, sender, relayer, recipient, stranger)
- A fixed, settable clock
- A testnet-USDC style EIP-2612 token double sharing the proxy's journal
- A ready `GaslessProxy` with one authorized relayer and one supported token
- Factories to build/sign requests and permits
"""
from __future__ import annotations

import logging
import os
from typing import Any, Callable, Iterator, Optional

import pytest

from core import logging as clog
from slipstream.events import InMemoryEventSink
from slipstream.executor import GaslessProxy
from slipstream.journal import Journal
from slipstream.signer import sign_permit, sign_transfer_request
from slipstream.types import PermitData, TransferRequest
from tests.harness import CHAIN_ID, HOUR, INITIAL_BALANCE, NOW, FixedClock
from tests.harness.accounts import TestAccount, account, det_address
from tests.harness.token import PermitTestToken

# --- stable env for tests -----------------------------------------------------

os.environ.setdefault("PYTHONHASHSEED", "0")
os.environ.setdefault("TZ", "UTC")
# Keep test output readable regardless of the developer's shell.
os.environ.setdefault("SLIPSTREAM_LOG_FORMAT", "text")

PROXY_ADDRESS = det_address("gasless-proxy")
TOKEN_ADDRESS = det_address("testnet-usdc")


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for k in list(os.environ):
        if k.startswith("SLIPSTREAM_") and k != "SLIPSTREAM_LOG_FORMAT":
            monkeypatch.delenv(k, raising=False)


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    root = logging.getLogger()
    level = root.level
    yield
    # Drop console handlers installed by clog.configure() during the test.
    for h in list(root.handlers):
        if isinstance(h.formatter, (clog.JSONFormatter, clog.TextFormatter)):
            root.removeHandler(h)
    root.setLevel(level)
    clog.clear_context()


# --- accounts -----------------------------------------------------------------

@pytest.fixture(scope="session")
def owner() -> TestAccount:
    return account("owner")


@pytest.fixture(scope="session")
def user() -> TestAccount:
    return account("user")


@pytest.fixture(scope="session")
def relayer() -> TestAccount:
    return account("relayer")


@pytest.fixture(scope="session")
def recipient() -> TestAccount:
    return account("recipient")


@pytest.fixture(scope="session")
def stranger() -> TestAccount:
    return account("stranger")


# --- engine -------------------------------------------------------------------

@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture()
def journal() -> Journal:
    return Journal()


@pytest.fixture()
def token(journal: Journal, clock: FixedClock, user: TestAccount) -> PermitTestToken:
    t = PermitTestToken(
        "TestnetUSDC",
        "USDC",
        TOKEN_ADDRESS,
        chain_id=CHAIN_ID,
        clock=clock,
        version="2",
        journal=journal,
    )
    t.mint(user.address, INITIAL_BALANCE)
    return t


@pytest.fixture()
def sink() -> InMemoryEventSink:
    return InMemoryEventSink()


@pytest.fixture()
def proxy(
    owner: TestAccount,
    relayer: TestAccount,
    token: PermitTestToken,
    journal: Journal,
    clock: FixedClock,
    sink: InMemoryEventSink,
) -> GaslessProxy:
    return GaslessProxy(
        owner.address,
        [relayer.address],
        [token.address],
        address=PROXY_ADDRESS,
        chain_id=CHAIN_ID,
        tokens={token.address: token},
        sink=sink,
        clock=clock,
        journal=journal,
    )


# --- factories ----------------------------------------------------------------

@pytest.fixture()
def make_request(user: TestAccount, recipient: TestAccount, token: PermitTestToken) -> Callable[..., TransferRequest]:
    def _make(**overrides: Any) -> TransferRequest:
        fields = dict(
            from_address=user.address,
            to_address=recipient.address,
            token=token.address,
            amount=100,
            relayer_fee=1,
            nonce=0,
            deadline=NOW + HOUR,
        )
        fields.update(overrides)
        return TransferRequest(**fields)

    return _make


@pytest.fixture()
def sign(proxy: GaslessProxy, user: TestAccount) -> Callable[..., bytes]:
    def _sign(request: TransferRequest, signer: Optional[TestAccount] = None) -> bytes:
        return sign_transfer_request((signer or user).key, proxy.codec, request)

    return _sign


@pytest.fixture()
def make_permit(
    proxy: GaslessProxy, token: PermitTestToken, user: TestAccount
) -> Callable[..., PermitData]:
    def _permit(
        value: int = 101,
        deadline: int = NOW + HOUR,
        nonce: Optional[int] = None,
        signer: Optional[TestAccount] = None,
    ) -> PermitData:
        return sign_permit(
            (signer or user).key,
            token.DOMAIN_SEPARATOR(),
            user.address,
            proxy.address,
            value,
            token.nonces(user.address) if nonce is None else nonce,
            deadline,
        )

    return _permit

"""
tests.harness
=============

In-process collaborators for the test-suite:

- `token`    : EIP-2612 stablecoin double (balances, allowances, permit,
               faucet mint, blacklist) that joins the proxy's journal.
- `accounts` : deterministic secp256k1 test accounts.
- `FixedClock` : settable clock injected into proxy and token.

    from tests.harness import FixedClock
    from tests.harness.accounts import account
    from tests.harness.token import PermitTestToken
"""

from __future__ import annotations

__all__ = ["FixedClock", "CHAIN_ID", "NOW", "HOUR", "INITIAL_BALANCE"]

CHAIN_ID = 5920  # kadena_testnet
NOW = 1_700_000_000
HOUR = 3600
INITIAL_BALANCE = 1_000_000_000  # 1,000 USDC at 6 decimals


class FixedClock:
    """Callable returning a settable integer time (seconds)."""

    def __init__(self, now: int) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> int:
        self.now += seconds
        return self.now

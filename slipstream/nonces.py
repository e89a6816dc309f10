"""
Per-sender replay protection.

Each sender has a counter of executed requests, starting at 0. A request is
only valid when it carries exactly the current counter; executing it advances
the counter by one. This is the only replay protection the engine has: a
signature is good forever, the nonce is what makes it single-use.

Consumption is journaled so a request that fails after its nonce was taken
gives the nonce back.
"""

from __future__ import annotations

from typing import Dict, Optional

from core.errors import NonceMismatch
from core.utils.address import normalize_address

from .journal import Journal, JournaledMap


class NonceLedger:
    def __init__(self, journal: Optional[Journal] = None) -> None:
        self._journal = journal if journal is not None else Journal()
        self._next: JournaledMap[str, int] = JournaledMap(self._journal)

    def peek(self, account: str) -> int:
        """Read the current (unused) nonce for `account`."""
        return self._next.get(normalize_address(account), 0) or 0

    def consume(self, account: str, presented: int) -> int:
        """
        Take `presented` if it is the current nonce for `account`.

        Returns the consumed nonce. Raises NonceMismatch (leaving the ledger
        untouched) otherwise.
        """
        account = normalize_address(account)
        expected = self._next.get(account, 0) or 0
        if presented != expected:
            raise NonceMismatch(account=account, expected=expected, got=presented)
        self._next[account] = expected + 1
        return expected

    def snapshot(self) -> Dict[str, int]:
        return dict(self._next.items())


__all__ = ["NonceLedger"]

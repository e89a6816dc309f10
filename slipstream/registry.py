"""
Relayer and token allow-lists.

Two independent `address -> bool` maps, seeded at construction and changed
afterwards only through `slipstream.admin.AdminController`. An address that
was never listed reads as `False`.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from core.utils.address import normalize_address

from .journal import Journal, JournaledMap


class RegistryStore:
    def __init__(
        self,
        relayers: Iterable[str] = (),
        tokens: Iterable[str] = (),
        journal: Optional[Journal] = None,
    ) -> None:
        self._journal = journal if journal is not None else Journal()
        self._relayers: JournaledMap[str, bool] = JournaledMap(self._journal)
        self._tokens: JournaledMap[str, bool] = JournaledMap(self._journal)
        for r in relayers:
            self._relayers[normalize_address(r, name="relayer")] = True
        for t in tokens:
            self._tokens[normalize_address(t, name="token")] = True

    # ---- reads ----

    def is_relayer_authorized(self, relayer: str) -> bool:
        return bool(self._relayers.get(normalize_address(relayer, name="relayer"), False))

    def is_token_supported(self, token: str) -> bool:
        return bool(self._tokens.get(normalize_address(token, name="token"), False))

    def authorized_relayers(self) -> List[str]:
        return sorted(a for a, on in self._relayers.items() if on)

    def supported_tokens(self) -> List[str]:
        return sorted(a for a, on in self._tokens.items() if on)

    # ---- writes (AdminController only) ----

    def set_relayer(self, relayer: str, authorized: bool) -> str:
        relayer = normalize_address(relayer, name="relayer")
        self._relayers[relayer] = bool(authorized)
        return relayer

    def set_token(self, token: str, supported: bool) -> str:
        token = normalize_address(token, name="token")
        self._tokens[token] = bool(supported)
        return token


__all__ = ["RegistryStore"]

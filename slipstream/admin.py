"""
Owner-gated mutation of the allow-lists.

A single owner is fixed at construction; there is no ownership transfer or
renounce. Every successful mutation emits a record carrying the new state,
including "no-op" writes of a value that was already set.
"""

from __future__ import annotations

import threading
from typing import Optional

from core.errors import CallerUnauthorized
from core.logging import get_logger
from core.utils.address import normalize_address

from .events import EventSink, NullEventSink, RelayerAuthorizationUpdated, TokenSupportStatusUpdated
from .journal import Journal
from .registry import RegistryStore

log = get_logger("slipstream.admin")


class AdminController:
    def __init__(
        self,
        owner: str,
        registry: RegistryStore,
        *,
        journal: Optional[Journal] = None,
        sink: Optional[EventSink] = None,
        lock: Optional[threading.RLock] = None,
    ) -> None:
        self._owner = normalize_address(owner, name="owner")
        self._registry = registry
        self._journal = journal if journal is not None else Journal()
        self._sink = sink if sink is not None else NullEventSink()
        self._lock = lock if lock is not None else threading.RLock()

    @property
    def owner(self) -> str:
        return self._owner

    def require_owner(self, caller: str, action: str = "") -> None:
        """Raise CallerUnauthorized unless `caller` is the owner."""
        try:
            is_owner = normalize_address(caller, name="caller") == self._owner
        except ValueError:
            is_owner = False
        if not is_owner:
            raise CallerUnauthorized(caller=str(caller), action=action)

    def set_relayer_authorization(self, caller: str, relayer: str, authorized: bool) -> None:
        with self._lock:
            self.require_owner(caller, "set_relayer_authorization")
            with self._journal.atomic():
                relayer = self._registry.set_relayer(relayer, authorized)
                ev = RelayerAuthorizationUpdated(relayer=relayer, is_authorized=bool(authorized))
                self._journal.on_commit(lambda: self._sink.append(ev))
        log.info("relayer authorization updated", extra={"relayer": relayer, "authorized": bool(authorized)})

    def set_token_support(self, caller: str, token: str, supported: bool) -> None:
        with self._lock:
            self.require_owner(caller, "set_token_support")
            with self._journal.atomic():
                token = self._registry.set_token(token, supported)
                ev = TokenSupportStatusUpdated(token=token, is_supported=bool(supported))
                self._journal.on_commit(lambda: self._sink.append(ev))
        log.info("token support updated", extra={"token": token, "supported": bool(supported)})


__all__ = ["AdminController"]

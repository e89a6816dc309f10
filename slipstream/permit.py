"""
slipstream.permit — EIP-2612 capability probe and allowance grant.

Whether a token supports `permit` cannot be known from the token address
alone; it is probed once (does it expose a callable `permit`, and do
`nonces(owner)` and `DOMAIN_SEPARATOR()` answer?) and the answer is cached per
token address for the lifetime of the adapter. The probe never raises: a
token that errors while probed is treated as unsupported.

`grant_allowance` tolerates one specific failure: a permit that someone else
already submitted (front-running the relayer) makes the token reject the
replayed signature, yet the allowance it granted is in place. If the current
allowance covers what the request needs, execution proceeds.
"""

from __future__ import annotations

import threading
from typing import Dict, Optional

from core.errors import AllowanceInsufficient, PermitUnsupported
from core.logging import get_logger
from core.utils.address import ZERO_ADDRESS, normalize_address
from core.utils.bytes import BytesLike, b

from .token import Token

log = get_logger("slipstream.permit")


class PermitAdapter:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._support: Dict[str, bool] = {}

    def check_permit_support(self, address: str, token: Token) -> bool:
        address = normalize_address(address, name="token")
        with self._lock:
            cached = self._support.get(address)
            if cached is not None:
                return cached
            supported = self._probe(address, token)
            self._support[address] = supported
            return supported

    def forget(self, address: Optional[str] = None) -> None:
        """Drop cached probe results (all, or one token's)."""
        with self._lock:
            if address is None:
                self._support.clear()
            else:
                self._support.pop(normalize_address(address, name="token"), None)

    @staticmethod
    def _probe(address: str, token: Token) -> bool:
        if not callable(getattr(token, "permit", None)):
            return False
        try:
            nonce = token.nonces(ZERO_ADDRESS)  # type: ignore[attr-defined]
            separator = token.DOMAIN_SEPARATOR()  # type: ignore[attr-defined]
        except Exception as e:
            log.debug("permit probe failed", extra={"token": address, "error": repr(e)})
            return False
        return isinstance(nonce, int) and not isinstance(nonce, bool) and separator is not None

    def grant_allowance(
        self,
        address: str,
        token: Token,
        owner: str,
        spender: str,
        value: int,
        deadline: int,
        v: int,
        r: BytesLike,
        s: BytesLike,
        *,
        needed: Optional[int] = None,
    ) -> None:
        """
        Submit the holder's permit so that `spender` may pull `needed` (default
        `value`) from `owner`.

        Raises
        ------
        PermitUnsupported
            The token failed the capability probe.
        AllowanceInsufficient
            The token rejected the permit and the existing allowance does not
            cover `needed`. The token's exception is attached as cause.
        """
        if not self.check_permit_support(address, token):
            raise PermitUnsupported(token=normalize_address(address, name="token"))
        needed = value if needed is None else needed
        try:
            token.permit(owner, spender, value, deadline, v, b(r), b(s))  # type: ignore[attr-defined]
        except Exception as e:
            available = token.allowance(owner, spender)
            if available >= needed:
                log.info(
                    "permit rejected but allowance already in place",
                    extra={"token": address, "account": owner, "allowance": available},
                )
                return
            raise AllowanceInsufficient(
                needed=needed, available=available, token=address, reason="permit rejected"
            ).with_cause(e) from e


__all__ = ["PermitAdapter"]

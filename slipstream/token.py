"""
The boundary to the fungible token.

The engine never implements a token; it drives one through the interface
below. Methods take the acting account first, the way contract entrypoints
receive their caller.

Token
    balance_of(account) -> int
    allowance(owner, spender) -> int
    transfer(sender, to, amount) -> bool
    transfer_from(spender, owner, to, amount) -> bool

PermitToken (EIP-2612, optional)
    permit(owner, spender, value, deadline, v, r, s) -> None
    nonces(owner) -> int
    DOMAIN_SEPARATOR() -> bytes

Any exception raised by a token method, or a `False` return from a transfer,
is a token-layer failure; the executor turns it into `TransferFailed` and
rolls the request back. A token that wants its own balance changes rolled
back with the request writes them through the proxy's `Journal`.

Tokens are looked up by address through a `TokenResolver` (a plain mapping
works).
"""

from __future__ import annotations

from typing import Mapping, Protocol, Union, runtime_checkable


@runtime_checkable
class Token(Protocol):
    def balance_of(self, account: str) -> int: ...

    def allowance(self, owner: str, spender: str) -> int: ...

    def transfer(self, sender: str, to: str, amount: int) -> bool: ...

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool: ...


@runtime_checkable
class PermitToken(Token, Protocol):
    def permit(
        self,
        owner: str,
        spender: str,
        value: int,
        deadline: int,
        v: int,
        r: bytes,
        s: bytes,
    ) -> None: ...

    def nonces(self, owner: str) -> int: ...

    def DOMAIN_SEPARATOR(self) -> bytes: ...  # noqa: N802 (EIP-2612 name)


class TokenResolver(Protocol):
    def __call__(self, address: str) -> Token: ...


TokenSource = Union[TokenResolver, Mapping[str, Token]]


__all__ = ["Token", "PermitToken", "TokenResolver", "TokenSource"]

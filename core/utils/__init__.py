"""
Slipstream — core.utils
-----------------------

Small helpers shared by the core packages:

- `bytes`    : hex/bytes helpers, length guards, int <-> big-endian
- `hash`     : keccak256 (Ethereum flavour)
- `address`  : EVM address validation and EIP-55 normalization

Names like `bytes` and `hash` shadow Python builtins if imported directly;
prefer module-qualified access (`from core.utils import hash as hash_utils`).
"""

from __future__ import annotations

__all__ = ["bytes", "hash", "address"]

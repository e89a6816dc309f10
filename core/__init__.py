"""
Slipstream core package.

Ambient plumbing shared by the gasless engine and its tooling: the error
taxonomy, structured logging, layered configuration, version helpers, and
small byte/hash/address utilities. The engine itself lives in `slipstream`.

Only re-exports the version here to keep import-time side effects near zero.
"""

from __future__ import annotations

from .version import __version__

__all__ = ["__version__"]

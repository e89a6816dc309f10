"""
Version helpers for Slipstream.

- Exposes __version__ (PEP 440 compatible).
- Best-effort detection from:
    1) SLIPSTREAM_VERSION env var (authoritative override)
    2) installed distribution metadata ("slipstream-gasless")
    3) fallback DEFAULT_VERSION

This module has **no external dependencies** and is safe to import very early.
"""

from __future__ import annotations

import os
import re
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _dist_version

DEFAULT_VERSION = "0.1.0"
DIST_NAME = "slipstream-gasless"

# Accept tags like v1.2.3 or 1.2.3 (semantic version core)
_SEMVER = re.compile(
    r"^v?(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)(?:[-+.].*)?$"
)


def resolve_version() -> str:
    """
    Determine the version string in priority:
      1) SLIPSTREAM_VERSION environment variable (leading 'v' stripped)
      2) installed distribution metadata
      3) DEFAULT_VERSION
    """
    env = os.getenv("SLIPSTREAM_VERSION")
    if env:
        env = env.strip()
        return env[1:] if _SEMVER.match(env) and env.startswith("v") else env

    try:
        return _dist_version(DIST_NAME)
    except PackageNotFoundError:
        return DEFAULT_VERSION


__version__ = resolve_version()


if __name__ == "__main__":
    print(__version__)

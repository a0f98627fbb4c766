"""
Shared parsing helpers

Provides:
- Strict unsigned decimal parsing for values systemd writes (PIDs, descriptor counts)
- Best-effort env-style parsers with fallback defaults for optional settings
- Colon-separated token splitting for $LISTEN_FDNAMES
"""

from __future__ import annotations

import re

_UNSIGNED_RE = re.compile(r"\+?[0-9]+")


def parse_unsigned(value: str) -> int | None:
    """Parse a plain unsigned decimal, returning None for anything else.

    Accepts an optional leading ``+``; rejects signs, whitespace, underscores
    and non-ASCII digits that ``int()`` would otherwise allow.
    """
    if not _UNSIGNED_RE.fullmatch(value):
        return None
    return int(value)


def parse_float(value: str | None, default: float) -> float:
    """Best-effort float parser with fallback."""
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def split_names(value: str) -> list[str]:
    """Split a colon-separated name list; an empty string has no names."""
    if not value:
        return []
    return value.split(":")

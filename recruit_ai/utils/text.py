"""
Text utilities (small, dependency-free)

Intent
- Tiny helpers shared by the prompt builders and the streaming parser.
- Deterministic behavior only (no randomness, no environment-dependent logic).
"""

from __future__ import annotations

import re
from typing import Iterable, Optional, Tuple


_MULTI_BLANK_RE = re.compile(r"\n[ \t]*\n(?:[ \t]*\n)+")


# ---------------------------------------------------------------------
# Truncation
# ---------------------------------------------------------------------


def safe_truncate(s: str, max_chars: int, suffix: str = "…") -> Tuple[str, bool]:
    """
    Cut `s` to `max_chars` characters and append `suffix` when a cut happened.

    Returns (result, applied). If max_chars <= 0, returns (s, False).
    """
    if not max_chars or max_chars <= 0:
        return s, False
    if len(s) <= max_chars:
        return s, False
    return s[:max_chars] + suffix, True


# ---------------------------------------------------------------------
# Prompt fragments
# ---------------------------------------------------------------------


def join_csv(items: Optional[Iterable[str]], empty: str = "") -> str:
    """Comma-join non-empty items; `empty` when nothing is left."""
    cleaned = [str(i) for i in (items or []) if str(i).strip()]
    return ", ".join(cleaned) if cleaned else empty


def bullet_lines(items: Optional[Iterable[str]], prefix: str = "- ") -> str:
    """One `- item` line per non-empty item."""
    return "\n".join(f"{prefix}{i}" for i in (items or []) if str(i).strip())


def collapse_blank_lines(text: str) -> str:
    """
    Collapse runs of blank lines into a single blank line and trim the ends.
    Used after rendering templates whose optional blocks rendered empty.
    """
    return _MULTI_BLANK_RE.sub("\n\n", text).strip()


# ---------------------------------------------------------------------
# JSON string fragments
# ---------------------------------------------------------------------


def unescape_json_string(s: str) -> str:
    """
    Minimal unescape for a JSON string body captured by a regex:
    `\\n` -> newline, `\\"` -> `"`. Other escapes are left as they are.
    """
    return s.replace("\\n", "\n").replace('\\"', '"')


__all__ = [
    "safe_truncate",
    "join_csv",
    "bullet_lines",
    "collapse_blank_lines",
    "unescape_json_string",
]

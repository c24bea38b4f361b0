"""Name normalisation shared by competencies, skills and aliases."""

from __future__ import annotations

import re

_SEPARATORS = re.compile(r"[._\-]+")
_WHITESPACE = re.compile(r"\s+")


def normalize_name(value: str | None) -> str:
    """Lowercase, trim, turn ``.``/``_``/``-`` into spaces and collapse whitespace.

    >>> normalize_name("  React.JS ")
    'react js'
    """
    if not value:
        return ""
    lowered = str(value).strip().lower()
    spaced = _SEPARATORS.sub(" ", lowered)
    return _WHITESPACE.sub(" ", spaced).strip()


def compact_name(value: str | None) -> str:
    """Normalized name with every space removed (``"react.js"`` -> ``"reactjs"``)."""
    return normalize_name(value).replace(" ", "")

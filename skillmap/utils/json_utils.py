# Fichier : skillmap/utils/json_utils.py

from __future__ import annotations
import json
from typing import Any, Optional

def _strip_code_fences(s: str) -> str:
    """Remove a surrounding ```json ... ``` fence, if any."""
    s = s.strip()
    if not s.startswith("```"):
        return s
    first_newline = s.find("\n")
    body = s[first_newline + 1 :] if first_newline != -1 else s[3:]
    closing = body.rfind("```")
    if closing != -1:
        body = body[:closing]
    return body.strip()

def _extract_balanced_json(s: str) -> Optional[str]:
    """
    Return the first balanced JSON object or array found in ``s``.

    Braces inside string literals are ignored. ``None`` when nothing balances.
    """
    start = next((i for i, ch in enumerate(s) if ch in "{["), None)
    if start is None:
        return None

    opener = s[start]
    closer = "}" if opener == "{" else "]"
    depth = 0
    in_string = False
    escaped = False

    for index in range(start, len(s)):
        char = s[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return s[start : index + 1]
    return None

def safe_json_loads(raw: str) -> Any:
    """
    Parse model output that is supposed to be JSON.

    Falls back to stripping code fences, then to the first balanced JSON
    block. Re-raises the original decoding error when every attempt fails.
    """
    if raw is None:
        raise ValueError("safe_json_loads: input is None")

    text = _strip_code_fences(str(raw))
    try:
        return json.loads(text)
    except json.JSONDecodeError as first_exc:
        candidate = _extract_balanced_json(text)
        if candidate:
            return json.loads(candidate)
        raise first_exc

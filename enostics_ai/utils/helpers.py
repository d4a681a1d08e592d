"""Shared helpers for payload handling and identifiers."""

from __future__ import annotations

import json
import secrets
import string
import time
from datetime import datetime, timezone
from typing import Any

_ID_ALPHABET = string.digits + string.ascii_lowercase


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_id(prefix: str) -> str:
    """Return ``<prefix>_<epoch-ms>_<9 random base36 chars>``."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


def serialize_payload(payload: Any) -> str:
    """Compact JSON text of a payload, used by keyword and size heuristics."""
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"), default=str)


def _balanced_end(text: str, start: int) -> int:
    """Index one past the brace closing ``text[start]``, or -1."""
    depth = 0
    in_string = False
    escaped = False
    for idx in range(start, len(text)):
        char = text[idx]
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
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return idx + 1
    return -1


def extract_json_object(text: str) -> dict[str, Any] | None:
    """
    Best-effort extraction of the first JSON object embedded in free text.

    Generative providers often wrap the requested JSON in prose or code
    fences. Each ``{`` is tried in order, including ones after an unclosed
    brace; the first balanced block that parses as a JSON object wins.
    Returns None when nothing parses.
    """
    raw = text or ""
    pos = raw.find("{")
    while pos != -1:
        end = _balanced_end(raw, pos)
        parsed = None
        if end != -1:
            try:
                parsed = json.loads(raw[pos:end])
            except json.JSONDecodeError:
                parsed = None
        if isinstance(parsed, dict):
            return parsed
        pos = raw.find("{", pos + 1)
    return None


def iter_leaves(value: Any, path: str = ""):
    """Yield ``(dotted_path, leaf_value)`` pairs of a JSON document."""
    if isinstance(value, dict):
        if not value:
            yield path, value
        for key, child in value.items():
            child_path = f"{path}.{key}" if path else str(key)
            yield from iter_leaves(child, child_path)
    elif isinstance(value, list):
        if not value:
            yield path, value
        for idx, child in enumerate(value):
            yield from iter_leaves(child, f"{path}[{idx}]")
    else:
        yield path, value


def nesting_depth(value: Any) -> int:
    if isinstance(value, dict):
        return 1 + max((nesting_depth(v) for v in value.values()), default=0)
    if isinstance(value, list):
        return 1 + max((nesting_depth(v) for v in value), default=0)
    return 0

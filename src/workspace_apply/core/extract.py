"""Staged JSON extraction from free-form model output.

Model replies often wrap the JSON they were asked for in prose or Markdown
fences. Extraction runs three pure stages in order and returns the first
value that decodes:

1. ``parse_strict``   - the whole text is JSON
2. ``parse_fenced``   - a fenced code block (```json ... ```) holds JSON
3. ``parse_balanced`` - a balanced ``{...}`` / ``[...]`` span holds JSON

Nothing here is trusted: operations extracted from text are plain dicts and
are validated again by the batch orchestrator before touching disk.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from typing import Any

_FENCE = re.compile(r"```[ \t]*([A-Za-z0-9_+-]*)[ \t]*\r?\n(.*?)```", re.DOTALL)
_OPENERS = {"{": "}", "[": "]"}


def parse_strict(text: str) -> Any | None:
    """Decode ``text`` as a single JSON document."""
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None


def parse_fenced(text: str) -> Any | None:
    """Decode the first fenced code block that contains valid JSON.

    Blocks tagged ``json`` are tried before untagged or differently tagged ones.
    """
    blocks = _FENCE.findall(text)
    ordered = sorted(blocks, key=lambda block: block[0].lower() != "json")
    for _lang, body in ordered:
        value = parse_strict(body.strip())
        if value is not None:
            return value
    return None


def _balanced_end(text: str, start: int) -> int:
    """Return the index closing the bracket at ``start``, or -1."""
    stack = [_OPENERS[text[start]]]
    in_string = False
    escaped = False
    for i in range(start + 1, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in _OPENERS:
            stack.append(_OPENERS[ch])
        elif ch in ("}", "]"):
            if ch != stack.pop():
                return -1
            if not stack:
                return i
    return -1


def parse_balanced(text: str) -> Any | None:
    """Decode the first balanced object or array span found in ``text``."""
    for start, ch in enumerate(text):
        if ch not in _OPENERS:
            continue
        end = _balanced_end(text, start)
        if end == -1:
            continue
        value = parse_strict(text[start : end + 1])
        if value is not None:
            return value
    return None


STAGES: tuple[Callable[[str], Any | None], ...] = (
    parse_strict,
    parse_fenced,
    parse_balanced,
)


def extract_json(text: str) -> Any | None:
    """Run every stage in order and return the first decoded value."""
    if not text or not text.strip():
        return None
    for stage in STAGES:
        value = stage(text)
        if value is not None:
            return value
    return None


def _operations_from(value: Any) -> list[Any] | None:
    if isinstance(value, list):
        return list(value)
    if not isinstance(value, dict):
        return None
    if isinstance(value.get("operations"), list):
        return _operations_from(value["operations"])
    args = value.get("args", value.get("arguments"))
    if isinstance(args, str):
        args = parse_strict(args)
    if isinstance(args, dict):
        return _operations_from(args)
    return None


def extract_operations(text: str) -> list[Any]:
    """Find a list of raw file operations in model output.

    Accepts a bare list, ``{"operations": [...]}``, or a tool wrapper
    ``{"tool": ..., "args": {"operations": [...]}}`` (``args`` may itself be a
    JSON string).

    Returns:
        Raw operations, or an empty list if none were found. Items that are
        not objects are kept so the orchestrator reports them as failed
    """
    operations = _operations_from(extract_json(text))
    return operations or []

"""Text extraction from decoded completion payloads.

The completion service fronts many backend models and their response shapes drift. All
knowledge of those shapes lives here behind :func:`extract_text`; callers only ever see text.
"""

from __future__ import annotations

import re
from typing import Any

_ALT_FIELDS = ("result", "response", "message", "completion", "text")
_DIAGNOSTIC_KEY_RE = re.compile(r"error|trace|stack|warning", re.IGNORECASE)
_MIN_LEAF_CHARS = 8


def _to_text(value: Any) -> str:
    """Flatten a content value (string, content-part list, or ``{text|content}`` dict)."""

    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return "".join(_to_text(part) for part in value)
    if isinstance(value, dict):
        for key in ("text", "content"):
            inner = value.get(key)
            if isinstance(inner, str):
                return inner
        return ""
    return str(value)


def _from_choices(data: dict[str, Any]) -> str:
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    parts: list[str] = []
    for choice in choices:
        if not isinstance(choice, dict):
            continue
        msg = choice.get("message") or choice.get("delta") or choice
        parts.append(_to_text(msg.get("content") if isinstance(msg, dict) else None))
    return "".join(parts).strip()


def _from_output_array(data: dict[str, Any]) -> str:
    items = data.get("o")
    if not isinstance(items, list) or not items:
        return ""
    parts: list[str] = []
    for item in items:
        if not isinstance(item, dict):
            parts.append(_to_text(item))
            continue
        value = item.get("content") or item.get("text") or item.get("response")
        if value is None and isinstance(item.get("choices"), list) and item["choices"]:
            first = item["choices"][0]
            value = (first.get("message") or {}).get("content") if isinstance(first, dict) else None
        parts.append(_to_text(value))
    return "".join(parts).strip()


def _from_known_fields(data: Any) -> str:
    if not isinstance(data, dict):
        return ""

    text = _from_choices(data)
    if text:
        return text

    if data.get("output_text"):
        text = _to_text(data["output_text"]).strip()
        if text:
            return text

    text = _from_output_array(data)
    if text:
        return text

    for key in _ALT_FIELDS:
        if data.get(key):
            text = _to_text(data[key]).strip()
            if text:
                return text
    return ""


def _longest_leaf(data: Any) -> str:
    candidates: list[str] = []

    def walk(node: Any) -> None:
        if node is None:
            return
        if isinstance(node, str):
            s = node.strip()
            if len(s) >= _MIN_LEAF_CHARS:
                candidates.append(s)
            return
        if isinstance(node, list):
            for item in node:
                walk(item)
            return
        if isinstance(node, dict):
            for key, value in node.items():
                if _DIAGNOSTIC_KEY_RE.search(str(key)):
                    continue
                walk(value)

    walk(data)
    return max(candidates, key=len) if candidates else ""


def extract_text(payload: Any) -> str:
    """Extract the generated text from a decoded response payload.

    Tiers, first non-empty wins:

    1. ``choices[].message.content`` / ``choices[].delta.content``, merged across all choices
       (plus the ``o[]`` array some routers emit).
    2. A single alternate field: ``output_text``, ``result``, ``response``, ``message``,
       ``completion``, ``text``.
    3. The longest string leaf of at least 8 chars found depth-first, skipping keys that look
       diagnostic (``error``, ``trace``, ``stack``, ``warning``).

    Returns:
        Stripped text, or ``""`` when nothing usable exists.
    """

    if isinstance(payload, str):
        return payload.strip()
    primary = _from_known_fields(payload)
    if primary:
        return primary
    return _longest_leaf(payload).strip()

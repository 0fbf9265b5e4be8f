"""Sensitive-payload guard.

Persisted source summaries can, under an upstream decryption bug, still hold Fernet-style
ciphertext (``gAAAAA...``). Such values must never reach a prompt or a returned draft, so the
guard runs at three boundaries:

* user-supplied free text before prompt interpolation (:func:`redact_ciphertext`),
* every model response (:func:`ensure_not_ciphertext` with ``stage="response"``),
* the final text right before it leaves the package.
"""

from __future__ import annotations

import re
from typing import Any, Mapping

from draftsmith.errors import ModelReturnedCiphertext
from draftsmith.logging import get_logger

logger = get_logger(__name__)

REDACTION_MARKER = "[REDACTED_CIPHERTEXT]"

_TOKEN_MIN_LEN = 80
_WHOLE_TOKEN_RE = re.compile(r"^gAAAAA[A-Za-z0-9_-]+={0,2}$")
_EMBEDDED_TOKEN_RE = re.compile(r"\bgAAAAA[A-Za-z0-9_-]{60,}={0,2}")


def looks_like_ciphertext(value: str | None) -> bool:
    """Whether ``value`` as a whole has the shape of an encrypted token."""

    if not value:
        return False
    t = value.strip()
    return len(t) > _TOKEN_MIN_LEN and bool(_WHOLE_TOKEN_RE.match(t))


def redact_ciphertext(value: str | None) -> str:
    """Neutralize ciphertext in a free-text field.

    A field that is wholly a token is blanked; tokens embedded in other text are replaced by
    :data:`REDACTION_MARKER`.
    """

    if not value:
        return ""
    if looks_like_ciphertext(value):
        logger.warning("Blanked ciphertext-shaped field", extra={"length": len(value)})
        return ""
    redacted, n = _EMBEDDED_TOKEN_RE.subn(REDACTION_MARKER, value)
    if n:
        logger.warning("Redacted embedded ciphertext", extra={"count": n})
    return redacted


def redact_fields(fields: Mapping[str, str | None]) -> dict[str, str]:
    """Apply :func:`redact_ciphertext` to every value of a mapping."""

    return {k: redact_ciphertext(v) for k, v in fields.items()}


def redact_mapping(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Redact the strings of a loosely typed payload (top-level values and list items).

    A value or list item that redaction blanks is dropped, so it reads as absent rather than
    as an empty string.
    """

    out: dict[str, Any] = {}
    for key, value in raw.items():
        if isinstance(value, str):
            cleaned = redact_ciphertext(value)
            if value.strip() and not cleaned:
                continue
            out[key] = cleaned
        elif isinstance(value, (list, tuple)):
            kept: list[Any] = []
            for item in value:
                if isinstance(item, str):
                    cleaned = redact_ciphertext(item)
                    if item.strip() and not cleaned:
                        continue
                    item = cleaned
                kept.append(item)
            out[key] = kept
        else:
            out[key] = value
    return out


def ensure_not_ciphertext(text: str, *, stage: str) -> str:
    """Return ``text`` unchanged, or raise if it is wholly ciphertext-shaped.

    Raises:
        ModelReturnedCiphertext: ``text`` matches the token shape.
    """

    if looks_like_ciphertext(text):
        logger.error("Ciphertext-shaped text blocked", extra={"boundary": stage, "head": text.strip()[:12]})
        raise ModelReturnedCiphertext(
            f"Ciphertext-shaped text detected at {stage}; check source-summary decryption."
        )
    return text

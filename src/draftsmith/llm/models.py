"""UI mode string → completion-service model slug."""

from __future__ import annotations

import re

from draftsmith.config import Settings
from draftsmith.logging import get_logger

logger = get_logger(__name__)

_STRIP_RE = re.compile(r"[\s()（）【】\[\]＋+點-]")

# Checked in order; the first matching pattern wins.
_MODE_TABLE: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"gpt4\.?1mini"), "openai/gpt-4.1-mini"),
    (re.compile(r"gpt4\.?1"), "openai/gpt-4.1"),
    (re.compile(r"gpt4omini"), "openai/gpt-4o-mini"),
    (re.compile(r"gpt4o"), "openai/gpt-4o"),
    (re.compile(r"claude.*sonnet|sonnet"), "anthropic/claude-3.5-sonnet"),
)


def normalize_mode(mode: str | None) -> str:
    """Lower-case and drop whitespace, brackets, plus signs and dashes (``GPT-4o Mini`` → ``gpt4omini``)."""

    return _STRIP_RE.sub("", (mode or "").lower())


def resolve_model(mode: str | None, settings: Settings) -> str:
    """Map a mode string to a model slug; empty or unknown modes use ``settings.llm_model``.

    A value that already looks like a slug (``vendor/model``) is passed through.
    """

    raw = (mode or "").strip()
    if "/" in raw:
        return raw

    norm = normalize_mode(raw)
    if norm:
        for pattern, slug in _MODE_TABLE:
            if pattern.search(norm):
                return slug
        logger.info("Unknown model mode, using default", extra={"mode": raw})
    return settings.llm_model

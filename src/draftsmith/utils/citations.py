"""Citation-shaped substring detection and stripping."""

from __future__ import annotations

import re

# (Smith, 2021) / (Smith et al., 2021) / (Sagar Badjate, 2024) / (Smith & Lee, 2020)
_APA_RE = re.compile(
    r"\(\s*[A-Z][A-Za-z'\-]+(?:\s+[A-Z][A-Za-z'\-]+){0,2}"
    r"(?:\s*(?:&|and)\s*[A-Z][A-Za-z'\-]+)?"
    r"(?:\s+et\s+al\.)?\s*,\s*\d{4}[a-z]?\s*\)"
)
# （王小明，2021） / （王小明等，2021）
_CJK_RE = re.compile(r"（\s*[^（）]{1,30}[，,]\s*\d{4}[a-z]?\s*）")
# [1] / [2-4] / [1, 3]
_NUMERIC_RE = re.compile(r"\[\s*\d+(?:\s*[-–,]\s*\d+)*\s*\]")

_PATTERNS = (_APA_RE, _CJK_RE, _NUMERIC_RE)


def find_citations(text: str) -> list[str]:
    """Return citation-shaped substrings in order of appearance.

    Args:
        text: Candidate prose.

    Returns:
        Matched substrings such as ``(Smith, 2021)`` or ``[3]``.
    """

    hits: list[tuple[int, str]] = []
    for pattern in _PATTERNS:
        hits.extend((m.start(), m.group(0)) for m in pattern.finditer(text or ""))
    return [h for _, h in sorted(hits)]


def has_citation(text: str) -> bool:
    return any(p.search(text or "") for p in _PATTERNS)


def strip_citations(text: str) -> str:
    """Remove citation-shaped substrings and tidy the whitespace they leave behind."""

    if not text:
        return text

    s = text
    for pattern in _PATTERNS:
        s = pattern.sub("", s)
    s = re.sub(r"[ \t]{2,}", " ", s)
    s = re.sub(r"[ \t]+([,.;:!?，。；：])", r"\1", s)
    return s.strip()

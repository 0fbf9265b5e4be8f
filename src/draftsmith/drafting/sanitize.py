"""Post-processing of model output before validation."""

from __future__ import annotations

import re

from draftsmith.models.outline import SectionRole
from draftsmith.models.spec import ParagraphSpec
from draftsmith.utils.citations import strip_citations

# Boilerplate the models prepend or append to a draft.
_META_PATTERNS = (
    re.compile(r"✨\s*generated content", re.IGNORECASE),
    re.compile(r"^⚠️.*$", re.MULTILINE),
    re.compile(r"無法續寫[^\n]*"),
    re.compile(r"請貼上原文段落[^\n]*"),
    re.compile(r"若原文一時無法提供[^\n]*"),
    re.compile(r"本段亦補充[^\n]*"),
    re.compile(r"^\s*Here(?: is|'s) (?:the|an?)\s+(?:\w+\s+)?(?:paragraph|draft|section)[^:\n]*:\s*", re.IGNORECASE | re.MULTILINE),
    re.compile(r"^\s*(?:Sure|Of course|Certainly)[,!.]\s*", re.IGNORECASE),
)
_META_LINE_RE = re.compile(r"^\s*(?:無法續寫|請貼上|若原文|本段亦補充|✨|⚠️)")

_CONCLUSION_OPENER_RE = re.compile(
    r"^\s*(?:In conclusion|To conclude|Overall|In summary|To summarize|In closing|To sum up|In brief|To wrap up)\b[:,]?\s*",
    re.IGNORECASE,
)
_INTRO_LABEL_RE = re.compile(r"\b(?:Hook|Background|Thesis)\s*[:：]\s*", re.IGNORECASE)
_BR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_INLINE_BULLET_RE = re.compile(r"\s*•\s*")


def strip_meta(text: str) -> str:
    """Remove apologetic preambles, "cannot continue" notices and similar boilerplate."""

    s = text or ""
    for pattern in _META_PATTERNS:
        s = pattern.sub("", s)
    lines = [ln for ln in s.split("\n") if not _META_LINE_RE.match(ln)]
    return "\n".join(lines).strip()


def strip_conclusion_opener(text: str) -> str:
    """Drop a leading "In conclusion,"-style transition; the next letter is re-capitalised."""

    stripped = _CONCLUSION_OPENER_RE.sub("", text or "", count=1)
    if stripped != text and stripped[:1].islower():
        stripped = stripped[0].upper() + stripped[1:]
    return stripped


def collapse_newlines(text: str) -> str:
    return re.sub(r"\s*\n\s*", " ", text or "").strip()


def collapse_inner_newlines(text: str) -> str:
    """Join lines inside each paragraph while keeping blank-line paragraph breaks."""

    paragraphs = [p for p in re.split(r"\n\s*\n", (text or "").strip()) if p.strip()]
    return "\n\n".join(collapse_newlines(p) for p in paragraphs)


def normalize_intro(text: str) -> str:
    """Flatten an introduction: no structure labels, no closing phrase, one paragraph."""

    s = _INTRO_LABEL_RE.sub("", text or "")
    s = re.sub(r"\bIn conclusion,\s*", "", s, flags=re.IGNORECASE)
    s = collapse_newlines(s)
    s = re.sub(r" {2,}", " ", s)
    s = s.replace(",,", ", ").replace("。。", "。")
    return s.strip()


def sanitize_output(
    text: str, spec: ParagraphSpec, *, citations_allowed: bool, role: SectionRole | None = None
) -> str:
    """Clean a spec-path reply so validation judges the prose, not the wrapping.

    A leading "In conclusion,"-style opener is kept only in a conclusion section; without a
    known role the paragraph type decides.
    """

    s = strip_meta(text)
    is_conclusion = role is SectionRole.CONCLUSION if role is not None else spec.paragraph_type == "conclusion"
    if not is_conclusion:
        s = strip_conclusion_opener(s)
    s = _BR_RE.sub(" ", s)
    s = _INLINE_BULLET_RE.sub(" ", s) if not spec.allow_bullets else s
    if spec.single_paragraph_only:
        s = collapse_newlines(s)
    elif not spec.allow_line_breaks:
        s = collapse_inner_newlines(s)
    if not citations_allowed:
        s = strip_citations(s)
    return re.sub(r"[ \t]{2,}", " ", s).strip()

"""Outline text ⇄ section tuple, and the pure structuring steps.

Every step takes a tuple of frozen :class:`OutlineSection` and returns a new tuple; nothing is
mutated in place. Text format::

    1. Introduction (≈ 140 words)
    - Primary claim
      a. Sub-point
    > Note: why this section exists

Chinese-style outlines use ``一、 引言（約 140 字）`` headers and a ``> 說明：`` rationale line.
"""

from __future__ import annotations

import re
from typing import Sequence

from draftsmith.guard import redact_ciphertext
from draftsmith.models.outline import OutlineSection, SectionRole
from draftsmith.utils.language import from_zh_numeral, is_cjk_language, to_zh_numeral

Sections = tuple[OutlineSection, ...]

# Headers are unindented; roman numerals are upper-case only so "a." sub-points never match.
HEADER_RE = re.compile(r"^((?:[一二三四五六七八九十]+、)|(?:[IVXLCDM]+\.)|(?:\d+\.))\s*(.+)$")
BUDGET_SUFFIX_RE = re.compile(r"\s*(?:（約\s*\d+\s*字）|\(≈\s*\d+\s*words\))\s*$", re.IGNORECASE)

_ALT_HEADER_RE = re.compile(r"^(?:[—–•]|#{1,6})\s*(.+)$")
_BOLD_RE = re.compile(r"^\*\*(.+?)\*\*:?$")
_BULLET_RE = re.compile(r"^[-•*]\s+(.*)$")
_SUBPOINT_RE = re.compile(r"^\s*([a-z])[.)]\s+(.*)$")
_RATIONALE_RE = re.compile(r"^\s*>")
_TRAILING_PUNCT_RE = re.compile(r"[，。,.!！？?；;：:\s]+$")
_KEY_STRIP_RE = re.compile(r"[\W_]+", re.UNICODE)
_ROMAN = {"I": 1, "V": 5, "X": 10, "L": 50, "C": 100, "D": 500, "M": 1000}

MAX_BULLETS = 5
MAX_SUBPOINTS = 2


def is_zh_style(language: str) -> bool:
    return is_cjk_language(language)


def placeholder_bullet(language: str) -> str:
    return "- （請補充要點）" if is_zh_style(language) else "- (add key points)"


def _label(role: SectionRole, body_no: int, language: str) -> str:
    zh = is_zh_style(language)
    if role is SectionRole.INTRODUCTION:
        return "引言" if zh else "Introduction"
    if role is SectionRole.CONCLUSION:
        return "結論" if zh else "Conclusion"
    return f"主體段{to_zh_numeral(body_no)}" if zh else f"Body Paragraph {body_no}"


def marker_for(index: int, language: str) -> str:
    return f"{to_zh_numeral(index)}、" if is_zh_style(language) else f"{index}."


def marker_ordinal(marker: str) -> int | None:
    """Numeric value of a header marker (``3.``, ``III.``, ``三、``)."""

    core = marker.rstrip(".、")
    if core.isdigit():
        return int(core)
    if core and all(ch in _ROMAN for ch in core):
        total = 0
        for i, ch in enumerate(core):
            value = _ROMAN[ch]
            if i + 1 < len(core) and _ROMAN[core[i + 1]] > value:
                total -= value
            else:
                total += value
        return total
    return from_zh_numeral(core)


def role_for(position: int, count: int) -> SectionRole:
    """Role by position: first is the introduction, last the conclusion."""

    if position == 0 or count == 1:
        return SectionRole.INTRODUCTION
    if position == count - 1:
        return SectionRole.CONCLUSION
    return SectionRole.BODY


def _reindex(sections: Sequence[OutlineSection]) -> Sections:
    n = len(sections)
    return tuple(
        s.model_copy(update={"index": i + 1, "role": role_for(i, n)}) for i, s in enumerate(sections)
    )


# --------------------------------------------------------------------------- text level


def normalize_headers(text: str, language: str) -> str:
    """Canonicalize header lines and drop blank lines.

    Canonical headers get single-space marker spacing; dash/bullet-style (``— Title``) and
    markdown (``## Title``) headers become ordinal headers using a running counter.
    """

    out: list[str] = []
    counter = 0
    for raw in (text or "").splitlines():
        line = raw.rstrip()
        if not line.strip():
            continue
        if line[0].isspace():
            out.append(line)
            continue

        bold = _BOLD_RE.match(line)
        if bold:
            line = bold.group(1).strip()

        m = HEADER_RE.match(line)
        if m:
            counter = marker_ordinal(m.group(1)) or counter + 1
            out.append(f"{m.group(1)} {m.group(2).strip()}")
            continue

        if line.startswith("- ") or _RATIONALE_RE.match(line):
            out.append(line)
            continue

        alt = _ALT_HEADER_RE.match(line)
        if alt and alt.group(1).strip():
            counter += 1
            out.append(f"{marker_for(counter, language)} {alt.group(1).strip()}")
            continue

        out.append(line)
    return "\n".join(out)


def parse_sections(text: str) -> Sections:
    """Split outline text into sections.

    Lines before the first header form an implicit introduction only when they hold bullets;
    otherwise they are preamble and are dropped. Budget suffixes are read into ``word_budget``.
    """

    drafts: list[tuple[str, list[str]]] = []
    preamble: list[str] = []
    for raw in (text or "").splitlines():
        line = raw.rstrip()
        m = HEADER_RE.match(line)
        if m:
            drafts.append((m.group(2).strip(), []))
            continue
        if not line.strip():
            continue
        if drafts:
            drafts[-1][1].append(line)
        else:
            preamble.append(line)

    if any(_BULLET_RE.match(p.strip()) for p in preamble):
        drafts.insert(0, ("", preamble))

    n = len(drafts)
    sections: list[OutlineSection] = []
    for i, (title, body) in enumerate(drafts):
        budget = 0
        suffix = BUDGET_SUFFIX_RE.search(title)
        if suffix:
            digits = re.search(r"\d+", suffix.group(0))
            budget = int(digits.group(0)) if digits else 0
            title = title[: suffix.start()].rstrip()
        sections.append(
            OutlineSection(
                index=i + 1,
                role=role_for(i, n),
                title=title,
                bullet_lines=tuple(body),
                word_budget=budget,
            )
        )
    return tuple(sections)


def budget_suffix(budget: int, language: str) -> str:
    return f"（約 {budget} 字）" if is_zh_style(language) else f" (≈ {budget} words)"


def render_header(section: OutlineSection, language: str) -> str:
    head = f"{marker_for(section.index, language)} {section.title}"
    if section.word_budget:
        head += budget_suffix(section.word_budget, language)
    return head


def render_section(section: OutlineSection, language: str) -> str:
    return "\n".join([render_header(section, language), *section.bullet_lines])


def render_outline(sections: Sequence[OutlineSection], language: str) -> str:
    """Sections joined by one blank line."""

    return "\n\n".join(render_section(s, language) for s in sections)


# --------------------------------------------------------------------------- section level


def _placeholder_section(role: SectionRole, language: str) -> OutlineSection:
    return OutlineSection(index=1, role=role, title="", bullet_lines=(placeholder_bullet(language),))


def ensure_min_sections(sections: Sequence[OutlineSection], language: str, desired_bodies: int) -> Sections:
    """Pad to ``max(1, desired_bodies) + 2`` sections.

    With two or more sections, placeholder bodies go before the last section; with fewer, the
    missing introduction/bodies are appended followed by a placeholder conclusion.
    """

    target = max(1, desired_bodies) + 2
    secs = list(sections)
    if len(secs) >= target:
        return _reindex(secs)

    if len(secs) >= 2:
        last = secs.pop()
        while len(secs) < target - 1:
            secs.append(_placeholder_section(SectionRole.BODY, language))
        secs.append(last)
    else:
        if not secs:
            secs.append(_placeholder_section(SectionRole.INTRODUCTION, language))
        while len(secs) < target - 1:
            secs.append(_placeholder_section(SectionRole.BODY, language))
        secs.append(_placeholder_section(SectionRole.CONCLUSION, language))
    return _reindex(secs)


def normalize_roles(sections: Sequence[OutlineSection], language: str) -> Sections:
    """Positional titles: Introduction, Body Paragraph 1..N, Conclusion. Bullets untouched."""

    out: list[OutlineSection] = []
    body_no = 0
    n = len(sections)
    for i, s in enumerate(sections):
        role = role_for(i, n)
        if role is SectionRole.BODY:
            body_no += 1
        out.append(s.model_copy(update={"index": i + 1, "role": role, "title": _label(role, body_no, language)}))
    return tuple(out)


def attach_body_subtitles(
    sections: Sequence[OutlineSection], language: str, subtitles: Sequence[str] | None
) -> Sections:
    """Append caller subtitles to body titles in order (``Body Paragraph 1: Light reactions``).

    Ciphertext in a subtitle is redacted; a subtitle left blank is skipped and the body keeps
    its plain title.
    """

    if not subtitles:
        return tuple(sections)
    zh = is_zh_style(language)
    out: list[OutlineSection] = []
    body_no = 0
    for s in sections:
        if s.role is SectionRole.BODY:
            custom = redact_ciphertext(subtitles[body_no] if body_no < len(subtitles) else "").strip()
            body_no += 1
            if custom:
                compact = re.sub(r"\s+", "", s.title)
                title = f"{compact}：{custom}" if zh else f"{s.title}: {custom}"
                s = s.model_copy(update={"title": title})
        out.append(s)
    return tuple(out)


def _split_rationale(lines: Sequence[str]) -> tuple[list[str], list[str]]:
    body = [ln for ln in lines if not _RATIONALE_RE.match(ln)]
    rationale = [ln for ln in lines if _RATIONALE_RE.match(ln)]
    return body, rationale


def clip_bodies(sections: Sequence[OutlineSection], desired_bodies: int) -> Sections:
    """Merge overflow body sections into the last retained body; its rationale line stays last."""

    if len(sections) < 3:
        return tuple(sections)
    intro, bodies, concl = sections[0], list(sections[1:-1]), sections[-1]
    keep = max(1, desired_bodies)
    if len(bodies) <= keep:
        return tuple(sections)

    kept, extra = bodies[:keep], bodies[keep:]
    merged, rationale = _split_rationale(kept[-1].bullet_lines)
    for sec in extra:
        pure, _ = _split_rationale(sec.bullet_lines)
        merged.extend(pure)
    kept[-1] = kept[-1].model_copy(update={"bullet_lines": tuple(merged + rationale[:1])})
    return _reindex([intro, *kept, concl])


def _bullet_core(text: str) -> str:
    return _TRAILING_PUNCT_RE.sub("", text.strip())


def dedup_key(text: str) -> str:
    return _KEY_STRIP_RE.sub("", _bullet_core(text).lower())


def is_placeholder(core: str) -> bool:
    return core.startswith(("(", "（"))


def _sanitize_lines(lines: Sequence[str], language: str) -> list[str]:
    zh = is_zh_style(language)
    min_len, max_len = (6, 60) if zh else (8, 120)

    rationale = next((ln.strip() for ln in lines if _RATIONALE_RE.match(ln)), None)
    kept: list[tuple[str, list[str]]] = []
    seen: set[str] = set()
    current: list[str] | None = None

    for ln in lines:
        if _RATIONALE_RE.match(ln):
            current = None
            continue
        sub = _SUBPOINT_RE.match(ln)
        if sub and ln[:1].isspace():
            if current is not None and len(current) < MAX_SUBPOINTS:
                current.append(f"  {sub.group(1)}. {sub.group(2).strip()}")
            continue
        bullet = _BULLET_RE.match(ln.strip())
        if not bullet:
            current = None
            continue
        core = _bullet_core(bullet.group(1))
        key = dedup_key(core)
        if is_placeholder(core) or not (min_len <= len(core) <= max_len) or not key or key in seen:
            current = None
            continue
        if len(kept) >= MAX_BULLETS:
            current = None
            continue
        seen.add(key)
        current = []
        kept.append((f"- {bullet.group(1).strip()}", current))

    if not kept:
        return [placeholder_bullet(language), *([rationale] if rationale else [])]
    out: list[str] = []
    for primary, subs in kept:
        out.append(primary)
        out.extend(subs)
    if rationale:
        out.append(rationale)
    return out


def sanitize_bullets(sections: Sequence[OutlineSection], language: str) -> Sections:
    """Keep bullet-shaped lines within length bounds, deduplicated, capped at five per section.

    Each surviving primary bullet keeps up to two indented sub-points; orphan sub-points and
    prose lines are dropped. A section left empty gets one placeholder bullet. Idempotent.
    """

    return tuple(
        s.model_copy(update={"bullet_lines": tuple(_sanitize_lines(s.bullet_lines, language))})
        for s in sections
    )


def has_real_bullets(section: OutlineSection) -> bool:
    """Whether a section holds at least one non-placeholder primary bullet."""

    for ln in section.bullet_lines:
        m = _BULLET_RE.match(ln.strip()) if not ln[:1].isspace() else None
        if m and not is_placeholder(_bullet_core(m.group(1))):
            return True
    return False


def primary_bullets(section: OutlineSection) -> list[str]:
    return [ln.strip() for ln in section.bullet_lines if not ln[:1].isspace() and ln.startswith("- ")]


def rationale_line(section: OutlineSection) -> str | None:
    return next((ln.strip() for ln in section.bullet_lines if _RATIONALE_RE.match(ln)), None)


def structure_outline(
    raw_text: str,
    language: str,
    desired_bodies: int,
    subtitles: Sequence[str] | None = None,
) -> Sections:
    """Run the deterministic steps: headers, parse, floor, roles, subtitles, clip, sanitize."""

    sections = parse_sections(normalize_headers(raw_text, language))
    sections = ensure_min_sections(sections, language, desired_bodies)
    sections = normalize_roles(sections, language)
    sections = attach_body_subtitles(sections, language, subtitles)
    sections = clip_bodies(sections, desired_bodies)
    return sanitize_bullets(sections, language)

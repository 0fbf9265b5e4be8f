"""Sort an introduction's outline bullets into hook / background / thesis.

Items are classified in three passes:

1. explicit tags (``Hook:``, ``Background:``, ``Thesis:`` and their Chinese labels),
2. keyword scoring of untagged items, accepted only with a unique best score,
3. position for what is still ambiguous: the first untagged item is the hook, the last the
   thesis, the rest background. An item whose positional slot is already filled lands in
   an unclassified bucket.

Unclassified items are redistributed by priority (thesis, background, hook) into the first
empty bucket, else into background. No item is dropped.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

from draftsmith.outline.structure import HEADER_RE, is_placeholder


class PointKind(str, Enum):
    HOOK = "hook"
    BACKGROUND = "background"
    THESIS = "thesis"


@dataclass(frozen=True)
class IntroItem:
    text: str
    tag: PointKind | None = None


@dataclass
class IntroPoints:
    hook: list[str] = field(default_factory=list)
    background: list[str] = field(default_factory=list)
    thesis: list[str] = field(default_factory=list)

    def bucket(self, kind: PointKind) -> list[str]:
        return getattr(self, kind.value)

    def is_empty(self) -> bool:
        return not (self.hook or self.background or self.thesis)


_TAG_RE = re.compile(
    r"^\s*(?:[-•*]\s*)?(?:\*\*)?(Hook|Background|Thesis|引言鉤子|鉤子|背景|論點|論題)(?:\*\*)?\s*[:：]\s*(.*)$",
    re.IGNORECASE,
)
_TAG_KINDS = {
    "hook": PointKind.HOOK,
    "鉤子": PointKind.HOOK,
    "引言鉤子": PointKind.HOOK,
    "background": PointKind.BACKGROUND,
    "背景": PointKind.BACKGROUND,
    "thesis": PointKind.THESIS,
    "論點": PointKind.THESIS,
    "論題": PointKind.THESIS,
}
_BULLET_RE = re.compile(r"^\s*[-•*]\s+(.*)$")
_SUBPOINT_RE = re.compile(r"^\s+[a-z][.)]\s+(.*)$")

_KEYWORDS: dict[PointKind, tuple[str, ...]] = {
    PointKind.HOOK: (
        "?",
        "？",
        "imagine",
        "did you know",
        "surprising",
        "striking",
        "statistic",
        "%",
        "quote",
        "anecdote",
        "question",
        "想像",
        "驚人",
    ),
    PointKind.BACKGROUND: (
        "background",
        "context",
        "history",
        "define",
        "definition",
        "overview",
        "concept",
        "refers to",
        "origin",
        "定義",
        "背景",
        "歷史",
        "概念",
    ),
    PointKind.THESIS: (
        "thesis",
        "this essay",
        "this paper",
        "this report",
        "argue",
        "will examine",
        "will explore",
        "aim",
        "purpose",
        "scope",
        "structure of",
        "本文",
        "論點",
        "目的",
    ),
}


def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    # English keywords must start a word ("aim" but not "claim"); CJK and symbols match anywhere.
    if keyword[:1].isascii() and keyword[:1].isalpha():
        return re.compile(rf"\b{re.escape(keyword)}")
    return re.compile(re.escape(keyword))


_KEYWORD_PATTERNS: dict[PointKind, tuple[re.Pattern[str], ...]] = {
    kind: tuple(_keyword_pattern(kw) for kw in kws) for kind, kws in _KEYWORDS.items()
}


def parse_items(fragment: str) -> list[IntroItem]:
    """Read bullet items (with their sub-points folded in) and tagged lines from a fragment."""

    items: list[IntroItem] = []
    for raw in (fragment or "").splitlines():
        line = raw.rstrip()
        if not line.strip() or line.lstrip().startswith(">") or HEADER_RE.match(line.strip()):
            continue
        tagged = _TAG_RE.match(line)
        if tagged:
            text = tagged.group(2).strip()
            if text:
                items.append(IntroItem(text=text, tag=_TAG_KINDS[tagged.group(1).lower()]))
            continue
        sub = _SUBPOINT_RE.match(line)
        if sub and items:
            prev = items[-1]
            items[-1] = IntroItem(text=f"{prev.text}; {sub.group(1).strip()}", tag=prev.tag)
            continue
        bullet = _BULLET_RE.match(line)
        if bullet and bullet.group(1).strip() and not is_placeholder(bullet.group(1).strip()):
            items.append(IntroItem(text=bullet.group(1).strip()))
    return items


def score_item(text: str) -> PointKind | None:
    """Keyword vote; ``None`` unless exactly one kind has the best positive score."""

    lowered = text.lower()
    scores = {kind: sum(1 for p in patterns if p.search(lowered)) for kind, patterns in _KEYWORD_PATTERNS.items()}
    best = max(scores.values())
    if best == 0:
        return None
    winners = [kind for kind, score in scores.items() if score == best]
    return winners[0] if len(winners) == 1 else None


def classify(items: list[IntroItem]) -> IntroPoints:
    points = IntroPoints()
    ambiguous: list[tuple[int, str]] = []

    untagged = [it for it in items if it.tag is None]
    for it in items:
        if it.tag is not None:
            points.bucket(it.tag).append(it.text)
    for pos, it in enumerate(untagged):
        kind = score_item(it.text)
        if kind is not None:
            points.bucket(kind).append(it.text)
        else:
            ambiguous.append((pos, it.text))

    unclassified: list[str] = []
    last = len(untagged) - 1
    for pos, text in ambiguous:
        if pos == 0 and last > 0:
            slot = PointKind.HOOK
        elif pos == last and last > 0:
            slot = PointKind.THESIS
        else:
            slot = PointKind.BACKGROUND
        if slot is not PointKind.BACKGROUND and points.bucket(slot):
            unclassified.append(text)
        else:
            points.bucket(slot).append(text)

    for text in unclassified:
        target = next(
            (k for k in (PointKind.THESIS, PointKind.BACKGROUND, PointKind.HOOK) if not points.bucket(k)),
            PointKind.BACKGROUND,
        )
        points.bucket(target).append(text)
    return points


def extract_intro_points(fragment: str) -> IntroPoints:
    return classify(parse_items(fragment))

"""Language helpers shared by the outline and drafting pipelines."""

from __future__ import annotations

import re

_CJK_LANGUAGE_RE = re.compile(
    r"中|日本|韓|한국|chinese|japanese|korean|^(zh|ja|ko)([-_].*)?$",
    re.IGNORECASE,
)

# Han ideographs (incl. extension A and compatibility), kana and hangul syllables.
CJK_CHAR_RE = re.compile(
    "[\u3400-\u4dbf\u4e00-\u9fff\uf900-\ufaff\u3040-\u309f\u30a0-\u30ff\uac00-\ud7af]"
)

_ZH_DIGITS = ["零", "一", "二", "三", "四", "五", "六", "七", "八", "九", "十"]


def is_cjk_language(language: str | None) -> bool:
    """Whether a language label names a CJK language (length measured in characters)."""

    return bool(language) and bool(_CJK_LANGUAGE_RE.search(language.strip()))


def count_cjk_chars(text: str) -> int:
    return len(CJK_CHAR_RE.findall(text or ""))


def to_zh_numeral(n: int) -> str:
    """Render 1..99 as a Chinese numeral (一, 十一, 二十三)."""

    if n <= 10:
        return _ZH_DIGITS[n]
    if n < 20:
        return "十" + _ZH_DIGITS[n - 10]
    if n % 10 == 0:
        return _ZH_DIGITS[n // 10] + "十"
    return _ZH_DIGITS[n // 10] + "十" + _ZH_DIGITS[n % 10]


def from_zh_numeral(text: str) -> int | None:
    """Inverse of :func:`to_zh_numeral`; ``None`` for anything it cannot read."""

    if not text or any(ch not in _ZH_DIGITS for ch in text):
        return None
    if "十" not in text:
        return _ZH_DIGITS.index(text) if len(text) == 1 else None
    tens, _, ones = text.partition("十")
    tens_val = _ZH_DIGITS.index(tens) if tens else 1
    ones_val = _ZH_DIGITS.index(ones) if ones else 0
    return tens_val * 10 + ones_val

"""Paragraph specification: normalization, measurement and validation."""

from __future__ import annotations

import math
import re
from typing import Any, Mapping

from pydantic import ValidationError
from pydantic.alias_generators import to_snake

from draftsmith.logging import get_logger
from draftsmith.models.spec import LengthUnit, ParagraphSpec, ValidationResult, Violation, ViolationKind
from draftsmith.utils.citations import has_citation
from draftsmith.utils.language import count_cjk_chars

logger = get_logger(__name__)

DEFAULT_TOLERANCE = 0.1

_REQUIRED = (
    "target_count",
    "unit",
    "tolerance_percent",
    "single_paragraph_only",
    "paragraph_type",
    "rhetorical_move",
)
_BOOL_DEFAULTS = {
    "allow_line_breaks": False,
    "allow_bullets": False,
    "allow_headings": False,
    "allow_citations": False,
    "allow_examples": True,
}
_LIST_FIELDS = ("must_include", "banned_topics", "banned_patterns", "banned_phrases")

# Older clients send these names.
_LEGACY_KEYS = {
    "tolerancePct": "tolerance_percent",
    "tolerance_pct": "tolerance_percent",
    "oneParagraph": "single_paragraph_only",
    "one_paragraph": "single_paragraph_only",
}
_UNIT_ALIASES = {
    "cjk-char": LengthUnit.CJK_CHAR,
    "zh_chars": LengthUnit.CJK_CHAR,
    "generic-char": LengthUnit.GENERIC_CHAR,
    "chars": LengthUnit.GENERIC_CHAR,
    "word": LengthUnit.WORD,
    "words": LengthUnit.WORD,
}

_BULLET_RE = re.compile(r"^\s*(?:[•\-*+]\s|\d+[.)]\s)", re.MULTILINE)
_HEADING_RE = re.compile(r"^#+\s|^[A-Z][^.!?\n]*:\s*$", re.MULTILINE)
_CJK_HEADING_RE = re.compile(r"^\s*(?:[一二三四五六七八九十]+、|第[一二三四五六七八九十]+[章節节部分])", re.MULTILINE)
_PARAGRAPH_SPLIT_RE = re.compile(r"\n\s*\n")


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        s = value.strip().lower()
        if s in {"true", "1", "yes"}:
            return True
        if s in {"false", "0", "no", ""}:
            return False
    return bool(value)


def _to_float(value: Any) -> float | None:
    try:
        f = float(value)
    except (TypeError, ValueError):
        return None
    return f if math.isfinite(f) else None


def _to_list(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    return tuple(str(v).strip() for v in value if str(v).strip())


def _canonical_keys(raw: Mapping[str, Any]) -> dict[str, Any]:
    return {_LEGACY_KEYS.get(k, to_snake(k)): v for k, v in raw.items()}


def normalize_spec(
    raw: Mapping[str, Any] | None, fallback: Mapping[str, Any] | None = None
) -> ParagraphSpec | None:
    """Merge ``raw`` over ``fallback`` and coerce it into a :class:`ParagraphSpec`.

    Accepts camelCase, snake_case and the legacy ``tolerancePct``/``oneParagraph`` keys, and the
    legacy unit names ``zh_chars``/``chars``/``words``.

    Returns:
        The spec, or ``None`` when a required field is missing, the target is not positive,
        the unit is unknown, or the type/move strings are blank. An out-of-range tolerance is
        reset to 0.1 rather than rejected.
    """

    if not isinstance(raw, Mapping):
        return None
    merged = {**_canonical_keys(fallback or {}), **_canonical_keys(raw)}

    missing = [k for k in _REQUIRED if merged.get(k) is None]
    if missing:
        logger.info("Spec rejected", extra={"reason": "missing", "fields": missing})
        return None

    target = _to_float(merged["target_count"])
    if target is None or round(target) <= 0:
        logger.info("Spec rejected", extra={"reason": "target", "value": merged["target_count"]})
        return None

    raw_unit = merged["unit"]
    unit = raw_unit if isinstance(raw_unit, LengthUnit) else _UNIT_ALIASES.get(str(raw_unit).strip().lower())
    if unit is None:
        logger.info("Spec rejected", extra={"reason": "unit", "value": merged["unit"]})
        return None

    tolerance = _to_float(merged["tolerance_percent"])
    if tolerance is None or not 0 < tolerance <= 0.5:
        tolerance = DEFAULT_TOLERANCE

    paragraph_type = merged["paragraph_type"]
    rhetorical_move = merged["rhetorical_move"]
    if not isinstance(paragraph_type, str) or not paragraph_type.strip():
        return None
    if not isinstance(rhetorical_move, str) or not rhetorical_move.strip():
        return None

    max_examples = _to_float(merged.get("max_examples"))
    data: dict[str, Any] = {
        "target_count": int(round(target)),
        "unit": unit,
        "tolerance_percent": tolerance,
        "single_paragraph_only": _to_bool(merged["single_paragraph_only"]),
        "paragraph_type": paragraph_type.strip(),
        "rhetorical_move": rhetorical_move.strip(),
        "max_examples": int(max_examples) if max_examples is not None and max_examples >= 0 else None,
    }
    for key, default in _BOOL_DEFAULTS.items():
        value = merged.get(key)
        data[key] = default if value is None else _to_bool(value)
    for key in _LIST_FIELDS:
        data[key] = _to_list(merged.get(key))

    try:
        spec = ParagraphSpec(**data)
    except ValidationError as exc:
        logger.info("Spec rejected", extra={"reason": "schema", "error": str(exc)})
        return None

    logger.info(
        "Spec normalized",
        extra={
            "target": spec.target_count,
            "unit": spec.unit.value,
            "tolerance": spec.tolerance_percent,
            "paragraph_type": spec.paragraph_type,
        },
    )
    return spec


def measure(text: str, unit: LengthUnit) -> int:
    """Length of ``text`` in ``unit``: whitespace tokens, CJK code points, or non-space chars."""

    t = (text or "").strip()
    if not t:
        return 0
    if unit is LengthUnit.WORD:
        return len(t.split())
    if unit is LengthUnit.CJK_CHAR:
        return count_cjk_chars(t)
    return len(re.sub(r"\s", "", t))


def length_range(spec: ParagraphSpec) -> tuple[int, int]:
    """Inclusive integer bounds that lie within ``target·(1±tolerance)``."""

    low = spec.target_count * (1 - spec.tolerance_percent)
    high = spec.target_count * (1 + spec.tolerance_percent)
    return math.ceil(round(low, 6)), math.floor(round(high, 6))


def split_paragraphs(text: str) -> list[str]:
    return [p for p in _PARAGRAPH_SPLIT_RE.split((text or "").strip()) if p.strip()]


def validate(text: str, spec: ParagraphSpec, is_cjk: bool = False) -> ValidationResult:
    """Check ``text`` against every rule of ``spec``; all violations are reported."""

    violations: list[Violation] = []

    def fail(kind: ViolationKind, message: str) -> None:
        violations.append(Violation(kind=kind, message=message))

    body = (text or "").strip()
    measured = measure(body, spec.unit)
    low, high = length_range(spec)
    if measured < low:
        fail(ViolationKind.LENGTH_SHORT, f"Length too short: {measured} (minimum: {low})")
    if measured > high:
        fail(ViolationKind.LENGTH_LONG, f"Length too long: {measured} (maximum: {high})")

    paragraphs = split_paragraphs(body)
    paragraph_count = len(paragraphs) or 1
    if spec.single_paragraph_only and paragraph_count > 1:
        fail(ViolationKind.MULTIPLE_PARAGRAPHS, f"Multiple paragraphs detected: {paragraph_count} (required: 1)")

    if not spec.allow_line_breaks:
        if spec.single_paragraph_only and "\n" in body:
            fail(ViolationKind.LINE_BREAKS, "Line breaks detected (single paragraph requires none)")
        elif not spec.single_paragraph_only and any("\n" in p.strip() for p in paragraphs):
            fail(ViolationKind.LINE_BREAKS, "Line breaks detected within paragraphs")

    if not spec.allow_bullets and _BULLET_RE.search(body):
        fail(ViolationKind.BULLETS, "Bullet points or numbered lists detected")

    if not spec.allow_headings and (_HEADING_RE.search(body) or (is_cjk and _CJK_HEADING_RE.search(body))):
        fail(ViolationKind.HEADINGS, "Headings detected")

    if not spec.allow_citations and has_citation(body):
        fail(ViolationKind.CITATIONS, "Citations detected but not allowed")

    lowered = body.lower()
    for item in spec.must_include:
        if item.lower() not in lowered:
            fail(ViolationKind.MISSING_CONTENT, f"Missing required content: {item}")
    for topic in spec.banned_topics:
        if topic.lower() in lowered:
            fail(ViolationKind.BANNED_TOPIC, f"Banned topic detected: {topic}")
    for pattern in spec.banned_patterns:
        try:
            hit = re.search(pattern, body, re.IGNORECASE | re.MULTILINE)
        except re.error as exc:
            logger.warning("Ignoring invalid banned pattern", extra={"pattern": pattern, "error": str(exc)})
            continue
        if hit:
            fail(ViolationKind.BANNED_PATTERN, f"Banned pattern detected: {pattern}")
    for phrase in spec.banned_phrases:
        if phrase.lower() in lowered:
            fail(ViolationKind.BANNED_PHRASE, f"Banned phrase detected: {phrase}")

    return ValidationResult(
        is_valid=not violations,
        measured_length=measured,
        paragraph_count=paragraph_count,
        violations=violations,
    )

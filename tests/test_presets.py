"""Tests for role resolution and role presets."""

from __future__ import annotations

import pytest

from draftsmith.drafting.presets import PRESETS, determine_role, preset_fields, preset_for_role, preset_key
from draftsmith.drafting.spec import normalize_spec
from draftsmith.models.outline import SectionRole
from draftsmith.models.spec import LengthUnit


@pytest.mark.parametrize(
    ("label", "index", "total", "expected"),
    [
        ("Intro", None, None, SectionRole.INTRODUCTION),
        (" concl ", 2, 5, SectionRole.CONCLUSION),
        ("body", 1, 5, SectionRole.BODY),
        (None, 1, 5, SectionRole.INTRODUCTION),
        (None, 5, 5, SectionRole.CONCLUSION),
        (None, 3, 5, SectionRole.BODY),
        (None, 1, 1, SectionRole.INTRODUCTION),
        ("appendix", 3, 3, SectionRole.CONCLUSION),
        (None, 2, None, SectionRole.BODY),
        (None, None, None, None),
        ("appendix", None, None, None),
    ],
)
def test_determine_role(label, index, total, expected) -> None:
    """It should prefer a known label and otherwise derive the role from position."""

    assert determine_role(label, index, total) is expected


def test_preset_key_picks_body_variant_by_length_and_language() -> None:
    """It should use the single-paragraph body preset only for short non-CJK bodies."""

    assert preset_key(SectionRole.BODY, 120, False) == "body_single_paragraph"
    assert preset_key(SectionRole.BODY, 160, False) == "body_general"
    assert preset_key(SectionRole.BODY, 120, True) == "body_general"
    assert preset_key(SectionRole.INTRODUCTION, 50, True) == "introduction"
    assert preset_key(SectionRole.CONCLUSION, 400, False) == "conclusion"


def test_preset_for_role_fills_target_unit_and_tolerance() -> None:
    """It should stamp the request target, the language unit and a 10% tolerance onto the preset."""

    intro = preset_for_role(SectionRole.INTRODUCTION, 150, False)
    assert (intro.target_count, intro.unit, intro.tolerance_percent) == (150, LengthUnit.WORD, 0.1)
    assert intro.single_paragraph_only and not intro.allow_citations
    assert "In conclusion" in intro.banned_phrases

    body = preset_for_role(SectionRole.BODY, 300, True)
    assert body.unit is LengthUnit.CJK_CHAR
    assert body.allow_line_breaks and body.allow_citations
    assert body.max_examples == 3


@pytest.mark.parametrize("key", sorted(PRESETS))
def test_every_preset_normalizes(key: str) -> None:
    """It should turn every preset into a complete spec through the normalizer."""

    spec = normalize_spec({}, fallback=preset_fields(key, 200, False))
    assert spec is not None
    assert spec.paragraph_type == PRESETS[key]["paragraph_type"]
    assert spec.target_count == 200

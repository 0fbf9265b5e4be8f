"""Tests for per-section budget allocation."""

from __future__ import annotations

import pytest

from draftsmith.models.outline import ExplicitPlan
from draftsmith.outline.budgets import allocate_budgets, apply_budgets, round_to_ten


@pytest.mark.parametrize("sections", range(1, 9))
def test_budgets_sum_exactly_in_tens_with_floor(sections: int) -> None:
    """It should sum to the requested total, in multiples of ten, each at least 50."""

    for total in range(50 * sections, 3001, 10):
        budgets = allocate_budgets(sections, total)
        assert len(budgets) == sections
        assert sum(budgets) == total, (sections, total, budgets)
        assert all(b % 10 == 0 and b >= 50 for b in budgets)


def test_weighted_split_for_five_sections() -> None:
    """It should weight intro and conclusion at 14% and correct drift from the first section."""

    assert allocate_budgets(5, 900) == [120, 210, 220, 220, 130]
    assert allocate_budgets(2, 500) == [200, 300]
    assert allocate_budgets(1, 730) == [730]


def test_explicit_plan_is_scaled_to_total() -> None:
    """It should start from the plan and cycle the drift over sections in index order."""

    plan = ExplicitPlan(intro_length=140, conclusion_length=140, body_lengths=[240, 240, 240])
    assert allocate_budgets(5, 900, plan) == [120, 220, 220, 220, 120]
    assert allocate_budgets(5, 1000, plan) == [140, 240, 240, 240, 140]


def test_round_to_ten_rounds_half_up() -> None:
    """It should round halves upward."""

    assert [round_to_ten(v) for v in (125, 124.9, 135, 0)] == [130, 120, 140, 0]


def test_apply_budgets_replaces_existing_suffixes() -> None:
    """It should rewrite every header suffix and leave other lines untouched."""

    text = "1. Introduction (≈ 999 words)\n- point\n\n2. Conclusion\n- end"
    out, budgets = apply_budgets(text, "English", 300)
    assert budgets == [120, 180]
    assert out == "1. Introduction (≈ 120 words)\n- point\n\n2. Conclusion (≈ 180 words)\n- end"

    zh, zh_budgets = apply_budgets("一、 引言\n二、 結論", "中文", 200)
    assert zh_budgets == [80, 120]
    assert zh == "一、 引言（約 80 字）\n二、 結論（約 120 字）"

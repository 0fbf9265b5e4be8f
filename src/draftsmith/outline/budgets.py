"""Per-section length budgets."""

from __future__ import annotations

import math

from draftsmith.models.outline import ExplicitPlan
from draftsmith.outline.structure import BUDGET_SUFFIX_RE, HEADER_RE, budget_suffix

MIN_BUDGET = 50
STEP = 10
INTRO_WEIGHT = 0.14
CONCLUSION_WEIGHT = 0.14


def round_to_ten(value: float) -> int:
    """Round half up to the nearest multiple of ten."""

    return int(math.floor(value / STEP + 0.5)) * STEP


def _planned(section_count: int, total: int, plan: ExplicitPlan) -> list[float]:
    n = section_count
    if n == 1:
        return [plan.intro_length or total]
    if n == 2:
        return [plan.intro_length or total * 0.4, plan.conclusion_length or total * 0.6]

    intro = plan.intro_length or total * INTRO_WEIGHT
    concl = plan.conclusion_length or total * CONCLUSION_WEIGHT
    slots = n - 2
    desired = list(plan.body_lengths[:slots])
    if len(desired) == slots:
        bodies: list[float] = [float(v) for v in desired]
    else:
        body_total = max(0.0, total - intro - concl)
        bodies = [body_total / slots] * slots
    return [intro, *bodies, concl]


def _weighted(section_count: int, total: int) -> list[float]:
    n = section_count
    if n == 1:
        return [float(total)]
    if n == 2:
        return [total * 0.4, total * 0.6]
    body_weight = (1 - INTRO_WEIGHT - CONCLUSION_WEIGHT) / (n - 2)
    return [total * INTRO_WEIGHT, *([total * body_weight] * (n - 2)), total * CONCLUSION_WEIGHT]


def allocate_budgets(section_count: int, total: int, plan: ExplicitPlan | None = None) -> list[int]:
    """Split ``total`` across sections.

    Raw shares come from the explicit plan where it is complete, else from fixed weights
    (intro 14%, conclusion 14%, bodies evenly; 40/60 for two sections). Each share is rounded to
    a multiple of ten with a floor of 50, then the drift against the total (itself snapped to
    ten) is worked off in steps of ten, cycling over sections in index order. A step that would
    push a section under the floor is skipped.
    """

    if section_count <= 0:
        return []

    raw = _planned(section_count, total, plan) if plan is not None else _weighted(section_count, total)
    budgets = [max(MIN_BUDGET, round_to_ten(b)) for b in raw]

    target = round_to_ten(total)
    diff = target - sum(budgets)
    step = STEP if diff > 0 else -STEP
    while diff != 0:
        moved = False
        for i in range(section_count):
            if diff == 0:
                break
            if step < 0 and budgets[i] + step < MIN_BUDGET:
                continue
            budgets[i] += step
            diff -= step
            moved = True
        if not moved:
            break
    return budgets


def apply_budgets(
    text: str, language: str, total: int, plan: ExplicitPlan | None = None
) -> tuple[str, list[int]]:
    """Replace the budget suffix on every header line of ``text``.

    Returns:
        ``(text, budgets)`` with budgets in header order. Non-header lines are untouched.
    """

    lines = text.split("\n")
    header_idx = [i for i, ln in enumerate(lines) if HEADER_RE.match(ln)]
    if not header_idx:
        return text, []

    budgets = allocate_budgets(len(header_idx), total, plan)
    for idx, budget in zip(header_idx, budgets):
        head = BUDGET_SUFFIX_RE.sub("", lines[idx].rstrip())
        lines[idx] = head + budget_suffix(budget, language)
    return "\n".join(lines), budgets

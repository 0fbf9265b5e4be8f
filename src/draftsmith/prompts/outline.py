"""Prompt builders for outline generation, backfill, enrichment and single-section regeneration."""

from __future__ import annotations

from typing import Sequence

from draftsmith.models.outline import ExplicitPlan

OUTLINE_SYSTEM_PROMPT = (
    "You are an academic writing assistant who produces paragraph-level outlines. "
    "Output ONLY the outline in the requested format, with no preface and no closing remarks."
)

_EXAMPLE_EN = """1. Introduction
- Define artificial intelligence (AI)
  a. Definition: technology that simulates human cognition
  b. Core abilities: learning, reasoning, perception
- Explain why AI matters now
  a. Social impact: automation and efficiency
  b. Economic impact: innovation and competition
> Note: establishes the topic and its importance for what follows.
2. Core concepts of AI
- Narrow AI versus general AI
  a. Narrow AI: task-focused systems such as recommenders
  b. General AI: broad intelligence, still a research goal
> Note: clarifies terms to avoid later confusion."""

_EXAMPLE_ZH = """一、 引言
- 介紹人工智慧（AI）的概念
  a. 定義：模擬人類認知的技術
  b. 關鍵能力：學習、推理、感知
- 討論 AI 的重要性
  a. 社會影響：自動化與效率
  b. 經濟影響：創新與競爭
> 說明：本段建立主題背景與重要性，為後文鋪陳。
二、 AI 的核心概念
- 弱 AI vs. 強 AI
  a. 弱 AI：專注任務，如推薦系統
  b. 強 AI：通用智慧，仍在研究
> 說明：本段釐清術語與範疇，降低誤解。"""


def _rules(zh: bool) -> str:
    numbering = "「一、二、三…」" if zh else '"1. 2. 3. ..."'
    rationale = "> 說明：" if zh else "> Note:"
    return "\n".join(
        [
            f"1. Number sections with {numbering}.",
            "2. Put each section title on its own line with nothing after it.",
            '3. Under each section give 2-4 primary points starting with "- "; where useful add '
            '"a." / "b." sub-points indented by two spaces.',
            f'4. End every section with exactly one line starting with "{rationale}" giving context '
            "or extension (no links).",
            "5. No blank lines. Be concrete, avoid filler.",
        ]
    )


def plan_hint(plan: ExplicitPlan | None, body_count: int) -> str:
    if plan is None:
        return ""
    bodies = ", ".join(str(v) for v in plan.body_lengths) or "proportional"
    return "\n".join(
        [
            "[Paragraph plan (hard requirement)]",
            f"- Introduction: {plan.intro_length or 'proportional'}",
            f"- Body sections: {body_count} (in order)",
            f"- Body lengths: {bodies}",
            f"- Conclusion: {plan.conclusion_length or 'proportional'}",
        ]
    )


def _requirements(fields: dict[str, str], *, total_length: int, language: str, tone: str) -> str:
    return "\n".join(
        [
            "[Requirements]",
            f"Title: {fields.get('title', '')}",
            f"Length: about {total_length}",
            f"Language: {language} (tone: {tone})",
            f"Details: {fields.get('detail', '')}",
            f"References: {fields.get('reference_notes', '')}",
            f"Rubric: {fields.get('rubric', '')}",
        ]
    )


def build_outline_prompt(
    fields: dict[str, str],
    *,
    total_length: int,
    language: str,
    tone: str,
    body_count: int,
    plan: ExplicitPlan | None,
    zh: bool,
) -> str:
    """User prompt for a complete outline.

    ``fields`` holds the already-redacted free-text inputs (title, detail, reference_notes, rubric).
    """

    parts = [
        "Produce a paragraph-level outline. You MUST follow these rules:",
        _rules(zh),
        "",
        _requirements(fields, total_length=total_length, language=language, tone=tone),
        f"Body sections: {body_count}",
    ]
    hint = plan_hint(plan, body_count)
    if hint:
        parts += ["", hint]
    parts += ["", "[Example]", _EXAMPLE_ZH if zh else _EXAMPLE_EN, "", "Output the outline only."]
    return "\n".join(parts)


def build_regenerate_prompt(
    fields: dict[str, str],
    *,
    section_index: int,
    section_title: str,
    total_length: int,
    language: str,
    tone: str,
    body_count: int,
    plan: ExplicitPlan | None,
    zh: bool,
) -> str:
    """User prompt asking for one section only, with the current outline as context."""

    parts = [
        f'Regenerate the outline content of section {section_index} ("{section_title}"). '
        "You MUST follow these rules:",
        _rules(zh),
        f"6. Output ONLY section {section_index}; do not output any other section.",
        "",
        _requirements(fields, total_length=total_length, language=language, tone=tone),
    ]
    hint = plan_hint(plan, body_count)
    if hint:
        parts += ["", hint]
    parts += [
        "",
        "[Current full outline (context only)]",
        fields.get("current_outline_text", ""),
        "",
        f"Output the complete content of section {section_index} only (title, points, rationale), "
        "in the same format as the other sections.",
    ]
    return "\n".join(parts)


def build_backfill_prompt(
    fields: dict[str, str], *, section_title: str, language: str, tone: str
) -> str:
    detail = fields.get("detail", "")[:200]
    return "\n".join(
        [
            f'In {language}, write 3-5 key points for the section "{section_title}" of '
            f'"{fields.get("title", "")}".',
            '- Output one point per line, each starting with "- "',
            "- No section title, no numbering, no other commentary",
            f"- Tone: {tone}",
            f"- Stay close to the overall topic; you may draw on: {detail}",
        ]
    )


def build_enrich_prompt(
    bullets: Sequence[str], *, section_title: str, language: str, tone: str, zh: bool
) -> str:
    tag = "（保留/新增/補）" if zh else "(keep/add/expand)"
    return "\n".join(
        [
            f'In {language}, rewrite the points of section "{section_title}" into a high-density '
            "version:",
            '1) Output only 3-5 primary points, each MUST start with "- ".',
            f"2) Each point reads \"short label{tag}: one concrete sentence\" (no filler).",
            '3) Where useful, add "a." / "b." sub-points on the next lines, indented by two spaces '
            "(20 words or fewer each; examples, contrasts, metrics or actionable steps).",
            "4) Where fitting, end a primary line with one bare source keyword (not a link), such as "
            "arXiv, ACL Anthology, OWASP or EU AI Act.",
            f"5) No section title, no blank lines, no links. Keep the tone: {tone}.",
            "[Current points]",
            *bullets,
        ]
    )

"""Role presets and section-role resolution."""

from __future__ import annotations

from typing import Any

from draftsmith.models.outline import SectionRole
from draftsmith.models.spec import LengthUnit, ParagraphSpec

SINGLE_PARAGRAPH_BODY_LIMIT = 160

_NO_CONCLUSION = ("In conclusion", "In summary", "To conclude")

# Partial specs; target, unit and tolerance are filled per request.
PRESETS: dict[str, dict[str, Any]] = {
    "introduction": {
        "paragraph_type": "introduction",
        "rhetorical_move": "cars_territory_gap_aim",
        "single_paragraph_only": True,
        "allow_citations": False,
        "allow_examples": False,
        "banned_phrases": _NO_CONCLUSION,
    },
    "body_general": {
        "paragraph_type": "body",
        "rhetorical_move": "claim_evidence_analysis",
        "single_paragraph_only": False,
        "allow_line_breaks": True,
        "allow_citations": True,
        "allow_examples": True,
        "max_examples": 3,
        "banned_phrases": _NO_CONCLUSION,
    },
    "body_single_paragraph": {
        "paragraph_type": "body_paragraph",
        "rhetorical_move": "claim_evidence_analysis",
        "single_paragraph_only": True,
        "allow_citations": True,
        "allow_examples": True,
        "max_examples": 2,
        "banned_phrases": _NO_CONCLUSION,
    },
    "term_clarification": {
        "paragraph_type": "term_clarification",
        "rhetorical_move": "define_explain",
        "single_paragraph_only": True,
        "allow_citations": False,
        "allow_examples": True,
        "max_examples": 2,
        "banned_topics": (
            "applications",
            "implications",
            "future research",
            "limitations",
            "case study",
            "policy recommendations",
            "historical development",
            "ethical concerns",
        ),
        "banned_patterns": (
            r"^In conclusion",
            r"\n\n",
            r"^•",
            r"^-\s",
            r"Moreover,",
            r"Furthermore,",
            r"^The implications",
        ),
    },
    "literature_review": {
        "paragraph_type": "literature_review",
        "rhetorical_move": "synthesize",
        "single_paragraph_only": False,
        "allow_line_breaks": True,
        "allow_citations": True,
        "allow_examples": False,
    },
    "argument": {
        "paragraph_type": "argument",
        "rhetorical_move": "argue",
        "single_paragraph_only": True,
        "allow_citations": True,
        "allow_examples": True,
        "max_examples": 2,
    },
    "counter_argument": {
        "paragraph_type": "counter_argument",
        "rhetorical_move": "evaluate",
        "single_paragraph_only": True,
        "allow_citations": True,
        "allow_examples": True,
    },
    "method": {
        "paragraph_type": "method",
        "rhetorical_move": "explain",
        "single_paragraph_only": False,
        "allow_line_breaks": True,
        "allow_citations": True,
        "allow_examples": False,
    },
    "discussion": {
        "paragraph_type": "discussion",
        "rhetorical_move": "analyze",
        "single_paragraph_only": False,
        "allow_line_breaks": True,
        "allow_citations": True,
        "allow_examples": True,
    },
    "conclusion": {
        "paragraph_type": "conclusion",
        "rhetorical_move": "synthesize",
        "single_paragraph_only": True,
        "allow_citations": False,
        "allow_examples": False,
    },
}

_ROLE_ALIASES = {
    "introduction": SectionRole.INTRODUCTION,
    "intro": SectionRole.INTRODUCTION,
    "conclusion": SectionRole.CONCLUSION,
    "concl": SectionRole.CONCLUSION,
    "body": SectionRole.BODY,
}


def determine_role(
    section_role: str | None, section_index: int | None, total_sections: int | None
) -> SectionRole | None:
    """Resolve the section role from an explicit label, else from position.

    Index 1 is the introduction and the last index (of more than one) is the conclusion.
    Returns ``None`` when neither a recognised label nor an index is given.
    """

    if section_role:
        role = _ROLE_ALIASES.get(section_role.strip().lower())
        if role is not None:
            return role
    if section_index is None:
        return None
    if section_index == 1:
        return SectionRole.INTRODUCTION
    if total_sections is not None and total_sections > 1 and section_index == total_sections:
        return SectionRole.CONCLUSION
    return SectionRole.BODY


def preset_key(role: SectionRole, target: int, is_cjk: bool) -> str:
    if role is SectionRole.INTRODUCTION:
        return "introduction"
    if role is SectionRole.CONCLUSION:
        return "conclusion"
    if target < SINGLE_PARAGRAPH_BODY_LIMIT and not is_cjk:
        return "body_single_paragraph"
    return "body_general"


def preset_fields(key: str, target: int, is_cjk: bool) -> dict[str, Any]:
    """Preset ``key`` with target, unit and tolerance filled in (snake_case keys)."""

    return {
        **PRESETS[key],
        "target_count": target,
        "unit": LengthUnit.CJK_CHAR if is_cjk else LengthUnit.WORD,
        "tolerance_percent": 0.1,
    }


def preset_for_role(role: SectionRole, target: int, is_cjk: bool) -> ParagraphSpec:
    return ParagraphSpec(**preset_fields(preset_key(role, target, is_cjk), target, is_cjk))

"""Prompt builders for section drafting: spec-first generation, repair, length adjustment and
the legacy introduction, section and continuation prompts.
"""

from __future__ import annotations

from draftsmith.drafting.context import DraftContext
from draftsmith.drafting.intro_points import IntroPoints
from draftsmith.drafting.spec import length_range
from draftsmith.models.outline import SectionRole
from draftsmith.models.spec import LengthUnit, ParagraphSpec, ValidationResult, ViolationKind

SPEC_SYSTEM_PROMPT = "You are a rigorous academic writing assistant. Output the writing only, no meta text."
SPEC_SYSTEM_PROMPT_ZH = "你是嚴謹的學術寫作助手。只輸出內容本身，不要任何說明或提示。"

INTRO_EXPAND_SYSTEM_PROMPT = "You expand text precisely to meet word count and formatting constraints."
INTRO_SHORTEN_SYSTEM_PROMPT = "You rewrite text precisely to meet word count and formatting constraints."

_SOURCE_RULES = (
    "Important:\n"
    "1. Use only the verified sources listed above; do not cite anything else.\n"
    "2. Never fabricate authors, years or DOIs.\n"
    "3. Cite with the actual author names and years from the list (APA 7 in-text style)."
)

_CEA_TYPES = {"body", "body_paragraph", "argument", "discussion"}

_TERM_CLARIFICATION_RULES = """CRITICAL: This is a term clarification paragraph. You MUST:
- ONLY clarify and define terms; do NOT discuss applications, implications, ethics or policies
- NOT elaborate on societal significance, economic impact or future developments
- ONLY explain the terms themselves: definitions, scope, distinctions, basic concepts"""

_TERM_CLARIFICATION_REPAIR = """CRITICAL REPAIR REQUIREMENTS:
- MUST merge into ONE paragraph, connecting the parts with transitions
- REMOVE content about ethics, societal or economic impact, labour markets and policies
- KEEP only definitions, scope, distinctions and basic concepts"""


def unit_label(unit: LengthUnit, language_is_cjk: bool) -> str:
    if unit is LengthUnit.WORD:
        return "words"
    if unit is LengthUnit.CJK_CHAR and language_is_cjk:
        return "字"
    return "characters"


def spec_system_prompt(is_cjk: bool) -> str:
    return SPEC_SYSTEM_PROMPT_ZH if is_cjk else SPEC_SYSTEM_PROMPT


def _format_rules(spec: ParagraphSpec) -> list[str]:
    rules: list[str] = []
    if spec.single_paragraph_only:
        rules.append("ONE paragraph only." if spec.allow_line_breaks else "ONE paragraph only. No line breaks.")
    else:
        rules.append("Multiple paragraphs allowed.")
        if not spec.allow_line_breaks:
            rules.append("Line breaks allowed only between paragraphs (blank lines), not inside paragraphs.")
    if not spec.allow_bullets:
        rules.append("No bullet points or numbered lists.")
    if not spec.allow_headings:
        rules.append("No headings or subheadings.")
    return rules


def _content_constraints(spec: ParagraphSpec) -> list[str]:
    out: list[str] = []
    if spec.must_include:
        out.append(f"Must include: {', '.join(spec.must_include)}")
    if spec.banned_topics:
        out.append(f"Do NOT discuss: {', '.join(spec.banned_topics)}")
    if spec.banned_phrases:
        out.append(f"Do NOT use phrases: {', '.join(spec.banned_phrases)}")
    return out


def _example_rule(spec: ParagraphSpec) -> str:
    if not spec.allow_examples:
        return "Do not add new examples unless explicitly provided."
    if spec.max_examples:
        return f"Examples allowed (max {spec.max_examples})."
    return "Examples allowed."


def _role_rule(spec: ParagraphSpec) -> str:
    if spec.paragraph_type == "introduction":
        return (
            "CRITICAL: You MUST state an explicit gap, limitation or tension (e.g. \"however, little "
            "research...\", \"existing studies focus on X, but Y remains...\")."
        )
    if spec.paragraph_type in _CEA_TYPES:
        return "Each paragraph MUST follow: topic sentence (claim) → evidence → analysis → transition."
    return ""


def build_spec_prompt(ctx: DraftContext, spec: ParagraphSpec) -> str:
    """User prompt for a spec-first generation. ``spec`` is the gated working copy."""

    low, high = length_range(spec)
    unit = unit_label(spec.unit, ctx.is_cjk)
    citation_rule = "Citations allowed only from the verified sources below." if spec.allow_citations else "No citations."

    parts = [
        "You are an academic writing assistant.",
        "",
        f"Task: Write a {spec.paragraph_type} paragraph.",
        f"Rhetorical move: {spec.rhetorical_move}.",
        "",
        f"Topic: {ctx.title}",
        f"Tone: {ctx.tone}",
        f"Language: {ctx.language} (write in this language only)",
    ]
    if spec.paragraph_type == "term_clarification":
        parts += ["", _TERM_CLARIFICATION_RULES]
    parts += ["", "HARD CONSTRAINTS:"]
    parts += [f"- {rule}" for rule in _format_rules(spec)]
    parts += [
        f"- Length: {spec.target_count} {unit} (acceptable range {low}-{high}).",
        f"- {citation_rule}",
        f"- {_example_rule(spec)}",
    ]
    role_rule = _role_rule(spec)
    if role_rule:
        parts.append(f"- {role_rule}")

    constraints = _content_constraints(spec)
    if constraints:
        parts += ["", "CONTENT CONSTRAINTS:", *[f"- {c}" for c in constraints]]

    parts += ["", "Outline notes (incorporate, but do not copy as a list):", ctx.outline_fragment]
    if ctx.reference_notes:
        parts += ["", "Other requirements:", ctx.reference_notes]
    if spec.allow_citations and ctx.ref_lines:
        parts += ["", "Verified sources:", ctx.ref_lines, "", _SOURCE_RULES]
    parts += ["", f"Return ONLY the paragraph text (about {spec.target_count} {unit}), no explanations."]
    return "\n".join(parts)


def build_repair_prompt(text: str, spec: ParagraphSpec, result: ValidationResult, is_cjk: bool) -> str:
    """Ask for a corrected rewrite listing every violation of the previous attempt."""

    low, high = length_range(spec)
    unit = unit_label(spec.unit, is_cjk)
    kinds = {v.kind for v in result.violations}

    parts = [
        "Please fix the following paragraph to meet all requirements without changing the core meaning.",
        "",
        "Current paragraph:",
        f'"""{text}"""',
        "",
        "Violations:",
        *[f"- {m}" for m in result.messages()],
    ]
    if spec.paragraph_type == "term_clarification":
        parts += ["", _TERM_CLARIFICATION_REPAIR]
    if ViolationKind.MULTIPLE_PARAGRAPHS in kinds:
        parts += [
            "",
            "MUST merge paragraphs:",
            "- Combine all paragraphs into ONE continuous paragraph",
            "- Connect the parts with transition words",
            "- Remove all blank lines and line breaks between paragraphs",
        ]
    if ViolationKind.BANNED_TOPIC in kinds:
        parts += [
            "",
            "MUST remove banned content:",
            f"- Delete all content about {', '.join(spec.banned_topics[:3])} and similar topics",
            "- Do NOT discuss applications, implications or significance",
        ]
    paragraph_rule = (
        "Must be ONE paragraph, no line breaks, no blank lines"
        if spec.single_paragraph_only
        else "Multiple paragraphs allowed"
    )
    examples = f"Examples allowed (max {spec.max_examples or 2})" if spec.allow_examples else "Do not add new examples"
    parts += [
        "",
        "Requirements:",
        f"- Length: {spec.target_count} {unit} (acceptable range {low}-{high})",
        f"- {paragraph_rule}",
        f"- {'Citations allowed if sources provided' if spec.allow_citations else 'Do not add citations'}",
        f"- {examples}",
        "- Clear structure with smooth transitions",
        "",
        "Return ONLY the corrected paragraph text, no explanations.",
    ]
    return "\n".join(parts)


def build_adjust_prompt(text: str, spec: ParagraphSpec, *, expand: bool, is_cjk: bool) -> str:
    low, high = length_range(spec)
    unit = unit_label(spec.unit, is_cjk)
    verb = "Expand" if expand else "Shorten"
    shape = "Keep it ONE paragraph only" if spec.single_paragraph_only else "Keep the paragraph structure"
    citations = "" if spec.allow_citations else " Do NOT add citations."
    return (
        f"{verb} the paragraph so the length is within {low}-{high} {unit}. "
        f"{shape}; no headings/bullets.{citations}\n\n"
        f'"""{text}"""\n\nReturn ONLY the rewritten text.'
    )


# ---------------------------------------------------------------------- legacy prompts


def legacy_system_prompt(language: str) -> str:
    return "\n".join(
        [
            "You are a rigorous academic writing assistant. Write clearly and coherently.",
            "",
            "Core rules (must strictly follow):",
            "1. Generate the content directly; do not explain how to write or offer continuation notes.",
            f"2. Write in {language} only.",
            "3. Meet the requested length; do not fall short of it.",
            "4. Only cite verified references provided by the user; never fabricate authors, years or DOIs.",
            "5. If no references are provided, add no citations and no reference list.",
            '6. Never output explanatory text such as "Cannot continue writing because..." or '
            '"Please paste the original paragraph".',
            "7. Output only the actual content, with no prefix.",
        ]
    )


def _numbered(items: list[str]) -> str:
    return "\n".join(f"{i}. {item}" for i, item in enumerate(items, start=1)) or "(none)"


def build_legacy_intro_prompt(ctx: DraftContext, points: IntroPoints) -> str:
    """Introduction prompt with the hook / background / thesis skeleton."""

    parts = [
        "You are an academic writing assistant.",
        "",
        f"Write ONE cohesive {ctx.language} introduction paragraph of about {ctx.target_length} "
        f"{'字' if ctx.is_cjk else 'words'}.",
        "",
        "The outline points below may be in another language or mixed languages. Incorporate ALL "
        f"key ideas at a high level, but OUTPUT {ctx.language.upper()} ONLY.",
        "",
        "Required structure (single paragraph, no labels):",
        "- Sentence 1: Hook (engaging but academic; 1 sentence)",
        "- Sentences 2-3: Background (definitions/context; 2-3 sentences)",
        "- Final sentence: Thesis statement (1 sentence; clear scope of the essay)",
        "",
        "STRICT RULES:",
        '1) Output ONE paragraph only. No headings, no labels (do NOT write "Hook:", "Background:", "Thesis:").',
        "2) No bullet points, no numbering, no line breaks.",
        '3) Do NOT include "In conclusion" or any concluding phrases.',
        "4) Do NOT add any citations in the introduction.",
        "5) Use smooth transitions so it reads like a natural paragraph, not a list.",
        "6) Do NOT elaborate with detailed examples or mini body sections.",
        "",
        f"Topic: {ctx.title}",
        f"Tone: {ctx.tone}",
        "",
        "Outline:",
        ctx.outline_fragment,
    ]
    if not points.is_empty():
        parts += [
            "",
            "Outline sub-points (must be covered):",
            "",
            "Hook:",
            _numbered(points.hook),
            "",
            "Background:",
            _numbered(points.background),
            "",
            "Thesis:",
            _numbered(points.thesis),
        ]
    if ctx.reference_notes:
        parts += ["", "Other requirements:", ctx.reference_notes]
    if ctx.ref_lines:
        parts += ["", "Verified sources are provided for later sections. Do not cite them in the introduction.", ctx.ref_lines]
    return "\n".join(parts)


_ROLE_GUIDANCE = {
    SectionRole.BODY: (
        "Write this body section as connected paragraphs. Each paragraph follows: topic sentence "
        "(claim) → evidence → analysis → transition. Do not open with a concluding phrase."
    ),
    SectionRole.CONCLUSION: (
        "Write the conclusion as one paragraph: restate the thesis in new words, synthesize the "
        "main findings, and close with implications. Introduce no new evidence."
    ),
}


def build_legacy_section_prompt(ctx: DraftContext) -> str:
    """Free-text prompt for a body or conclusion section (or a whole draft when ``role`` is None)."""

    unit = "字" if ctx.is_cjk else "words"
    if ctx.role is None:
        task = (
            f"Write the complete draft (multiple paragraphs with coherent transitions) of at least "
            f"{ctx.target_length} {unit}."
        )
        guidance = "Follow the outline section by section; cover every point."
    else:
        task = f"Write this section in full, about {ctx.target_length} {unit}."
        guidance = _ROLE_GUIDANCE.get(ctx.role, "")

    parts = [
        f"Title: {ctx.title}",
        f"Language: {ctx.language}",
        f"Tone: {ctx.tone}",
        "",
        task,
        guidance,
        "",
        "Outline:",
        ctx.outline_fragment,
    ]
    if ctx.reference_notes:
        parts += ["", "Other requirements:", ctx.reference_notes]
    if ctx.ref_lines:
        parts += ["", "Verified sources (cite only these, APA 7 in-text):", ctx.ref_lines, "", _SOURCE_RULES]
    else:
        parts += ["", "No sources are provided: add no citations and no reference list."]
    parts += ["", f"Output the section content directly (about {ctx.target_length} {unit}), no explanations."]
    return "\n".join(parts)


def continuation_system_prompt(language: str) -> str:
    return (
        "You are a rigorous academic writing assistant. Only continue the text to reach the required "
        f"length. Write in {language}. Never repeat existing content, never restart or summarize."
    )


def build_continuation_prompt(draft: str, *, target_length: int, language: str, is_cjk: bool) -> str:
    unit = "字" if is_cjk else "words"
    return "\n".join(
        [
            f"Continue seamlessly from the cutoff until total length reaches at least {target_length} {unit}. "
            "Do not repeat or restart; just continue.",
            "",
            "[Written so far]",
            draft,
            "",
            "[Continuation requirements]",
            "- Only new content",
            "- Keep the same style",
            f"- Use {language}",
        ]
    )


def build_intro_adjust_prompt(draft: str, *, target_length: int, low: int, high: int, expand: bool) -> str:
    if expand:
        head = [
            f"Expand the following English introduction to about {target_length} words "
            f"(acceptable range {low}-{high}).",
            "Keep it ONE paragraph only (no line breaks).",
            "Do NOT add citations.",
            "Do NOT add headings or labels.",
            "Preserve the original meaning and improve coherence with smooth transitions.",
        ]
    else:
        head = [
            f"Shorten the following English introduction to about {target_length} words "
            f"(acceptable range {low}-{high}).",
            "Keep ALL key ideas (hook + background + thesis), but remove redundancy.",
            "Return ONE paragraph only (no line breaks). Do not add citations.",
        ]
    return "\n".join([*head, "", "Text:", "", f'"""{draft}"""'])

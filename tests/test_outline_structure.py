"""Tests for the pure outline structuring steps."""

from __future__ import annotations

import pytest
from cryptography.fernet import Fernet

from draftsmith.models.outline import SectionRole
from draftsmith.outline.structure import (
    attach_body_subtitles,
    clip_bodies,
    ensure_min_sections,
    normalize_headers,
    normalize_roles,
    parse_sections,
    sanitize_bullets,
    structure_outline,
)

RAW = """Here is your outline:
**1. Opening**
- Photosynthesis converts light energy into chemical energy
  a. Occurs in chloroplasts
> Note: frames the topic.
## Light reactions
- Light reactions split water and release oxygen
— Calvin cycle
- The Calvin cycle fixes carbon dioxide into sugars
4. Closing
- Photosynthesis sustains nearly all life on Earth"""


def test_normalize_headers_canonicalizes_alternate_markers() -> None:
    """It should turn bold, markdown and dash headers into numbered headers with a running counter."""

    lines = normalize_headers(RAW, "English").splitlines()
    headers = [ln for ln in lines if ln[:1].isdigit()]
    assert headers == ["1. Opening", "2. Light reactions", "3. Calvin cycle", "4. Closing"]


def test_parse_drops_prose_preamble_and_reads_budgets() -> None:
    """It should ignore a non-bullet preamble and read budget suffixes off headers."""

    sections = parse_sections("Sure!\n1. Introduction (≈ 140 words)\n- Point one is here\n2. Conclusion")
    assert [s.title for s in sections] == ["Introduction", "Conclusion"]
    assert sections[0].word_budget == 140
    assert sections[0].role is SectionRole.INTRODUCTION
    assert sections[1].role is SectionRole.CONCLUSION


@pytest.mark.parametrize("bodies", [0, 1, 3, 5])
def test_structure_outline_has_n_plus_two_sections(bodies: int) -> None:
    """It should yield max(1, N) + 2 sections with intro first and conclusion last."""

    sections = structure_outline(RAW, "English", bodies)
    assert len(sections) == max(1, bodies) + 2
    assert sections[0].role is SectionRole.INTRODUCTION and sections[0].title == "Introduction"
    assert sections[-1].role is SectionRole.CONCLUSION and sections[-1].title == "Conclusion"
    assert [s.index for s in sections] == list(range(1, len(sections) + 1))
    assert all(s.role is SectionRole.BODY for s in sections[1:-1])


def test_padding_inserts_placeholder_bodies_before_last() -> None:
    """It should insert placeholder bodies before the final section."""

    sections = ensure_min_sections(parse_sections("1. A\n- first point here\n2. B\n- last point here"), "English", 3)
    assert len(sections) == 5
    assert sections[-1].bullet_lines == ("- last point here",)
    assert all(s.bullet_lines == ("- (add key points)",) for s in sections[1:-1])


def test_roles_and_subtitles_use_language_labels() -> None:
    """It should label bodies positionally and append subtitles in order, skipping ciphertext."""

    sections = normalize_roles(parse_sections("1. a\n2. b\n3. c\n4. d"), "English")
    assert [s.title for s in sections] == ["Introduction", "Body Paragraph 1", "Body Paragraph 2", "Conclusion"]
    titled = attach_body_subtitles(sections, "English", ["Light", ""])
    assert titled[1].title == "Body Paragraph 1: Light"
    assert titled[2].title == "Body Paragraph 2"

    token = Fernet(Fernet.generate_key()).encrypt(b"an encrypted subtitle " * 3).decode()
    guarded = attach_body_subtitles(sections, "English", [token, f"Dark {token}"])
    assert guarded[1].title == "Body Paragraph 1"
    assert token not in guarded[2].title
    assert guarded[2].title.startswith("Body Paragraph 2: Dark")

    zh = attach_body_subtitles(normalize_roles(parse_sections("一、 a\n二、 b\n三、 c"), "中文"), "中文", ["光反應"])
    assert [s.title for s in zh] == ["引言", "主體段一：光反應", "結論"]


def test_clip_merges_overflow_bodies_keeping_rationale_last() -> None:
    """It should merge extra bodies into the last kept body with its rationale line last."""

    text = "1. I\n- intro point\n2. B1\n- body one point\n> Note: one\n3. B2\n- body two point\n> Note: two\n4. C\n- closing point"
    sections = clip_bodies(parse_sections(text), 1)
    assert len(sections) == 3
    assert sections[1].bullet_lines == ("- body one point", "- body two point", "> Note: one")
    assert sections[2].role is SectionRole.CONCLUSION


def test_sanitize_filters_dedups_and_caps() -> None:
    """It should keep bounded, unique bullets (max five) with at most two sub-points each."""

    lines = (
        "- Short",
        "- Light drives the reactions.",
        "- light drives the reactions",
        "  a. first sub point",
        "  b. second sub point",
        "  c. third sub point",
        "plain prose line that is dropped",
        "- Second distinct bullet",
        "  a. kept sub point",
        "- Third distinct bullet",
        "- Fourth distinct bullet",
        "- Fifth distinct bullet",
        "- Sixth distinct bullet",
        "> Note: rationale",
    )
    section = parse_sections("1. Intro")[0].model_copy(update={"bullet_lines": lines})
    out = sanitize_bullets((section,), "English")[0].bullet_lines
    assert out == (
        "- Light drives the reactions.",
        "- Second distinct bullet",
        "  a. kept sub point",
        "- Third distinct bullet",
        "- Fourth distinct bullet",
        "- Fifth distinct bullet",
        "> Note: rationale",
    )


def test_sanitize_is_idempotent_and_fills_placeholder() -> None:
    """It should be a fixed point on its own output and insert one placeholder when empty."""

    once = structure_outline(RAW, "English", 3)
    assert sanitize_bullets(once, "English") == once
    empty = sanitize_bullets(parse_sections("1. Intro\nprose only"), "English")
    assert empty[0].bullet_lines == ("- (add key points)",)

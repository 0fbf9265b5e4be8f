"""Tests for the section draft synthesizer and the legacy prompt path."""

from __future__ import annotations

import asyncio

import pytest
from cryptography.fernet import Fernet

from conftest import ScriptedGateway, words
from draftsmith.config import Settings
from draftsmith.drafting.context import DraftContext
from draftsmith.drafting.legacy import LegacyDrafter
from draftsmith.drafting.synthesizer import SectionDraftSynthesizer
from draftsmith.errors import (
    EmptyContentError,
    InvalidRequestError,
    ModelReturnedCiphertext,
    ServiceError,
    TransportError,
    ValidationExhaustedError,
)
from draftsmith.models.draft import DraftRequest
from draftsmith.models.outline import SectionRole
from draftsmith.models.sources import VerifiedSource
from draftsmith.prompts.draft import INTRO_EXPAND_SYSTEM_PROMPT

FRAGMENT = "- Light reactions split water\n- The Calvin cycle fixes carbon"
SOURCE = VerifiedSource(title="Light harvesting", authors="Smith, J.", year="2021", summary_text="s" * 120)


def _request(**overrides: object) -> DraftRequest:
    data: dict[str, object] = {
        "title": "Photosynthesis",
        "section_role": "body",
        "target_length": 240,
        "outline_fragment": FRAGMENT,
    }
    data.update(overrides)
    return DraftRequest(**data)


def _cited(n: int) -> str:
    return " ".join(["lorem"] * n) + " (Smith, 2021)."


# ---------------------------------------------------------------------- spec-first path


def test_repair_fixes_short_first_attempt(settings: Settings) -> None:
    """It should list the violation in a repair prompt and accept the corrected text."""

    gw = ScriptedGateway([words(180), words(236)])
    result = SectionDraftSynthesizer(settings, gw).synthesize(_request())

    assert result.path == "spec"
    assert result.attempts_used == 2
    assert result.text == words(236)
    assert result.final_validation is not None and result.final_validation.is_valid
    assert result.final_validation.measured_length == 236
    assert result.model_used == "openai/gpt-4.1-mini"

    repair = gw.prompt(1)
    assert repair.startswith("Please fix the following paragraph")
    assert "- Length too short: 180 (minimum: 216)" in repair
    assert [opts.max_tokens for _, opts in gw.calls] == [576, 576]


def test_length_adjust_runs_after_repairs(settings: Settings) -> None:
    """It should run one expand pass when only length violations remain after repairs."""

    gw = ScriptedGateway([words(150), words(170), words(190), words(240)])
    result = SectionDraftSynthesizer(settings, gw).synthesize(_request())

    assert result.path == "spec"
    assert result.attempts_used == 4
    assert gw.prompt(3).startswith("Expand the paragraph so the length is within 216-264 words.")
    assert gw.calls[3][1].max_tokens == 624


def test_shorten_adjust_for_long_text(settings: Settings) -> None:
    """It should ask to shorten when the remaining violation is an over-length text."""

    gw = ScriptedGateway([words(300), words(300), words(300), words(250)])
    result = SectionDraftSynthesizer(settings, gw).synthesize(_request())

    assert result.attempts_used == 4
    assert gw.prompt(3).startswith("Shorten the paragraph")


def test_exhaustion_falls_back_to_legacy(settings: Settings) -> None:
    """It should hand over to the legacy path when repairs cannot clear a non-length violation."""

    bad = f"{words(120)} In summary {words(118)}"
    gw = ScriptedGateway([bad, bad, bad, words(260)])
    result = SectionDraftSynthesizer(settings, gw).synthesize(_request())

    assert result.path == "legacy"
    assert result.final_validation is None
    assert result.attempts_used == 1
    assert result.text == words(260)
    assert gw.calls[3][0][0].content.startswith("You are a rigorous academic writing assistant. Write clearly")
    assert gw.calls[3][1].max_tokens == 528


def test_exhaustion_without_legacy_raises(settings: Settings) -> None:
    """It should raise ValidationExhaustedError when the legacy fallback is disabled."""

    strict = settings.model_copy(update={"legacy_fallback_enabled": False})
    bad = f"{words(120)} In summary {words(118)}"
    gw = ScriptedGateway([bad, bad, bad])
    with pytest.raises(ValidationExhaustedError):
        SectionDraftSynthesizer(strict, gw).synthesize(_request())
    assert gw.remaining == 0


def test_ciphertext_reply_is_rejected(settings: Settings) -> None:
    """It should raise ModelReturnedCiphertext when the model answers with a Fernet token."""

    token = Fernet(Fernet.generate_key()).encrypt(b"summary " * 20).decode()
    gw = ScriptedGateway([token])
    with pytest.raises(ModelReturnedCiphertext):
        SectionDraftSynthesizer(settings, gw).synthesize(_request())
    assert len(gw.calls) == 1


def test_ciphertext_inputs_never_reach_the_prompt(settings: Settings) -> None:
    """It should blank ciphertext-shaped free-text fields before prompting."""

    token = Fernet(Fernet.generate_key()).encrypt(b"summary " * 20).decode()
    gw = ScriptedGateway([words(240)])
    SectionDraftSynthesizer(settings, gw).synthesize(_request(reference_notes=token))
    assert token not in gw.prompt(0)


def test_ciphertext_in_every_field_and_spec_list_is_redacted(settings: Settings) -> None:
    """It should keep ciphertext out of every prompt and the result, whatever field carries it."""

    token = Fernet(Fernet.generate_key()).encrypt(b"summary " * 20).decode()
    gw = ScriptedGateway([words(240)])
    request = _request(
        title=token,
        language=token,
        tone=token,
        reference_notes=token,
        outline_fragment=f"- Light reactions {token}",
        explicit_spec={"mustInclude": [token], "bannedTopics": [token], "bannedPhrases": [token]},
    )
    result = SectionDraftSynthesizer(settings, gw).synthesize(request)

    for messages, _ in gw.calls:
        assert all(token not in m.content for m in messages)
    assert token not in result.model_dump_json()
    assert result.language == "English"
    assert result.text == words(240)


def test_conclusion_role_keeps_its_opener(settings: Settings) -> None:
    """It should keep "In conclusion," for a conclusion section whatever its paragraph type is called."""

    reply = "In conclusion, " + words(98)
    gw = ScriptedGateway([reply])
    result = SectionDraftSynthesizer(settings, gw).synthesize(
        _request(section_role="conclusion", target_length=100, explicit_spec={"paragraphType": "closing_summary"})
    )
    assert result.text.startswith("In conclusion,")


# ---------------------------------------------------------------------- citations and sources


def test_citations_kept_with_verified_source(settings: Settings) -> None:
    """It should list verified sources in the prompt and keep citations in the text."""

    gw = ScriptedGateway([_cited(230)])
    result = SectionDraftSynthesizer(settings, gw).synthesize(_request(verified_sources=[SOURCE]))

    prompt = gw.prompt(0)
    assert "Verified sources:" in prompt
    assert "1. Smith, J. (2021). Light harvesting." in prompt
    assert "(Smith, 2021)" in result.text


def test_citations_stripped_without_sources(settings: Settings) -> None:
    """It should gate citations off and strip them when no verified source exists."""

    gw = ScriptedGateway([_cited(230)])
    result = SectionDraftSynthesizer(settings, gw).synthesize(_request())

    prompt = gw.prompt(0)
    assert "- No citations." in prompt
    assert "Verified sources:" not in prompt
    assert "(Smith" not in result.text
    assert result.text == words(230)


def test_unverified_candidates_block_body_sections(settings: Settings) -> None:
    """It should refuse a body section when candidates are given but none is verified."""

    gw = ScriptedGateway([])
    weak = VerifiedSource(title="Thin", summary_text="too short")
    with pytest.raises(ValidationExhaustedError):
        SectionDraftSynthesizer(settings, gw).synthesize(_request(verified_sources=[weak]))
    assert gw.calls == []


def test_unverified_candidates_allowed_for_introduction(settings: Settings) -> None:
    """It should let an introduction proceed without verified sources."""

    weak = VerifiedSource(title="Thin", summary_text="too short")
    gw = ScriptedGateway([words(120)])
    result = SectionDraftSynthesizer(settings, gw).synthesize(
        _request(section_role="introduction", target_length=120, verified_sources=[weak])
    )
    assert result.path == "spec"


def test_unverified_candidates_only_warn_when_not_required(settings: Settings) -> None:
    """It should proceed without citations when verified sources are not required."""

    lenient = settings.model_copy(update={"require_verified_sources": False})
    weak = VerifiedSource(title="Thin", summary_text="too short")
    gw = ScriptedGateway([words(240)])
    result = SectionDraftSynthesizer(lenient, gw).synthesize(_request(verified_sources=[weak]))
    assert result.path == "spec"
    assert "- No citations." in gw.prompt(0)


# ---------------------------------------------------------------------- spec building


def test_invalid_explicit_spec_is_rejected(settings: Settings) -> None:
    """It should raise InvalidRequestError for an explicit spec that cannot be normalized."""

    gw = ScriptedGateway([])
    request = _request(section_role=None, explicit_spec={"targetCount": 0, "unit": "word"})
    with pytest.raises(InvalidRequestError):
        SectionDraftSynthesizer(settings, gw).synthesize(request)
    assert gw.calls == []


def test_explicit_spec_merges_over_role_preset(settings: Settings) -> None:
    """It should take the explicit fields and fill the rest from the role preset."""

    gw = ScriptedGateway([words(50)])
    result = SectionDraftSynthesizer(settings, gw).synthesize(
        _request(explicit_spec={"targetCount": 50, "singleParagraphOnly": True})
    )
    assert result.final_validation is not None
    assert result.final_validation.measured_length == 50
    assert "Task: Write a body paragraph." in gw.prompt(0)
    assert "ONE paragraph only." in gw.prompt(0)


def test_position_decides_role(settings: Settings) -> None:
    """It should treat the last of several sections as the conclusion."""

    gw = ScriptedGateway([words(100)])
    SectionDraftSynthesizer(settings, gw).synthesize(
        _request(section_role=None, section_index=5, total_sections=5, target_length=100)
    )
    assert "Task: Write a conclusion paragraph." in gw.prompt(0)


# ---------------------------------------------------------------------- model handling


def test_fallback_model_is_reported(settings: Settings) -> None:
    """It should report the fallback model when the primary fails."""

    gw = ScriptedGateway([TransportError("HTTP 503", status=503), words(240)])
    result = SectionDraftSynthesizer(settings, gw).synthesize(_request())
    assert result.model_used == "openai/gpt-4o-mini"
    assert gw.calls[1][1].model == "openai/gpt-4o-mini"


def test_invalid_model_id_is_not_retried(settings: Settings) -> None:
    """It should surface an invalid-model rejection as ServiceError after one call."""

    err = TransportError("HTTP 400", status=400, body="openai/gpt-9 is not a valid model ID")
    gw = ScriptedGateway([err])
    with pytest.raises(ServiceError):
        SectionDraftSynthesizer(settings, gw).synthesize(_request(mode="openai/gpt-9"))
    assert len(gw.calls) == 1
    assert gw.calls[0][1].model == "openai/gpt-9"


def test_generation_failure_does_not_fall_back_to_legacy(settings: Settings) -> None:
    """It should raise ServiceError when both models fail during spec-first generation."""

    gw = ScriptedGateway([TransportError("down", status=503), TransportError("down", status=503)])
    with pytest.raises(ServiceError):
        SectionDraftSynthesizer(settings, gw).synthesize(_request())
    assert gw.remaining == 0


def test_synthesize_many_keeps_request_order(settings: Settings) -> None:
    """It should draft several sections concurrently and return results in request order."""

    gw = ScriptedGateway([words(240), words(230)])
    synth = SectionDraftSynthesizer(settings, gw)
    results = asyncio.run(synth.synthesize_many([_request(), _request(section_index=3)], concurrency=1))
    assert [r.final_validation.measured_length for r in results] == [240, 230]


# ---------------------------------------------------------------------- legacy path


def test_no_role_uses_legacy_with_continuations(settings: Settings) -> None:
    """It should draft a whole document and top it up with newline-joined continuations."""

    gw = ScriptedGateway([words(100), words(100, "ipsum"), words(150, "dolor")])
    result = SectionDraftSynthesizer(settings, gw).synthesize(_request(section_role=None, target_length=300))

    assert result.path == "legacy"
    assert result.attempts_used == 3
    assert result.text == "\n".join([words(100), words(100, "ipsum"), words(150, "dolor")])
    assert "Write the complete draft" in gw.prompt(0)
    assert gw.prompt(1).startswith("Continue seamlessly from the cutoff")
    assert [opts.max_tokens for _, opts in gw.calls] == [660, 360, 240]


def test_failed_continuation_keeps_draft(settings: Settings) -> None:
    """It should stop continuing after a failed call and keep what it has."""

    gw = ScriptedGateway([words(100), TransportError("down", status=503)])
    result = SectionDraftSynthesizer(settings, gw).synthesize(_request(section_role=None, target_length=300))
    assert result.text == words(100)
    assert result.attempts_used == 2


def _ctx(**overrides: object) -> DraftContext:
    data: dict[str, object] = {
        "title": "Photosynthesis",
        "role": SectionRole.INTRODUCTION,
        "language": "English",
        "is_cjk": False,
        "tone": "academic",
        "target_length": 120,
        "outline_fragment": "- Did you know plants make oxygen?\n- Thesis: This essay explains photosynthesis",
        "reference_notes": "",
        "ref_lines": "",
        "model": "openai/gpt-4.1-mini",
    }
    data.update(overrides)
    return DraftContext(**data)


def test_english_intro_gets_one_expand_pass(settings: Settings) -> None:
    """It should expand a short English introduction once instead of continuing it."""

    gw = ScriptedGateway([words(60), words(118)])
    draft = LegacyDrafter(settings, gw).draft(_ctx())

    assert draft.text == words(118)
    assert draft.attempts == 2
    assert "Outline sub-points (must be covered):" in gw.prompt(0)
    assert "Hook:\n1. Did you know plants make oxygen?" in gw.prompt(0)
    assert gw.calls[0][1].max_tokens == 264
    assert gw.calls[1][0][0].content == INTRO_EXPAND_SYSTEM_PROMPT
    assert gw.calls[1][1].max_tokens == 600
    assert gw.prompt(1).startswith("Expand the following English introduction to about 120 words (acceptable range 108-132).")


def test_failed_intro_adjust_keeps_draft(settings: Settings) -> None:
    """It should keep the draft when the shorten pass fails."""

    gw = ScriptedGateway([words(200), TransportError("down", status=503)])
    draft = LegacyDrafter(settings, gw).draft(_ctx())
    assert draft.text == words(200)
    assert draft.attempts == 2


def test_cjk_intro_continuations_are_space_joined(settings: Settings) -> None:
    """It should continue a short CJK introduction and join the parts with a space."""

    sentence = "光合作用是植物的過程。"
    parts = [sentence * 5, sentence * 3, sentence * 3]
    gw = ScriptedGateway(parts)
    draft = LegacyDrafter(settings, gw).draft(_ctx(language="中文", is_cjk=True, target_length=100))

    assert draft.text == " ".join(parts)
    assert draft.attempts == 3
    assert [opts.max_tokens for _, opts in gw.calls] == [120, 180, 144]


def test_too_short_legacy_text_raises(settings: Settings) -> None:
    """It should raise ValidationExhaustedError when the legacy text is under ten characters."""

    gw = ScriptedGateway(["Ok.", EmptyContentError("empty")])
    with pytest.raises(ValidationExhaustedError):
        LegacyDrafter(settings, gw).draft(_ctx(role=SectionRole.BODY))

"""Unstructured prompt path.

Used when no spec applies (no role, no explicit spec) and as the fallback when spec-first
generation cannot converge. There is no validator loop here. Under-length drafts are topped up by
bounded continuation calls, and an English introduction gets one expand/shorten pass to land
within ±10% of the target.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from draftsmith.config import Settings
from draftsmith.drafting.assembly import policy_for
from draftsmith.drafting.context import DraftContext
from draftsmith.drafting.intro_points import extract_intro_points
from draftsmith.drafting.sanitize import normalize_intro, strip_conclusion_opener, strip_meta
from draftsmith.drafting.spec import measure
from draftsmith.errors import GatewayError, ValidationExhaustedError
from draftsmith.guard import ensure_not_ciphertext
from draftsmith.llm.client import ChatMessage, CompletionOptions, Completer
from draftsmith.llm.fallback import complete_with_fallback
from draftsmith.logging import get_logger, set_stage
from draftsmith.models.outline import SectionRole
from draftsmith.models.spec import LengthUnit
from draftsmith.prompts.draft import (
    INTRO_EXPAND_SYSTEM_PROMPT,
    INTRO_SHORTEN_SYSTEM_PROMPT,
    build_continuation_prompt,
    build_intro_adjust_prompt,
    build_legacy_intro_prompt,
    build_legacy_section_prompt,
    continuation_system_prompt,
    legacy_system_prompt,
)
from draftsmith.utils.citations import strip_citations

logger = get_logger(__name__)

MIN_TEXT_CHARS = 10
_CONTINUATION_SLACK = 100


@dataclass(frozen=True)
class LegacyDraft:
    text: str
    attempts: int
    model_used: str


class LegacyDrafter:
    def __init__(self, settings: Settings, gateway: Completer) -> None:
        self._settings = settings
        self._gateway = gateway

    def draft(self, ctx: DraftContext) -> LegacyDraft:
        """Produce a section (or whole draft) from a free-text prompt.

        Raises:
            ServiceError: The first call failed on both models.
            ModelReturnedCiphertext: Any reply was ciphertext-shaped.
            ValidationExhaustedError: Nothing usable came back.
        """

        set_stage("LEGACY")
        unit = LengthUnit.CJK_CHAR if ctx.is_cjk else LengthUnit.WORD
        if ctx.role is SectionRole.INTRODUCTION:
            prompt = build_legacy_intro_prompt(ctx, extract_intro_points(ctx.outline_fragment))
        else:
            prompt = build_legacy_section_prompt(ctx)
        ratio = 1.2 if ctx.is_cjk else 2.2
        options = CompletionOptions(
            model=ctx.model,
            temperature=self._settings.llm_temperature,
            max_tokens=min(math.ceil(ctx.target_length * ratio), self._settings.draft_max_tokens_cap),
            timeout_s=self._settings.draft_timeout_s,
        )
        messages = [
            ChatMessage(role="system", content=legacy_system_prompt(ctx.language)),
            ChatMessage(role="user", content=prompt),
        ]
        reply, model_used = complete_with_fallback(
            self._gateway, messages, options, self._settings.llm_fallback_model, skip_invalid_model=True
        )
        draft = self._clean(ensure_not_ciphertext(reply, stage="response"), ctx)
        attempts = 1

        policy = policy_for(ctx.role, ctx.is_cjk, self._settings.max_continuations)
        continuations = 0
        while continuations < policy.max_continuations and measure(draft, unit) < ctx.target_length:
            continuations += 1
            more = self._continue(draft, ctx, model_used, unit)
            attempts += 1
            if not more:
                logger.info("Continuation returned nothing, stopping", extra={"round": continuations})
                break
            draft = policy.join(draft, more)
            logger.info(
                "Continuation appended",
                extra={"round": continuations, "length": measure(draft, unit), "target": ctx.target_length},
            )

        if ctx.is_english_intro:
            draft, extra_calls = self._fit_intro(draft, ctx, model_used)
            attempts += extra_calls

        if len(draft.strip()) < MIN_TEXT_CHARS:
            raise ValidationExhaustedError("Generated content is empty or too short.")
        logger.info(
            "Legacy draft ready",
            extra={"length": measure(draft, unit), "target": ctx.target_length, "attempts": attempts},
        )
        return LegacyDraft(text=draft, attempts=attempts, model_used=model_used)

    def _clean(self, text: str, ctx: DraftContext) -> str:
        s = strip_meta(text)
        if ctx.role is SectionRole.INTRODUCTION:
            s = normalize_intro(s)
        elif ctx.role is SectionRole.BODY:
            s = strip_conclusion_opener(s)
        if ctx.role is SectionRole.INTRODUCTION or not ctx.ref_lines:
            s = strip_citations(s)
        return s

    def _continue(self, draft: str, ctx: DraftContext, model: str, unit: LengthUnit) -> str:
        remaining = ctx.target_length - measure(draft, unit) + _CONTINUATION_SLACK
        options = CompletionOptions(
            model=model,
            temperature=self._settings.llm_temperature,
            max_tokens=min(math.ceil(remaining * 1.2), self._settings.continuation_max_tokens_cap),
            timeout_s=self._settings.draft_timeout_s,
        )
        messages = [
            ChatMessage(role="system", content=continuation_system_prompt(ctx.language)),
            ChatMessage(
                role="user",
                content=build_continuation_prompt(
                    draft, target_length=ctx.target_length, language=ctx.language, is_cjk=ctx.is_cjk
                ),
            ),
        ]
        try:
            reply = self._gateway.submit(messages, options)
        except GatewayError as exc:
            logger.warning("Continuation failed, keeping draft", extra={"model": model, "error": str(exc)})
            return ""
        return self._clean(ensure_not_ciphertext(reply, stage="response"), ctx)

    def _fit_intro(self, draft: str, ctx: DraftContext, model: str) -> tuple[str, int]:
        """Expand or shorten an English introduction toward ±10% of target; failures keep the draft."""

        low = round(ctx.target_length * 0.9)
        high = round(ctx.target_length * 1.1)
        count = measure(draft, LengthUnit.WORD)
        if low <= count <= high:
            return draft, 0

        expand = count < low
        options = CompletionOptions(
            model=model,
            temperature=self._settings.llm_temperature,
            max_tokens=self._settings.intro_adjust_max_tokens,
            timeout_s=self._settings.draft_timeout_s,
        )
        messages = [
            ChatMessage(role="system", content=INTRO_EXPAND_SYSTEM_PROMPT if expand else INTRO_SHORTEN_SYSTEM_PROMPT),
            ChatMessage(
                role="user",
                content=build_intro_adjust_prompt(
                    draft, target_length=ctx.target_length, low=low, high=high, expand=expand
                ),
            ),
        ]
        try:
            reply = self._gateway.submit(messages, options)
        except GatewayError as exc:
            logger.warning("Introduction length pass failed, keeping draft", extra={"error": str(exc)})
            return draft, 1
        adjusted = self._clean(ensure_not_ciphertext(reply, stage="response"), ctx)
        logger.info(
            "Introduction length adjusted",
            extra={"direction": "expand" if expand else "shorten", "before": count, "after": measure(adjusted, LengthUnit.WORD)},
        )
        return (adjusted or draft), 1

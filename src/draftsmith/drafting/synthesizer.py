"""Section draft synthesizer.

States::

    BUILD_SPEC → GENERATE → VALIDATE → (REPAIR ⇄ VALIDATE)* → [LENGTH_ADJUST → VALIDATE] → ACCEPT
                                                                                         ↘ LEGACY

A request without a usable spec (no role, no explicit spec) goes straight to the legacy path.
Every call is stateless: all working state lives in locals of :meth:`synthesize`.
"""

from __future__ import annotations

import asyncio
import math
from typing import Sequence

from draftsmith.config import Settings
from draftsmith.drafting.context import DraftContext
from draftsmith.drafting.legacy import MIN_TEXT_CHARS, LegacyDrafter
from draftsmith.drafting.presets import determine_role, preset_fields, preset_key, preset_for_role
from draftsmith.drafting.sanitize import sanitize_output
from draftsmith.drafting.spec import length_range, measure, normalize_spec, validate
from draftsmith.errors import InvalidRequestError, ValidationExhaustedError
from draftsmith.guard import ensure_not_ciphertext, redact_ciphertext, redact_fields, redact_mapping
from draftsmith.llm.client import ChatMessage, CompletionGateway, CompletionOptions, Completer
from draftsmith.llm.fallback import complete_with_fallback
from draftsmith.llm.models import resolve_model
from draftsmith.logging import get_logger, set_stage
from draftsmith.models.draft import DraftRequest, SectionDraftResult
from draftsmith.models.outline import SectionRole
from draftsmith.models.sources import render_reference_lines
from draftsmith.models.spec import LengthUnit, ParagraphSpec, ValidationResult
from draftsmith.prompts.draft import build_adjust_prompt, build_repair_prompt, build_spec_prompt, spec_system_prompt
from draftsmith.utils.language import is_cjk_language

logger = get_logger(__name__)

DEFAULT_LANGUAGE = "English"


class SectionDraftSynthesizer:
    """Drafts one section against a paragraph spec, falling back to the legacy prompt path."""

    def __init__(self, settings: Settings, gateway: Completer | None = None) -> None:
        self._settings = settings
        self._gateway = gateway or CompletionGateway(settings)
        self._legacy = LegacyDrafter(settings, self._gateway)

    async def synthesize_async(self, request: DraftRequest) -> SectionDraftResult:
        return await asyncio.to_thread(self.synthesize, request)

    async def synthesize_many(
        self, requests: Sequence[DraftRequest], *, concurrency: int = 4
    ) -> list[SectionDraftResult]:
        """Draft independent sections concurrently; results keep the order of ``requests``."""

        semaphore = asyncio.Semaphore(max(1, concurrency))

        async def one(req: DraftRequest) -> SectionDraftResult:
            async with semaphore:
                return await self.synthesize_async(req)

        return list(await asyncio.gather(*(one(r) for r in requests)))

    def synthesize(self, request: DraftRequest) -> SectionDraftResult:
        """Produce accepted text for one section.

        Raises:
            InvalidRequestError: The explicit spec could not be normalized.
            ValidationExhaustedError: Candidate sources were given but none verified, or neither
                path produced acceptable text.
            ServiceError: A generation call failed on both models.
            ModelReturnedCiphertext: A reply or the final text was ciphertext-shaped.
        """

        set_stage("BUILD_SPEC")
        role = determine_role(request.section_role, request.section_index, request.total_sections)
        ref_lines = self._reference_lines(request, role)

        fields = redact_fields(
            {
                "title": request.title,
                "language": request.language,
                "tone": request.tone,
                "outline_fragment": request.outline_fragment,
                "reference_notes": request.reference_notes,
            }
        )
        language = fields["language"] or DEFAULT_LANGUAGE
        is_cjk = is_cjk_language(language)
        ctx = DraftContext(
            title=fields["title"],
            role=role,
            language=language,
            is_cjk=is_cjk,
            tone=fields["tone"],
            target_length=request.target_length,
            outline_fragment=fields["outline_fragment"],
            reference_notes=fields["reference_notes"],
            ref_lines=ref_lines,
            model=resolve_model(request.mode, self._settings),
        )
        spec = self._build_spec(request, role, is_cjk)

        if spec is not None:
            accepted = self._spec_first(ctx, spec)
            if accepted is not None:
                text, attempts, validation, model_used = accepted
                return self._result(text, ctx, attempts, validation, "spec", model_used)
            if not self._settings.legacy_fallback_enabled:
                raise ValidationExhaustedError(
                    "Could not produce text meeting the paragraph specification."
                )
            logger.warning("Spec-first exhausted, falling back to legacy path")

        legacy = self._legacy.draft(ctx)
        return self._result(legacy.text, ctx, legacy.attempts, None, "legacy", legacy.model_used)

    # ------------------------------------------------------------------ BUILD_SPEC

    def _reference_lines(self, request: DraftRequest, role: SectionRole | None) -> str:
        candidates = request.verified_sources or []
        verified = [s for s in candidates if s.verified]
        logger.info("Sources checked", extra={"candidates": len(candidates), "verified": len(verified)})
        if candidates and not verified and role is not SectionRole.INTRODUCTION:
            if self._settings.require_verified_sources:
                raise ValidationExhaustedError(
                    "Source not verified: at least one reference must contain a full abstract or body text."
                )
            logger.warning("No verified source among candidates, drafting without citations")
        return redact_ciphertext(render_reference_lines(verified))

    @staticmethod
    def _build_spec(request: DraftRequest, role: SectionRole | None, is_cjk: bool) -> ParagraphSpec | None:
        if request.explicit_spec is not None:
            fallback = (
                preset_fields(preset_key(role, request.target_length, is_cjk), request.target_length, is_cjk)
                if role is not None
                else None
            )
            spec = normalize_spec(redact_mapping(request.explicit_spec), fallback)
            if spec is None:
                raise InvalidRequestError(
                    "Invalid spec: targetCount, unit, tolerancePercent, singleParagraphOnly, "
                    "paragraphType and rhetoricalMove are required."
                )
            return spec
        if role is None:
            logger.info("No section role, using the unstructured prompt path")
            return None
        return preset_for_role(role, request.target_length, is_cjk)

    # ------------------------------------------------------------------ spec-first loop

    def _spec_first(
        self, ctx: DraftContext, spec: ParagraphSpec
    ) -> tuple[str, int, ValidationResult, str] | None:
        working = spec
        if spec.allow_citations and not ctx.ref_lines:
            working = spec.model_copy(update={"allow_citations": False})
            logger.info("Citations gated off: no verified source")
        citations_ok = working.allow_citations
        low, high = length_range(working)
        by_chars = working.unit is not LengthUnit.WORD
        system = spec_system_prompt(ctx.is_cjk)
        model = ctx.model

        set_stage("GENERATE")
        max_tokens = min(math.ceil(working.target_count * (1.4 if by_chars else 2.4)), self._settings.draft_max_tokens_cap)
        reply, model = self._call(system, build_spec_prompt(ctx, working), model, max_tokens)
        text = sanitize_output(reply, working, citations_allowed=citations_ok, role=ctx.role)
        attempts = 1
        result = self._check(text, working, ctx, attempts)

        iterations = 0
        while not result.is_valid and iterations < self._settings.repair_max_iterations:
            iterations += 1
            set_stage("REPAIR")
            reply, model = self._call(system, build_repair_prompt(text, working, result, ctx.is_cjk), model, max_tokens)
            text = sanitize_output(reply, working, citations_allowed=citations_ok, role=ctx.role)
            attempts += 1
            result = self._check(text, working, ctx, attempts)

        if not result.is_valid and result.length_only:
            set_stage("LENGTH_ADJUST")
            expand = result.measured_length < low
            adjust_tokens = min(
                math.ceil(working.target_count * (1.6 if by_chars else 2.6)), self._settings.adjust_max_tokens_cap
            )
            reply, model = self._call(
                system, build_adjust_prompt(text, working, expand=expand, is_cjk=ctx.is_cjk), model, adjust_tokens
            )
            text = sanitize_output(reply, working, citations_allowed=citations_ok, role=ctx.role)
            attempts += 1
            result = self._check(text, working, ctx, attempts)

        set_stage("ACCEPT")
        recount = measure(text, working.unit)
        level = logger.warning if recount != result.measured_length else logger.info
        level(
            "Accept-time length check",
            extra={"validator": result.measured_length, "recount": recount, "low": low, "high": high},
        )
        if result.is_valid and low <= recount <= high and len(text.strip()) >= MIN_TEXT_CHARS:
            return text, attempts, result, model
        logger.warning(
            "Spec-first did not converge",
            extra={"attempts": attempts, "violations": result.messages()},
        )
        return None

    def _call(self, system: str, prompt: str, model: str, max_tokens: int) -> tuple[str, str]:
        options = CompletionOptions(
            model=model,
            temperature=self._settings.llm_temperature,
            max_tokens=max_tokens,
            timeout_s=self._settings.draft_timeout_s,
        )
        messages = [ChatMessage(role="system", content=system), ChatMessage(role="user", content=prompt)]
        text, model_used = complete_with_fallback(
            self._gateway, messages, options, self._settings.llm_fallback_model, skip_invalid_model=True
        )
        return ensure_not_ciphertext(text, stage="response"), model_used

    @staticmethod
    def _check(text: str, spec: ParagraphSpec, ctx: DraftContext, attempt: int) -> ValidationResult:
        set_stage("VALIDATE")
        result = validate(text, spec, ctx.is_cjk)
        logger.info(
            "Validation result",
            extra={
                "attempt": attempt,
                "valid": result.is_valid,
                "measured": result.measured_length,
                "paragraphs": result.paragraph_count,
                "violations": result.messages(),
            },
        )
        return result

    @staticmethod
    def _result(
        text: str,
        ctx: DraftContext,
        attempts: int,
        validation: ValidationResult | None,
        path: str,
        model_used: str,
    ) -> SectionDraftResult:
        final = ensure_not_ciphertext(text.strip(), stage="final")
        return SectionDraftResult(
            text=final,
            language=ctx.language,
            attempts_used=attempts,
            final_validation=validation,
            path=path,  # type: ignore[arg-type]
            model_used=model_used,
        )

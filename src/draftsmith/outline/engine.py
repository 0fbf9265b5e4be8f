"""Outline structuring engine.

Flow for a new outline::

    prompt → raw outline (primary model, one fallback) → structure_outline (pure steps)
    → backfill empty sections → enrich bullets → render → budgets

Backfill and enrichment are best effort: any failure leaves the section as it was.
"""

from __future__ import annotations

import asyncio
import re
from typing import Sequence

from draftsmith.config import Settings
from draftsmith.errors import GatewayError, InvalidRequestError, ModelReturnedCiphertext
from draftsmith.guard import ensure_not_ciphertext, redact_fields
from draftsmith.llm.client import ChatMessage, CompletionGateway, CompletionOptions, Completer
from draftsmith.llm.fallback import complete_with_fallback
from draftsmith.llm.models import resolve_model
from draftsmith.logging import get_logger, set_stage
from draftsmith.models.outline import OutlineRequest, OutlineResult, OutlineSection
from draftsmith.outline.budgets import apply_budgets
from draftsmith.outline.structure import (
    BUDGET_SUFFIX_RE,
    HEADER_RE,
    Sections,
    has_real_bullets,
    is_zh_style,
    marker_ordinal,
    normalize_headers,
    parse_sections,
    placeholder_bullet,
    primary_bullets,
    rationale_line,
    render_outline,
    role_for,
    sanitize_bullets,
    structure_outline,
)
from draftsmith.prompts.outline import (
    OUTLINE_SYSTEM_PROMPT,
    build_backfill_prompt,
    build_enrich_prompt,
    build_outline_prompt,
    build_regenerate_prompt,
)

logger = get_logger(__name__)

DEFAULT_LANGUAGE = "English"

_LEADING_MARKER_RE = re.compile(r"^(?:[-•*]|\d+[.)])\s*")
_SUB_A_RE = re.compile(r"^a\.\s")
_SUB_B_RE = re.compile(r"^b\.\s")
_MAX_BACKFILL = 5
_MAX_ENRICHED_LINES = 12


def locate_section(lines: Sequence[str], index: int) -> tuple[int, int]:
    """Line range ``[start, end)`` of section ``index``: its header through the next header.

    Raises:
        InvalidRequestError: No header carries that ordinal.
    """

    start = None
    for i, ln in enumerate(lines):
        m = HEADER_RE.match(ln)
        if m and marker_ordinal(m.group(1)) == index:
            start = i
            break
    if start is None:
        raise InvalidRequestError(f"Section {index} not found in the current outline.")
    end = next((i for i in range(start + 1, len(lines)) if HEADER_RE.match(lines[i])), len(lines))
    return start, end


class OutlineEngine:
    """Builds outlines and regenerates single sections."""

    def __init__(self, settings: Settings, gateway: Completer | None = None) -> None:
        self._settings = settings
        self._gateway = gateway or CompletionGateway(settings)

    def run(self, request: OutlineRequest) -> OutlineResult:
        """Dispatch to :meth:`regenerate_section` when the request names a section, else :meth:`generate`."""

        if request.regenerate_section_index is not None:
            return self.regenerate_section(request)
        return self.generate(request)

    async def generate_async(self, request: OutlineRequest) -> OutlineResult:
        return await asyncio.to_thread(self.run, request)

    # ------------------------------------------------------------------ public steps

    def generate(self, request: OutlineRequest) -> OutlineResult:
        """Generate a complete outline with per-section budgets.

        Raises:
            ServiceError: Primary and fallback model both failed.
            ModelReturnedCiphertext: The outline response was ciphertext-shaped.
        """

        set_stage("outline")
        request = self._guarded(request)
        language = request.language
        zh = is_zh_style(language)
        body_count = request.body_count()
        fields = self._fields(request)
        subtitles = request.explicit_plan.body_subtitles if request.explicit_plan else None

        prompt = build_outline_prompt(
            fields,
            total_length=request.total_length,
            language=language,
            tone=request.tone,
            body_count=body_count,
            plan=request.explicit_plan,
            zh=zh,
        )
        raw, model_used = self._complete_primary(prompt, resolve_model(request.mode, self._settings))

        sections = structure_outline(raw, language, body_count, subtitles)
        sections = self._backfill(sections, request, fields, model_used)
        sections = self._enrich(sections, request, model_used)

        text, budgets = apply_budgets(
            render_outline(sections, language), language, request.total_length, request.explicit_plan
        )
        ensure_not_ciphertext(text, stage="final")
        logger.info(
            "Outline generated",
            extra={"sections": len(budgets), "budgets": budgets, "model": model_used},
        )
        return OutlineResult(
            outline_text=text,
            section_budgets=budgets,
            sections=list(parse_sections(text)),
            model_used=model_used,
        )

    def regenerate_section(self, request: OutlineRequest) -> OutlineResult:
        """Regenerate one section's bullets and splice them back into the current outline.

        The section keeps its header (title and marker); only its body lines are replaced.
        Every other line of the current outline is kept as is, and budgets are recomputed over
        the spliced text.

        Raises:
            InvalidRequestError: Missing current outline or section index out of range.
        """

        set_stage("outline_regenerate")
        request = self._guarded(request)
        index = request.regenerate_section_index
        current = request.current_outline_text or ""
        if index is None or not current.strip():
            raise InvalidRequestError("Regeneration requires regenerateSectionIndex and currentOutlineText.")

        lines = current.split("\n")
        header_count = sum(1 for ln in lines if HEADER_RE.match(ln))
        if not 1 <= index <= header_count:
            raise InvalidRequestError(f"Section {index} is outside the current outline (1..{header_count}).")
        start, end = locate_section(lines, index)

        language = request.language
        zh = is_zh_style(language)
        header = BUDGET_SUFFIX_RE.sub("", lines[start].rstrip())
        m = HEADER_RE.match(header)
        title = m.group(2).strip() if m else ""
        fields = self._fields(request)

        prompt = build_regenerate_prompt(
            fields,
            section_index=index,
            section_title=title,
            total_length=request.total_length,
            language=language,
            tone=request.tone,
            body_count=request.body_count(),
            plan=request.explicit_plan,
            zh=zh,
        )
        raw, model_used = self._complete_primary(prompt, resolve_model(request.mode, self._settings))

        fresh = parse_sections(normalize_headers(raw, language))
        body = next((s.bullet_lines for s in fresh if s.bullet_lines), ())
        section = OutlineSection(
            index=index, role=role_for(index - 1, header_count), title=title, bullet_lines=body
        )
        sections = sanitize_bullets((section,), language)
        sections = self._backfill(sections, request, fields, model_used)
        sections = self._enrich(sections, request, model_used)

        span = lines[start:end]
        trailing = len(span) - len("\n".join(span).rstrip("\n").split("\n"))
        spliced = [*lines[:start], header, *sections[0].bullet_lines, *([""] * trailing), *lines[end:]]

        text, budgets = apply_budgets("\n".join(spliced), language, request.total_length, request.explicit_plan)
        ensure_not_ciphertext(text, stage="final")
        logger.info(
            "Outline section regenerated",
            extra={"section": index, "budgets": budgets, "model": model_used},
        )
        return OutlineResult(
            outline_text=text,
            section_budgets=budgets,
            sections=list(parse_sections(text)),
            model_used=model_used,
        )

    # ------------------------------------------------------------------ helpers

    @staticmethod
    def _guarded(request: OutlineRequest) -> OutlineRequest:
        """Copy of ``request`` with ciphertext removed from every free-text field."""

        fields = redact_fields(
            {
                "title": request.title,
                "language": request.language,
                "tone": request.tone,
                "detail": request.detail,
                "reference_notes": request.reference_notes,
                "rubric": request.rubric,
                "current_outline_text": request.current_outline_text,
            }
        )
        fields["language"] = fields["language"] or DEFAULT_LANGUAGE
        return request.model_copy(update=fields)

    @staticmethod
    def _fields(request: OutlineRequest) -> dict[str, str]:
        return {
            "title": request.title,
            "detail": request.detail,
            "reference_notes": request.reference_notes,
            "rubric": request.rubric,
            "current_outline_text": request.current_outline_text or "",
        }

    def _complete_primary(self, prompt: str, model: str) -> tuple[str, str]:
        messages = [
            ChatMessage(role="system", content=OUTLINE_SYSTEM_PROMPT),
            ChatMessage(role="user", content=prompt),
        ]
        options = CompletionOptions(
            model=model,
            temperature=self._settings.llm_temperature,
            max_tokens=4000,
            timeout_s=self._settings.outline_timeout_s,
        )
        text, model_used = complete_with_fallback(
            self._gateway, messages, options, self._settings.llm_fallback_model
        )
        return ensure_not_ciphertext(text, stage="response"), model_used

    def _try_complete(self, prompt: str, *, model: str, temperature: float, timeout_s: float, purpose: str) -> str | None:
        options = CompletionOptions(model=model, temperature=temperature, max_tokens=1500, timeout_s=timeout_s)
        try:
            text = self._gateway.submit([ChatMessage(role="user", content=prompt)], options)
            return ensure_not_ciphertext(text, stage="response")
        except (GatewayError, ModelReturnedCiphertext) as exc:
            logger.warning("Outline %s skipped", purpose, extra={"model": model, "error": str(exc)})
            return None

    def _backfill(
        self, sections: Sections, request: OutlineRequest, fields: dict[str, str], model: str
    ) -> Sections:
        out: list[OutlineSection] = []
        for sec in sections:
            if has_real_bullets(sec):
                out.append(sec)
                continue
            reply = self._try_complete(
                build_backfill_prompt(fields, section_title=sec.title, language=request.language, tone=request.tone),
                model=model,
                temperature=min(0.8, self._settings.llm_temperature),
                timeout_s=self._settings.backfill_timeout_s,
                purpose="backfill",
            )
            if reply is None:
                out.append(sec)
                continue
            cleaned = [
                "- " + _LEADING_MARKER_RE.sub("", ln.strip())
                for ln in reply.splitlines()
                if ln.strip() and not HEADER_RE.match(ln.strip()) and not ln.strip().startswith(">")
            ][:_MAX_BACKFILL]
            rationale = rationale_line(sec)
            lines = cleaned or [placeholder_bullet(request.language)]
            out.append(sec.model_copy(update={"bullet_lines": tuple(lines + ([rationale] if rationale else []))}))
        return tuple(out)

    def _enrich(self, sections: Sections, request: OutlineRequest, model: str) -> Sections:
        zh = is_zh_style(request.language)
        out: list[OutlineSection] = []
        for sec in sections:
            bullets = primary_bullets(sec) if has_real_bullets(sec) else []
            if not bullets:
                out.append(sec)
                continue
            reply = self._try_complete(
                build_enrich_prompt(
                    bullets, section_title=sec.title, language=request.language, tone=request.tone, zh=zh
                ),
                model=model,
                temperature=min(0.7, self._settings.llm_temperature),
                timeout_s=self._settings.enrich_timeout_s,
                purpose="enrich",
            )
            if reply is None:
                out.append(sec)
                continue
            enriched = _bullets_with_subpoints(reply)
            if not enriched:
                out.append(sec)
                continue
            rationale = rationale_line(sec)
            lines = enriched[:_MAX_ENRICHED_LINES] + ([rationale] if rationale else [])
            out.append(sec.model_copy(update={"bullet_lines": tuple(lines)}))
        return tuple(out)


def _bullets_with_subpoints(reply: str) -> list[str]:
    """Keep ``- `` lines and the ``a.``/``b.`` sub-points directly following each."""

    lines = [ln.rstrip() for ln in reply.splitlines()]
    out: list[str] = []
    for i, ln in enumerate(lines):
        if not ln.startswith("- "):
            continue
        out.append(ln)
        a = lines[i + 1].lstrip() if i + 1 < len(lines) else ""
        b = lines[i + 2].lstrip() if i + 2 < len(lines) else ""
        if _SUB_A_RE.match(a):
            out.append("  " + a)
            if _SUB_B_RE.match(b):
                out.append("  " + b)
    return out

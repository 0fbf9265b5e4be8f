"""Outline models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SectionRole(str, Enum):
    """Positional role of an outline section."""

    INTRODUCTION = "introduction"
    BODY = "body"
    CONCLUSION = "conclusion"


class OutlineSection(BaseModel):
    """One section of a structured outline.

    ``bullet_lines`` holds the section body verbatim: primary ``- `` bullets, their indented
    ``a.``/``b.`` sub-points, and an optional trailing ``> `` rationale line.
    Sections are immutable; pipeline steps return new instances via ``model_copy``.
    """

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=1)
    role: SectionRole
    title: str
    bullet_lines: tuple[str, ...] = ()
    word_budget: int = Field(default=0, ge=0)


class ExplicitPlan(BaseModel):
    """Caller-supplied length plan for the outline."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    intro_length: int | None = Field(default=None, gt=0)
    conclusion_length: int | None = Field(default=None, gt=0)
    body_count: int | None = Field(default=None, ge=0)
    body_lengths: list[int] = Field(default_factory=list)
    body_subtitles: list[str] = Field(default_factory=list)

    def resolved_body_count(self) -> int | None:
        return self.body_count or (len(self.body_lengths) or None)


class OutlineRequest(BaseModel):
    """Outline request (new outline or single-section regeneration)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str = Field(min_length=1)
    total_length: int = Field(gt=0)
    language: str = "English"
    tone: str = "academic"
    detail: str = ""
    reference_notes: str = ""
    rubric: str = ""
    desired_body_count: int = Field(default=3, ge=0, le=20)
    explicit_plan: ExplicitPlan | None = None
    regenerate_section_index: int | None = Field(default=None, ge=1)
    current_outline_text: str | None = None
    mode: str = ""

    def body_count(self) -> int:
        """Body-section count, preferring the explicit plan when it names one."""

        if self.explicit_plan is not None:
            planned = self.explicit_plan.resolved_body_count()
            if planned:
                return planned
        return self.desired_body_count


class OutlineResult(BaseModel):
    """Outline response."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    outline_text: str
    section_budgets: list[int] = Field(default_factory=list)
    sections: list[OutlineSection] = Field(default_factory=list)
    model_used: str | None = None

"""Paragraph specification models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class LengthUnit(str, Enum):
    """How the length of a paragraph is measured."""

    CJK_CHAR = "cjk-char"
    GENERIC_CHAR = "generic-char"
    WORD = "word"


class ParagraphSpec(BaseModel):
    """Declarative length/format contract for one generated section.

    Instances are frozen; per-attempt adjustments (e.g. citation gating) work on a copy.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    target_count: int = Field(gt=0)
    unit: LengthUnit
    tolerance_percent: float = Field(default=0.1, gt=0.0, le=0.5)

    single_paragraph_only: bool
    allow_line_breaks: bool = False
    allow_bullets: bool = False
    allow_headings: bool = False

    allow_citations: bool = False
    allow_examples: bool = True
    max_examples: int | None = Field(default=None, ge=0)

    paragraph_type: str = Field(min_length=1)
    rhetorical_move: str = Field(min_length=1)

    must_include: tuple[str, ...] = ()
    banned_topics: tuple[str, ...] = ()
    banned_patterns: tuple[str, ...] = ()
    banned_phrases: tuple[str, ...] = ()


class ViolationKind(str, Enum):
    LENGTH_SHORT = "length_short"
    LENGTH_LONG = "length_long"
    MULTIPLE_PARAGRAPHS = "multiple_paragraphs"
    LINE_BREAKS = "line_breaks"
    BULLETS = "bullets"
    HEADINGS = "headings"
    CITATIONS = "citations"
    MISSING_CONTENT = "missing_content"
    BANNED_TOPIC = "banned_topic"
    BANNED_PATTERN = "banned_pattern"
    BANNED_PHRASE = "banned_phrase"


LENGTH_KINDS = frozenset({ViolationKind.LENGTH_SHORT, ViolationKind.LENGTH_LONG})


class Violation(BaseModel):
    """A single failed check."""

    kind: ViolationKind
    message: str


class ValidationResult(BaseModel):
    """Outcome of measuring a candidate text against a :class:`ParagraphSpec`."""

    is_valid: bool
    measured_length: int
    paragraph_count: int
    violations: list[Violation] = Field(default_factory=list)

    @property
    def length_only(self) -> bool:
        """True when every violation is a length violation (and there is at least one)."""

        return bool(self.violations) and all(v.kind in LENGTH_KINDS for v in self.violations)

    def messages(self) -> list[str]:
        return [v.message for v in self.violations]

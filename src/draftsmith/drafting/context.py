"""Per-request drafting context."""

from __future__ import annotations

from dataclasses import dataclass

from draftsmith.models.outline import SectionRole


@dataclass(frozen=True)
class DraftContext:
    """Per-request inputs shared by the spec-first and legacy paths.

    Free-text fields are already redacted; ``ref_lines`` holds only verified sources.
    """

    title: str
    role: SectionRole | None
    language: str
    is_cjk: bool
    tone: str
    target_length: int
    outline_fragment: str
    reference_notes: str
    ref_lines: str
    model: str

    @property
    def is_english_intro(self) -> bool:
        return self.role is SectionRole.INTRODUCTION and not self.is_cjk

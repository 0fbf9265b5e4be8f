"""Pydantic models used across the project."""

from __future__ import annotations

from draftsmith.models.draft import DraftRequest, SectionDraftResult
from draftsmith.models.outline import ExplicitPlan, OutlineRequest, OutlineResult, OutlineSection, SectionRole
from draftsmith.models.sources import VerifiedSource
from draftsmith.models.spec import LengthUnit, ParagraphSpec, ValidationResult, Violation, ViolationKind

__all__ = [
    "DraftRequest",
    "SectionDraftResult",
    "ExplicitPlan",
    "OutlineRequest",
    "OutlineResult",
    "OutlineSection",
    "SectionRole",
    "VerifiedSource",
    "LengthUnit",
    "ParagraphSpec",
    "ValidationResult",
    "Violation",
    "ViolationKind",
]

"""Draft request/response models."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from draftsmith.models.sources import VerifiedSource
from draftsmith.models.spec import ValidationResult


class DraftRequest(BaseModel):
    """Request for one section's prose.

    The section is identified by ``section_role`` or by ``section_index`` (with
    ``total_sections`` to recognise the conclusion). With neither, the request is treated as a
    whole-document draft and goes straight to the unstructured prompt path.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str = Field(min_length=1)
    section_role: str | None = None
    section_index: int | None = Field(default=None, ge=1)
    total_sections: int | None = Field(default=None, ge=1)
    target_length: int = Field(gt=0)
    language: str = "English"
    tone: str = "academic"
    outline_fragment: str = Field(min_length=1)
    reference_notes: str = ""
    verified_sources: list[VerifiedSource] | None = None
    explicit_spec: dict[str, Any] | None = None
    mode: str = ""


class SectionDraftResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    text: str
    language: str
    attempts_used: int = Field(ge=1)
    final_validation: ValidationResult | None = None
    path: Literal["spec", "legacy"] = "spec"
    model_used: str | None = None

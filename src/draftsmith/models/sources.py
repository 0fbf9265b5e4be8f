"""Verified-source models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

from draftsmith.guard import looks_like_ciphertext

MIN_SUMMARY_CHARS = 100


class VerifiedSource(BaseModel):
    """A candidate reference supplied by the persistence collaborator.

    ``verified`` is derived, never trusted from input: the summary must be substantial and
    must not itself be an undecrypted payload.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str
    authors: str | None = None
    year: str | None = None
    doi: str | None = None
    url: str | None = None
    source: str | None = None
    summary_text: str | None = Field(default=None)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def verified(self) -> bool:
        summary = (self.summary_text or "").strip()
        return len(summary) >= MIN_SUMMARY_CHARS and not looks_like_ciphertext(summary)

    def locator(self) -> str:
        """DOI link when a DOI is known, else the plain URL."""

        if self.doi:
            bare = self.doi.strip()
            for prefix in ("https://doi.org/", "http://doi.org/", "https://", "http://"):
                if bare.startswith(prefix):
                    bare = bare[len(prefix):]
                    break
            return f"https://doi.org/{bare}"
        return self.url or ""


def render_reference_lines(sources: list[VerifiedSource]) -> str:
    """Numbered ``authors (year). title. source locator`` lines for prompt injection."""

    lines: list[str] = []
    for i, src in enumerate(sources, start=1):
        year = (src.year or "")[:4] or "n.d."
        parts = [f"{i}. {src.authors or 'Unknown'} ({year}). {src.title}."]
        if src.source:
            parts.append(src.source)
        locator = src.locator()
        if locator:
            parts.append(locator)
        lines.append(" ".join(parts))
    return "\n".join(lines)

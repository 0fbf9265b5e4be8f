from __future__ import annotations

from draftsmith.prompts.outline import OUTLINE_SYSTEM_PROMPT

__all__ = [
    "OUTLINE_SYSTEM_PROMPT",
]

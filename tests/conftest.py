"""Shared fixtures: settings without I/O and a scripted completion gateway."""

from __future__ import annotations

from collections.abc import Sequence

import pytest

from draftsmith.config import Settings
from draftsmith.llm.client import ChatMessage, CompletionOptions


class ScriptedGateway:
    """Replays canned replies in order; an ``Exception`` entry is raised instead of returned."""

    def __init__(self, replies: Sequence[str | Exception]) -> None:
        self._replies = list(replies)
        self.calls: list[tuple[list[ChatMessage], CompletionOptions]] = []

    def submit(self, messages: Sequence[ChatMessage], options: CompletionOptions) -> str:
        self.calls.append((list(messages), options))
        if not self._replies:
            raise AssertionError(f"unexpected completion call #{len(self.calls)}")
        reply = self._replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    @property
    def remaining(self) -> int:
        return len(self._replies)

    def prompt(self, call: int) -> str:
        """User prompt of the ``call``-th submission."""

        return self.calls[call][0][-1].content


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        llm_api_key="test-key",
        llm_model="openai/gpt-4.1-mini",
        llm_fallback_model="openai/gpt-4o-mini",
    )


def words(n: int, word: str = "lorem") -> str:
    """``n`` space-separated words ending with a full stop."""

    return " ".join([word] * n) + "."

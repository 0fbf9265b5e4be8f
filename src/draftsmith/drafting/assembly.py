"""How continuation replies are joined onto a legacy draft."""

from __future__ import annotations

from dataclasses import dataclass

from draftsmith.models.outline import SectionRole


@dataclass(frozen=True)
class AssemblyPolicy:
    """Separator and continuation bound for one section role."""

    separator: str
    max_continuations: int

    def join(self, draft: str, continuation: str) -> str:
        head = draft.rstrip()
        tail = continuation.strip()
        if not tail:
            return head
        if not head:
            return tail
        return f"{head}{self.separator}{tail}"


def policy_for(role: SectionRole | None, is_cjk: bool, max_continuations: int) -> AssemblyPolicy:
    """Pick the policy for ``role``.

    Introductions are space-joined to stay one paragraph. A non-CJK introduction gets no
    continuations at all; its length is corrected by a dedicated expand/shorten pass instead.
    """

    if role is SectionRole.INTRODUCTION:
        return AssemblyPolicy(separator=" ", max_continuations=max_continuations if is_cjk else 0)
    return AssemblyPolicy(separator="\n", max_continuations=max_continuations)

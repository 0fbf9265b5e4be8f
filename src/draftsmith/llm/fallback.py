"""Primary → secondary model fallback."""

from __future__ import annotations

import re
from dataclasses import replace
from typing import Sequence

from draftsmith.errors import GatewayError, ServiceError, TransportError
from draftsmith.llm.client import ChatMessage, CompletionOptions, Completer
from draftsmith.logging import get_logger

logger = get_logger(__name__)

_INVALID_MODEL_RE = re.compile(r"not a valid model|invalid model|model.*not.*found", re.IGNORECASE)


def is_invalid_model_error(exc: BaseException) -> bool:
    """Whether ``exc`` is a 400 whose body says the model id itself is wrong."""

    if not isinstance(exc, TransportError) or exc.status != 400:
        return False
    return bool(_INVALID_MODEL_RE.search(f"{exc.body} {exc}"))


def complete_with_fallback(
    gateway: Completer,
    messages: Sequence[ChatMessage],
    options: CompletionOptions,
    fallback_model: str | None,
    *,
    skip_invalid_model: bool = False,
) -> tuple[str, str]:
    """Submit on the primary model, retrying once on ``fallback_model`` after a gateway failure.

    Args:
        gateway: Completion gateway.
        messages: Chat messages.
        options: Options for the primary attempt.
        fallback_model: Secondary model; no retry when empty or equal to the primary.
        skip_invalid_model: When set, an invalid-model-id rejection is surfaced without a retry.

    Returns:
        ``(text, model_used)``.

    Raises:
        ServiceError: Both attempts failed (or the single attempt, when no retry applies).
        ConfigurationError: Propagated unchanged; configuration problems are never retried.
    """

    try:
        return gateway.submit(messages, options), options.model
    except GatewayError as exc:
        primary_error = exc

    no_retry = (
        not fallback_model
        or fallback_model == options.model
        or (skip_invalid_model and is_invalid_model_error(primary_error))
    )
    if no_retry:
        raise ServiceError(f"Generation failed on {options.model}: {primary_error}") from primary_error

    logger.warning(
        "Primary model failed, trying fallback",
        extra={"model": options.model, "fallback_model": fallback_model, "error": str(primary_error)},
    )
    try:
        return gateway.submit(messages, replace(options, model=fallback_model)), fallback_model
    except GatewayError as exc:
        raise ServiceError(
            f"Generation failed on {options.model} and fallback {fallback_model}: {exc}"
        ) from exc

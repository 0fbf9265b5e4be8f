"""OpenAI-compatible completion gateway.

This wraps the `openai` Python SDK around a chat-completions endpoint (OpenRouter by default).
The raw body is read before decoding so that failures keep their diagnostics, and text is pulled
out through :func:`draftsmith.llm.extraction.extract_text` rather than the SDK's typed models,
since routed backends do not all honour the schema.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Literal, Protocol, Sequence

import httpx
from openai import APIConnectionError, APIStatusError, APITimeoutError, OpenAI

from draftsmith.config import Settings
from draftsmith.errors import ConfigurationError, DecodeError, EmptyContentError, TransportError
from draftsmith.guard import ensure_not_ciphertext
from draftsmith.llm.extraction import extract_text
from draftsmith.logging import get_logger

logger = get_logger(__name__)

Role = Literal["system", "user", "assistant"]

_BODY_LOG_CHARS = 800
_BODY_ERROR_CHARS = 500


@dataclass(frozen=True)
class ChatMessage:
    """A chat message."""

    role: Role
    content: str


@dataclass(frozen=True)
class CompletionOptions:
    """Per-call options. ``timeout_s`` is a hard abort budget for the whole call."""

    model: str
    temperature: float = 0.7
    max_tokens: int = 4000
    timeout_s: float = 45.0


class Completer(Protocol):
    """Anything that turns chat messages into text (the gateway, or a test double)."""

    def submit(self, messages: Sequence[ChatMessage], options: CompletionOptions) -> str:
        """Return generated text or raise a :class:`~draftsmith.errors.GatewayError`."""


class CompletionGateway:
    """Stateless wrapper around the remote chat-completions endpoint."""

    def __init__(self, settings: Settings, *, http_client: httpx.Client | None = None) -> None:
        self._settings = settings
        self._http_client = http_client
        self._client: OpenAI | None = None

    def _get_client(self) -> OpenAI:
        if not self._settings.llm_api_key:
            raise ConfigurationError(
                "Missing DRAFTSMITH_LLM_API_KEY. Set it in environment variables or a .env file."
            )
        if self._client is None:
            self._client = OpenAI(
                api_key=self._settings.llm_api_key,
                base_url=self._settings.llm_base_url,
                max_retries=0,
                http_client=self._http_client,
            )
        return self._client

    def _headers(self) -> dict[str, str]:
        headers = {"X-Title": self._settings.llm_app_title}
        if self._settings.llm_referer:
            headers["HTTP-Referer"] = self._settings.llm_referer
        return headers

    def submit(self, messages: Sequence[ChatMessage], options: CompletionOptions) -> str:
        """Run one completion.

        Args:
            messages: Chat messages.
            options: Model, sampling and budget options.

        Returns:
            Extracted, stripped text (never empty).

        Raises:
            ConfigurationError: Missing credential or model id.
            TransportError: Non-success status, timeout or connection failure.
            DecodeError: Body is not JSON.
            EmptyContentError: No text could be extracted.
            ModelReturnedCiphertext: The raw body is itself a ciphertext-shaped token.
        """

        if not options.model:
            raise ConfigurationError("Missing model id for completion request.")
        client = self._get_client()

        payload: list[dict[str, str]] = [{"role": m.role, "content": m.content} for m in messages]
        logger.info(
            "Completion request",
            extra={
                "model": options.model,
                "max_tokens": options.max_tokens,
                "messages": len(payload),
                "timeout_s": options.timeout_s,
            },
        )

        try:
            raw = client.chat.completions.with_raw_response.create(
                model=options.model,
                messages=payload,  # type: ignore[arg-type]
                temperature=options.temperature,
                max_tokens=options.max_tokens,
                timeout=options.timeout_s,
                extra_headers=self._headers(),
            )
        except APIStatusError as exc:
            body = exc.response.text if exc.response is not None else ""
            logger.error(
                "Completion HTTP error",
                extra={"status": exc.status_code, "model": options.model, "body": body[:_BODY_LOG_CHARS]},
            )
            raise TransportError(
                f"HTTP {exc.status_code}: {body[:_BODY_ERROR_CHARS]}",
                status=exc.status_code,
                body=body[:_BODY_ERROR_CHARS],
            ) from exc
        except APITimeoutError as exc:
            logger.error("Completion timed out", extra={"model": options.model, "timeout_s": options.timeout_s})
            raise TransportError(f"Timed out after {options.timeout_s:.0f}s") from exc
        except APIConnectionError as exc:
            logger.error("Completion connection failed", extra={"model": options.model, "error": str(exc)})
            raise TransportError(f"Connection failed: {exc}") from exc

        raw_text = raw.http_response.text
        ensure_not_ciphertext(raw_text, stage="response")
        data = self._decode(raw_text, model=options.model)
        text = extract_text(data)
        if not text:
            logger.error(
                "Completion returned no extractable text",
                extra={"model": options.model, "body": raw_text[:_BODY_LOG_CHARS]},
            )
            raise EmptyContentError(f"Empty content from model {options.model}")
        return text

    @staticmethod
    def _decode(raw_text: str, *, model: str) -> Any:
        if not raw_text.strip():
            return {}
        try:
            return json.loads(raw_text)
        except json.JSONDecodeError as exc:
            logger.error(
                "Completion body is not JSON",
                extra={"model": model, "error": str(exc), "body": raw_text[:_BODY_LOG_CHARS]},
            )
            raise DecodeError(f"Malformed response body: {exc}") from exc


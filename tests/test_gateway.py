"""Tests for the completion gateway, driven through httpx.MockTransport."""

from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest
from cryptography.fernet import Fernet

from draftsmith.config import Settings
from draftsmith.errors import (
    ConfigurationError,
    DecodeError,
    EmptyContentError,
    ModelReturnedCiphertext,
    TransportError,
)
from draftsmith.llm.client import ChatMessage, CompletionGateway, CompletionOptions

MESSAGES = [ChatMessage(role="system", content="sys"), ChatMessage(role="user", content="hi")]
OPTIONS = CompletionOptions(model="openai/gpt-4.1-mini", temperature=0.2, max_tokens=123, timeout_s=5)


def _gateway(settings: Settings, handler: Callable[[httpx.Request], httpx.Response]) -> CompletionGateway:
    return CompletionGateway(settings, http_client=httpx.Client(transport=httpx.MockTransport(handler)))


def test_submit_sends_request_and_extracts_text(settings: Settings) -> None:
    """It should post model, messages and limits with auth and title headers, then return text."""

    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers.get("authorization")
        seen["title"] = request.headers.get("x-title")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": "  Generated text  "}}]})

    text = _gateway(settings, handler).submit(MESSAGES, OPTIONS)

    assert text == "Generated text"
    assert str(seen["path"]).endswith("/chat/completions")
    assert seen["auth"] == "Bearer test-key"
    assert seen["title"] == "Draftsmith"
    body = seen["body"]
    assert isinstance(body, dict)
    assert body["model"] == "openai/gpt-4.1-mini"
    assert body["max_tokens"] == 123
    assert body["messages"] == [{"role": "system", "content": "sys"}, {"role": "user", "content": "hi"}]


def test_submit_maps_http_error_to_transport_error(settings: Settings) -> None:
    """It should raise TransportError with the status and a truncated body."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="x" * 2000)

    with pytest.raises(TransportError) as info:
        _gateway(settings, handler).submit(MESSAGES, OPTIONS)
    assert info.value.status == 500
    assert len(info.value.body) == 500


def test_submit_maps_timeout_to_transport_error_without_status(settings: Settings) -> None:
    """It should surface a timeout as TransportError with no status."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(TransportError) as info:
        _gateway(settings, handler).submit(MESSAGES, OPTIONS)
    assert info.value.status is None


def test_submit_raises_decode_error_on_non_json(settings: Settings) -> None:
    """It should raise DecodeError when the body is not JSON."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>not json</html>")

    with pytest.raises(DecodeError):
        _gateway(settings, handler).submit(MESSAGES, OPTIONS)


@pytest.mark.parametrize("body", ["", json.dumps({"error": {"message": "model overloaded, try later"}})])
def test_submit_raises_empty_content(settings: Settings, body: str) -> None:
    """It should raise EmptyContentError when no text can be extracted."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text=body)

    with pytest.raises(EmptyContentError):
        _gateway(settings, handler).submit(MESSAGES, OPTIONS)


def test_submit_rejects_ciphertext_body(settings: Settings) -> None:
    """It should raise ModelReturnedCiphertext when the raw body is an encrypted token."""

    token = Fernet(Fernet.generate_key()).encrypt(b"x" * 64).decode()

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text=token)

    with pytest.raises(ModelReturnedCiphertext):
        _gateway(settings, handler).submit(MESSAGES, OPTIONS)


def test_submit_requires_credentials_and_model(settings: Settings) -> None:
    """It should raise ConfigurationError for a missing key or an empty model id."""

    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover - never reached
        raise AssertionError("no request expected")

    no_key = settings.model_copy(update={"llm_api_key": None})
    with pytest.raises(ConfigurationError):
        _gateway(no_key, handler).submit(MESSAGES, OPTIONS)
    with pytest.raises(ConfigurationError):
        _gateway(settings, handler).submit(MESSAGES, CompletionOptions(model=""))

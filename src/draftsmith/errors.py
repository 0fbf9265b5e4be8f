"""Error taxonomy.

Every failure that can leave the package is one of these kinds, so callers (the CLI, the API)
can map them to distinct user-facing outcomes.
"""

from __future__ import annotations


class DraftsmithError(RuntimeError):
    """Base class for all package errors."""

    kind = "error"


class ConfigurationError(DraftsmithError):
    """Credentials or model id are missing."""

    kind = "configuration_error"


class InvalidRequestError(DraftsmithError, ValueError):
    """The caller supplied an unusable request (bad spec, bad section index, ...)."""

    kind = "invalid_request"


class GatewayError(DraftsmithError):
    """A call to the completion service did not yield usable text."""

    kind = "gateway_error"


class TransportError(GatewayError):
    """Non-success status, timeout or connection failure.

    ``status`` is ``None`` when no HTTP response was received.
    """

    kind = "transport_error"

    def __init__(self, message: str, *, status: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class DecodeError(GatewayError):
    """The response body was not valid JSON."""

    kind = "decode_error"


class EmptyContentError(GatewayError):
    """No text could be extracted from an otherwise valid response."""

    kind = "empty_content"


class ModelReturnedCiphertext(DraftsmithError):
    """A model response (or final text) was an encrypted-looking token."""

    kind = "model_returned_ciphertext"


class ValidationExhaustedError(DraftsmithError):
    """Spec-first generation could not converge and no usable fallback text exists."""

    kind = "validation_exhausted"


class ServiceError(DraftsmithError):
    """Generation failed after the secondary model was also tried."""

    kind = "service_error"

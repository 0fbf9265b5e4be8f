"""FastAPI app exposing outline and draft endpoints."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from draftsmith.config import Settings, load_settings
from draftsmith.drafting.synthesizer import SectionDraftSynthesizer
from draftsmith.errors import (
    ConfigurationError,
    DraftsmithError,
    GatewayError,
    InvalidRequestError,
    ModelReturnedCiphertext,
    ServiceError,
    ValidationExhaustedError,
)
from draftsmith.llm.client import CompletionGateway, Completer
from draftsmith.logging import configure_logging, get_logger, request_context
from draftsmith.models.draft import DraftRequest, SectionDraftResult
from draftsmith.models.outline import OutlineRequest, OutlineResult
from draftsmith.outline.engine import OutlineEngine

_STATUS: list[tuple[type[DraftsmithError], int]] = [
    (InvalidRequestError, 400),
    (ValidationExhaustedError, 422),
    (ModelReturnedCiphertext, 502),
    (ServiceError, 502),
    (GatewayError, 502),
    (ConfigurationError, 500),
]


def status_for(exc: DraftsmithError) -> int:
    return next((code for cls, code in _STATUS if isinstance(exc, cls)), 500)


def create_app(settings: Settings | None = None, gateway: Completer | None = None) -> FastAPI:
    """Create FastAPI app.

    Args:
        settings: Defaults to :func:`load_settings`.
        gateway: Completion gateway shared by both engines; a real one is built when omitted.
    """

    settings = settings or load_settings()
    configure_logging(settings.log_level)
    logger = get_logger(__name__)

    gateway = gateway or CompletionGateway(settings)
    outlines = OutlineEngine(settings, gateway)
    drafts = SectionDraftSynthesizer(settings, gateway)

    app = FastAPI(title="Draftsmith", version="0.1.0")

    @app.exception_handler(DraftsmithError)
    async def draftsmith_error(_: Request, exc: DraftsmithError) -> JSONResponse:
        status = status_for(exc)
        logger.warning("Request failed", extra={"kind": exc.kind, "status": status, "error": str(exc)})
        return JSONResponse(status_code=status, content={"error": exc.kind, "message": str(exc)})

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/outline", response_model=OutlineResult, response_model_by_alias=True)
    async def outline(req: OutlineRequest) -> OutlineResult:
        with request_context(stage="outline"):
            logger.info(
                "API outline requested",
                extra={"total_length": req.total_length, "regenerate": req.regenerate_section_index},
            )
            return await outlines.generate_async(req)

    @app.post("/draft", response_model=SectionDraftResult, response_model_by_alias=True)
    async def draft(req: DraftRequest) -> SectionDraftResult:
        with request_context(stage="draft"):
            logger.info(
                "API draft requested",
                extra={"role": req.section_role, "index": req.section_index, "target": req.target_length},
            )
            return await drafts.synthesize_async(req)

    return app

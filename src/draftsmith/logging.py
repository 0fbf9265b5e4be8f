"""Logging utilities."""

from __future__ import annotations

import contextlib
import contextvars
import logging
import uuid
from typing import Any

from rich.logging import RichHandler


_request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "draftsmith_request_id", default="-"
)
_stage_var: contextvars.ContextVar[str] = contextvars.ContextVar("draftsmith_stage", default="-")


class _ContextFilter(logging.Filter):
    """Inject request context into log records."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        record.request_id = _request_id_var.get()  # type: ignore[attr-defined]
        record.stage = _stage_var.get()  # type: ignore[attr-defined]
        return True


@contextlib.contextmanager
def request_context(*, request_id: str | None = None, stage: str | None = None) -> Any:
    """Temporarily bind request context for structured logging.

    Args:
        request_id: Request identifier. A short random id is generated when omitted.
        stage: Optional pipeline stage.
    """

    token_req = _request_id_var.set(request_id or uuid.uuid4().hex[:12])
    token_stage = _stage_var.set(stage or _stage_var.get())
    try:
        yield
    finally:
        _request_id_var.reset(token_req)
        _stage_var.reset(token_stage)


def set_stage(stage: str) -> None:
    """Update current stage in context."""

    _stage_var.set(stage)


def current_request_id() -> str:
    """Return the request id bound to the current context."""

    return _request_id_var.get()


def configure_logging(level: str = "INFO") -> None:
    """Configure application logging.

    Args:
        level: Logging level name.
    """

    handler = RichHandler(rich_tracebacks=True, show_time=True, show_level=True)
    handler.addFilter(_ContextFilter())

    formatter = logging.Formatter(
        fmt="%(asctime)s %(levelname)s req=%(request_id)s stage=%(stage)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    # Avoid duplicate handlers if configure_logging is called multiple times
    if not any(isinstance(h, RichHandler) for h in root.handlers):
        root.addHandler(handler)
    else:
        for h in root.handlers:
            if isinstance(h, RichHandler):
                h.addFilter(_ContextFilter())
                h.setFormatter(formatter)


def get_logger(name: str) -> logging.Logger:
    """Get a module logger."""

    return logging.getLogger(name)


def log_exception(logger: logging.Logger, msg: str, **context: Any) -> None:
    """Log an exception with optional structured context."""

    if context:
        logger.exception("%s | context=%s", msg, context)
    else:
        logger.exception("%s", msg)

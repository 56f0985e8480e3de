"""Map the delivery error taxonomy onto HTTP responses.

Bodies carry the error kind, the exception class and field-level detail:

    {"error": "state_conflict", "code": "AlreadyPaid", "detail": {...}}
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import (
    InvalidOperationError,
    InvalidStateError,
    ObjectNotFoundError,
    ValidationError,
)
from protean.integrations.fastapi import register_exception_handlers

from delivery.errors import (
    NOT_FOUND,
    NOTHING_TO_CASH_OUT,
    STATE_CONFLICT,
    STORAGE_UNAVAILABLE,
    VALIDATION_ERROR,
    NothingToCashOut,
    StorageUnavailable,
)

logger = structlog.get_logger(__name__)

_STATUS_CODES = {
    VALIDATION_ERROR: 400,
    NOT_FOUND: 404,
    STATE_CONFLICT: 409,
    NOTHING_TO_CASH_OUT: 422,
    STORAGE_UNAVAILABLE: 503,
}


def _detail(exc: Exception) -> dict:
    messages = getattr(exc, "messages", None)
    if isinstance(messages, dict):
        return messages
    return {"_error": [str(messages or exc)]}


def _handler(kind: str):
    async def handle_error(request: Request, exc: Exception) -> JSONResponse:
        status_code = _STATUS_CODES[kind]
        log = logger.error if status_code >= 500 else logger.info
        log(
            "Request failed",
            path=request.url.path,
            error=kind,
            code=exc.__class__.__name__,
        )
        return JSONResponse(
            status_code=status_code,
            content={"error": kind, "code": exc.__class__.__name__, "detail": _detail(exc)},
        )

    return handle_error


def register_error_handlers(app: FastAPI) -> None:
    """Install handlers for the delivery error kinds on top of Protean's defaults."""
    register_exception_handlers(app)
    app.add_exception_handler(ValidationError, _handler(VALIDATION_ERROR))
    app.add_exception_handler(InvalidStateError, _handler(STATE_CONFLICT))
    app.add_exception_handler(ObjectNotFoundError, _handler(NOT_FOUND))
    app.add_exception_handler(InvalidOperationError, _handler(STATE_CONFLICT))
    app.add_exception_handler(NothingToCashOut, _handler(NOTHING_TO_CASH_OUT))
    app.add_exception_handler(StorageUnavailable, _handler(STORAGE_UNAVAILABLE))

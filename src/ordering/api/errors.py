"""HTTP error mapping for the ordering API.

Layered on Protean's FastAPI exception handlers: client errors become 400,
missing records 404, and lost stock races 409 with a ``retryable`` flag.
Anything else is logged and reported as an opaque 500.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.integrations.fastapi import register_exception_handlers

from ordering.errors import ConcurrencyConflict

logger = structlog.get_logger(__name__)


async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": exc.messages})


async def _not_found(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    messages = getattr(exc, "messages", None) or {"error": [str(exc)]}
    return JSONResponse(status_code=404, content={"error": messages})


async def _concurrency_conflict(request: Request, exc: ConcurrencyConflict) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={"error": exc.messages, "retryable": exc.retryable},
    )


async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", path=request.url.path, error_type=type(exc).__name__)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def register_error_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(ObjectNotFoundError, _not_found)
    app.add_exception_handler(ConcurrencyConflict, _concurrency_conflict)
    app.add_exception_handler(Exception, _unhandled)

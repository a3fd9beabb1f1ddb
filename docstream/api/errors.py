"""Exception handlers mapping failures to JSON responses.

Every error response carries a ``debug_id`` that also appears in the log
entry, so a user report can be matched to the server-side record.

Typed errors with a 4xx status expose their ``code``. Anything else,
including 5xx typed errors, is logged in full and returned as a generic 500.
"""

import uuid

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from docstream.core.exceptions import DocStreamError
from docstream.middleware.correlation import get_correlation_id

logger = structlog.get_logger(__name__)

_GENERIC_DETAIL = "Internal server error"


def _request_context(request: Request) -> dict:
    return {
        "correlation_id": get_correlation_id(),
        "path": request.url.path,
        "method": request.method,
        "user_id": getattr(request.state, "user_id", None),
    }


def _internal_error(request: Request, exc: Exception, event: str, **fields) -> JSONResponse:
    debug_id = str(uuid.uuid4())
    logger.error(
        event,
        debug_id=debug_id,
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=True,
        **fields,
        **_request_context(request),
    )
    return JSONResponse(status_code=500, content={"detail": _GENERIC_DETAIL, "debug_id": debug_id})


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    debug_id = str(uuid.uuid4())
    logger.warning(
        "http_exception",
        status_code=exc.status_code,
        debug_id=debug_id,
        detail=exc.detail,
        **_request_context(request),
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "debug_id": debug_id},
        headers=getattr(exc, "headers", None),
    )


async def docstream_exception_handler(request: Request, exc: DocStreamError) -> JSONResponse:
    if exc.status_code >= 500:
        return _internal_error(request, exc, "request_failed", code=exc.code)

    debug_id = str(uuid.uuid4())
    logger.info(
        "request_rejected",
        code=exc.code,
        status_code=exc.status_code,
        debug_id=debug_id,
        **_request_context(request),
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": exc.code, "detail": exc.detail or exc.code, "debug_id": debug_id},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    return _internal_error(request, exc, "unhandled_exception")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(DocStreamError, docstream_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

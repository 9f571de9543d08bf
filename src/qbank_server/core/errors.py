"""
Global Error Handling

This module defines the question bank's exception taxonomy and the
application-wide exception handlers that translate it into HTTP responses.

Conventions
-----------
- Every error body is `{success: false, error, detail}`
- Driver errors and tracebacks stay in the log
- Engines raise the exceptions below; only these handlers know about HTTP
"""

from __future__ import annotations

import logging
from typing import Dict, Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("qbank.errors")


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

class QuestionBankError(RuntimeError):
    """Base error for question bank failures."""


class InvalidFilterError(QuestionBankError, ValueError):
    """Raised when a filter, sort or paging parameter is malformed."""


class UpstreamUnavailableError(QuestionBankError):
    """Raised when the record store cannot be reached or fails mid-query."""


# ---------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------

def _error_payload(error: str, detail: str) -> Dict[str, Any]:
    return {
        "success": False,
        "error": error,
        "detail": detail,
    }


# ---------------------------------------------------------------------
# Public Exception Handlers
# ---------------------------------------------------------------------

async def invalid_filter_handler(
    request: Request,
    exc: InvalidFilterError,
) -> JSONResponse:
    """
    Reject malformed predicates with a 400 and a descriptive message.
    """
    logger.info(
        "Rejected request %s %s: %s",
        request.method,
        request.url.path,
        exc,
    )
    return JSONResponse(
        status_code=400,
        content=_error_payload("invalid_filter", str(exc)),
    )


async def request_validation_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """
    Report FastAPI/pydantic parameter validation failures in the same
    envelope as every other error.
    """
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()))
        messages.append(f"{location}: {err.get('msg', 'invalid value')}")

    return JSONResponse(
        status_code=400,
        content=_error_payload("invalid_request", "; ".join(messages)),
    )


_HTTP_ERROR_CODES = {
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    429: "rate_limited",
    502: "bad_gateway",
}


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """
    Wrap HTTPExceptions raised by routes and auth dependencies in the
    common error envelope, preserving status code and headers.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_payload(
            _HTTP_ERROR_CODES.get(exc.status_code, "http_error"),
            str(exc.detail),
        ),
        headers=getattr(exc, "headers", None),
    )


async def upstream_unavailable_handler(
    request: Request,
    exc: UpstreamUnavailableError,
) -> JSONResponse:
    """
    Surface record store outages as 503 without exposing driver errors.
    """
    logger.error(
        "Record store unavailable during %s %s: %s",
        request.method,
        request.url.path,
        exc,
    )
    return JSONResponse(
        status_code=503,
        content=_error_payload(
            "upstream_unavailable",
            "Question store is temporarily unavailable",
        ),
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """
    Last-resort 500. The traceback goes to the log, never to the client.
    """
    logger.exception(
        "Unhandled %s during %s %s",
        type(exc).__name__,
        request.method,
        request.url.path,
        exc_info=exc,
    )

    return JSONResponse(
        status_code=500,
        content=_error_payload("internal_server_error", "Internal server error"),
    )

"""Global exception handlers — translate domain errors to HTTP responses.

Each domain exception maps to a specific HTTP status code and the
standard ``{"error": "<kind>", "message": "..."}`` envelope.
"""

from __future__ import annotations

import logging
import math

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from summarizer_gateway.domain.exceptions import (
    BlockedRequest,
    GatewayError,
    InactiveCredential,
    InvalidCredential,
    InvalidField,
    MalformedBody,
    MetadataUnavailable,
    MissingCredential,
    MissingField,
    RateLimited,
    ReadmeNotFound,
    ServiceUnavailable,
    SummarizationFailed,
    SummarizationRateLimited,
    TemporarilyBlocked,
    UnexpectedFailure,
)

logger = logging.getLogger(__name__)

_EXCEPTION_STATUS: list[tuple[type[GatewayError], int]] = [
    (MissingCredential, 400),
    (MalformedBody, 400),
    (MissingField, 400),
    (InvalidField, 400),
    (InvalidCredential, 401),
    (InactiveCredential, 401),
    (BlockedRequest, 403),
    (ReadmeNotFound, 404),
    (RateLimited, 429),
    (TemporarilyBlocked, 429),
    (UnexpectedFailure, 500),
    (MetadataUnavailable, 500),
    (SummarizationFailed, 502),
    (SummarizationRateLimited, 503),
    (ServiceUnavailable, 503),
]


def status_for(exc: GatewayError) -> int:
    """Status code for *exc*, resolved through its class hierarchy."""
    table = dict(_EXCEPTION_STATUS)
    for cls in type(exc).__mro__:
        if cls in table:
            return table[cls]
    return 500


def error_response(exc: GatewayError) -> JSONResponse:
    status_code = status_for(exc)
    headers: dict[str, str] = {}
    if isinstance(exc, RateLimited):
        headers["Retry-After"] = str(max(math.ceil(exc.retry_after), 1))
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.kind, "message": str(exc), **exc.extra()},
        headers=headers or None,
    )


def register_error_handlers(app: FastAPI) -> None:
    """Attach exception handlers to the FastAPI application."""

    # ── Domain exceptions ───────────────────────────────────────────────

    @app.exception_handler(GatewayError)
    async def gateway_handler(request: Request, exc: GatewayError) -> JSONResponse:
        response = error_response(exc)
        if response.status_code >= 500:
            logger.error("%s: %s", type(exc).__name__, exc)
        else:
            logger.info("%s: %s", type(exc).__name__, exc)
        return response

    # ── Catch-all for unexpected errors ─────────────────────────────────

    @app.exception_handler(Exception)
    async def generic_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception")
        return JSONResponse(
            status_code=500,
            content={
                "error": UnexpectedFailure.kind,
                "message": "An unexpected error occurred. Please try again later.",
            },
        )

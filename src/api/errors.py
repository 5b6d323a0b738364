"""
Application-wide exception handlers.

Request-shape errors become 400 responses. Storage and signer failures
become a generic 500 with no internal detail; they are the only errors
logged at ERROR severity.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.domain.exceptions import InternalError

logger = logging.getLogger(__name__)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Reject malformed request bodies with 400 instead of FastAPI's 422."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Invalid request"},
    )


async def internal_error_handler(request: Request, exc: InternalError) -> JSONResponse:
    """Log infrastructure failures and hide their detail from the client."""
    logger.error("Internal error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(InternalError, internal_error_handler)

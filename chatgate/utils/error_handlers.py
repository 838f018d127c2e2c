"""
Error Handler Utilities

Renders gateway exceptions as the ``{"error": message}`` envelope used by
every non-streaming response.

Usage:
    from chatgate.utils.error_handlers import register_exception_handlers

    # In main.py
    register_exception_handlers(app)
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from chatgate.utils.exceptions import INTERNAL_ERROR_MESSAGE, GatewayError
from chatgate.utils.sentry_context import capture_error

logger = logging.getLogger(__name__)


async def gateway_exception_handler(request: Request, exc: GatewayError) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    if exc.status_code >= 500:
        logger.error(f"[{request_id}] {type(exc).__name__}: {exc.message}")
    else:
        logger.info(f"[{request_id}] Rejected with {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: log with traceback, report, and return an opaque 500."""
    request_id = getattr(request.state, "request_id", None)
    logger.error(f"[{request_id}] Unhandled error on {request.url.path}: {exc}", exc_info=exc)
    capture_error(
        exc,
        context_type="request",
        context_data={"path": request.url.path, "request_id": request_id},
    )
    return JSONResponse(status_code=500, content={"error": INTERNAL_ERROR_MESSAGE})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GatewayError, gateway_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

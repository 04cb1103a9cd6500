"""Render domain errors as ``{"error": ..., "details": ...}`` JSON bodies."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from aria_voice.errors import AriaVoiceError

logger = logging.getLogger("aria_voice.server.errors")


async def handle_aria_error(request: Request, exc: AriaVoiceError) -> JSONResponse:
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "request_failed",
        extra={"path": request.url.path, "error": exc.message, "error_type": type(exc).__name__},
    )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message, "details": exc.details})


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("request_invalid", extra={"path": request.url.path})
    return JSONResponse(status_code=400, content={"error": "Invalid request body", "details": str(exc.errors())})


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AriaVoiceError, handle_aria_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)

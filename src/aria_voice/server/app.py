"""FastAPI application factory."""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.staticfiles import StaticFiles

from aria_voice import __version__
from aria_voice.config import Settings, settings
from aria_voice.tts import FileAudioCache

from .context import AppContext, build_context
from .errors import install_error_handlers
from .routes import router

logger = logging.getLogger("aria_voice.server.app")


def create_app(context: AppContext | None = None, config: Settings | None = None) -> FastAPI:
    """Build the relay app around ``context`` (or one built from ``config``)."""
    if context is None:
        context = build_context(config or settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await context.start()
        try:
            yield
        finally:
            await context.stop()

    app = FastAPI(title=context.config.app_name, version=__version__, lifespan=lifespan)
    app.state.context = context
    install_error_handlers(app)
    app.include_router(router)

    if context.tts is not None and isinstance(context.tts.cache, FileAudioCache):
        app.mount(
            context.config.audio_url_prefix,
            StaticFiles(directory=context.tts.cache.directory),
            name="audio",
        )

    @app.middleware("http")
    async def request_timing(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        context.telemetry.emit(
            "http_request",
            {
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "elapsed_ms": round((time.perf_counter() - started) * 1000, 1),
            },
        )
        return response

    logger.info("app_created", extra={"tts": context.tts is not None, "serverless": context.config.serverless})
    return app

"""
FastAPI application entry point for CrisisKit.
"""

from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from crisiskit.config import get_settings
from crisiskit.errors import BackendUnavailableError
from crisiskit.routes import router

logger = logging.getLogger(__name__)


async def backend_unavailable_handler(
    request: Request, exc: BackendUnavailableError
) -> JSONResponse:
    logger.error("Storage backend failure on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=503, content={"detail": "Storage backend unavailable"}
    )


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    app = FastAPI(title="CrisisKit", version="0.1.0")
    app.include_router(router, prefix=settings.api_prefix)
    app.add_exception_handler(BackendUnavailableError, backend_unavailable_handler)
    return app


app = create_app()


def main() -> None:
    uvicorn.run("crisiskit.app:app", host="0.0.0.0", port=8000)

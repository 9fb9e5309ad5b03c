"""FastAPI application composing the team tasks router."""

from __future__ import annotations

import sys

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from db_core import ping
from tasks_api import install_error_handlers, router as tasks_router

from .config import settings


def _configure_logging() -> None:
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)
    logger.info("Logger configured at {level} level", level=settings.log_level)


def create_app() -> FastAPI:
    _configure_logging()
    app = FastAPI(title=settings.api_title, version=settings.api_version)

    if settings.cors_allow_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_allow_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
        logger.info("CORS middleware added {origins}", origins=settings.cors_allow_origins)

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        """Liveness endpoint for load balancers and orchestrators."""

        return {"status": "ok"}

    @app.get("/health/db", tags=["health"])
    async def health_db() -> dict:
        return await ping()

    install_error_handlers(app)
    app.include_router(tasks_router)
    return app


app = create_app()

"""Run with:

    uvicorn checklist_server.main:app --host 0.0.0.0 --port 8000 --reload
"""

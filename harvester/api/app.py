"""FastAPI application entry point for the harvester."""

from __future__ import annotations

import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from harvester.api.routes import router

VERSION = "1.0.0"


def _resolve_cors_origins() -> list[str]:
    origins_raw = os.getenv("HARVESTER_ALLOWED_ORIGINS", "")
    return [origin.strip() for origin in origins_raw.split(",") if origin.strip()]


def create_app() -> FastAPI:
    """Factory function for creating the FastAPI application."""
    app = FastAPI(
        title="Harvester",
        description="Adaptive listing extraction and cross-source reconciliation",
        version=VERSION,
    )

    cors_origins = _resolve_cors_origins()
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

    app.include_router(router, prefix="/api/v1")

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy", "service": "harvester", "version": VERSION}

    return app


app = create_app()

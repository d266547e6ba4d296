"""FastAPI application entry point."""

from __future__ import annotations

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from preset_vault.api.errors import install_error_handlers
from preset_vault.api.router import api_router
from preset_vault.config import Settings, get_settings
from preset_vault.db.client import get_database
from preset_vault.utils.logging import setup_logging

logger = structlog.get_logger()

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan — startup and shutdown."""
    settings: Settings = app.state.settings
    setup_logging(settings.log_level)
    logger.info("presetvault.starting", port=settings.port)

    if settings.auto_create_schema:
        get_database().create_schema()
        logger.info("presetvault.schema_ready")

    yield

    logger.info("presetvault.shutdown")


def create_app(settings: Settings | None = None) -> FastAPI:
    app = FastAPI(
        title="Preset Vault",
        description="Versioned form presets: snapshots, rollback, export and import",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings or get_settings()
    install_error_handlers(app)
    app.include_router(api_router, prefix="/api/v1")

    @app.get("/")
    async def root():
        """Service info endpoint."""
        return {"service": "preset-vault", "version": VERSION}

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy", "service": "preset-vault", "version": VERSION}

    return app


app = create_app()

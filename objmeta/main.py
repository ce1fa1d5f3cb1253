"""
objmeta API - FastAPI Application

Main entry point for the FastAPI application.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from objmeta.config import get_settings
from objmeta.core.access import resolve_enforcement_mode
from objmeta.core.database import close_db, init_db
from objmeta.routers import (
    health_router,
    metadata_router,
    object_permissions_router,
    objects_router,
    permissions_router,
    tagging_router,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Suppress noisy third-party loggers
logging.getLogger("botocore").setLevel(logging.WARNING)
logging.getLogger("aiobotocore").setLevel(logging.WARNING)
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Startup
    logger.info("Starting objmeta API...")
    settings = get_settings()

    logger.info("Initializing database connection...")
    await init_db()
    logger.info("Database connection established")

    # Fixed for the life of the process
    app.state.enforcement_mode = resolve_enforcement_mode(settings)
    logger.info(
        f"Auth mode {settings.auth_mode.value}, "
        f"permission enforcement {app.state.enforcement_mode.value}"
    )

    if not settings.s3_configured:
        logger.warning("S3 storage not configured; object context will omit storage headers")

    logger.info(f"objmeta API started in {settings.environment} mode")

    yield

    # Shutdown
    logger.info("Shutting down objmeta API...")
    await close_db()
    logger.info("objmeta API shutdown complete")


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title="objmeta API",
        description="Versioned tags, metadata and access grants for stored objects",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Register routers
    app.include_router(health_router)
    app.include_router(objects_router)
    app.include_router(tagging_router)
    app.include_router(metadata_router)
    app.include_router(permissions_router)
    app.include_router(object_permissions_router)

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("objmeta.main:app", host="0.0.0.0", port=8000)

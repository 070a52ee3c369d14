"""
School Directory API - Main Application Entry Point

This module builds and configures the FastAPI application including:
- Logging setup
- Database gateway and image store lifecycle
- CORS middleware
- API and page routing
- Health check endpoints
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from school_directory import __version__
from school_directory.api import api_router
from school_directory.core.config import Settings, get_settings
from school_directory.core.database import close_db, init_db
from school_directory.core.logging import configure_logging
from school_directory.core.storage import ImageStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup connects the database gateway (lazily retried on first request
    if the store is down outside production) and prepares the image store.
    Shutdown closes the connection.
    """
    settings: Settings = app.state.settings
    configure_logging(settings.log_level)

    # Startup
    logger.info(f"Starting School Directory API in {settings.python_env} mode...")

    app.state.db = await init_db(settings)
    app.state.images = ImageStore(settings.upload_dir)
    logger.info(f"Image mode: {settings.image_mode}, upload dir: {settings.upload_dir}")

    yield  # Application runs here

    # Shutdown
    logger.info("Shutting down School Directory API...")
    await close_db(app.state.db)
    logger.info("Cleanup complete")


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings to use instead of the environment (tests pass their own)
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="School Directory API",
        description="Register and browse schools",
        version=__version__,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.dependency_overrides[get_settings] = lambda: settings

    app.include_router(api_router)

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials="*" not in settings.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/", tags=["Root"])
    async def root() -> dict[str, str]:
        """Root endpoint - API welcome message."""
        return {
            "message": "Welcome to School Directory API",
            "status": "running",
            "environment": settings.python_env,
        }

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint for container orchestration."""
        return {"status": "healthy"}

    @app.get("/ready", tags=["Health"])
    async def readiness_check(request: Request):
        """Readiness check endpoint; unavailable while the store is unreachable."""
        if await request.app.state.db.ping():
            return {"status": "ready"}
        return JSONResponse(status_code=503, content={"status": "unavailable"})

    return app


app = create_app()

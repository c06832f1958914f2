"""Main FastAPI application."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from structlog import get_logger

from .exceptions import setup_exception_handlers
from .routes import events, health, jobs, quota
from ..infrastructure.config import Settings, get_settings
from ..infrastructure.container import ServiceContainer
from ..infrastructure.observability import configure_logfire, configure_logging

logger = get_logger()


def create_app(
    settings: Optional[Settings] = None,
    container: Optional[ServiceContainer] = None,
) -> FastAPI:
    """Create FastAPI application.

    Args:
        settings: Settings to use instead of the cached global ones
        container: Pre-built service container; one is built from settings
            otherwise. It is initialised and shut down with the app.
    """
    settings = settings or get_settings()
    container = container or ServiceContainer(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging()
        configure_logfire(app)
        await container.initialize()
        logger.info("Moderation service started", environment=settings.app.environment)
        try:
            yield
        finally:
            await container.shutdown()
            logger.info("Moderation service stopped")

    app = FastAPI(
        title=settings.app.name,
        description="Video content moderation pipeline",
        version=settings.app.version,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.container = container

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    setup_exception_handlers(app)

    # Routes
    app.include_router(health.router, tags=["health"])
    app.include_router(jobs.router, prefix=settings.api.prefix)
    app.include_router(quota.router, prefix=settings.api.prefix)
    app.include_router(events.router, prefix=settings.api.prefix)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "message": settings.app.name,
            "version": settings.app.version,
            "docs": "/docs" if not settings.is_production else None,
        }

    return app


app = create_app()

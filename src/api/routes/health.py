"""Health check endpoints."""

from fastapi import APIRouter, Depends, Request

from src.infrastructure.container import ServiceContainer
from ..dependencies import get_container

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Basic health check."""
    container = request.app.state.container
    return {
        "status": "healthy" if container.is_initialized else "starting",
        "service": "video-moderation",
    }


@router.get("/health/analyzers")
async def analyzer_health(container: ServiceContainer = Depends(get_container)):
    """Report which analyzer backends are loaded."""
    analyzers = {
        "local": container.local_analyzer.get_capabilities(),
        "hybrid": container.hybrid_analyzer.get_capabilities(),
    }
    if container.cloud_analyzer is not None:
        analyzers["cloud"] = container.cloud_analyzer.get_capabilities()

    return {
        "status": "healthy",
        "analyzers": analyzers,
        "active_jobs": container.orchestrator.active_jobs,
    }

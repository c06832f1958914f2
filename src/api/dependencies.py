"""FastAPI dependency injection."""

from fastapi import Depends, HTTPException, Request, WebSocket, status

from src.application.services.analyzer_selection import AnalyzerSelector
from src.application.workflows.moderation_job import ModerationJobOrchestrator
from src.domain.repositories.video_job_repository import VideoJobRepository
from src.domain.services.quota_governor import AnalyzerQuotaGovernor
from src.infrastructure.broadcasting.progress_broadcaster import ProgressBroadcaster
from src.infrastructure.config import Settings, get_settings
from src.infrastructure.container import ServiceContainer


def get_settings_dep() -> Settings:
    """Get application settings."""
    return get_settings()


def _ready(container: ServiceContainer) -> ServiceContainer:
    if not container.is_initialized:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is starting up",
        )
    return container


def get_container(request: Request) -> ServiceContainer:
    """Container built by the application lifespan."""
    return _ready(request.app.state.container)


def get_ws_container(websocket: WebSocket) -> ServiceContainer:
    return _ready(websocket.app.state.container)


def get_job_repository(
    container: ServiceContainer = Depends(get_container),
) -> VideoJobRepository:
    return container.jobs


def get_orchestrator(
    container: ServiceContainer = Depends(get_container),
) -> ModerationJobOrchestrator:
    return container.orchestrator


def get_governor(
    container: ServiceContainer = Depends(get_container),
) -> AnalyzerQuotaGovernor:
    return container.governor


def get_selector(
    container: ServiceContainer = Depends(get_container),
) -> AnalyzerSelector:
    return container.selector


def get_broadcaster(
    container: ServiceContainer = Depends(get_ws_container),
) -> ProgressBroadcaster:
    return container.broadcaster

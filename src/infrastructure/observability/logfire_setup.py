"""Logfire configuration and setup for the moderation service.

This module handles the initialization and configuration of Pydantic Logfire
for spans around job processing and analyzer runs.
"""

from typing import Optional, Dict, Any

import logfire
import structlog
from logfire import LogfireSpan

from src.infrastructure.config import settings

logger = structlog.get_logger(__name__)


def configure_logfire(
    app_instance: Optional[Any] = None,
    additional_config: Optional[Dict[str, Any]] = None,
) -> bool:
    """Configure and initialize Logfire with application settings.

    Args:
        app_instance: Optional FastAPI app instance for auto-instrumentation
        additional_config: Additional configuration to merge with defaults

    Returns:
        True if Logfire was configured
    """
    if not settings.logfire.enabled:
        logger.info("Logfire is disabled in configuration")
        return False

    config: Dict[str, Any] = {
        "service_name": settings.logfire.service_name,
        "service_version": settings.logfire_version,
        "environment": settings.logfire_env,
    }

    if not settings.logfire.console_enabled:
        config["console"] = False

    if settings.logfire.api_key:
        config["token"] = settings.logfire.api_key.get_secret_value()

    if additional_config:
        config.update(additional_config)

    try:
        logfire.configure(**config)
    except Exception as e:
        logger.error("Failed to configure Logfire", error=str(e))
        # Observability must not keep the service from starting in development
        if settings.is_development:
            logger.warning("Continuing without Logfire in development mode")
            return False
        raise

    if app_instance is not None:
        try:
            logfire.instrument_fastapi(app_instance)
        except Exception as e:
            logger.warning("Failed to instrument FastAPI", error=str(e))

    logger.info("Logfire configured", service=settings.logfire.service_name)
    return True


def create_span(name: str, **attributes: Any) -> LogfireSpan:
    """Create a new Logfire span with attributes.

    Args:
        name: Span name
        **attributes: Additional attributes for the span

    Returns:
        LogfireSpan: The created span
    """
    return logfire.span(name, **attributes)


def add_processing_context(
    span: LogfireSpan,
    job_id: Optional[str] = None,
    owner_id: Optional[str] = None,
    backend: Optional[str] = None,
    processing_stage: Optional[str] = None,
) -> None:
    """Add job processing context to the given span."""
    if job_id:
        span.set_attribute("moderation.job_id", job_id)

    if owner_id:
        span.set_attribute("moderation.owner_id", owner_id)

    if backend:
        span.set_attribute("moderation.backend", backend)

    if processing_stage:
        span.set_attribute("moderation.stage", processing_stage)

"""Observability infrastructure for the moderation service.

structlog for structured logs, Pydantic Logfire for spans.
"""

from .logfire_setup import add_processing_context, configure_logfire, create_span
from .logging_setup import configure_logging

__all__ = [
    "add_processing_context",
    "configure_logfire",
    "configure_logging",
    "create_span",
]

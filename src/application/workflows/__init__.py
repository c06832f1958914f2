"""Application workflows for the moderation service."""

from .moderation_job import JobRequest, ModerationJobOrchestrator

__all__ = [
    "JobRequest",
    "ModerationJobOrchestrator",
]

"""SQLAlchemy models."""

from src.infrastructure.persistence.models.base import Base, TimestampMixin
from src.infrastructure.persistence.models.account import AccountModel
from src.infrastructure.persistence.models.video_job import VideoJobModel

__all__ = ["Base", "TimestampMixin", "AccountModel", "VideoJobModel"]

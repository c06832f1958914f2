"""Domain entities.

Entities are domain objects with identity. Unlike value objects,
entities are defined by their ID rather than their attributes.
"""

from src.domain.entities.base import Entity
from src.domain.entities.account import Account
from src.domain.entities.video_job import VideoJob

__all__ = ["Entity", "Account", "VideoJob"]

"""Repository interfaces using Protocol classes.

Repositories provide an abstraction over data persistence,
allowing the domain layer to remain independent of the
infrastructure layer.
"""

from src.domain.repositories.base import Repository
from src.domain.repositories.video_job_repository import VideoJobRepository
from src.domain.repositories.account_repository import AccountRepository

__all__ = [
    "Repository",
    "VideoJobRepository",
    "AccountRepository",
]

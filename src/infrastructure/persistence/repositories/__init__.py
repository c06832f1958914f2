"""Repository implementations."""

from src.infrastructure.persistence.repositories.account_repository import (
    AccountSqlRepository,
)
from src.infrastructure.persistence.repositories.memory import (
    InMemoryAccountRepository,
    InMemoryVideoJobRepository,
)
from src.infrastructure.persistence.repositories.video_job_repository import (
    VideoJobSqlRepository,
)

__all__ = [
    "AccountSqlRepository",
    "InMemoryAccountRepository",
    "InMemoryVideoJobRepository",
    "VideoJobSqlRepository",
]

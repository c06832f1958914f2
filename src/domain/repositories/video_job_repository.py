"""Video job repository protocol."""

from typing import Protocol, Optional, Any, Dict, List

from src.domain.repositories.base import Repository
from src.domain.entities.video_job import VideoJob
from src.domain.enums import JobStatus, SensitivityStatus


class VideoJobRepository(Repository[VideoJob, str], Protocol):
    """Persistence collaborator used by the job orchestrator.

    Implementations raise ``PersistenceError`` when a write cannot be applied.
    """

    async def update_status(
        self,
        job_id: str,
        status: JobStatus,
        sensitivity_status: SensitivityStatus,
        progress: int,
        error: Optional[str] = None,
    ) -> None:
        """Write lifecycle status, verdict placeholder and progress."""
        ...

    async def update_with_analysis(
        self,
        job_id: str,
        sensitivity_status: SensitivityStatus,
        confidence: int,
        labels: List[str],
        details: Dict[str, Any],
    ) -> None:
        """Persist a full analysis result and mark the job completed."""
        ...

    async def update_fields(self, job_id: str, fields: Dict[str, Any]) -> None:
        """Apply a partial update (e.g. thumbnail path)."""
        ...

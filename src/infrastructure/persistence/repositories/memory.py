"""In-memory repositories.

Used when the database is disabled (local development, tests). They store
domain entities directly and apply the same write rules as the SQL versions.
"""

from copy import deepcopy
from typing import Any, Dict, List, Optional

from src.domain.entities.account import Account
from src.domain.entities.base import utc_now
from src.domain.entities.video_job import VideoJob
from src.domain.enums import AnalyzerPreference, JobStatus, SensitivityStatus
from src.domain.exceptions import PersistenceError
from src.domain.value_objects.confidence_score import ConfidenceScore
from src.infrastructure.persistence.repositories.video_job_repository import (
    UPDATABLE_FIELDS,
)


class InMemoryVideoJobRepository:
    """Dict-backed ``VideoJobRepository``."""

    def __init__(self) -> None:
        self._jobs: Dict[str, VideoJob] = {}

    async def get(self, id: str) -> Optional[VideoJob]:
        job = self._jobs.get(id)
        return deepcopy(job) if job else None

    async def save(self, entity: VideoJob) -> VideoJob:
        self._jobs[entity.id] = deepcopy(entity)
        return entity

    def _require(self, job_id: str) -> VideoJob:
        job = self._jobs.get(job_id)
        if job is None:
            raise PersistenceError(f"Video job {job_id!r} not found", job_id=job_id)
        return job

    async def update_status(
        self,
        job_id: str,
        status: JobStatus,
        sensitivity_status: SensitivityStatus,
        progress: int,
        error: Optional[str] = None,
    ) -> None:
        job = self._require(job_id)
        job.status = status
        job.sensitivity_status = sensitivity_status
        job.progress = progress
        if error is not None:
            job.analysis_error = error
        job.updated_at = utc_now()

    async def update_with_analysis(
        self,
        job_id: str,
        sensitivity_status: SensitivityStatus,
        confidence: int,
        labels: List[str],
        details: Dict[str, Any],
    ) -> None:
        job = self._require(job_id)
        if sensitivity_status not in (SensitivityStatus.SAFE, SensitivityStatus.FLAGGED):
            sensitivity_status = SensitivityStatus.SAFE

        job.status = JobStatus.COMPLETED
        job.sensitivity_status = sensitivity_status
        job.progress = 100
        job.confidence = ConfidenceScore.clamp(confidence).value
        job.detected_labels = list(labels)
        job.analysis_details = dict(details)
        job.analysis_error = None
        job.updated_at = utc_now()

    async def update_fields(self, job_id: str, fields: Dict[str, Any]) -> None:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise PersistenceError(
                f"Cannot update fields: {', '.join(sorted(unknown))}", job_id=job_id
            )
        job = self._require(job_id)
        for name, value in fields.items():
            setattr(job, name, value)
        job.updated_at = utc_now()


class InMemoryAccountRepository:
    """Dict-backed ``AccountRepository``."""

    def __init__(self, accounts: Optional[List[Account]] = None) -> None:
        self._accounts: Dict[str, Account] = {a.id: a for a in accounts or []}

    async def get(self, id: str) -> Optional[Account]:
        return self._accounts.get(id)

    async def save(self, entity: Account) -> Account:
        self._accounts[entity.id] = entity
        return entity

    async def get_analyzer_preference(
        self, owner_id: str
    ) -> Optional[AnalyzerPreference]:
        account = self._accounts.get(owner_id)
        return account.analyzer_preference if account else None

    async def count_by_preference(self, preference: AnalyzerPreference) -> int:
        return sum(
            1 for a in self._accounts.values() if a.analyzer_preference == preference
        )

    async def list_by_preference(self, preference: AnalyzerPreference) -> List[str]:
        return sorted(
            a.id for a in self._accounts.values() if a.analyzer_preference == preference
        )

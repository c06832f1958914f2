"""Video job repository implementation."""

from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import async_sessionmaker

from src.domain.entities.video_job import VideoJob
from src.domain.enums import JobStatus, SensitivityStatus
from src.domain.exceptions import PersistenceError
from src.domain.value_objects.confidence_score import ConfidenceScore
from src.infrastructure.common.error_handling import handle_db_errors
from src.infrastructure.persistence.models.video_job import VideoJobModel

# Columns ``update_fields`` may touch
UPDATABLE_FIELDS = frozenset(
    {
        "thumbnail_path",
        "progress",
        "analysis_error",
        "analysis_details",
        "detected_labels",
        "confidence",
    }
)


def to_domain(model: VideoJobModel) -> VideoJob:
    return VideoJob(
        id=model.id,
        owner_id=model.owner_id,
        source_path=model.source_path,
        status=JobStatus(model.status),
        sensitivity_status=SensitivityStatus(model.sensitivity_status),
        progress=model.progress,
        confidence=model.confidence,
        detected_labels=list(model.detected_labels or []),
        analysis_details=dict(model.analysis_details or {}),
        analysis_error=model.analysis_error,
        thumbnail_path=model.thumbnail_path,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def to_model(job: VideoJob) -> VideoJobModel:
    return VideoJobModel(
        id=job.id,
        owner_id=job.owner_id,
        source_path=job.source_path,
        status=job.status.value,
        sensitivity_status=job.sensitivity_status.value,
        progress=job.progress,
        confidence=job.confidence,
        detected_labels=list(job.detected_labels),
        analysis_details=dict(job.analysis_details),
        analysis_error=job.analysis_error,
        thumbnail_path=job.thumbnail_path,
    )


class VideoJobSqlRepository:
    """SQLAlchemy implementation of ``VideoJobRepository``.

    Every call runs in its own short transaction, since one job's updates are
    spread over minutes of processing.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    @handle_db_errors
    async def get(self, id: str) -> Optional[VideoJob]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(VideoJobModel).where(VideoJobModel.id == id)
            )
            model = result.scalar_one_or_none()
            return to_domain(model) if model else None

    @handle_db_errors
    async def save(self, entity: VideoJob) -> VideoJob:
        async with self.session_factory() as session:
            async with session.begin():
                await session.merge(to_model(entity))
        return entity

    async def _update(self, job_id: str, values: Dict[str, Any]) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(VideoJobModel)
                    .where(VideoJobModel.id == job_id)
                    .values(**values)
                )
                if result.rowcount == 0:
                    raise PersistenceError(f"Video job {job_id!r} not found", job_id=job_id)

    @handle_db_errors
    async def update_status(
        self,
        job_id: str,
        status: JobStatus,
        sensitivity_status: SensitivityStatus,
        progress: int,
        error: Optional[str] = None,
    ) -> None:
        values: Dict[str, Any] = {
            "status": status.value,
            "sensitivity_status": sensitivity_status.value,
            "progress": progress,
        }
        if error is not None:
            values["analysis_error"] = error
        await self._update(job_id, values)

    @handle_db_errors
    async def update_with_analysis(
        self,
        job_id: str,
        sensitivity_status: SensitivityStatus,
        confidence: int,
        labels: List[str],
        details: Dict[str, Any],
    ) -> None:
        # A completed job always carries a real verdict
        if sensitivity_status not in (SensitivityStatus.SAFE, SensitivityStatus.FLAGGED):
            sensitivity_status = SensitivityStatus.SAFE

        await self._update(
            job_id,
            {
                "status": JobStatus.COMPLETED.value,
                "sensitivity_status": sensitivity_status.value,
                "progress": 100,
                "confidence": ConfidenceScore.clamp(confidence).value,
                "detected_labels": list(labels),
                "analysis_details": details,
                "analysis_error": None,
            },
        )

    @handle_db_errors
    async def update_fields(self, job_id: str, fields: Dict[str, Any]) -> None:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise PersistenceError(
                f"Cannot update fields: {', '.join(sorted(unknown))}", job_id=job_id
            )
        if fields:
            await self._update(job_id, dict(fields))

"""Job intake and status schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.domain.entities.video_job import VideoJob


class CamelModel(BaseModel):
    """Base schema serialised with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class JobCreateRequest(CamelModel):
    """Submit an uploaded video for moderation."""

    owner_id: str = Field(..., min_length=1, max_length=64)
    source_path: str = Field(..., min_length=1)
    job_id: Optional[str] = Field(
        default=None,
        min_length=1,
        max_length=64,
        description="Use an existing video ID; generated when omitted",
    )


class JobResponse(CamelModel):
    """Current state of a moderation job."""

    job_id: str
    owner_id: str
    status: str
    sensitivity_status: str
    progress: int
    confidence: Optional[int] = None
    detected_labels: List[str] = Field(default_factory=list)
    analysis_details: Dict[str, Any] = Field(default_factory=dict)
    analysis_error: Optional[str] = None
    thumbnail_path: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, job: VideoJob) -> "JobResponse":
        return cls(
            job_id=job.id,
            owner_id=job.owner_id,
            status=job.status.value,
            sensitivity_status=job.sensitivity_status.value,
            progress=job.progress,
            confidence=job.confidence,
            detected_labels=list(job.detected_labels),
            analysis_details=dict(job.analysis_details),
            analysis_error=job.analysis_error,
            thumbnail_path=job.thumbnail_path,
            created_at=job.created_at,
            updated_at=job.updated_at,
        )

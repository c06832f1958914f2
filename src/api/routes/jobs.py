"""Moderation job routes.

Intake accepts an already-uploaded file, records the job as pending and
hands it to the orchestrator. Processing continues in the background.
"""

from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, status

from src.application.workflows.moderation_job import (
    JobRequest,
    ModerationJobOrchestrator,
)
from src.domain.entities.video_job import VideoJob
from src.domain.repositories.video_job_repository import VideoJobRepository
from ..dependencies import get_job_repository, get_orchestrator
from ..schemas.jobs import JobCreateRequest, JobResponse

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.post("", response_model=JobResponse, status_code=status.HTTP_202_ACCEPTED)
async def create_job(
    request: JobCreateRequest,
    jobs: VideoJobRepository = Depends(get_job_repository),
    orchestrator: ModerationJobOrchestrator = Depends(get_orchestrator),
):
    """Queue a video for moderation."""
    job_id = request.job_id or uuid4().hex

    if await jobs.get(job_id) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Job {job_id} already exists",
        )

    job = VideoJob(id=job_id, owner_id=request.owner_id, source_path=request.source_path)
    await jobs.save(job)

    orchestrator.start_job(
        JobRequest(job_id=job.id, owner_id=job.owner_id, source_path=job.source_path)
    )
    return JobResponse.from_entity(job)


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: str,
    jobs: VideoJobRepository = Depends(get_job_repository),
):
    """Current status, progress and verdict of a job."""
    job = await jobs.get(job_id)
    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Job {job_id} not found",
        )
    return JobResponse.from_entity(job)

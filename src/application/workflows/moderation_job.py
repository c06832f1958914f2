"""Moderation job workflow.

Drives one uploaded video through probing, thumbnailing, analysis and
persistence, publishing progress along the way:

    PENDING -> PROBING (0-10%) -> ANALYZING (10-100%) -> COMPLETED | FAILED

Jobs run as background tasks; the caller gets control back as soon as the
task is scheduled.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Sequence, Set

import structlog

from src.application.services.analyzer_selection import (
    AnalyzerSelection,
    AnalyzerSelector,
)
from src.domain.entities.video_job import VideoJob
from src.domain.enums import (
    AnalyzerPreference,
    JobStatus,
    ProgressEventKind,
    SensitivityStatus,
)
from src.domain.exceptions import (
    CloudAnalyzerError,
    PersistenceError,
    ProbeError,
    ThumbnailError,
)
from src.domain.interfaces.video_analyzer import AnalysisProgress
from src.domain.repositories.account_repository import AccountRepository
from src.domain.repositories.video_job_repository import VideoJobRepository
from src.domain.value_objects.risk_assessment import RiskAssessment
from src.infrastructure.broadcasting.progress_broadcaster import ProgressBroadcaster
from src.infrastructure.common.error_handling import safe_call_async
from src.infrastructure.media.ffmpeg_integration import FFmpegProcessor
from src.infrastructure.media.thumbnail_generator import ThumbnailGenerator
from src.infrastructure.observability import add_processing_context, create_span

# Share of overall progress given to the probe/transcode stage
PROBE_SHARE = 10
ANALYSIS_SCALE = (100 - PROBE_SHARE) / 100

DEFAULT_PREFERENCE = AnalyzerPreference.LOCAL


@dataclass(frozen=True)
class JobRequest:
    """A video ready for moderation. The job row already exists as PENDING."""

    job_id: str
    owner_id: str
    source_path: str


def probe_progress(fraction: float) -> int:
    """Map probe fraction (0..1) into the job's 0-10 range."""
    return round(max(0.0, min(1.0, fraction)) * PROBE_SHARE)


def analysis_progress(progress: int) -> int:
    """Map analyzer progress (0-100) into the job's 10-100 range."""
    return PROBE_SHARE + round(max(0, min(100, progress)) * ANALYSIS_SCALE)


@dataclass
class ModerationJobOrchestrator:
    """Runs moderation jobs end to end.

    Collaborators are injected so tests can swap any of them for fakes.
    """

    jobs: VideoJobRepository
    accounts: AccountRepository
    selector: AnalyzerSelector
    broadcaster: ProgressBroadcaster
    ffmpeg: FFmpegProcessor
    thumbnails: ThumbnailGenerator
    _tasks: Set[asyncio.Task] = field(default_factory=set, init=False, repr=False)

    def __post_init__(self):
        self.logger = structlog.get_logger(__name__)

    @property
    def active_jobs(self) -> int:
        return len(self._tasks)

    def start_job(self, request: JobRequest) -> asyncio.Task:
        """Schedule ``process_job`` and return immediately."""
        task = asyncio.create_task(
            self.process_job(request), name=f"moderation-job-{request.job_id}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self.logger.info(
            "Moderation job scheduled",
            job_id=request.job_id,
            owner_id=request.owner_id,
        )
        return task

    async def cancel_all(self) -> None:
        """Cancel in-flight jobs and wait for them to unwind."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def process_job(self, request: JobRequest) -> VideoJob:
        """Run one job to a terminal state.

        Never raises for job-level failures: they are persisted on the job
        and broadcast as a ``failed`` status.

        Returns:
            The job as tracked in memory at the end of the run
        """
        job = VideoJob(
            id=request.job_id,
            owner_id=request.owner_id,
            source_path=request.source_path,
        )

        with create_span(
            "moderation.job", job_id=request.job_id, owner_id=request.owner_id
        ) as span:
            try:
                await self._mark_processing(job)

                add_processing_context(span, processing_stage="probe")
                await self._probe(job)

                await self._generate_thumbnail(job)

                selection = await self._select_analyzer(job)
                add_processing_context(
                    span,
                    backend=selection.backend.value,
                    processing_stage="analysis",
                )
                assessment = await self._analyze(job, selection)

                add_processing_context(span, processing_stage="persist")
                await self._persist_result(job, assessment)
            except Exception as e:
                await self._fail(job, e)

            span.set_attribute("moderation.status", job.status.value)

        return job

    async def _mark_processing(self, job: VideoJob) -> None:
        job.start_processing()
        await self.jobs.update_status(
            job.id, JobStatus.PROCESSING, SensitivityStatus.UNCHECKED, 0
        )
        await self.broadcaster.emit_status(
            job.owner_id, job.id, JobStatus.PROCESSING, SensitivityStatus.UNCHECKED
        )

    async def _report_progress(
        self,
        job: VideoJob,
        progress: int,
        kind: ProgressEventKind,
        labels: Sequence[str] = (),
    ) -> None:
        # Stale or repeated values are dropped so progress never moves back
        if not job.advance_progress(max(0, min(100, progress))):
            return

        await safe_call_async(
            self.jobs.update_fields, job.id, {"progress": job.progress}
        )
        if kind is ProgressEventKind.UPLOAD_PROGRESS:
            await self.broadcaster.emit_upload_progress(
                job.owner_id, job.id, job.progress
            )
        else:
            await self.broadcaster.emit_analysis_progress(
                job.owner_id, job.id, job.progress, labels
            )

    async def _probe(self, job: VideoJob) -> None:
        async def on_fraction(fraction: float) -> None:
            await self._report_progress(
                job, probe_progress(fraction), ProgressEventKind.UPLOAD_PROGRESS
            )

        try:
            media_info = await self.ffmpeg.probe_transcode(job.source_path, on_fraction)
        except Exception as e:
            raise ProbeError(
                f"Video probe failed: {e}", job_id=job.id, cause=e
            ) from e

        self.logger.info(
            "Video probed",
            job_id=job.id,
            duration=media_info.duration,
            format=media_info.format_name,
        )

    async def _generate_thumbnail(self, job: VideoJob) -> None:
        try:
            path = await self.thumbnails.generate_thumbnail(job.source_path, job.id)
        except ThumbnailError as e:
            self.logger.warning(
                "Thumbnail generation failed", job_id=job.id, error=str(e)
            )
            return

        job.thumbnail_path = path
        await safe_call_async(self.jobs.update_fields, job.id, {"thumbnail_path": path})

    async def _select_analyzer(self, job: VideoJob) -> AnalyzerSelection:
        preference = await self.accounts.get_analyzer_preference(job.owner_id)
        selection = await self.selector.select(
            job.owner_id, preference or DEFAULT_PREFERENCE
        )
        self.logger.info(
            "Analyzer selected",
            job_id=job.id,
            requested=selection.requested.value,
            backend=selection.backend.value,
            downgraded_reason=selection.downgraded_reason,
        )
        return selection

    async def _analyze(
        self, job: VideoJob, selection: AnalyzerSelection
    ) -> RiskAssessment:
        async def on_progress(report: AnalysisProgress) -> None:
            await self._report_progress(
                job,
                analysis_progress(report.progress),
                ProgressEventKind.ANALYSIS_PROGRESS,
                report.detected_labels,
            )

        try:
            return await selection.analyzer.analyze_video(job.source_path, on_progress)
        except CloudAnalyzerError as e:
            self.logger.warning(
                "Cloud analysis failed, retrying with local analyzer",
                job_id=job.id,
                error=str(e),
            )

        # A failure here is final
        return await self.selector.local.analyze_video(job.source_path, on_progress)

    async def _persist_result(self, job: VideoJob, assessment: RiskAssessment) -> None:
        try:
            await self.jobs.update_with_analysis(
                job.id,
                assessment.sensitivity_status,
                assessment.confidence,
                assessment.detected_labels,
                assessment.details,
            )
        except PersistenceError as e:
            self.logger.warning(
                "Full result write failed, storing verdict only",
                job_id=job.id,
                error=str(e),
            )
            try:
                await self.jobs.update_status(
                    job.id, JobStatus.COMPLETED, assessment.sensitivity_status, 100
                )
            except PersistenceError as fallback_error:
                raise PersistenceError(
                    f"Failed to persist analysis result: {fallback_error}",
                    job_id=job.id,
                    cause=fallback_error,
                ) from fallback_error

        job.complete(assessment)
        self.logger.info(
            "Moderation job completed",
            job_id=job.id,
            sensitivity_status=assessment.sensitivity_status.value,
            confidence=assessment.confidence,
            labels=assessment.detected_labels,
            method=assessment.method,
        )

        await self.broadcaster.emit_status(
            job.owner_id, job.id, JobStatus.COMPLETED, assessment.sensitivity_status
        )
        await self.broadcaster.emit_analysis_progress(
            job.owner_id, job.id, 100, assessment.detected_labels
        )

    async def _fail(self, job: VideoJob, error: Exception) -> None:
        message = str(error) or type(error).__name__
        self.logger.error(
            "Moderation job failed",
            job_id=job.id,
            error=message,
            error_type=type(error).__name__,
            progress=job.progress,
        )
        if not job.is_terminal:
            job.fail(message)

        try:
            await self.jobs.update_status(
                job.id,
                JobStatus.FAILED,
                SensitivityStatus.UNCHECKED,
                job.progress,
                error=message,
            )
        except Exception as e:
            self.logger.error(
                "Could not record job failure", job_id=job.id, error=str(e)
            )

        await self.broadcaster.emit_status(
            job.owner_id, job.id, JobStatus.FAILED, SensitivityStatus.UNCHECKED
        )

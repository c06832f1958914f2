"""Video moderation job entity."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from src.domain.entities.base import Entity
from src.domain.enums import JobStatus, SensitivityStatus
from src.domain.exceptions import (
    InvalidStateTransition,
    InvalidValueError,
    StateTransitionInfo,
)
from src.domain.value_objects.risk_assessment import RiskAssessment


@dataclass(kw_only=True)
class VideoJob(Entity[str]):
    """One video's run through the moderation pipeline.

    The job advances pending -> processing -> completed | failed and never
    moves backward once terminal. While processing, ``progress`` only grows.
    """

    owner_id: str
    source_path: str
    status: JobStatus = JobStatus.PENDING
    sensitivity_status: SensitivityStatus = SensitivityStatus.UNCHECKED
    progress: int = 0
    confidence: Optional[int] = None
    detected_labels: List[str] = field(default_factory=list)
    analysis_details: Dict[str, Any] = field(default_factory=dict)
    analysis_error: Optional[str] = None
    thumbnail_path: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def _require_status(self, target: JobStatus, *allowed: JobStatus) -> None:
        if self.status not in allowed:
            raise InvalidStateTransition(
                StateTransitionInfo(
                    from_state=self.status.value,
                    to_state=target.value,
                    allowed_states=[s.value for s in allowed],
                    entity_type="VideoJob",
                    entity_id=self.id,
                )
            )

    def start_processing(self) -> None:
        """Mark the job processing with an unchecked verdict at 0%."""
        self._require_status(JobStatus.PROCESSING, JobStatus.PENDING)

        self.status = JobStatus.PROCESSING
        self.sensitivity_status = SensitivityStatus.UNCHECKED
        self.progress = 0
        self.analysis_error = None
        self._touch_updated_at()

    def advance_progress(self, progress: int) -> bool:
        """Move progress forward.

        Values lower than the current progress are ignored so callers can
        report freely without breaking monotonicity.

        Returns:
            True if the stored progress changed
        """
        self._require_status(JobStatus.PROCESSING, JobStatus.PROCESSING)
        if not 0 <= progress <= 100:
            raise InvalidValueError(f"Progress must be between 0 and 100, got {progress}")

        if progress <= self.progress:
            return False
        self.progress = progress
        self._touch_updated_at()
        return True

    def complete(self, assessment: RiskAssessment) -> None:
        """Record the final verdict."""
        self._require_status(JobStatus.COMPLETED, JobStatus.PROCESSING)

        self.status = JobStatus.COMPLETED
        self.sensitivity_status = assessment.sensitivity_status
        self.confidence = assessment.confidence
        self.detected_labels = list(assessment.detected_labels)
        self.analysis_details = dict(assessment.details)
        self.progress = 100
        self._touch_updated_at()

    def fail(self, error: str) -> None:
        """Mark the job failed. Progress stays where it was."""
        self._require_status(JobStatus.FAILED, JobStatus.PENDING, JobStatus.PROCESSING)

        self.status = JobStatus.FAILED
        self.sensitivity_status = SensitivityStatus.UNCHECKED
        self.analysis_error = error
        self._touch_updated_at()

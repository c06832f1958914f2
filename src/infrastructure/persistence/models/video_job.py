"""Video job model.

Rows are created by the upload intake and updated by the job orchestrator
through ``VideoJobRepository``.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.domain.enums import JobStatus, SensitivityStatus
from src.infrastructure.persistence.models.base import Base, TimestampMixin


class VideoJobModel(Base, TimestampMixin):
    """Moderation state of one uploaded video.

    Attributes:
        id: Job identifier (the video ID)
        owner_id: Account that uploaded the video
        source_path: Local path of the uploaded file
        status: Lifecycle status
        sensitivity_status: Safety verdict
        progress: Overall progress 0-100
        confidence: Verdict confidence 0-100, set on completion
        detected_labels: Evidence labels
        analysis_details: Analyzer diagnostics
        analysis_error: Failure message
        thumbnail_path: Generated thumbnail
    """

    __tablename__ = "video_jobs"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    source_path: Mapped[str] = mapped_column(Text, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=JobStatus.PENDING.value, index=True
    )

    sensitivity_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SensitivityStatus.UNCHECKED.value
    )

    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    confidence: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    detected_labels: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    analysis_details: Mapped[Dict[str, Any]] = mapped_column(
        JSON, nullable=False, default=dict
    )

    analysis_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    thumbnail_path: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<VideoJobModel(id={self.id!r}, status={self.status!r}, "
            f"progress={self.progress})>"
        )

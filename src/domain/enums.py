"""Domain enums for the moderation pipeline.

String-valued enums so they serialise straight into persistence rows and
broadcast payloads.
"""

from enum import Enum


class JobStatus(str, Enum):
    """Lifecycle status of a moderation job."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)

    def __str__(self) -> str:
        return self.value


class SensitivityStatus(str, Enum):
    """Safety verdict for a job."""

    UNCHECKED = "unchecked"
    SAFE = "safe"
    FLAGGED = "flagged"

    def __str__(self) -> str:
        return self.value


class AnalyzerPreference(str, Enum):
    """Per-owner analyzer backend preference, owned by the account store."""

    LOCAL = "local"
    CLOUD = "cloud"
    HYBRID = "hybrid"

    def __str__(self) -> str:
        return self.value


class Severity(str, Enum):
    """Escalation level of a piece of evidence or of a whole video."""

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @property
    def weight(self) -> int:
        """Weight used when scoring per-frame risk."""
        return _SEVERITY_WEIGHT[self]

    def raise_to(self, floor: "Severity") -> "Severity":
        """Return the higher of this severity and ``floor``."""
        return floor if floor.rank > self.rank else self

    def __str__(self) -> str:
        return self.value


_SEVERITY_RANK = {
    Severity.NONE: 0,
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}

_SEVERITY_WEIGHT = {
    Severity.NONE: 0,
    Severity.LOW: 25,
    Severity.MEDIUM: 50,
    Severity.HIGH: 75,
    Severity.CRITICAL: 100,
}


class EvidenceCategory(str, Enum):
    """Taxonomy family an evidence item belongs to."""

    WEAPONS = "weapons"
    VIOLENCE = "violence"
    CONTEXT = "context"

    def __str__(self) -> str:
        return self.value


class ProgressEventKind(str, Enum):
    """Event kinds published to job subscribers."""

    UPLOAD_PROGRESS = "upload-progress"
    ANALYSIS_PROGRESS = "analysis-progress"
    STATUS = "status"

    @property
    def is_progress(self) -> bool:
        return self is not ProgressEventKind.STATUS

    def __str__(self) -> str:
        return self.value

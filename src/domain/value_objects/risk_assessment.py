"""Risk assessment value object.

The canonical output of every analyzer backend. The orchestrator persists it
verbatim, so both the local and the cloud analyzer must produce this shape.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from src.domain.enums import SensitivityStatus, Severity
from src.domain.exceptions import InvalidValueError


@dataclass(frozen=True)
class RiskAssessment:
    """Final verdict for one video."""

    sensitivity_status: SensitivityStatus
    confidence: int
    detected_labels: List[str] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)
    severity: Severity = Severity.NONE
    risk_score: Optional[int] = None

    def __post_init__(self):
        if self.sensitivity_status is SensitivityStatus.UNCHECKED:
            raise InvalidValueError(
                "A risk assessment must be either safe or flagged"
            )
        if not 0 <= self.confidence <= 100:
            raise InvalidValueError(
                f"Assessment confidence must be between 0 and 100, got {self.confidence}"
            )
        # Labels behave as a set; keep first-seen order for stable output.
        object.__setattr__(
            self, "detected_labels", list(dict.fromkeys(self.detected_labels))
        )

    @classmethod
    def safe(
        cls, confidence: int = 95, details: Optional[Dict[str, Any]] = None
    ) -> "RiskAssessment":
        return cls(
            sensitivity_status=SensitivityStatus.SAFE,
            confidence=confidence,
            detected_labels=[],
            details=details or {},
        )

    @property
    def is_flagged(self) -> bool:
        return self.sensitivity_status is SensitivityStatus.FLAGGED

    @property
    def method(self) -> Optional[str]:
        """Name of the analysis method recorded in ``details``."""
        return self.details.get("method")

    def to_dict(self) -> Dict[str, Any]:
        """Serialise to the wire schema shared by both backends."""
        return {
            "sensitivityStatus": self.sensitivity_status.value,
            "confidence": self.confidence,
            "detectedLabels": list(self.detected_labels),
            "details": self.details,
        }

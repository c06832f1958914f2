"""Detection evidence value object."""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from src.domain.enums import EvidenceCategory, Severity
from src.domain.exceptions import InvalidValueError


@dataclass(frozen=True)
class DetectionEvidence:
    """One detector's positive finding in one frame.

    ``type`` is the lower-case evidence identifier (``weapons_firearms``,
    ``blood_detected``...). ``source`` names what triggered it, e.g. the
    object or scene label the model produced.
    """

    type: str
    confidence: int
    severity: Severity
    category: EvidenceCategory
    source: Optional[str] = None
    frame_index: Optional[int] = None

    def __post_init__(self):
        if not 0 <= self.confidence <= 100:
            raise InvalidValueError(
                f"Evidence confidence must be between 0 and 100, got {self.confidence}"
            )
        if self.severity is Severity.NONE:
            raise InvalidValueError("Evidence severity cannot be 'none'")

    @property
    def label(self) -> str:
        """Upper-cased label as exposed in ``detected_labels``."""
        return self.type.upper()

    @property
    def is_contextual(self) -> bool:
        return self.category is EvidenceCategory.CONTEXT

    def with_frame(self, frame_index: int) -> "DetectionEvidence":
        """Return a copy bound to the given frame index."""
        return DetectionEvidence(
            type=self.type,
            confidence=self.confidence,
            severity=self.severity,
            category=self.category,
            source=self.source,
            frame_index=frame_index,
        )

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "type": self.type,
            "confidence": self.confidence,
            "severity": self.severity.value,
            "category": self.category.value,
        }
        if self.source is not None:
            result["source"] = self.source
        if self.frame_index is not None:
            result["frame"] = self.frame_index
        return result

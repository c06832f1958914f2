"""Value objects for the domain layer.

Value objects are immutable objects that represent domain concepts
without identity. They are defined by their attributes rather than
by an ID.
"""

from src.domain.value_objects.confidence_score import ConfidenceScore
from src.domain.value_objects.detection_evidence import DetectionEvidence
from src.domain.value_objects.risk_assessment import RiskAssessment

__all__ = ["ConfidenceScore", "DetectionEvidence", "RiskAssessment"]

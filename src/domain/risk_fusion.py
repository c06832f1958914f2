"""Risk fusion and decision policy.

Pure domain logic turning per-frame evidence into one deterministic verdict.
The policy is applied in a fixed order:

1. mandatory evidence types force ``flagged`` with a severity floor
2. threshold escalation may only raise the severity
3. an empty label set forces ``safe`` regardless of 1 and 2
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Sequence

from src.domain.enums import EvidenceCategory, SensitivityStatus, Severity
from src.domain.taxonomy import (
    BLOOD_DETECTED,
    MANDATORY_FLAG_TYPES,
    VIOLENCE_GRAPHIC,
    WEAPONS_EXPLOSIVES,
    WEAPONS_FIREARMS,
)
from src.domain.value_objects.confidence_score import ConfidenceScore
from src.domain.value_objects.detection_evidence import DetectionEvidence
from src.domain.value_objects.risk_assessment import RiskAssessment


CONTEXT_WEIGHT_FACTOR = 0.5
AVG_RISK_WEIGHT = 0.4
PEAK_RISK_WEIGHT = 0.6
NO_EVIDENCE_CONFIDENCE = 95
SAFE_CONFIDENCE = 95
MAX_FLAGGED_CONFIDENCE = 95
FLAGGED_CONFIDENCE_OFFSET = 50

LOCAL_METHOD = "local_multi_strategy"

# (peak threshold, combined threshold, severity floor), checked top-down
ESCALATION_RULES = (
    (60, 40, Severity.HIGH),
    (40, 25, Severity.MEDIUM),
    (20, 15, Severity.LOW),
)
CRITICAL_PEAK_THRESHOLD = 80


@dataclass
class FrameAssessment:
    """Scored evidence for a single frame."""

    frame_index: int
    evidence: List[DetectionEvidence] = field(default_factory=list)
    risk_score: float = 0.0
    confidence: int = NO_EVIDENCE_CONFIDENCE


@dataclass(frozen=True)
class VideoRisk:
    """Aggregate risk numbers across all frames."""

    avg_risk: float
    peak_risk: float
    combined_risk: float


def score_frame(frame_index: int, evidence: Sequence[DetectionEvidence]) -> FrameAssessment:
    """Score one frame's evidence.

    Risk is the sum of severity weight times confidence fraction, with
    contextual evidence at half strength, capped at 100.
    """
    risk = 0.0
    for item in evidence:
        contribution = item.severity.weight * item.confidence / 100
        if item.is_contextual:
            contribution *= CONTEXT_WEIGHT_FACTOR
        risk += contribution

    if evidence:
        confidence = int(round(sum(e.confidence for e in evidence) / len(evidence)))
    else:
        confidence = NO_EVIDENCE_CONFIDENCE

    return FrameAssessment(
        frame_index=frame_index,
        evidence=[e.with_frame(frame_index) for e in evidence],
        risk_score=min(risk, 100.0),
        confidence=confidence,
    )


def fuse_video_risk(frames: Sequence[FrameAssessment]) -> VideoRisk:
    """Combine per-frame risk into average, peak and weighted combined risk."""
    if not frames:
        return VideoRisk(avg_risk=0.0, peak_risk=0.0, combined_risk=0.0)

    scores = [f.risk_score for f in frames]
    avg_risk = sum(scores) / len(scores)
    peak_risk = max(scores)
    return VideoRisk(
        avg_risk=avg_risk,
        peak_risk=peak_risk,
        combined_risk=AVG_RISK_WEIGHT * avg_risk + PEAK_RISK_WEIGHT * peak_risk,
    )


def collect_labels(frames: Iterable[FrameAssessment]) -> List[str]:
    """Upper-cased weapon and violence evidence types, first-seen order."""
    labels: Dict[str, None] = {}
    for frame in frames:
        for item in frame.evidence:
            if item.category is not EvidenceCategory.CONTEXT:
                labels.setdefault(item.label, None)
    return list(labels)


def mandatory_severity(evidence_types: Iterable[str]) -> Severity:
    """Severity floor implied by mandatory-flag evidence, NONE if absent."""
    present = set(evidence_types) & MANDATORY_FLAG_TYPES
    if not present:
        return Severity.NONE
    if present & {WEAPONS_FIREARMS, WEAPONS_EXPLOSIVES}:
        return Severity.CRITICAL
    if present & {BLOOD_DETECTED, VIOLENCE_GRAPHIC}:
        return Severity.HIGH
    return Severity.MEDIUM


def escalation_severity(risk: VideoRisk) -> Severity:
    """Severity floor implied by the risk thresholds, NONE if below all."""
    for peak_threshold, combined_threshold, floor in ESCALATION_RULES:
        if risk.peak_risk > peak_threshold or risk.combined_risk > combined_threshold:
            if floor is Severity.HIGH and risk.peak_risk > CRITICAL_PEAK_THRESHOLD:
                return Severity.CRITICAL
            return floor
    return Severity.NONE


def _round1(value: float) -> float:
    return round(value, 1)


def _evidence_summary(
    frames: Sequence[FrameAssessment], predicate, limit: int
) -> Dict[str, Any]:
    items = [e for f in frames for e in f.evidence if predicate(e)]
    return {
        "total": len(items),
        "details": [e.to_dict() for e in items[:limit]],
    }


def decide(frames: Sequence[FrameAssessment]) -> RiskAssessment:
    """Apply the decision policy to scored frames.

    Args:
        frames: Per-frame assessments in frame order

    Returns:
        The video-level risk assessment
    """
    risk = fuse_video_risk(frames)
    labels = collect_labels(frames)
    evidence_types = {e.type for f in frames for e in f.evidence}

    severity = mandatory_severity(evidence_types)
    severity = severity.raise_to(escalation_severity(risk))
    flagged = severity is not Severity.NONE

    if not labels or not flagged:
        status = SensitivityStatus.SAFE
        severity = Severity.NONE
        labels = []
        confidence = SAFE_CONFIDENCE
    else:
        status = SensitivityStatus.FLAGGED
        confidence = ConfidenceScore.clamp(
            min(risk.combined_risk + FLAGGED_CONFIDENCE_OFFSET, MAX_FLAGGED_CONFIDENCE)
        ).value

    details = {
        "method": LOCAL_METHOD,
        "totalFramesAnalyzed": len(frames),
        "severity": severity.value,
        "avgRiskScore": _round1(risk.avg_risk),
        "peakRiskScore": _round1(risk.peak_risk),
        "combinedRiskScore": _round1(risk.combined_risk),
        "weaponDetections": _evidence_summary(
            frames, lambda e: e.category is EvidenceCategory.WEAPONS, 10
        ),
        "violenceIndicators": _evidence_summary(
            frames, lambda e: e.category is EvidenceCategory.VIOLENCE, 10
        ),
        "contextualFlags": _evidence_summary(
            frames, lambda e: e.category is EvidenceCategory.CONTEXT, 5
        ),
    }

    return RiskAssessment(
        sensitivity_status=status,
        confidence=confidence,
        detected_labels=labels,
        details=details,
        severity=severity,
        risk_score=int(round(risk.combined_risk)),
    )

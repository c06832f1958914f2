"""Cloud analyzer backed by Google Cloud Video Intelligence.

Stages the file in GCS, requests explicit-content and label detection,
waits for the long-running operation and reduces both signals to a
``RiskAssessment``. Progress is only known at three milestones: staged,
submitted, completed.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import logfire
import structlog
from google.cloud import videointelligence

from src.domain.enums import SensitivityStatus
from src.domain.exceptions import CloudAnalyzerError
from src.domain.interfaces.video_analyzer import AnalysisProgress, ProgressCallback
from src.domain.taxonomy import find_unsafe_keyword
from src.domain.value_objects.risk_assessment import RiskAssessment
from src.infrastructure.analyzers.cloud.gcs_staging import GcsStagingStore, StagedObject
from src.infrastructure.config import settings

logger = structlog.get_logger(__name__)

CLOUD_METHOD = "cloud_video_intelligence"
EXPLICIT_CONTENT_LABEL = "EXPLICIT_CONTENT"

STAGED_PROGRESS = 33
SUBMITTED_PROGRESS = 66
COMPLETED_PROGRESS = 100

# Ordered five-point likelihood scale mapped to a confidence percentage
LIKELIHOOD_CONFIDENCE = {
    "VERY_UNLIKELY": 5,
    "UNLIKELY": 20,
    "POSSIBLE": 50,
    "LIKELY": 75,
    "VERY_LIKELY": 95,
}
LIKELIHOOD_ORDER = list(LIKELIHOOD_CONFIDENCE)
FLAG_LIKELIHOOD = "POSSIBLE"

NO_FRAMES_CONFIDENCE = 95
NO_LABELS_CONFIDENCE = 90
SAFE_LABELS_CONFIDENCE = 95
DEFAULT_LABEL_CONFIDENCE = 0.8


@dataclass
class SignalResult:
    """Verdict of one cloud signal before combination."""

    flagged: bool
    confidence: int
    labels: List[str] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)


def likelihood_name(value: Any) -> Optional[str]:
    """Normalise a likelihood enum, int or string to its scale name."""
    if value is None:
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        # VERY_UNLIKELY=1 ... VERY_LIKELY=5; 0 is unspecified
        return LIKELIHOOD_ORDER[value - 1] if 1 <= value <= 5 else None
    name = getattr(value, "name", None) or str(value)
    name = name.rsplit(".", 1)[-1].upper()
    return name if name in LIKELIHOOD_CONFIDENCE else None


def parse_explicit_content(annotation: Any) -> SignalResult:
    """Reduce explicit-content frames to one signal."""
    explicit = getattr(annotation, "explicit_annotation", None)
    frames = list(getattr(explicit, "frames", None) or [])

    names = [likelihood_name(getattr(f, "pornography_likelihood", None)) for f in frames]
    names = [n for n in names if n is not None]
    if not names:
        return SignalResult(
            flagged=False,
            confidence=NO_FRAMES_CONFIDENCE,
            details={"framesAnalyzed": 0},
        )

    confidences = [LIKELIHOOD_CONFIDENCE[n] for n in names]
    average = sum(confidences) / len(confidences)
    peak = max(names, key=LIKELIHOOD_ORDER.index)
    flagged = LIKELIHOOD_ORDER.index(peak) >= LIKELIHOOD_ORDER.index(FLAG_LIKELIHOOD)

    return SignalResult(
        flagged=flagged,
        confidence=int(round(average if flagged else 100 - average)),
        labels=[EXPLICIT_CONTENT_LABEL] if flagged else [],
        details={
            "framesAnalyzed": len(names),
            "maxLikelihood": peak,
            "averageConfidence": round(average, 1),
        },
    )


def _label_confidence(annotation: Any) -> float:
    confidences = [
        float(getattr(segment, "confidence", 0.0) or 0.0)
        for segment in (getattr(annotation, "segments", None) or [])
    ]
    best = max(confidences, default=0.0)
    return best if best > 0 else DEFAULT_LABEL_CONFIDENCE


def parse_labels(annotation: Any) -> SignalResult:
    """Screen segment and shot labels against the unsafe keyword list."""
    label_annotations = list(getattr(annotation, "segment_label_annotations", None) or [])
    label_annotations += list(getattr(annotation, "shot_label_annotations", None) or [])

    if not label_annotations:
        return SignalResult(
            flagged=False,
            confidence=NO_LABELS_CONFIDENCE,
            details={"method": "cloud_label_detection", "totalLabelsAnalyzed": 0},
        )

    unsafe: List[Dict[str, Any]] = []
    for label_annotation in label_annotations:
        description = getattr(getattr(label_annotation, "entity", None), "description", "")
        if not description:
            continue
        keyword = find_unsafe_keyword(description)
        if keyword is None:
            continue
        unsafe.append(
            {
                "label": description,
                "keyword": keyword,
                "confidence": _label_confidence(label_annotation),
            }
        )

    flagged = bool(unsafe)
    confidence = (
        int(round(max(u["confidence"] for u in unsafe) * 100))
        if flagged
        else SAFE_LABELS_CONFIDENCE
    )
    labels = list(
        dict.fromkeys(u["label"].strip().upper().replace(" ", "_") for u in unsafe)
    )

    return SignalResult(
        flagged=flagged,
        confidence=min(confidence, 100),
        labels=labels,
        details={
            "method": "cloud_label_detection",
            "unsafeLabelsFound": unsafe,
            "totalLabelsAnalyzed": len(label_annotations),
        },
    )


def combine_signals(explicit: SignalResult, labels: SignalResult) -> RiskAssessment:
    """OR the two signals; take the higher confidence and the union of labels."""
    flagged = explicit.flagged or labels.flagged
    return RiskAssessment(
        sensitivity_status=SensitivityStatus.FLAGGED if flagged else SensitivityStatus.SAFE,
        confidence=max(explicit.confidence, labels.confidence),
        detected_labels=explicit.labels + labels.labels,
        details={
            "method": CLOUD_METHOD,
            "explicitContent": {
                "flagged": explicit.flagged,
                "confidence": explicit.confidence,
                **explicit.details,
            },
            "labelDetection": {
                "flagged": labels.flagged,
                "confidence": labels.confidence,
                **labels.details,
            },
            "combinedResult": {
                "explicitFlagged": explicit.flagged,
                "labelsFlagged": labels.flagged,
            },
        },
    )


class CloudVideoAnalyzer:
    """Delegates moderation to the managed Video Intelligence service."""

    name = "cloud"

    def __init__(
        self,
        staging: Optional[GcsStagingStore] = None,
        client: Optional[Any] = None,
        timeout: Optional[float] = None,
    ):
        self.staging = staging or GcsStagingStore()
        self.timeout = (
            timeout if timeout is not None else settings.gcp.annotate_timeout_seconds
        )
        self._client = client
        self._initialized = False

    async def initialize(self) -> None:
        if self._initialized:
            return
        self.staging.open()
        if self._client is None:
            self._client = videointelligence.VideoIntelligenceServiceClient()
        self._initialized = True
        logger.info("Cloud analyzer initialized", bucket=self.staging.bucket)

    async def shutdown(self) -> None:
        if not self._initialized:
            return
        self.staging.close()
        transport = getattr(self._client, "transport", None)
        if transport is not None and hasattr(transport, "close"):
            transport.close()
        self._client = None
        self._initialized = False
        logger.info("Cloud analyzer shut down")

    def get_capabilities(self) -> Dict[str, Any]:
        return {
            "method": CLOUD_METHOD,
            "features": ["explicit_content_detection", "label_detection"],
            "remote": True,
        }

    async def _annotate(self, staged: StagedObject, on_progress: Optional[ProgressCallback]) -> Any:
        operation = await asyncio.to_thread(
            self._client.annotate_video,
            request={
                "input_uri": staged.uri,
                "features": [
                    videointelligence.Feature.EXPLICIT_CONTENT_DETECTION,
                    videointelligence.Feature.LABEL_DETECTION,
                ],
            },
        )
        if on_progress:
            await on_progress(AnalysisProgress(progress=SUBMITTED_PROGRESS))

        return await asyncio.to_thread(operation.result, timeout=self.timeout)

    async def analyze_video(
        self,
        video_path: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> RiskAssessment:
        """Analyze a video with Video Intelligence.

        Raises:
            CloudAnalyzerError: If staging, annotation or parsing fails
        """
        if not self._initialized:
            raise CloudAnalyzerError("Cloud analyzer used before initialize()")

        staged: Optional[StagedObject] = None
        with logfire.span("cloud_analysis", video_path=video_path):
            try:
                staged = await self.staging.stage(video_path)
                if on_progress:
                    await on_progress(AnalysisProgress(progress=STAGED_PROGRESS))

                response = await self._annotate(staged, on_progress)
                results = list(getattr(response, "annotation_results", None) or [])
                annotation = results[0] if results else None

                result = combine_signals(
                    parse_explicit_content(annotation), parse_labels(annotation)
                )
            except CloudAnalyzerError:
                raise
            except Exception as e:
                logger.error("Cloud analysis failed", video_path=video_path, error=str(e))
                raise CloudAnalyzerError(f"Cloud analysis failed: {e}", cause=e) from e
            finally:
                if staged is not None:
                    await self.staging.delete(staged)

        if on_progress:
            await on_progress(
                AnalysisProgress(
                    progress=COMPLETED_PROGRESS,
                    detected_labels=list(result.detected_labels),
                )
            )

        logger.info(
            "Cloud analysis complete",
            video_path=video_path,
            sensitivity_status=result.sensitivity_status.value,
            labels=result.detected_labels,
        )
        return result

"""Local multi-strategy analyzer.

Samples frames, runs every detection strategy on each frame, scores the
frames and applies the decision policy from ``src.domain.risk_fusion``.
"""

import asyncio
from typing import Any, Dict, List, Optional, Sequence

import logfire
import structlog

from src.domain.exceptions import LocalAnalyzerError
from src.domain.interfaces.video_analyzer import AnalysisProgress, ProgressCallback
from src.domain.risk_fusion import (
    LOCAL_METHOD,
    FrameAssessment,
    collect_labels,
    decide,
    score_frame,
)
from src.domain.value_objects.detection_evidence import DetectionEvidence
from src.domain.value_objects.risk_assessment import RiskAssessment
from src.infrastructure.analyzers.local.models import (
    ObjectDetector,
    SceneClassifier,
    TransformersSceneClassifier,
    YoloObjectDetector,
)
from src.infrastructure.analyzers.local.strategies import (
    ColorHeuristicStrategy,
    CompositionHeuristicStrategy,
    DetectionStrategy,
    FrameImage,
    ObjectDetectionStrategy,
    SceneClassificationStrategy,
)
from src.infrastructure.config import settings
from src.infrastructure.media.frame_sampler import FrameSample, FrameSampler

logger = structlog.get_logger(__name__)


class LocalMultiStrategyAnalyzer:
    """Runs the four frame detectors locally and fuses their evidence.

    Models are loaded once by ``initialize`` and shared by every job the
    process runs. Passing ``strategies`` skips model loading entirely.
    """

    name = "local"

    def __init__(
        self,
        frame_sampler: Optional[FrameSampler] = None,
        object_detector: Optional[ObjectDetector] = None,
        scene_classifier: Optional[SceneClassifier] = None,
        strategies: Optional[Sequence[DetectionStrategy]] = None,
    ):
        self.frame_sampler = frame_sampler or FrameSampler()
        self.object_detector = object_detector or YoloObjectDetector()
        self.scene_classifier = scene_classifier or TransformersSceneClassifier()
        self._custom_strategies = strategies is not None
        self._strategies: List[DetectionStrategy] = list(strategies or [])
        self._initialized = False

    @property
    def strategies(self) -> List[DetectionStrategy]:
        return list(self._strategies)

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        if self._initialized:
            return

        if not self._custom_strategies:
            await asyncio.to_thread(self.object_detector.load)
            await asyncio.to_thread(self.scene_classifier.load)
            self._strategies = [
                ObjectDetectionStrategy(
                    self.object_detector, settings.analysis.similarity_threshold
                ),
                SceneClassificationStrategy(self.scene_classifier),
                ColorHeuristicStrategy(),
                CompositionHeuristicStrategy(),
            ]

        self._initialized = True
        logger.info(
            "Local analyzer initialized",
            strategies=[s.name for s in self._strategies],
        )

    async def shutdown(self) -> None:
        if not self._initialized:
            return
        if not self._custom_strategies:
            self.object_detector.unload()
            self.scene_classifier.unload()
            self._strategies = []
        self._initialized = False
        logger.info("Local analyzer shut down")

    def get_capabilities(self) -> Dict[str, Any]:
        return {
            "method": LOCAL_METHOD,
            "strategies": [s.name for s in self._strategies],
            "sampling_rate_hz": self.frame_sampler.sampling_rate_hz,
            "remote": False,
        }

    async def _analyze_frame(self, sample: FrameSample) -> FrameAssessment:
        frame = await asyncio.to_thread(FrameImage.load, sample.index, sample.path)
        results = await asyncio.gather(*(s.detect(frame) for s in self._strategies))
        evidence: List[DetectionEvidence] = [e for found in results for e in found]
        return score_frame(sample.index, evidence)

    async def analyze_video(
        self,
        video_path: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> RiskAssessment:
        """Analyze a video frame by frame.

        Args:
            video_path: Path to the source video
            on_progress: Called after each frame with labels found so far

        Returns:
            The fused risk assessment

        Raises:
            LocalAnalyzerError: If sampling or any detector fails
        """
        if not self._initialized:
            raise LocalAnalyzerError("Local analyzer used before initialize()")

        with logfire.span("local_analysis", video_path=video_path):
            try:
                async with self.frame_sampler.sample(video_path) as frames:
                    total = len(frames)
                    assessments: List[FrameAssessment] = []

                    for position, sample in enumerate(frames):
                        assessment = await self._analyze_frame(sample)
                        assessments.append(assessment)

                        if on_progress:
                            await on_progress(
                                AnalysisProgress(
                                    progress=int(round((position + 1) / total * 100)),
                                    detected_labels=collect_labels(assessments),
                                    current_risk_score=assessment.risk_score,
                                )
                            )

                    result = decide(assessments)
            except LocalAnalyzerError:
                raise
            except Exception as e:
                logger.error(
                    "Local analysis failed",
                    video_path=video_path,
                    error=str(e),
                    exc_info=True,
                )
                raise LocalAnalyzerError(f"Local analysis failed: {e}", cause=e) from e

        if total == 0 and on_progress:
            await on_progress(AnalysisProgress(progress=100))

        logger.info(
            "Local analysis complete",
            video_path=video_path,
            frames=total,
            sensitivity_status=result.sensitivity_status.value,
            severity=result.severity.value,
            labels=result.detected_labels,
        )
        return result

"""Tests for the local multi-strategy analyzer."""

import asyncio
import threading
import time
from contextlib import asynccontextmanager
from unittest.mock import Mock

import pytest
from PIL import Image

from src.domain.enums import SensitivityStatus, Severity
from src.domain.exceptions import LocalAnalyzerError
from src.infrastructure.analyzers.local.analyzer import LocalMultiStrategyAnalyzer
from src.infrastructure.analyzers.local.models import (
    TransformersSceneClassifier,
    YoloObjectDetector,
)
from src.infrastructure.analyzers.local.strategies import (
    DetectionStrategy,
    ObjectDetectionStrategy,
    SceneClassificationStrategy,
)
from src.infrastructure.media.frame_sampler import FrameSample, FrameSet
from tests.factories import make_evidence


class FiringStrategy(DetectionStrategy):
    """Reports a firearm on the listed frames."""

    name = "firing"

    def __init__(self, frames=(), error=None):
        self.frames = set(frames)
        self.error = error
        self.seen = []

    async def detect(self, frame):
        self.seen.append(frame.index)
        if self.error is not None:
            raise self.error
        if frame.index in self.frames:
            return [make_evidence()]
        return []


class StubSampler:
    sampling_rate_hz = 0.5

    def __init__(self, frame_set: FrameSet):
        self.frame_set = frame_set
        self.sampled = []

    @asynccontextmanager
    async def sample(self, source_path, sampling_rate_hz=None):
        self.sampled.append(source_path)
        try:
            yield self.frame_set
        finally:
            self.frame_set.cleanup()


def write_frames(directory, count):
    frames = []
    for i in range(count):
        path = directory / f"frame_{i:05d}.jpg"
        Image.new("RGB", (32, 32), (90, 90, 90)).save(path, "JPEG")
        frames.append(FrameSample(index=i, path=str(path)))
    return FrameSet(directory=directory, frames=frames)


def build_analyzer(sampler, *strategies):
    return LocalMultiStrategyAnalyzer(
        frame_sampler=sampler,
        object_detector=Mock(),
        scene_classifier=Mock(),
        strategies=list(strategies),
    )


@pytest.fixture
def frames_dir(tmp_path):
    directory = tmp_path / "frames"
    directory.mkdir()
    return directory


class TestLocalMultiStrategyAnalyzer:
    """Test frame-by-frame local analysis."""

    async def test_flags_weapon_and_reports_progress_per_frame(self, frames_dir):
        sampler = StubSampler(write_frames(frames_dir, 3))
        strategy = FiringStrategy(frames=[1])
        analyzer = build_analyzer(sampler, strategy)
        await analyzer.initialize()
        reports = []

        async def on_progress(report):
            reports.append(report)

        result = await analyzer.analyze_video("/videos/a.mp4", on_progress)

        assert result.sensitivity_status is SensitivityStatus.FLAGGED
        assert result.severity is Severity.CRITICAL
        assert result.detected_labels == ["WEAPONS_FIREARMS"]
        assert result.details["totalFramesAnalyzed"] == 3
        assert [r.progress for r in reports] == [33, 67, 100]
        assert reports[0].detected_labels == []
        assert reports[1].detected_labels == ["WEAPONS_FIREARMS"]
        assert strategy.seen == [0, 1, 2]
        assert sampler.sampled == ["/videos/a.mp4"]

    async def test_clean_video_is_safe(self, frames_dir):
        analyzer = build_analyzer(StubSampler(write_frames(frames_dir, 2)), FiringStrategy())
        await analyzer.initialize()

        result = await analyzer.analyze_video("/videos/clean.mp4")

        assert result.sensitivity_status is SensitivityStatus.SAFE
        assert result.confidence == 95
        assert result.detected_labels == []

    async def test_frames_are_removed_after_analysis(self, frames_dir):
        frame_set = write_frames(frames_dir, 2)
        analyzer = build_analyzer(StubSampler(frame_set), FiringStrategy())
        await analyzer.initialize()

        await analyzer.analyze_video("/videos/clean.mp4")

        assert frame_set.cleaned
        assert not frames_dir.exists()

    async def test_no_frames_reports_completion(self, frames_dir):
        analyzer = build_analyzer(StubSampler(FrameSet(directory=frames_dir)), FiringStrategy())
        await analyzer.initialize()
        reports = []

        async def on_progress(report):
            reports.append(report)

        result = await analyzer.analyze_video("/videos/empty.mp4", on_progress)

        assert result.sensitivity_status is SensitivityStatus.SAFE
        assert [r.progress for r in reports] == [100]

    async def test_requires_initialize(self, frames_dir):
        analyzer = build_analyzer(StubSampler(write_frames(frames_dir, 1)), FiringStrategy())

        with pytest.raises(LocalAnalyzerError):
            await analyzer.analyze_video("/videos/a.mp4")

    async def test_strategy_failure_is_wrapped(self, frames_dir):
        frame_set = write_frames(frames_dir, 2)
        boom = RuntimeError("model crashed")
        analyzer = build_analyzer(StubSampler(frame_set), FiringStrategy(error=boom))
        await analyzer.initialize()

        with pytest.raises(LocalAnalyzerError) as exc_info:
            await analyzer.analyze_video("/videos/a.mp4")

        assert exc_info.value.cause is boom
        assert "model crashed" in str(exc_info.value)
        assert frame_set.cleaned

    async def test_custom_strategies_skip_model_loading(self, frames_dir):
        analyzer = build_analyzer(StubSampler(FrameSet(directory=frames_dir)), FiringStrategy())

        await analyzer.initialize()
        await analyzer.shutdown()

        analyzer.object_detector.load.assert_not_called()
        analyzer.scene_classifier.unload.assert_not_called()
        assert not analyzer.is_initialized

    async def test_capabilities(self, frames_dir):
        analyzer = build_analyzer(StubSampler(FrameSet(directory=frames_dir)), FiringStrategy())
        await analyzer.initialize()

        capabilities = analyzer.get_capabilities()

        assert capabilities["method"] == "local_multi_strategy"
        assert capabilities["strategies"] == ["firing"]
        assert capabilities["remote"] is False


class OverlapTracker:
    """Model stand-in that records how many calls run at once."""

    def __init__(self):
        self._guard = threading.Lock()
        self.active = 0
        self.peak = 0
        self.calls = 0

    def __call__(self, image, **kwargs):
        with self._guard:
            self.active += 1
            self.calls += 1
            self.peak = max(self.peak, self.active)
        time.sleep(0.02)
        with self._guard:
            self.active -= 1
        return []


class FreshFramesSampler:
    """Writes a separate frame set for every sampled video."""

    sampling_rate_hz = 0.5

    def __init__(self, root, count):
        self.root = root
        self.count = count

    @asynccontextmanager
    async def sample(self, source_path, sampling_rate_hz=None):
        directory = self.root / source_path.strip("/").replace("/", "_")
        directory.mkdir()
        frame_set = write_frames(directory, self.count)
        try:
            yield frame_set
        finally:
            frame_set.cleanup()


class TestSharedModels:
    """Test jobs sharing one set of loaded models."""

    async def test_concurrent_jobs_never_overlap_inference(self, tmp_path):
        detector = YoloObjectDetector(weights="yolov8n.pt", device="cpu")
        detector._model = OverlapTracker()
        classifier = TransformersSceneClassifier(model_name="scenes", device="cpu")
        classifier._pipeline = OverlapTracker()
        analyzer = LocalMultiStrategyAnalyzer(
            frame_sampler=FreshFramesSampler(tmp_path, count=3),
            object_detector=detector,
            scene_classifier=classifier,
            strategies=[
                ObjectDetectionStrategy(detector),
                SceneClassificationStrategy(classifier),
            ],
        )
        await analyzer.initialize()

        results = await asyncio.gather(
            analyzer.analyze_video("/videos/a.mp4"),
            analyzer.analyze_video("/videos/b.mp4"),
        )

        assert all(r.sensitivity_status is SensitivityStatus.SAFE for r in results)
        assert detector._model.calls == 6
        assert detector._model.peak == 1
        assert classifier._pipeline.calls == 6
        assert classifier._pipeline.peak == 1

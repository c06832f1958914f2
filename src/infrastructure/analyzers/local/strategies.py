"""Per-frame detection strategies.

Four independent detectors, each turning one frame into zero or more
``DetectionEvidence`` items. They share no mutable state, so the analyzer
runs them concurrently.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List

import numpy as np
from PIL import Image

from src.domain.enums import EvidenceCategory, Severity
from src.domain.taxonomy import (
    BLOOD_DETECTED,
    DEFAULT_SIMILARITY_THRESHOLD,
    VIOLENCE_COMPOSITION,
    match_object_label,
    match_scene_label,
)
from src.domain.value_objects.detection_evidence import DetectionEvidence
from src.infrastructure.analyzers.local.models import ObjectDetector, SceneClassifier


@dataclass(frozen=True)
class FrameImage:
    """A decoded frame: PIL image for the models, RGB array for heuristics."""

    index: int
    image: Image.Image
    pixels: np.ndarray

    @classmethod
    def load(cls, index: int, path: str) -> "FrameImage":
        with Image.open(path) as raw:
            image = raw.convert("RGB")
        return cls(index=index, image=image, pixels=np.asarray(image))

    @classmethod
    def from_array(cls, index: int, pixels: np.ndarray) -> "FrameImage":
        pixels = np.ascontiguousarray(pixels, dtype=np.uint8)
        return cls(index=index, image=Image.fromarray(pixels), pixels=pixels)


class DetectionStrategy(ABC):
    """Abstract base class for frame detectors."""

    name: str = "strategy"

    @abstractmethod
    async def detect(self, frame: FrameImage) -> List[DetectionEvidence]:
        """Return the evidence found in ``frame``."""
        ...


class ObjectDetectionStrategy(DetectionStrategy):
    """Match detected objects against the weapon and violence taxonomy."""

    name = "object_detection"

    def __init__(
        self,
        detector: ObjectDetector,
        similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    ):
        self.detector = detector
        self.similarity_threshold = similarity_threshold

    async def detect(self, frame: FrameImage) -> List[DetectionEvidence]:
        detections = await asyncio.to_thread(self.detector.detect, frame.image)
        evidence = []
        for detection in detections:
            evidence.extend(
                match_object_label(
                    detection.label, detection.score, self.similarity_threshold
                )
            )
        return evidence


class SceneClassificationStrategy(DetectionStrategy):
    """Match top scene labels against the context taxonomy."""

    name = "scene_classification"

    def __init__(self, classifier: SceneClassifier):
        self.classifier = classifier

    async def detect(self, frame: FrameImage) -> List[DetectionEvidence]:
        scenes = await asyncio.to_thread(self.classifier.classify, frame.image)
        evidence = []
        for scene in scenes:
            evidence.extend(match_scene_label(scene.label, scene.score))
        return evidence


class ColorHeuristicStrategy(DetectionStrategy):
    """Flag blood-like red regions.

    Pixels are sampled on a coarse grid. A sampled pixel counts when its RGB
    ratios look like blood; it also counts as a cluster when enough strongly
    red pixels surround it.
    """

    name = "color_heuristic"

    GRID_STEP = 20
    NEIGHBOR_RADIUS = 20
    NEIGHBOR_STEP = 5
    CLUSTER_MIN_NEIGHBORS = 3
    MIN_BLOOD_PERCENTAGE = 0.5
    MIN_CLUSTERS = 3

    async def detect(self, frame: FrameImage) -> List[DetectionEvidence]:
        return await asyncio.to_thread(self.analyze_pixels, frame.pixels)

    @staticmethod
    def blood_mask(rgb: np.ndarray) -> np.ndarray:
        """Boolean mask of blood-like pixels for an (..., 3) RGB array."""
        r = rgb[..., 0].astype(np.float32)
        g = rgb[..., 1].astype(np.float32)
        b = rgb[..., 2].astype(np.float32)
        dark_red = (r > 100) & (r < 180) & (g < 60) & (b < 60)
        bright_red = (r > 180) & (g < 100) & (b < 100) & (r > g * 1.8)
        brownish = (r > 120) & (g > 60) & (g < r * 0.7) & (b < g * 0.8)
        return dark_red | bright_red | brownish

    @staticmethod
    def strong_red_mask(rgb: np.ndarray) -> np.ndarray:
        r = rgb[..., 0].astype(np.float32)
        g = rgb[..., 1].astype(np.float32)
        return (r > 150) & (r > g * 1.5)

    def _is_clustered(self, strong_red: np.ndarray, y: int, x: int) -> bool:
        height, width = strong_red.shape
        count = 0
        offsets = range(-self.NEIGHBOR_RADIUS, self.NEIGHBOR_RADIUS + 1, self.NEIGHBOR_STEP)
        for dy in offsets:
            for dx in offsets:
                if dy == 0 and dx == 0:
                    continue
                ny, nx = y + dy, x + dx
                if 0 <= ny < height and 0 <= nx < width and strong_red[ny, nx]:
                    count += 1
        return count > self.CLUSTER_MIN_NEIGHBORS

    def analyze_pixels(self, pixels: np.ndarray) -> List[DetectionEvidence]:
        grid = pixels[:: self.GRID_STEP, :: self.GRID_STEP]
        if grid.size == 0:
            return []

        blood = self.blood_mask(grid)
        blood_count = int(blood.sum())
        if blood_count == 0:
            return []

        strong_red = self.strong_red_mask(pixels)
        clusters = 0
        for gy, gx in zip(*np.nonzero(blood)):
            if self._is_clustered(strong_red, gy * self.GRID_STEP, gx * self.GRID_STEP):
                clusters += 1

        sampled = blood.shape[0] * blood.shape[1]
        percentage = blood_count / sampled * 100
        if percentage <= self.MIN_BLOOD_PERCENTAGE and clusters <= self.MIN_CLUSTERS:
            return []

        confidence = int(round(min(percentage * 10 + clusters * 5, 100)))
        return [
            DetectionEvidence(
                type=BLOOD_DETECTED,
                confidence=confidence,
                severity=Severity.HIGH,
                category=EvidenceCategory.VIOLENCE,
                source=f"{percentage:.2f}% blood-like pixels, {clusters} clusters",
            )
        ]


class CompositionHeuristicStrategy(DetectionStrategy):
    """Flag dark, high-contrast frames typical of violent footage."""

    name = "composition_heuristic"

    DARK_BRIGHTNESS = 40
    CONTRAST_DELTA = 100
    DARK_FRACTION = 0.40
    CONTRAST_FRACTION = 0.15
    DARK_POINTS = 30
    CONTRAST_POINTS = 40
    FLAG_SCORE = 50

    async def detect(self, frame: FrameImage) -> List[DetectionEvidence]:
        return await asyncio.to_thread(self.analyze_pixels, frame.pixels)

    def analyze_pixels(self, pixels: np.ndarray) -> List[DetectionEvidence]:
        brightness = pixels.astype(np.float32).mean(axis=-1).ravel()
        total = brightness.size
        if total == 0:
            return []

        dark_fraction = float((brightness < self.DARK_BRIGHTNESS).sum()) / total
        # Consecutive pixels in row-major order, wrapping across rows
        deltas = np.abs(np.diff(brightness))
        contrast_fraction = float((deltas > self.CONTRAST_DELTA).sum()) / total

        score = 0
        if dark_fraction > self.DARK_FRACTION:
            score += self.DARK_POINTS
        if contrast_fraction > self.CONTRAST_FRACTION:
            score += self.CONTRAST_POINTS

        if score <= self.FLAG_SCORE:
            return []

        return [
            DetectionEvidence(
                type=VIOLENCE_COMPOSITION,
                confidence=score,
                severity=Severity.MEDIUM,
                category=EvidenceCategory.VIOLENCE,
                source=f"dark={dark_fraction:.2f} contrast={contrast_fraction:.2f}",
            )
        ]

"""Local inference analyzer."""

from .analyzer import LocalMultiStrategyAnalyzer
from .models import LabelScore, TransformersSceneClassifier, YoloObjectDetector
from .strategies import (
    ColorHeuristicStrategy,
    CompositionHeuristicStrategy,
    DetectionStrategy,
    FrameImage,
    ObjectDetectionStrategy,
    SceneClassificationStrategy,
)

__all__ = [
    "LocalMultiStrategyAnalyzer",
    "LabelScore",
    "TransformersSceneClassifier",
    "YoloObjectDetector",
    "ColorHeuristicStrategy",
    "CompositionHeuristicStrategy",
    "DetectionStrategy",
    "FrameImage",
    "ObjectDetectionStrategy",
    "SceneClassificationStrategy",
]

"""Inference models used by the local analyzer.

Both wrappers load their weights once in ``load`` and are shared by every job
the process runs. Inference runs on worker threads, so each wrapper
serializes calls into its model with a lock.
"""

import threading
from dataclasses import dataclass
from typing import Any, List, Optional, Protocol

import structlog
from PIL import Image

from src.infrastructure.config import settings

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class LabelScore:
    """A model label with its confidence in [0, 1]."""

    label: str
    score: float


class ObjectDetector(Protocol):
    """Detects objects in a frame."""

    def load(self) -> None: ...

    def unload(self) -> None: ...

    def detect(self, image: Image.Image) -> List[LabelScore]: ...


class SceneClassifier(Protocol):
    """Names the scene shown in a frame."""

    def load(self) -> None: ...

    def unload(self) -> None: ...

    def classify(self, image: Image.Image) -> List[LabelScore]: ...


def _resolve_device(device: Optional[str]) -> Optional[str]:
    if device:
        return device
    import torch

    if torch.cuda.is_available():
        return "cuda"
    if torch.backends.mps.is_available():
        return "mps"
    return "cpu"


class YoloObjectDetector:
    """Object detection with Ultralytics YOLO."""

    def __init__(
        self,
        weights: Optional[str] = None,
        confidence_threshold: Optional[float] = None,
        device: Optional[str] = None,
    ):
        self.weights = weights or settings.analysis.object_model
        self.confidence_threshold = (
            confidence_threshold
            if confidence_threshold is not None
            else settings.analysis.object_min_confidence
        )
        self.device = device or settings.analysis.device
        self._model: Any = None
        self._lock = threading.Lock()

    def load(self) -> None:
        from ultralytics import YOLO

        self._model = YOLO(self.weights)
        device = _resolve_device(self.device)
        if device and device != "cpu":
            self._model.to(device)
        logger.info("Object detector loaded", weights=self.weights, device=device)

    def unload(self) -> None:
        self._model = None

    def detect(self, image: Image.Image) -> List[LabelScore]:
        if self._model is None:
            raise RuntimeError("Object detector used before load()")

        with self._lock:
            results = self._model(image, conf=self.confidence_threshold, verbose=False)

        detections = []
        for result in results:
            boxes = result.boxes
            if boxes is None:
                continue
            for i in range(len(boxes)):
                cls_id = int(boxes.cls[i])
                detections.append(
                    LabelScore(
                        label=str(self._model.names[cls_id]),
                        score=float(boxes.conf[i]),
                    )
                )
        return detections


class TransformersSceneClassifier:
    """Scene classification with a Hugging Face image-classification pipeline."""

    def __init__(
        self,
        model_name: Optional[str] = None,
        top_k: Optional[int] = None,
        device: Optional[str] = None,
    ):
        self.model_name = model_name or settings.analysis.scene_model
        self.top_k = top_k or settings.analysis.scene_top_k
        self.device = device or settings.analysis.device
        self._pipeline: Any = None
        self._lock = threading.Lock()

    def load(self) -> None:
        from transformers import pipeline

        device = _resolve_device(self.device)
        self._pipeline = pipeline(
            "image-classification", model=self.model_name, device=device
        )
        logger.info("Scene classifier loaded", model=self.model_name, device=device)

    def unload(self) -> None:
        self._pipeline = None

    def classify(self, image: Image.Image) -> List[LabelScore]:
        if self._pipeline is None:
            raise RuntimeError("Scene classifier used before load()")

        with self._lock:
            predictions = self._pipeline(image, top_k=self.top_k)
        return [
            LabelScore(label=str(p["label"]), score=float(p["score"]))
            for p in predictions
        ]

"""Cloud analyzer adapter."""

from .gcs_staging import GcsStagingStore, StagedObject
from .video_intelligence import CloudVideoAnalyzer

__all__ = ["CloudVideoAnalyzer", "GcsStagingStore", "StagedObject"]

"""Domain interfaces module.

This module contains Protocol definitions that infrastructure
implementations must follow to integrate with the domain layer.
"""

from .video_analyzer import AnalysisProgress, ProgressCallback, VideoAnalyzer

__all__ = ["AnalysisProgress", "ProgressCallback", "VideoAnalyzer"]

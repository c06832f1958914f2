"""Application services used by the moderation workflow."""

from .analyzer_selection import AnalyzerBackend, AnalyzerSelection, AnalyzerSelector

__all__ = [
    "AnalyzerBackend",
    "AnalyzerSelection",
    "AnalyzerSelector",
]

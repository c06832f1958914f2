"""Moderation analyzer backends."""

from .cloud import CloudVideoAnalyzer
from .hybrid import HybridVideoAnalyzer
from .local import LocalMultiStrategyAnalyzer

__all__ = ["CloudVideoAnalyzer", "HybridVideoAnalyzer", "LocalMultiStrategyAnalyzer"]

"""Hybrid analyzer composition.

Owners choosing ``hybrid`` are currently served by the local analyzer alone.
Whether hybrid should eventually run both backends and fuse their verdicts
is undecided, so this class keeps the composition point explicit and tags
its results rather than silently aliasing the local analyzer.
"""

import dataclasses
from typing import Any, Dict, Optional

import structlog

from src.domain.interfaces.video_analyzer import ProgressCallback, VideoAnalyzer
from src.domain.value_objects.risk_assessment import RiskAssessment

logger = structlog.get_logger(__name__)

HYBRID_STRATEGY = "local_only"


class HybridVideoAnalyzer:
    """Composition over the local analyzer (cloud fusion not yet enabled)."""

    name = "hybrid"

    def __init__(self, local: VideoAnalyzer):
        self.local = local

    async def initialize(self) -> None:
        # The wrapped analyzer has its own lifecycle owned by the container
        return None

    async def shutdown(self) -> None:
        return None

    def get_capabilities(self) -> Dict[str, Any]:
        return {
            "method": "hybrid",
            "strategy": HYBRID_STRATEGY,
            "delegates": [self.local.name],
        }

    async def analyze_video(
        self,
        video_path: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> RiskAssessment:
        logger.debug("Hybrid analysis delegating to local", video_path=video_path)
        result = await self.local.analyze_video(video_path, on_progress)
        details = {
            **result.details,
            "hybrid": {"strategy": HYBRID_STRATEGY, "delegate": self.local.name},
        }
        return dataclasses.replace(result, details=details)

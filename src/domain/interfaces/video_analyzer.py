"""Domain interface for video moderation analyzers.

Every backend (local inference, managed cloud service, compositions of the
two) implements this contract and returns the same ``RiskAssessment`` shape,
so the orchestrator can swap them freely.
"""

from abc import abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol

from ..value_objects.risk_assessment import RiskAssessment


@dataclass(frozen=True)
class AnalysisProgress:
    """Progress report emitted by an analyzer.

    ``progress`` is the analyzer's own 0-100 scale; the orchestrator rescales
    it into the job's range.
    """

    progress: int
    detected_labels: List[str] = field(default_factory=list)
    current_risk_score: Optional[float] = None


ProgressCallback = Callable[[AnalysisProgress], Awaitable[None]]


class VideoAnalyzer(Protocol):
    """Protocol for moderation analyzers."""

    name: str

    @abstractmethod
    async def initialize(self) -> None:
        """Load models or open clients. Called once at process start."""
        ...

    @abstractmethod
    async def shutdown(self) -> None:
        """Release everything acquired in ``initialize``."""
        ...

    @abstractmethod
    async def analyze_video(
        self,
        video_path: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> RiskAssessment:
        """Analyze a video file and return its verdict.

        Args:
            video_path: Path to the source video
            on_progress: Optional coroutine called with progress reports

        Returns:
            The fused risk assessment

        Raises:
            LocalAnalyzerError: If a local analysis fails
            CloudAnalyzerError: If a cloud analysis fails
        """
        ...

    @abstractmethod
    def get_capabilities(self) -> Dict[str, Any]:
        """Describe what this analyzer does."""
        ...

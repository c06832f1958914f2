"""Analyzer backend selection.

Resolves an owner's stored preference into a concrete analyzer, consulting
the quota governor before handing out the cloud backend.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import structlog

from src.domain.enums import AnalyzerPreference
from src.domain.interfaces.video_analyzer import VideoAnalyzer
from src.domain.services.quota_governor import AnalyzerQuotaGovernor

logger = structlog.get_logger(__name__)


class AnalyzerBackend(str, Enum):
    """Backend actually used for a job."""

    LOCAL = "local"
    CLOUD = "cloud"
    HYBRID = "hybrid"


@dataclass(frozen=True)
class AnalyzerSelection:
    """Outcome of backend resolution.

    Attributes:
        backend: Backend that will run
        analyzer: Analyzer instance for that backend
        requested: Preference the owner asked for
        downgraded_reason: Why a cloud request fell back to local, if it did
    """

    backend: AnalyzerBackend
    analyzer: VideoAnalyzer
    requested: AnalyzerPreference
    downgraded_reason: Optional[str] = None

    @property
    def is_cloud(self) -> bool:
        return self.backend is AnalyzerBackend.CLOUD


class AnalyzerSelector:
    """Maps preferences onto analyzers.

    ``cloud`` is honoured only when a cloud analyzer is configured and the
    governor admits the owner; otherwise the local analyzer runs.
    """

    def __init__(
        self,
        governor: AnalyzerQuotaGovernor,
        local: VideoAnalyzer,
        hybrid: VideoAnalyzer,
        cloud: Optional[VideoAnalyzer] = None,
    ):
        self.governor = governor
        self.local = local
        self.hybrid = hybrid
        self.cloud = cloud

    @property
    def cloud_available(self) -> bool:
        return self.cloud is not None

    async def select(
        self, owner_id: str, preference: AnalyzerPreference
    ) -> AnalyzerSelection:
        if preference is AnalyzerPreference.CLOUD:
            if self.cloud is None:
                return self._downgrade(owner_id, preference, "cloud_unavailable")
            if not await self.governor.can_assign(owner_id):
                return self._downgrade(owner_id, preference, "quota_full")
            return AnalyzerSelection(AnalyzerBackend.CLOUD, self.cloud, preference)

        if preference is AnalyzerPreference.HYBRID:
            return AnalyzerSelection(AnalyzerBackend.HYBRID, self.hybrid, preference)

        return AnalyzerSelection(AnalyzerBackend.LOCAL, self.local, preference)

    def _downgrade(
        self, owner_id: str, preference: AnalyzerPreference, reason: str
    ) -> AnalyzerSelection:
        logger.info(
            "Cloud analyzer not granted, using local",
            owner_id=owner_id,
            reason=reason,
        )
        return AnalyzerSelection(
            AnalyzerBackend.LOCAL, self.local, preference, downgraded_reason=reason
        )

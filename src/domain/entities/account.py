"""Account entity as seen by the moderation pipeline."""

from dataclasses import dataclass

from src.domain.entities.base import Entity
from src.domain.enums import AnalyzerPreference


@dataclass(kw_only=True)
class Account(Entity[str]):
    """Video owner.

    Only the analyzer preference matters here; identity and credentials
    belong to the account service.
    """

    analyzer_preference: AnalyzerPreference = AnalyzerPreference.HYBRID

    @property
    def holds_cloud_assignment(self) -> bool:
        return self.analyzer_preference is AnalyzerPreference.CLOUD

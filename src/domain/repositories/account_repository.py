"""Account repository protocol."""

from typing import Protocol, Optional, List

from src.domain.repositories.base import Repository
from src.domain.entities.account import Account
from src.domain.enums import AnalyzerPreference


class AccountRepository(Repository[Account, str], Protocol):
    """Read access to owner preferences."""

    async def get_analyzer_preference(
        self, owner_id: str
    ) -> Optional[AnalyzerPreference]:
        """Return the owner's preference, or None for unknown owners."""
        ...

    async def count_by_preference(self, preference: AnalyzerPreference) -> int:
        """Count owners whose preference equals ``preference``."""
        ...

    async def list_by_preference(self, preference: AnalyzerPreference) -> List[str]:
        """Owner IDs whose preference equals ``preference``."""
        ...

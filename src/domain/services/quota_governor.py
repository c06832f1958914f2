"""Analyzer selection governor.

Arbitrates access to the capacity-limited cloud analyzer. The ledger is the
number of owners whose stored preference is ``cloud``; the account service
records assignments, this class only reads.

The check in ``can_assign`` and the later preference write are not atomic,
so concurrent requests can briefly overbook the capacity. This is a soft
limit.
"""

from dataclasses import dataclass
from typing import Any, Dict, List

from src.domain.enums import AnalyzerPreference
from src.domain.repositories.account_repository import AccountRepository


DEFAULT_CLOUD_CAPACITY = 5


@dataclass(frozen=True)
class QuotaStatus:
    """Snapshot of cloud quota usage."""

    current: int
    max: int

    @property
    def available(self) -> int:
        return max(0, self.max - self.current)

    @property
    def is_full(self) -> bool:
        return self.current >= self.max

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current": self.current,
            "max": self.max,
            "available": self.available,
            "isFull": self.is_full,
        }


class AnalyzerQuotaGovernor:
    """Read-only quota policy over the account store."""

    def __init__(
        self, accounts: AccountRepository, capacity: int = DEFAULT_CLOUD_CAPACITY
    ):
        self.accounts = accounts
        self.capacity = capacity

    async def can_assign(self, owner_id: str) -> bool:
        """Whether ``owner_id`` may use the cloud analyzer.

        Owners that already hold an assignment always may. Unknown owners
        are treated as not yet assigned.
        """
        preference = await self.accounts.get_analyzer_preference(owner_id)
        if preference is AnalyzerPreference.CLOUD:
            return True

        current = await self.accounts.count_by_preference(AnalyzerPreference.CLOUD)
        return current < self.capacity

    async def status(self) -> QuotaStatus:
        current = await self.accounts.count_by_preference(AnalyzerPreference.CLOUD)
        return QuotaStatus(current=current, max=self.capacity)

    async def list_holders(self) -> List[str]:
        """Owner IDs currently holding a cloud assignment."""
        return await self.accounts.list_by_preference(AnalyzerPreference.CLOUD)

    async def status_breakdown(self) -> Dict[str, Any]:
        """Per-backend availability, as shown to owners choosing a backend."""
        cloud = await self.status()
        return {
            AnalyzerPreference.CLOUD.value: cloud.to_dict(),
            AnalyzerPreference.LOCAL.value: {"unlimited": True},
            AnalyzerPreference.HYBRID.value: {
                "requiresCloud": True,
                "available": not cloud.is_full,
            },
        }

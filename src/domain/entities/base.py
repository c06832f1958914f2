"""Base entity class for domain entities."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TypeVar, Generic, Optional


T = TypeVar("T")


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


@dataclass(kw_only=True)
class Entity(Generic[T]):
    """Base class for all domain entities.

    Entities have identity and are distinguishable by their ID,
    not by their attributes.
    """

    id: Optional[T] = None

    # Audit timestamps
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def _touch_updated_at(self) -> None:
        """Update the updated_at timestamp to current time."""
        self.updated_at = utc_now()

    def __eq__(self, other: object) -> bool:
        """Entities are equal if they have the same type and ID."""
        if not isinstance(other, self.__class__):
            return False
        if self.id is None or other.id is None:
            return False
        return self.id == other.id

    def __hash__(self) -> int:
        """Hash based on entity type and ID."""
        if self.id is None:
            raise ValueError("Cannot hash entity without ID")
        return hash((self.__class__.__name__, self.id))

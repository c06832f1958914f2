"""Confidence score value object."""

from dataclasses import dataclass
from typing import ClassVar

from src.domain.exceptions import InvalidValueError


@dataclass(frozen=True)
class ConfidenceScore:
    """Value object representing a verdict or evidence confidence.

    Moderation confidences are whole percentages in the range 0 to 100.
    """

    value: int

    MIN: ClassVar[int] = 0
    MAX: ClassVar[int] = 100

    def __post_init__(self):
        """Validate confidence score range after initialization."""
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise InvalidValueError(
                f"Confidence score must be an integer, got {type(self.value).__name__}"
            )

        if not self.MIN <= self.value <= self.MAX:
            raise InvalidValueError(
                f"Confidence score must be between {self.MIN} and {self.MAX}, got {self.value}"
            )

    @classmethod
    def clamp(cls, value: float) -> "ConfidenceScore":
        """Round and clamp an arbitrary number into the valid range."""
        return cls(max(cls.MIN, min(cls.MAX, int(round(value)))))

    @property
    def fraction(self) -> float:
        """Get confidence as a fraction (0.0-1.0)."""
        return self.value / 100

    def __str__(self) -> str:
        return f"{self.value}%"

    def __int__(self) -> int:
        return self.value

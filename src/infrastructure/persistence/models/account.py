"""Account model, read-only from the pipeline's point of view."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from src.domain.enums import AnalyzerPreference
from src.infrastructure.persistence.models.base import Base, TimestampMixin


class AccountModel(Base, TimestampMixin):
    """Owner account with its analyzer preference."""

    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    analyzer_preference: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=AnalyzerPreference.HYBRID.value,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<AccountModel(id={self.id!r}, preference={self.analyzer_preference!r})>"

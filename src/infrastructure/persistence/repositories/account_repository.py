"""Account repository implementation."""

from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import async_sessionmaker

from src.domain.entities.account import Account
from src.domain.enums import AnalyzerPreference
from src.infrastructure.common.error_handling import handle_db_errors
from src.infrastructure.persistence.models.account import AccountModel


class AccountSqlRepository:
    """SQLAlchemy implementation of ``AccountRepository``."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    @handle_db_errors
    async def get(self, id: str) -> Optional[Account]:
        async with self.session_factory() as session:
            model = await session.get(AccountModel, id)
            if model is None:
                return None
            return Account(
                id=model.id,
                analyzer_preference=AnalyzerPreference(model.analyzer_preference),
                created_at=model.created_at,
                updated_at=model.updated_at,
            )

    @handle_db_errors
    async def save(self, entity: Account) -> Account:
        async with self.session_factory() as session:
            async with session.begin():
                await session.merge(
                    AccountModel(
                        id=entity.id,
                        analyzer_preference=entity.analyzer_preference.value,
                    )
                )
        return entity

    @handle_db_errors
    async def get_analyzer_preference(
        self, owner_id: str
    ) -> Optional[AnalyzerPreference]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(AccountModel.analyzer_preference).where(
                    AccountModel.id == owner_id
                )
            )
            value = result.scalar_one_or_none()
            return AnalyzerPreference(value) if value is not None else None

    @handle_db_errors
    async def count_by_preference(self, preference: AnalyzerPreference) -> int:
        async with self.session_factory() as session:
            result = await session.execute(
                select(func.count())
                .select_from(AccountModel)
                .where(AccountModel.analyzer_preference == preference.value)
            )
            return int(result.scalar_one())

    @handle_db_errors
    async def list_by_preference(self, preference: AnalyzerPreference) -> List[str]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(AccountModel.id)
                .where(AccountModel.analyzer_preference == preference.value)
                .order_by(AccountModel.id)
            )
            return list(result.scalars())

"""Database connection and session management.

Async-only SQLAlchemy 2.0 engine and session factory. The moderation
pipeline opens a short session per repository call, so repositories take the
session factory rather than a session.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.infrastructure.config import DatabaseConfig, settings

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Owns the async engine and session factory."""

    def __init__(self, config: Optional[DatabaseConfig] = None):
        self.config = config or settings.database
        self._async_engine: Optional[AsyncEngine] = None
        self._async_sessionmaker: Optional[async_sessionmaker] = None

    @property
    def async_engine(self) -> AsyncEngine:
        """Get or create async database engine."""
        if self._async_engine is None:
            url = str(self.config.url)
            engine_args = {"echo": self.config.echo}
            # SQLite uses a single-connection pool that rejects sizing args
            if not url.startswith("sqlite"):
                engine_args.update(
                    pool_size=self.config.pool_size,
                    max_overflow=self.config.max_overflow,
                    pool_pre_ping=True,
                    pool_recycle=3600,
                )
            self._async_engine = create_async_engine(url, **engine_args)
        return self._async_engine

    @property
    def async_sessionmaker(self) -> async_sessionmaker:
        """Get or create async session factory."""
        if self._async_sessionmaker is None:
            self._async_sessionmaker = async_sessionmaker(
                self.async_engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
        return self._async_sessionmaker

    async def init_db(self) -> None:
        """Create tables that don't exist yet."""
        from src.infrastructure.persistence.models import (  # noqa: F401
            AccountModel,
            Base,
            VideoJobModel,
        )

        async with self.async_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        logger.info("Database tables initialized")

    async def close(self) -> None:
        """Dispose of pooled connections."""
        if self._async_engine:
            await self._async_engine.dispose()
            self._async_engine = None
            self._async_sessionmaker = None
            logger.info("Async database connections closed")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Session scope that commits on success and rolls back on error."""
        async with self.async_sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

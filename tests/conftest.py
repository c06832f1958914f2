"""Pytest configuration and fixtures."""

import sys
from pathlib import Path
from typing import List

# Add the project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.domain.enums import AnalyzerPreference
from src.infrastructure.broadcasting.progress_broadcaster import (
    BroadcastEvent,
    ProgressBroadcaster,
)
from src.infrastructure.media.ffmpeg_integration import MediaInfo, VideoInfo
from src.infrastructure.persistence.models import Base
from src.infrastructure.persistence.repositories import (
    InMemoryAccountRepository,
    InMemoryVideoJobRepository,
)
from tests.factories import AccountFactory, FakeFFmpeg, FakeThumbnails


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000


@pytest.fixture
async def engine():
    """Create test database engine."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    """Session factory bound to the test engine."""
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def broadcaster(clock) -> ProgressBroadcaster:
    return ProgressBroadcaster(throttle_ms=500, clock=clock)


@pytest.fixture
def events(broadcaster) -> List[BroadcastEvent]:
    """Every event the broadcaster delivers, in order."""
    received: List[BroadcastEvent] = []

    async def record(event: BroadcastEvent) -> None:
        received.append(event)

    broadcaster.subscribe_all(record)
    return received


@pytest.fixture
def job_repository() -> InMemoryVideoJobRepository:
    return InMemoryVideoJobRepository()


@pytest.fixture
def account_repository() -> InMemoryAccountRepository:
    return InMemoryAccountRepository()


@pytest.fixture
def cloud_accounts():
    """Build an account repository holding ``n`` cloud owners."""

    def _cloud_accounts(n: int, *extra) -> InMemoryAccountRepository:
        accounts = [
            AccountFactory(id=f"cloud-{i}", analyzer_preference=AnalyzerPreference.CLOUD)
            for i in range(n)
        ]
        return InMemoryAccountRepository(accounts + list(extra))

    return _cloud_accounts


@pytest.fixture
def media_info() -> MediaInfo:
    return MediaInfo(
        format_name="mov,mp4,m4a,3gp,3g2,mj2",
        duration=12.0,
        size=1_048_576,
        video_streams=[VideoInfo(width=640, height=360, fps=30.0, duration=12.0, codec="h264")],
        audio_streams=[],
    )


@pytest.fixture
def ffmpeg(media_info) -> FakeFFmpeg:
    return FakeFFmpeg(media_info)


@pytest.fixture
def thumbnails() -> FakeThumbnails:
    return FakeThumbnails()

"""Tests for the SQLAlchemy repositories."""

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.domain.enums import AnalyzerPreference, JobStatus, SensitivityStatus
from src.domain.exceptions import PersistenceError
from src.infrastructure.persistence.repositories import (
    AccountSqlRepository,
    VideoJobSqlRepository,
)
from tests.factories import AccountFactory, VideoJobFactory


@pytest.fixture
def jobs(session_factory):
    return VideoJobSqlRepository(session_factory)


@pytest.fixture
def accounts(session_factory):
    return AccountSqlRepository(session_factory)


class TestVideoJobSqlRepository:
    """Test video job persistence."""

    async def test_save_and_get(self, jobs):
        job = VideoJobFactory(id="job-1", owner_id="alice")

        await jobs.save(job)
        loaded = await jobs.get("job-1")

        assert loaded.owner_id == "alice"
        assert loaded.status is JobStatus.PENDING
        assert loaded.sensitivity_status is SensitivityStatus.UNCHECKED
        assert loaded.progress == 0
        assert loaded.detected_labels == []

    async def test_get_missing_returns_none(self, jobs):
        assert await jobs.get("missing") is None

    async def test_update_status(self, jobs):
        await jobs.save(VideoJobFactory(id="job-1"))

        await jobs.update_status("job-1", JobStatus.PROCESSING, SensitivityStatus.UNCHECKED, 10)
        loaded = await jobs.get("job-1")

        assert loaded.status is JobStatus.PROCESSING
        assert loaded.progress == 10
        assert loaded.analysis_error is None

    async def test_update_status_records_error(self, jobs):
        await jobs.save(VideoJobFactory(id="job-1"))

        await jobs.update_status(
            "job-1", JobStatus.FAILED, SensitivityStatus.UNCHECKED, 5, error="probe failed"
        )

        loaded = await jobs.get("job-1")
        assert loaded.status is JobStatus.FAILED
        assert loaded.analysis_error == "probe failed"

    async def test_update_with_analysis_completes_job(self, jobs):
        await jobs.save(VideoJobFactory(id="job-1"))

        await jobs.update_with_analysis(
            "job-1",
            SensitivityStatus.FLAGGED,
            87,
            ["WEAPONS_FIREARMS"],
            {"method": "local_multi_strategy"},
        )

        loaded = await jobs.get("job-1")
        assert loaded.status is JobStatus.COMPLETED
        assert loaded.sensitivity_status is SensitivityStatus.FLAGGED
        assert loaded.progress == 100
        assert loaded.confidence == 87
        assert loaded.detected_labels == ["WEAPONS_FIREARMS"]
        assert loaded.analysis_details == {"method": "local_multi_strategy"}

    async def test_update_with_analysis_never_leaves_unchecked(self, jobs):
        await jobs.save(VideoJobFactory(id="job-1"))

        await jobs.update_with_analysis("job-1", SensitivityStatus.UNCHECKED, 120, [], {})

        loaded = await jobs.get("job-1")
        assert loaded.sensitivity_status is SensitivityStatus.SAFE
        assert loaded.confidence == 100

    async def test_update_fields(self, jobs):
        await jobs.save(VideoJobFactory(id="job-1"))

        await jobs.update_fields("job-1", {"thumbnail_path": "/thumbs/job-1.jpg", "progress": 7})

        loaded = await jobs.get("job-1")
        assert loaded.thumbnail_path == "/thumbs/job-1.jpg"
        assert loaded.progress == 7

    async def test_update_unknown_field_is_rejected(self, jobs):
        await jobs.save(VideoJobFactory(id="job-1"))

        with pytest.raises(PersistenceError, match="owner_id"):
            await jobs.update_fields("job-1", {"owner_id": "mallory"})

    async def test_update_missing_job_raises(self, jobs):
        with pytest.raises(PersistenceError, match="not found"):
            await jobs.update_status("ghost", JobStatus.PROCESSING, SensitivityStatus.UNCHECKED, 0)

    async def test_database_errors_become_persistence_errors(self):
        engine = create_async_engine(
            "sqlite+aiosqlite:///:memory:",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        # No tables created
        jobs = VideoJobSqlRepository(async_sessionmaker(engine, expire_on_commit=False))

        try:
            with pytest.raises(PersistenceError, match="Database error"):
                await jobs.get("job-1")
        finally:
            await engine.dispose()


class TestAccountSqlRepository:
    """Test account lookups used by the quota governor."""

    async def test_preference_lookup(self, accounts):
        await accounts.save(AccountFactory(id="alice", analyzer_preference=AnalyzerPreference.CLOUD))

        assert await accounts.get_analyzer_preference("alice") is AnalyzerPreference.CLOUD
        assert await accounts.get_analyzer_preference("nobody") is None

    async def test_get(self, accounts):
        await accounts.save(AccountFactory(id="alice"))

        account = await accounts.get("alice")

        assert account.analyzer_preference is AnalyzerPreference.HYBRID
        assert await accounts.get("nobody") is None

    async def test_count_and_list_by_preference(self, accounts):
        for owner in ("carol", "alice", "bob"):
            await accounts.save(
                AccountFactory(id=owner, analyzer_preference=AnalyzerPreference.CLOUD)
            )
        await accounts.save(AccountFactory(id="dave", analyzer_preference=AnalyzerPreference.LOCAL))

        assert await accounts.count_by_preference(AnalyzerPreference.CLOUD) == 3
        assert await accounts.list_by_preference(AnalyzerPreference.CLOUD) == [
            "alice",
            "bob",
            "carol",
        ]
        assert await accounts.count_by_preference(AnalyzerPreference.HYBRID) == 0

    async def test_save_updates_preference(self, accounts):
        await accounts.save(AccountFactory(id="alice", analyzer_preference=AnalyzerPreference.CLOUD))
        await accounts.save(AccountFactory(id="alice", analyzer_preference=AnalyzerPreference.LOCAL))

        assert await accounts.count_by_preference(AnalyzerPreference.CLOUD) == 0

"""Tests for analyzer backend selection."""

import pytest

from src.application.services import AnalyzerBackend, AnalyzerSelector
from src.domain.enums import AnalyzerPreference
from src.domain.services import AnalyzerQuotaGovernor
from tests.factories import AccountFactory, FakeAnalyzer


@pytest.fixture
def analyzers():
    return {
        "local": FakeAnalyzer("local"),
        "hybrid": FakeAnalyzer("hybrid"),
        "cloud": FakeAnalyzer("cloud"),
    }


def make_selector(accounts, analyzers, with_cloud=True):
    return AnalyzerSelector(
        AnalyzerQuotaGovernor(accounts),
        local=analyzers["local"],
        hybrid=analyzers["hybrid"],
        cloud=analyzers["cloud"] if with_cloud else None,
    )


class TestAnalyzerSelector:
    """Test preference resolution."""

    async def test_cloud_granted_under_quota(self, cloud_accounts, analyzers):
        selector = make_selector(cloud_accounts(2), analyzers)

        selection = await selector.select("newcomer", AnalyzerPreference.CLOUD)

        assert selection.backend is AnalyzerBackend.CLOUD
        assert selection.is_cloud
        assert selection.analyzer is analyzers["cloud"]
        assert selection.downgraded_reason is None

    async def test_cloud_holder_keeps_access_when_full(self, cloud_accounts, analyzers):
        selector = make_selector(cloud_accounts(5), analyzers)

        selection = await selector.select("cloud-3", AnalyzerPreference.CLOUD)

        assert selection.backend is AnalyzerBackend.CLOUD

    async def test_full_quota_downgrades_to_local(self, cloud_accounts, analyzers):
        selector = make_selector(cloud_accounts(5), analyzers)

        selection = await selector.select("newcomer", AnalyzerPreference.CLOUD)

        assert selection.backend is AnalyzerBackend.LOCAL
        assert selection.analyzer is analyzers["local"]
        assert selection.requested is AnalyzerPreference.CLOUD
        assert selection.downgraded_reason == "quota_full"

    async def test_missing_cloud_analyzer_downgrades(self, account_repository, analyzers):
        selector = make_selector(account_repository, analyzers, with_cloud=False)

        selection = await selector.select("alice", AnalyzerPreference.CLOUD)

        assert not selector.cloud_available
        assert selection.backend is AnalyzerBackend.LOCAL
        assert selection.downgraded_reason == "cloud_unavailable"

    async def test_hybrid_and_local(self, cloud_accounts, analyzers):
        selector = make_selector(
            cloud_accounts(5, AccountFactory(id="alice")), analyzers
        )

        hybrid = await selector.select("alice", AnalyzerPreference.HYBRID)
        local = await selector.select("alice", AnalyzerPreference.LOCAL)

        assert hybrid.analyzer is analyzers["hybrid"]
        assert hybrid.backend is AnalyzerBackend.HYBRID
        assert local.analyzer is analyzers["local"]
        assert local.downgraded_reason is None

"""Tests for the cloud analyzer quota governor."""

from src.domain.enums import AnalyzerPreference
from src.domain.services import AnalyzerQuotaGovernor
from tests.factories import AccountFactory


class TestCanAssign:
    """Test admission to the cloud analyzer."""

    async def test_full_quota_rejects_new_owner(self, cloud_accounts):
        governor = AnalyzerQuotaGovernor(cloud_accounts(5), capacity=5)

        assert await governor.can_assign("newcomer") is False

    async def test_free_slot_admits_new_owner(self, cloud_accounts):
        governor = AnalyzerQuotaGovernor(cloud_accounts(4), capacity=5)

        assert await governor.can_assign("newcomer") is True

    async def test_existing_holder_always_admitted(self, cloud_accounts):
        governor = AnalyzerQuotaGovernor(cloud_accounts(5), capacity=5)

        assert await governor.can_assign("cloud-2") is True

    async def test_non_cloud_owner_counts_as_new(self, cloud_accounts):
        local_owner = AccountFactory(id="local-owner", analyzer_preference=AnalyzerPreference.LOCAL)
        governor = AnalyzerQuotaGovernor(cloud_accounts(5, local_owner), capacity=5)

        assert await governor.can_assign("local-owner") is False


class TestQuotaStatus:
    """Test quota reporting."""

    async def test_status(self, cloud_accounts):
        governor = AnalyzerQuotaGovernor(cloud_accounts(3), capacity=5)

        status = await governor.status()

        assert status.to_dict() == {"current": 3, "max": 5, "available": 2, "isFull": False}

    async def test_overbooked_reports_zero_available(self, cloud_accounts):
        governor = AnalyzerQuotaGovernor(cloud_accounts(6), capacity=5)

        status = await governor.status()

        assert status.available == 0
        assert status.is_full

    async def test_breakdown_and_holders(self, cloud_accounts):
        governor = AnalyzerQuotaGovernor(cloud_accounts(5), capacity=5)

        breakdown = await governor.status_breakdown()

        assert breakdown["cloud"]["isFull"] is True
        assert breakdown["local"] == {"unlimited": True}
        assert breakdown["hybrid"] == {"requiresCloud": True, "available": False}
        assert await governor.list_holders() == [f"cloud-{i}" for i in range(5)]

"""Analyzer quota schemas."""

from typing import List

from pydantic import BaseModel

from src.api.schemas.jobs import CamelModel


class CloudQuota(CamelModel):
    current: int
    max: int
    available: int
    is_full: bool


class LocalQuota(BaseModel):
    unlimited: bool = True


class HybridQuota(CamelModel):
    requires_cloud: bool = True
    available: bool


class QuotaResponse(CamelModel):
    """Per-backend availability."""

    cloud: CloudQuota
    local: LocalQuota
    hybrid: HybridQuota
    cloud_holders: List[str]
    cloud_enabled: bool

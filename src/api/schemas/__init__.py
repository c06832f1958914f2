"""Request and response schemas."""

from .jobs import CamelModel, JobCreateRequest, JobResponse
from .quota import CloudQuota, HybridQuota, LocalQuota, QuotaResponse

__all__ = [
    "CamelModel",
    "CloudQuota",
    "HybridQuota",
    "JobCreateRequest",
    "JobResponse",
    "LocalQuota",
    "QuotaResponse",
]

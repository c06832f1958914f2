"""Analyzer quota routes."""

from fastapi import APIRouter, Depends

from src.application.services.analyzer_selection import AnalyzerSelector
from src.domain.services.quota_governor import AnalyzerQuotaGovernor
from ..dependencies import get_governor, get_selector
from ..schemas.quota import QuotaResponse

router = APIRouter(prefix="/quota", tags=["quota"])


@router.get("", response_model=QuotaResponse)
async def get_quota(
    governor: AnalyzerQuotaGovernor = Depends(get_governor),
    selector: AnalyzerSelector = Depends(get_selector),
):
    """Cloud analyzer usage and per-backend availability."""
    breakdown = await governor.status_breakdown()
    return QuotaResponse.model_validate(
        {
            **breakdown,
            "cloudHolders": await governor.list_holders(),
            "cloudEnabled": selector.cloud_available,
        }
    )

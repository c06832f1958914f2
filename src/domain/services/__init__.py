"""Domain services.

Pure policy lives in function modules (``src/domain/taxonomy.py``,
``src/domain/risk_fusion.py``). Services here need a repository to read
from but still perform no writes.
"""

from src.domain.services.quota_governor import AnalyzerQuotaGovernor, QuotaStatus

__all__ = ["AnalyzerQuotaGovernor", "QuotaStatus"]

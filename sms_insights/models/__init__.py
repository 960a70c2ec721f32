"""
Data models package for the SMS Insights backend.

Re-exports the enums and pydantic models so callers can write:

    from sms_insights.models import EnrichedViewEvent, CampaignStatistic
"""

from sms_insights.models.enums import DayOfWeek, SourceKind
from sms_insights.models.schemas import (
    RawRow,
    ViewEvent,
    UserProfile,
    CampaignRecord,
    EnrichedViewEvent,
    ReconciliationStats,
    ReconciliationResult,
    CampaignStatistic,
    ClientStatistic,
    TimeSeriesPoint,
    DateRange,
    DayOfWeekBucket,
    HourBucket,
    SummaryStatistics,
    UserCoverage,
    ABTestResult,
    CategoryReport,
    RefreshResponse,
    CategoriesResponse,
    ViewLogResponse,
    TimeSeriesResponse,
)

__all__ = [
    # Enums
    "DayOfWeek",
    "SourceKind",
    # Source records
    "RawRow",
    "ViewEvent",
    "UserProfile",
    "CampaignRecord",
    # Reconciliation
    "EnrichedViewEvent",
    "ReconciliationStats",
    "ReconciliationResult",
    # Rollups
    "CampaignStatistic",
    "ClientStatistic",
    "TimeSeriesPoint",
    "DateRange",
    "DayOfWeekBucket",
    "HourBucket",
    "SummaryStatistics",
    "UserCoverage",
    "ABTestResult",
    "CategoryReport",
    # API envelopes
    "RefreshResponse",
    "CategoriesResponse",
    "ViewLogResponse",
    "TimeSeriesResponse",
]

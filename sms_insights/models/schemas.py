"""
Pydantic record and response models for the SMS Insights backend.

This module defines the typed records produced from the three table feeds, the
enriched record produced by reconciliation, and the derived rollup structures
consumed by the presentation layer:

- Source records: ViewEvent, UserProfile, CampaignRecord
- Reconciled record: EnrichedViewEvent
- Reconciliation bundle: ReconciliationStats, ReconciliationResult
- Rollups: CampaignStatistic, ClientStatistic, TimeSeriesPoint, DayOfWeekBucket,
  HourBucket, DateRange, SummaryStatistics, UserCoverage, ABTestResult
- Report bundle: CategoryReport
- API envelopes: RefreshResponse, CategoriesResponse, ViewLogResponse,
  TimeSeriesResponse

Records are frozen: presentation collaborators (tables, charts, export) read them
but must never mutate them. Field names follow the camelCase contract used by the
dashboard frontend.

All models use Pydantic v2 syntax.
"""

from datetime import datetime, date as DateType
from typing import Dict, List, Mapping, Optional

from pydantic import BaseModel, Field, ConfigDict

from sms_insights.models.enums import DayOfWeek


# One parsed line of a delimited source: column header -> cell text
RawRow = Mapping[str, str]


# =============================================================================
# Source Records
# =============================================================================


class ViewEvent(BaseModel):
    """
    One occurrence of a subject opening a landing page from an SMS.

    Produced from one event log row by the field-mapping step. Missing cells
    are empty strings and missing numbers are 0; nothing here is validated
    against the other feeds.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "timestamp": "05.03.2024 14:30:00",
                "phoneRaw": "+375 29 111-22-33",
                "contentCategory": "Донормил",
                "videoName": "Донормил - сон без таблеток",
                "viewDurationSeconds": 95,
                "viewPercent": 80,
                "sessionId": "s-1f2e3d",
                "distributionId": "D1",
                "abGroupTag": "A"
            }
        }
    )

    timestamp: str = Field(default="", description="Unparsed timestamp text")
    phoneRaw: str = Field(default="", description="Phone number as written in the log")
    contentCategory: str = Field(default="", description="Content category (product)")
    videoName: str = Field(default="", description="Viewed video title")
    viewDurationSeconds: int = Field(default=0, ge=0, description="Seconds watched")
    viewPercent: int = Field(
        default=0,
        description="Percent of the video watched; passed through unclamped"
    )
    sessionId: str = Field(default="", description="Landing page session id")
    distributionId: str = Field(default="", description="Join key to the campaign log")
    abGroupTag: str = Field(default="", description="Optional A/B group; empty means none")


class UserProfile(BaseModel):
    """A user directory entry. Identity key is the normalized phone."""
    model_config = ConfigDict(frozen=True)

    phoneRaw: str = Field(default="", description="Phone number as written in the directory")
    fullName: str = Field(default="", description="Full name")
    specialty: str = Field(default="", description="Medical specialty")
    workplace: str = Field(default="", description="Clinic or hospital")
    district: str = Field(default="", description="District")


class CampaignRecord(BaseModel):
    """
    One SMS send batch from the campaign log.

    Several records may share a campaignName (one per contact batch) and even a
    distributionId; rollups sum contactsSent over all of them but attribute views
    once per distributionId.
    """
    model_config = ConfigDict(frozen=True)

    sourceLabel: str = Field(default="", description="Campaign log source; must be allow-listed")
    distributionId: str = Field(default="", description="Distribution id")
    abGroupTag: str = Field(default="", description="Optional A/B group")
    campaignName: str = Field(default="", description="Campaign name")
    smsText: str = Field(default="", description="SMS text sent in this batch")
    contactsSent: int = Field(default=0, ge=0, description="Contacts the batch was sent to")
    timestamp: str = Field(default="", description="Unparsed send timestamp")


class EnrichedViewEvent(ViewEvent):
    """
    A ViewEvent joined against the user directory and the campaign log.

    Created once per load by the reconciliation engine. Unmatched profile fields
    are empty strings. Every instance that survives reconciliation has
    hasCampaignMatch == True.
    """

    rowId: int = Field(..., ge=1, description="1-based position in the event log snapshot")
    normalizedPhone: str = Field(default="", description="Canonical digit string of phoneRaw")
    fullName: str = Field(default="")
    specialty: str = Field(default="")
    workplace: str = Field(default="")
    district: str = Field(default="")
    campaignName: str = Field(default="")
    smsText: str = Field(default="")
    hasUserMatch: bool = Field(default=False)
    hasCampaignMatch: bool = Field(default=False)


# =============================================================================
# Reconciliation Bundle
# =============================================================================


class ReconciliationStats(BaseModel):
    """Counters describing one reconciliation run."""
    model_config = ConfigDict(frozen=True)

    totalEvents: int = Field(default=0, ge=0)
    totalProfiles: int = Field(default=0, ge=0)
    totalCampaigns: int = Field(default=0, ge=0)
    eligibleCampaigns: int = Field(default=0, ge=0, description="Allow-listed campaign records")
    droppedNoCampaign: int = Field(default=0, ge=0)
    droppedExcludedSpecialty: int = Field(default=0, ge=0)
    matchedUsers: int = Field(default=0, ge=0, description="Surviving events with a user match")
    keptEvents: int = Field(default=0, ge=0)


class ReconciliationResult(BaseModel):
    """
    Everything one load produced, threaded explicitly to every consumer.

    Attributes:
        events: Reconciled events in event-log order.
        campaigns: Every typed campaign record of the snapshot (rollups apply
            the allow-list themselves).
        categoryDistributionIds: Per content category, the distinct distribution
            ids of the raw event log in first-seen order, including events later
            dropped by the specialty rule.
        stats: Counters for logging and the refresh endpoint.
        loadedAt: When the reconciliation finished.
    """
    model_config = ConfigDict(frozen=True)

    events: List[EnrichedViewEvent] = Field(default_factory=list)
    campaigns: List[CampaignRecord] = Field(default_factory=list)
    categoryDistributionIds: Dict[str, List[str]] = Field(default_factory=dict)
    stats: ReconciliationStats = Field(default_factory=ReconciliationStats)
    loadedAt: datetime = Field(default_factory=datetime.now)


# =============================================================================
# Rollups
# =============================================================================


class CampaignStatistic(BaseModel):
    """Per campaign name rollup within one category slice."""
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "campaignName": "Донормил март",
                "latestTimestamp": "2024-03-05T14:30:00",
                "smsSent": 1200,
                "smsViewedEstimate": 74,
                "pageViews": 16,
                "conversionRate": 1.33,
                "distributionIds": ["D1", "D2"]
            }
        }
    )

    campaignName: str
    latestTimestamp: Optional[datetime] = Field(
        default=None,
        description="Latest parsable send timestamp over the campaign's records"
    )
    smsSent: int = Field(default=0, ge=0, description="Sum of contactsSent over all records")
    smsViewedEstimate: int = Field(
        default=0,
        description="Proportionally rounded estimate; the last campaign absorbs rounding residue"
    )
    pageViews: int = Field(default=0, ge=0)
    conversionRate: Optional[float] = Field(
        default=None,
        description="pageViews / smsSent * 100, None when nothing was sent"
    )
    distributionIds: List[str] = Field(default_factory=list)


class ClientStatistic(BaseModel):
    """Per user rollup: one entry per normalized phone with a resolved name."""
    model_config = ConfigDict(frozen=True)

    normalizedPhone: str
    fullName: str
    specialty: str = ""
    workplace: str = ""
    district: str = ""
    pageViews: int = Field(default=0, ge=0)
    totalViewSeconds: int = Field(default=0, ge=0)


class TimeSeriesPoint(BaseModel):
    """Number of views on one calendar date."""
    model_config = ConfigDict(frozen=True)

    date: DateType
    count: int = Field(..., ge=0)


class DateRange(BaseModel):
    """First and last date of a daily series."""
    model_config = ConfigDict(frozen=True)

    first: Optional[DateType] = None
    last: Optional[DateType] = None
    totalDays: int = Field(default=0, ge=0)


class DayOfWeekBucket(BaseModel):
    model_config = ConfigDict(frozen=True)

    day: DayOfWeek
    count: int = Field(default=0, ge=0)


class HourBucket(BaseModel):
    model_config = ConfigDict(frozen=True)

    hour: int = Field(..., ge=0, le=23)
    count: int = Field(default=0, ge=0)


class SummaryStatistics(BaseModel):
    """Headline numbers of a category slice."""
    model_config = ConfigDict(frozen=True)

    pageViews: int = Field(default=0, ge=0)
    totalViewSeconds: int = Field(default=0, ge=0)
    averageViewSeconds: float = Field(default=0.0, ge=0.0)
    smsSent: int = Field(default=0, ge=0)
    smsViewedEstimate: int = Field(default=0)
    averageViewPercent: float = Field(
        default=0.0,
        description="Mean of positive viewPercent values; zero percentages are ignored"
    )


class UserCoverage(BaseModel):
    """How many events were matched to a directory entry."""
    model_config = ConfigDict(frozen=True)

    total: int = Field(default=0, ge=0)
    withUserData: int = Field(default=0, ge=0)
    withoutUserData: int = Field(default=0, ge=0)
    coveragePercent: int = Field(default=0, ge=0, le=100)


class ABTestResult(BaseModel):
    """Engagement of one SMS text variant within a campaign."""
    model_config = ConfigDict(frozen=True)

    campaignName: str
    smsText: str
    abGroupTag: str = ""
    views: int = Field(default=0, ge=0)
    averageViewSeconds: int = Field(default=0, ge=0)
    averageViewPercent: float = Field(default=0.0)


class CategoryReport(BaseModel):
    """All rollups of one category slice, as served to the dashboard."""
    model_config = ConfigDict(frozen=True)

    category: Optional[str] = None
    summary: SummaryStatistics
    coverage: UserCoverage
    campaigns: List[CampaignStatistic] = Field(default_factory=list)
    clients: List[ClientStatistic] = Field(default_factory=list)
    topClients: List[ClientStatistic] = Field(default_factory=list)
    specialtyDistribution: Dict[str, int] = Field(default_factory=dict)
    dailySeries: List[TimeSeriesPoint] = Field(default_factory=list)
    dateRange: DateRange = Field(default_factory=DateRange)
    dayOfWeek: List[DayOfWeekBucket] = Field(default_factory=list)
    hourOfDay: List[HourBucket] = Field(default_factory=list)
    abTests: List[ABTestResult] = Field(default_factory=list)


# =============================================================================
# API Envelopes
# =============================================================================


class RefreshResponse(BaseModel):
    """Response for a completed load."""
    loadedAt: datetime
    stats: ReconciliationStats


class CategoriesResponse(BaseModel):
    """Content categories of the reconciled set, plus overall user coverage."""
    categories: List[str] = Field(default_factory=list)
    coverage: UserCoverage = Field(default_factory=UserCoverage)
    loadedAt: datetime


class ViewLogResponse(BaseModel):
    """Reconciled view log of one category, newest first."""
    category: Optional[str] = None
    total: int = Field(default=0, ge=0)
    events: List[EnrichedViewEvent] = Field(default_factory=list)


class TimeSeriesResponse(BaseModel):
    """Daily series and the two auxiliary histograms of one category."""
    category: Optional[str] = None
    dailySeries: List[TimeSeriesPoint] = Field(default_factory=list)
    dateRange: DateRange = Field(default_factory=DateRange)
    dayOfWeek: List[DayOfWeekBucket] = Field(default_factory=list)
    hourOfDay: List[HourBucket] = Field(default_factory=list)

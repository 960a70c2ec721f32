"""
Aggregation Engine

This module computes the rollups shown on the dashboard from a category slice
of reconciled events:

- Campaign statistics: SMS sent, estimated SMS viewed, page views and
  conversion per campaign name
- Client statistics: page views and watch time per identified user
- Time series: daily counts plus day-of-week and hour-of-day histograms
- Summary, user coverage and A/B text analysis for the reporting view

SMS Viewed Estimator:
    Only page views are observable. The number of SMS actually read is
    estimated as page views multiplied by a per-category ratio
    (EstimatorConfig). Per campaign the estimate is fractional; the displayed
    integers are produced by allocate_rounded so that they always add up to
    the rounded grand total:

        T = round(sum(fractions))
        value[i] = round(fractions[i])              for every campaign but the last
        value[last] = T - sum(value[:-1])

    The rounding residue lands on the last campaign in first-seen campaign-log
    order. Rounding is half-up and totals use math.fsum.

View Attribution:
    A campaign name may span several campaign-log rows (one per contact batch),
    several of which may share a distributionId. smsSent sums every row, but
    each distributionId contributes its views once, to the first campaign name
    that claims it. Hence sum(pageViews) == number of slice events whose
    distributionId belongs to an eligible campaign.

All functions are pure: they never mutate their inputs.
"""

from collections import Counter, OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, date
from typing import Dict, Iterable, List, Mapping, Optional, Sequence
import logging
import math

from sms_insights.core.config import Settings
from sms_insights.models.enums import DayOfWeek
from sms_insights.models.schemas import (
    CampaignRecord,
    EnrichedViewEvent,
    CampaignStatistic,
    ClientStatistic,
    TimeSeriesPoint,
    DateRange,
    DayOfWeekBucket,
    HourBucket,
    SummaryStatistics,
    UserCoverage,
    ABTestResult,
)
from sms_insights.services.reconciliation import (
    ReconciliationConfig,
    is_allowed_campaign_source,
)
from sms_insights.services.timestamps import parse_timestamp

# Configure module logger
logger = logging.getLogger(__name__)

# =============================================================================
# CONSTANTS
# =============================================================================

UNSPECIFIED_SPECIALTY = 'Не указано'

DEFAULT_TOP_CLIENTS = 5


# =============================================================================
# Estimator Configuration
# =============================================================================


@dataclass(frozen=True)
class EstimatorConfig:
    """
    SMS-viewed estimator ratios per content category.

    Attributes:
        ratios: Content category -> SMS viewed per page view.
        default_ratio: Ratio for categories missing from `ratios`.
    """
    ratios: Mapping[str, float] = field(
        default_factory=lambda: {'Пимафуцин': 1.44, 'Донормил': 4.6}
    )
    default_ratio: float = 1.0

    def ratio_for(self, category: str) -> float:
        return self.ratios.get(category, self.default_ratio)

    @classmethod
    def from_settings(cls, settings: Settings) -> "EstimatorConfig":
        return cls(
            ratios=dict(settings.sms_view_multipliers),
            default_ratio=settings.default_sms_view_multiplier,
        )


# =============================================================================
# Rounding
# =============================================================================


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero towards +inf."""
    return int(math.floor(value + 0.5))


def round_to(value: float, digits: int) -> float:
    """Half-up rounding to a number of decimal places."""
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


def allocate_rounded(values: Sequence[float]) -> List[int]:
    """
    Round fractional values so their sum equals the rounded grand total.

    Every value but the last is rounded half-up on its own; the last one
    receives the remainder of the rounded total.

    Args:
        values: Fractional estimates in their fixed iteration order.

    Returns:
        Integers in the same order, summing exactly to round(fsum(values)).

    Example:
        >>> allocate_rounded([0.4, 0.4, 0.4])
        [0, 0, 1]
        >>> allocate_rounded([1.4, 1.4, 1.4])
        [1, 1, 2]
    """
    if not values:
        return []

    total = round_half_up(math.fsum(values))
    allocated = [round_half_up(value) for value in values[:-1]]
    allocated.append(total - sum(allocated))
    return allocated


# =============================================================================
# Campaign Statistics
# =============================================================================


@dataclass
class _CampaignAccumulator:
    name: str
    sms_sent: int = 0
    latest: Optional[datetime] = None
    distribution_ids: List[str] = field(default_factory=list)


def _distinct_distribution_ids(events: Iterable[EnrichedViewEvent]) -> List[str]:
    return list(OrderedDict.fromkeys(e.distributionId for e in events if e.distributionId))


def compute_campaign_statistics(
    events: Sequence[EnrichedViewEvent],
    campaigns: Sequence[CampaignRecord],
    estimator: Optional[EstimatorConfig] = None,
    config: Optional[ReconciliationConfig] = None,
    distribution_ids: Optional[Iterable[str]] = None,
) -> List[CampaignStatistic]:
    """
    Roll up the campaign log for one category slice.

    A campaign record is eligible when its source is allow-listed and its
    distributionId is among `distribution_ids` (default: the slice's own ids).
    Passing the category's ids from the raw event log keeps campaigns whose
    views were all filtered out, reported with pageViews == 0.

    Args:
        events: The category slice.
        campaigns: The full typed campaign log of the snapshot.
        estimator: Per-category SMS-viewed ratios.
        config: Allow-list rules.
        distribution_ids: Distribution ids that make a campaign eligible.

    Returns:
        One CampaignStatistic per campaign name, in first-seen campaign-log
        order (the rounding iteration order).
    """
    estimator = estimator or EstimatorConfig()
    config = config or ReconciliationConfig()

    if distribution_ids is None:
        eligible_ids = set(_distinct_distribution_ids(events))
    else:
        eligible_ids = {d for d in distribution_ids if d}

    groups: Dict[str, _CampaignAccumulator] = OrderedDict()
    for record in campaigns:
        if not record.distributionId or record.distributionId not in eligible_ids:
            continue
        if not is_allowed_campaign_source(record.sourceLabel, config):
            continue

        group = groups.get(record.campaignName)
        if group is None:
            group = _CampaignAccumulator(name=record.campaignName)
            groups[record.campaignName] = group

        group.sms_sent += record.contactsSent

        parsed = parse_timestamp(record.timestamp)
        if parsed is not None and (group.latest is None or parsed > group.latest):
            group.latest = parsed

        if record.distributionId not in group.distribution_ids:
            group.distribution_ids.append(record.distributionId)

    views_by_id: Counter = Counter(e.distributionId for e in events)
    fractions_by_id: Dict[str, List[float]] = {}
    for event in events:
        fractions_by_id.setdefault(event.distributionId, []).append(
            estimator.ratio_for(event.contentCategory)
        )

    claimed: Dict[str, str] = {}
    attributed_ids: Dict[str, List[str]] = {}
    fractions: List[float] = []
    page_views: List[int] = []

    for name, group in groups.items():
        own_ids: List[str] = []
        for distribution_id in group.distribution_ids:
            owner = claimed.get(distribution_id)
            if owner is not None:
                logger.warning(
                    f"Distribution {distribution_id} already attributed to campaign "
                    f"'{owner}'; ignoring its views for '{name}'"
                )
                continue
            claimed[distribution_id] = name
            own_ids.append(distribution_id)

        attributed_ids[name] = own_ids
        page_views.append(sum(views_by_id.get(d, 0) for d in own_ids))
        fractions.append(math.fsum(
            ratio for d in own_ids for ratio in fractions_by_id.get(d, [])
        ))

    estimates = allocate_rounded(fractions)

    statistics: List[CampaignStatistic] = []
    for (name, group), views, estimate in zip(groups.items(), page_views, estimates):
        statistics.append(CampaignStatistic(
            campaignName=name,
            latestTimestamp=group.latest,
            smsSent=group.sms_sent,
            smsViewedEstimate=estimate,
            pageViews=views,
            conversionRate=conversion_rate(views, group.sms_sent),
            distributionIds=attributed_ids[name],
        ))

    return statistics


def conversion_rate(page_views: int, sms_sent: int) -> Optional[float]:
    """Page views per hundred SMS sent, two decimals; None when nothing was sent."""
    if sms_sent <= 0:
        return None
    return round_to(page_views / sms_sent * 100, 2)


def sort_campaigns_by_latest(statistics: Sequence[CampaignStatistic]) -> List[CampaignStatistic]:
    """Newest latestTimestamp first; campaigns without a parsable date go last."""
    dated = [s for s in statistics if s.latestTimestamp is not None]
    undated = [s for s in statistics if s.latestTimestamp is None]
    dated.sort(key=lambda s: s.latestTimestamp, reverse=True)
    return dated + undated


# =============================================================================
# Client Statistics
# =============================================================================


def compute_client_statistics(events: Sequence[EnrichedViewEvent]) -> List[ClientStatistic]:
    """
    Per-user page views and watch time.

    Only events with a normalized phone and a resolved name count. Profile
    fields come from the first event of each phone. Sorted by page views,
    descending; ties keep first-seen order.
    """
    clients: Dict[str, dict] = OrderedDict()
    for event in events:
        if not event.normalizedPhone or not event.fullName:
            continue
        entry = clients.get(event.normalizedPhone)
        if entry is None:
            entry = {
                'normalizedPhone': event.normalizedPhone,
                'fullName': event.fullName,
                'specialty': event.specialty,
                'workplace': event.workplace,
                'district': event.district,
                'pageViews': 0,
                'totalViewSeconds': 0,
            }
            clients[event.normalizedPhone] = entry
        entry['pageViews'] += 1
        entry['totalViewSeconds'] += event.viewDurationSeconds

    ranked = sorted(clients.values(), key=lambda c: c['pageViews'], reverse=True)
    return [ClientStatistic(**entry) for entry in ranked]


def specialty_distribution(clients: Sequence[ClientStatistic]) -> Dict[str, int]:
    """Number of clients per specialty; blank specialties count as "Не указано"."""
    distribution: Dict[str, int] = {}
    for client in clients:
        specialty = client.specialty.strip() or UNSPECIFIED_SPECIALTY
        distribution[specialty] = distribution.get(specialty, 0) + 1
    return distribution


def top_clients(
    clients: Sequence[ClientStatistic],
    limit: int = DEFAULT_TOP_CLIENTS,
) -> List[ClientStatistic]:
    return list(clients[:max(limit, 0)])


# =============================================================================
# Time Series
# =============================================================================


def _parsed_timestamps(events: Iterable[EnrichedViewEvent]) -> List[datetime]:
    parsed = (parse_timestamp(event.timestamp) for event in events)
    return [moment for moment in parsed if moment is not None]


def compute_daily_series(events: Sequence[EnrichedViewEvent]) -> List[TimeSeriesPoint]:
    """
    Views per calendar date, ascending by date.

    Events whose timestamp cannot be parsed are left out of the series only.
    """
    counts: Counter = Counter(moment.date() for moment in _parsed_timestamps(events))
    return [TimeSeriesPoint(date=day, count=counts[day]) for day in sorted(counts)]


def date_range(points: Sequence[TimeSeriesPoint]) -> DateRange:
    """First and last date of a daily series and the number of dated days."""
    if not points:
        return DateRange()
    days: List[date] = sorted(point.date for point in points)
    return DateRange(first=days[0], last=days[-1], totalDays=len(days))


def compute_day_of_week_histogram(events: Sequence[EnrichedViewEvent]) -> List[DayOfWeekBucket]:
    """Seven buckets, Monday to Sunday, zero-filled."""
    counts: Counter = Counter(moment.weekday() for moment in _parsed_timestamps(events))
    return [
        DayOfWeekBucket(day=DayOfWeek.from_weekday(weekday), count=counts.get(weekday, 0))
        for weekday in range(7)
    ]


def compute_hour_histogram(events: Sequence[EnrichedViewEvent]) -> List[HourBucket]:
    """Twenty-four buckets, hour 0 to 23, zero-filled."""
    counts: Counter = Counter(moment.hour for moment in _parsed_timestamps(events))
    return [HourBucket(hour=hour, count=counts.get(hour, 0)) for hour in range(24)]


# =============================================================================
# Summary Figures
# =============================================================================


def average_view_percent(events: Iterable[EnrichedViewEvent]) -> float:
    """
    Mean viewPercent over events with a positive percentage.

    A 0 means the landing page registered no percentage, not "watched 0%",
    so those events are ignored. Returns 0.0 when no event qualifies.
    """
    positives = [event.viewPercent for event in events if event.viewPercent > 0]
    if not positives:
        return 0.0
    return math.fsum(positives) / len(positives)


def compute_user_coverage(events: Sequence[EnrichedViewEvent]) -> UserCoverage:
    total = len(events)
    with_user = sum(1 for event in events if event.hasUserMatch)
    return UserCoverage(
        total=total,
        withUserData=with_user,
        withoutUserData=total - with_user,
        coveragePercent=round_half_up(with_user / total * 100) if total else 0,
    )


def compute_summary_statistics(
    events: Sequence[EnrichedViewEvent],
    campaign_statistics: Sequence[CampaignStatistic],
) -> SummaryStatistics:
    """
    Headline figures for a slice.

    smsViewedEstimate is the sum of the per-campaign estimates, which by
    construction equals the rounded grand total of the estimator.
    """
    total_seconds = sum(event.viewDurationSeconds for event in events)
    return SummaryStatistics(
        pageViews=len(events),
        totalViewSeconds=total_seconds,
        averageViewSeconds=round_to(total_seconds / len(events), 2) if events else 0.0,
        smsSent=sum(stat.smsSent for stat in campaign_statistics),
        smsViewedEstimate=sum(stat.smsViewedEstimate for stat in campaign_statistics),
        averageViewPercent=round_to(average_view_percent(events), 2),
    )


def compute_ab_test_analysis(events: Sequence[EnrichedViewEvent]) -> List[ABTestResult]:
    """
    Engagement per SMS text variant.

    Events are grouped by (campaignName, smsText). Average watch time is
    floored to whole seconds; average percentage ignores zero percentages.
    Sorted by views, descending; ties keep first-seen order.
    """
    groups: Dict[tuple, List[EnrichedViewEvent]] = OrderedDict()
    for event in events:
        groups.setdefault((event.campaignName, event.smsText), []).append(event)

    results = []
    for (campaign_name, sms_text), members in groups.items():
        total_seconds = sum(member.viewDurationSeconds for member in members)
        results.append(ABTestResult(
            campaignName=campaign_name,
            smsText=sms_text,
            abGroupTag=members[0].abGroupTag,
            views=len(members),
            averageViewSeconds=total_seconds // len(members),
            averageViewPercent=round_to(average_view_percent(members), 1),
        ))

    results.sort(key=lambda result: result.views, reverse=True)
    return results


def format_duration(seconds: int) -> str:
    """
    Format a number of seconds as HH:MM:SS.

    Example:
        >>> format_duration(3725)
        '01:02:05'
    """
    seconds = max(int(seconds), 0)
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"

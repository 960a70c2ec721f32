"""
Query/Filter Facade

Read-only access to a ReconciliationResult, sliced by content category. The
API layer and the spreadsheet export go through this module; the aggregation
engine receives the slices it produces.

A category is known when it appears in the raw event log of the snapshot,
even if every one of its events was filtered out during reconciliation. Such
a category still reports the SMS sent by its campaigns.

Passing category=None selects the whole reconciled set.
"""

from collections import OrderedDict
from typing import List, Optional
import logging

from sms_insights.models.schemas import (
    EnrichedViewEvent,
    ReconciliationResult,
    CampaignStatistic,
    CategoryReport,
)
from sms_insights.services.aggregation import (
    EstimatorConfig,
    compute_campaign_statistics,
    sort_campaigns_by_latest,
    compute_client_statistics,
    specialty_distribution,
    top_clients,
    compute_daily_series,
    date_range,
    compute_day_of_week_histogram,
    compute_hour_histogram,
    compute_summary_statistics,
    compute_user_coverage,
    compute_ab_test_analysis,
)
from sms_insights.services.reconciliation import ReconciliationConfig
from sms_insights.services.timestamps import parse_timestamp_or_epoch

# Configure module logger
logger = logging.getLogger(__name__)


def list_categories(result: ReconciliationResult) -> List[str]:
    """Sorted, non-empty content categories present in the reconciled set."""
    return sorted({event.contentCategory for event in result.events if event.contentCategory})


def is_known_category(result: ReconciliationResult, category: Optional[str]) -> bool:
    if category is None:
        return True
    if category in result.categoryDistributionIds:
        return True
    return any(event.contentCategory == category for event in result.events)


def slice_by_category(
    result: ReconciliationResult,
    category: Optional[str],
) -> List[EnrichedViewEvent]:
    """Reconciled events of one category in event-log order (all events for None)."""
    if category is None:
        return list(result.events)
    return [event for event in result.events if event.contentCategory == category]


def distribution_ids_for(result: ReconciliationResult, category: Optional[str]) -> List[str]:
    """Raw event-log distribution ids of a category, or of every category for None."""
    if category is not None:
        return list(result.categoryDistributionIds.get(category, []))
    merged: "OrderedDict[str, None]" = OrderedDict()
    for ids in result.categoryDistributionIds.values():
        for distribution_id in ids:
            merged[distribution_id] = None
    return list(merged)


def sort_views_newest_first(events: List[EnrichedViewEvent]) -> List[EnrichedViewEvent]:
    """Newest first by parsed timestamp; unparsable timestamps sort last."""
    return sorted(
        events,
        key=lambda event: parse_timestamp_or_epoch(event.timestamp),
        reverse=True,
    )


def _require_known(result: ReconciliationResult, category: Optional[str]) -> None:
    if not is_known_category(result, category):
        raise KeyError(category)


def view_log(
    result: ReconciliationResult,
    category: Optional[str] = None,
) -> List[EnrichedViewEvent]:
    """
    The reconciled view log of a category, newest first.

    Raises:
        KeyError: If the category does not occur in the snapshot.
    """
    _require_known(result, category)
    return sort_views_newest_first(slice_by_category(result, category))


def campaign_statistics_for(
    result: ReconciliationResult,
    category: Optional[str] = None,
    estimator: Optional[EstimatorConfig] = None,
    config: Optional[ReconciliationConfig] = None,
) -> List[CampaignStatistic]:
    """
    Campaign statistics of a category in first-seen campaign-log order.

    Raises:
        KeyError: If the category does not occur in the snapshot.
    """
    _require_known(result, category)
    return compute_campaign_statistics(
        slice_by_category(result, category),
        result.campaigns,
        estimator=estimator,
        config=config,
        distribution_ids=distribution_ids_for(result, category),
    )


def build_category_report(
    result: ReconciliationResult,
    category: Optional[str] = None,
    estimator: Optional[EstimatorConfig] = None,
    config: Optional[ReconciliationConfig] = None,
) -> CategoryReport:
    """
    Compute every rollup of one category slice.

    Args:
        result: The published reconciliation.
        category: Content category, or None for the whole reconciled set.
        estimator: Per-category SMS-viewed ratios.
        config: Allow-list rules used by the campaign rollup.

    Returns:
        CategoryReport with campaigns in presentation order (newest first).

    Raises:
        KeyError: If the category does not occur in the snapshot.
    """
    _require_known(result, category)
    events = slice_by_category(result, category)

    campaigns = campaign_statistics_for(result, category, estimator, config)
    clients = compute_client_statistics(events)
    daily = compute_daily_series(events)

    logger.debug(
        f"Built report for category {category!r}: {len(events)} events, "
        f"{len(campaigns)} campaigns, {len(clients)} clients"
    )

    return CategoryReport(
        category=category,
        summary=compute_summary_statistics(events, campaigns),
        coverage=compute_user_coverage(events),
        campaigns=sort_campaigns_by_latest(campaigns),
        clients=clients,
        topClients=top_clients(clients),
        specialtyDistribution=specialty_distribution(clients),
        dailySeries=daily,
        dateRange=date_range(daily),
        dayOfWeek=compute_day_of_week_histogram(events),
        hourOfDay=compute_hour_histogram(events),
        abTests=compute_ab_test_analysis(events),
    )

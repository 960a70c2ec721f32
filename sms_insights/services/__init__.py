"""
Services Module

Business logic of the SMS Insights service. The engine modules are synchronous
and pure; the collaborators at the edges perform I/O.

Engine:
- tabular: CSV text -> RawRows -> typed records, numeric coercion
- phone: phone number normalization and variant lookup
- timestamps: multi-format timestamp parsing
- reconciliation: event/directory/campaign join with inclusion rules
- aggregation: campaign, client and time-series rollups, SMS-viewed estimator
- query: category slicing and report assembly

Collaborators:
- sources: Google Sheets CSV export fetcher (httpx)
- loader: load orchestration with latest-started-wins publication
- export: .xlsx workbook writer (openpyxl)
"""

# =============================================================================
# Tabular Reader Exports
# =============================================================================

from sms_insights.services.tabular import (
    parse_delimited,
    coerce_int,
    map_view_event,
    map_user_profile,
    map_campaign_record,
    map_view_events,
    map_user_profiles,
    map_campaign_records,
    EVENT_COLUMNS,
    DIRECTORY_COLUMNS,
    CAMPAIGN_COLUMNS,
)

# =============================================================================
# Identity and Timestamp Exports
# =============================================================================

from sms_insights.services.phone import (
    normalize_phone,
    phone_variants,
    lookup_by_phone,
)
from sms_insights.services.timestamps import (
    parse_timestamp,
    parse_timestamp_or_epoch,
)

# =============================================================================
# Reconciliation Engine Exports
# =============================================================================

from sms_insights.services.reconciliation import (
    ReconciliationConfig,
    reconcile,
    reconcile_sources,
    build_profile_index,
    build_campaign_index,
    resolve_campaign,
    is_allowed_campaign_source,
    is_excluded_specialty,
)

# =============================================================================
# Aggregation Engine Exports
# =============================================================================

from sms_insights.services.aggregation import (
    EstimatorConfig,
    allocate_rounded,
    compute_campaign_statistics,
    sort_campaigns_by_latest,
    compute_client_statistics,
    specialty_distribution,
    top_clients,
    compute_daily_series,
    date_range,
    compute_day_of_week_histogram,
    compute_hour_histogram,
    average_view_percent,
    compute_user_coverage,
    compute_summary_statistics,
    compute_ab_test_analysis,
    format_duration,
)

# =============================================================================
# Query Facade Exports
# =============================================================================

from sms_insights.services.query import (
    list_categories,
    slice_by_category,
    view_log,
    campaign_statistics_for,
    build_category_report,
)

# =============================================================================
# Collaborator Exports
# =============================================================================

from sms_insights.services.sources import SheetsSourceClient, SourceSnapshot
from sms_insights.services.loader import ReconciliationStore, reconcile_snapshot
from sms_insights.services.export import write_report_xlsx

__all__ = [
    # Tabular
    "parse_delimited",
    "coerce_int",
    "map_view_event",
    "map_user_profile",
    "map_campaign_record",
    "map_view_events",
    "map_user_profiles",
    "map_campaign_records",
    "EVENT_COLUMNS",
    "DIRECTORY_COLUMNS",
    "CAMPAIGN_COLUMNS",
    # Identity and timestamps
    "normalize_phone",
    "phone_variants",
    "lookup_by_phone",
    "parse_timestamp",
    "parse_timestamp_or_epoch",
    # Reconciliation
    "ReconciliationConfig",
    "reconcile",
    "reconcile_sources",
    "build_profile_index",
    "build_campaign_index",
    "resolve_campaign",
    "is_allowed_campaign_source",
    "is_excluded_specialty",
    # Aggregation
    "EstimatorConfig",
    "allocate_rounded",
    "compute_campaign_statistics",
    "sort_campaigns_by_latest",
    "compute_client_statistics",
    "specialty_distribution",
    "top_clients",
    "compute_daily_series",
    "date_range",
    "compute_day_of_week_histogram",
    "compute_hour_histogram",
    "average_view_percent",
    "compute_user_coverage",
    "compute_summary_statistics",
    "compute_ab_test_analysis",
    "format_duration",
    # Query
    "list_categories",
    "slice_by_category",
    "view_log",
    "campaign_statistics_for",
    "build_category_report",
    # Collaborators
    "SheetsSourceClient",
    "SourceSnapshot",
    "ReconciliationStore",
    "reconcile_snapshot",
    "write_report_xlsx",
]

"""
Dashboard API Router

Read-only HTTP access to the published reconciliation, plus the refresh
trigger that runs a new load.

Endpoints:
- POST /dashboard/refresh: fetch the three feeds, reconcile and publish
- GET /dashboard/categories: content categories and overall user coverage
- GET /dashboard/views: reconciled view log, newest first
- GET /dashboard/report: every rollup of a category in one bundle
- GET /dashboard/campaigns: campaign statistics (newest campaign first)
- GET /dashboard/clients: client statistics (most active first)
- GET /dashboard/timeseries: daily series and weekday/hour histograms
- GET /dashboard/export: .xlsx workbook of the view log and rollups

Every GET takes an optional `category` query parameter; omitting it selects
the whole reconciled set.

Error mapping:
- TransportError -> 502 (the failing feed is named in the detail)
- DataNotLoadedError -> 503 (no successful load yet)
- Unknown category -> 404
- Anything else -> 500, logged with traceback
"""

from typing import List, Optional
from urllib.parse import quote
import io
import logging

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import Response

from sms_insights.core.dependencies import EstimatorDep, SourceClientDep, StoreDep
from sms_insights.core.exceptions import DataNotLoadedError, TransportError
from sms_insights.models.schemas import (
    CampaignStatistic,
    CategoriesResponse,
    CategoryReport,
    ClientStatistic,
    RefreshResponse,
    TimeSeriesResponse,
    ViewLogResponse,
)
from sms_insights.services.aggregation import (
    compute_client_statistics,
    compute_daily_series,
    compute_day_of_week_histogram,
    compute_hour_histogram,
    compute_user_coverage,
    date_range,
    sort_campaigns_by_latest,
)
from sms_insights.services.export import write_report_xlsx
from sms_insights.services.query import (
    build_category_report,
    campaign_statistics_for,
    is_known_category,
    list_categories,
    slice_by_category,
    view_log,
)

# Configure logging
logger = logging.getLogger(__name__)

# Create router with prefix and tags for OpenAPI documentation
router = APIRouter(prefix="/dashboard", tags=["dashboard"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

CATEGORY_DESCRIPTION = "Content category; omit for all categories"


# =============================================================================
# Helper Functions
# =============================================================================


def _not_loaded(error: DataNotLoadedError) -> HTTPException:
    return HTTPException(status_code=503, detail=str(error))


def _unknown_category(category: Optional[str]) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Unknown category: {category}")


def _export_filename(category: Optional[str]) -> str:
    label = category or "все"
    return f"{label}_лог_просмотров.xlsx"


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/refresh", response_model=RefreshResponse)
async def refresh_data(store: StoreDep, source_client: SourceClientDep) -> RefreshResponse:
    """
    Fetch the event log, the user directory and the campaign log, then reconcile.

    The new reconciliation replaces the published one atomically. If a feed
    cannot be fetched, the previous data stays published.

    Returns:
        RefreshResponse with the reconciliation counters and load time.

    Raises:
        HTTPException 502: A feed could not be fetched.
        HTTPException 500: Reconciliation failed unexpectedly.
    """
    try:
        result = await store.refresh(source_client.fetch_snapshot)
        return RefreshResponse(loadedAt=result.loadedAt, stats=result.stats)

    except TransportError as e:
        raise HTTPException(
            status_code=502,
            detail={"message": str(e), "source": e.source, "statusCode": e.status_code},
        )
    except Exception as e:
        logger.exception("Error refreshing dashboard data")
        raise HTTPException(status_code=500, detail=f"Error refreshing data: {str(e)}")


@router.get("/categories", response_model=CategoriesResponse)
async def get_categories(store: StoreDep) -> CategoriesResponse:
    """List content categories of the reconciled set and its user coverage."""
    try:
        result = store.current()
        return CategoriesResponse(
            categories=list_categories(result),
            coverage=compute_user_coverage(result.events),
            loadedAt=result.loadedAt,
        )

    except DataNotLoadedError as e:
        raise _not_loaded(e)
    except Exception as e:
        logger.exception("Error listing categories")
        raise HTTPException(status_code=500, detail=f"Error listing categories: {str(e)}")


@router.get("/views", response_model=ViewLogResponse)
async def get_views(
    store: StoreDep,
    category: Optional[str] = Query(None, description=CATEGORY_DESCRIPTION),
) -> ViewLogResponse:
    """
    Return the reconciled view log of a category, newest first.

    Raises:
        HTTPException 404: Unknown category.
        HTTPException 503: No data loaded yet.
    """
    try:
        events = view_log(store.current(), category)
        return ViewLogResponse(category=category, total=len(events), events=events)

    except DataNotLoadedError as e:
        raise _not_loaded(e)
    except KeyError:
        raise _unknown_category(category)
    except Exception as e:
        logger.exception(f"Error building view log for category {category!r}")
        raise HTTPException(status_code=500, detail=f"Error building view log: {str(e)}")


@router.get("/report", response_model=CategoryReport)
async def get_report(
    store: StoreDep,
    estimator: EstimatorDep,
    category: Optional[str] = Query(None, description=CATEGORY_DESCRIPTION),
) -> CategoryReport:
    """
    Return every rollup of a category: summary, coverage, campaigns, clients,
    time series, histograms, A/B text analysis and specialty distribution.

    Raises:
        HTTPException 404: Unknown category.
        HTTPException 503: No data loaded yet.
    """
    try:
        return build_category_report(store.current(), category, estimator, store.config)

    except DataNotLoadedError as e:
        raise _not_loaded(e)
    except KeyError:
        raise _unknown_category(category)
    except Exception as e:
        logger.exception(f"Error building report for category {category!r}")
        raise HTTPException(status_code=500, detail=f"Error building report: {str(e)}")


@router.get("/campaigns", response_model=List[CampaignStatistic])
async def get_campaigns(
    store: StoreDep,
    estimator: EstimatorDep,
    category: Optional[str] = Query(None, description=CATEGORY_DESCRIPTION),
) -> List[CampaignStatistic]:
    """Campaign statistics of a category, newest campaign first."""
    try:
        statistics = campaign_statistics_for(store.current(), category, estimator, store.config)
        return sort_campaigns_by_latest(statistics)

    except DataNotLoadedError as e:
        raise _not_loaded(e)
    except KeyError:
        raise _unknown_category(category)
    except Exception as e:
        logger.exception(f"Error computing campaigns for category {category!r}")
        raise HTTPException(status_code=500, detail=f"Error computing campaigns: {str(e)}")


@router.get("/clients", response_model=List[ClientStatistic])
async def get_clients(
    store: StoreDep,
    category: Optional[str] = Query(None, description=CATEGORY_DESCRIPTION),
) -> List[ClientStatistic]:
    """Client statistics of a category, most active first."""
    try:
        result = store.current()
        if not is_known_category(result, category):
            raise _unknown_category(category)
        return compute_client_statistics(slice_by_category(result, category))

    except HTTPException:
        raise
    except DataNotLoadedError as e:
        raise _not_loaded(e)
    except Exception as e:
        logger.exception(f"Error computing clients for category {category!r}")
        raise HTTPException(status_code=500, detail=f"Error computing clients: {str(e)}")


@router.get("/timeseries", response_model=TimeSeriesResponse)
async def get_timeseries(
    store: StoreDep,
    category: Optional[str] = Query(None, description=CATEGORY_DESCRIPTION),
) -> TimeSeriesResponse:
    """Daily view counts plus day-of-week and hour-of-day histograms."""
    try:
        result = store.current()
        if not is_known_category(result, category):
            raise _unknown_category(category)
        events = slice_by_category(result, category)
        daily = compute_daily_series(events)
        return TimeSeriesResponse(
            category=category,
            dailySeries=daily,
            dateRange=date_range(daily),
            dayOfWeek=compute_day_of_week_histogram(events),
            hourOfDay=compute_hour_histogram(events),
        )

    except HTTPException:
        raise
    except DataNotLoadedError as e:
        raise _not_loaded(e)
    except Exception as e:
        logger.exception(f"Error computing time series for category {category!r}")
        raise HTTPException(status_code=500, detail=f"Error computing time series: {str(e)}")


@router.get("/export")
async def export_report(
    store: StoreDep,
    estimator: EstimatorDep,
    category: Optional[str] = Query(None, description=CATEGORY_DESCRIPTION),
) -> Response:
    """
    Download the view log and rollups of a category as an .xlsx workbook.

    Raises:
        HTTPException 404: Unknown category.
        HTTPException 503: No data loaded yet.
    """
    try:
        result = store.current()
        views = view_log(result, category)
        report = build_category_report(result, category, estimator, store.config)

        buffer = io.BytesIO()
        write_report_xlsx(buffer, views, report)

    except DataNotLoadedError as e:
        raise _not_loaded(e)
    except KeyError:
        raise _unknown_category(category)
    except Exception as e:
        logger.exception(f"Error exporting category {category!r}")
        raise HTTPException(status_code=500, detail=f"Error exporting data: {str(e)}")

    filename = quote(_export_filename(category))
    return Response(
        content=buffer.getvalue(),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{filename}"},
    )

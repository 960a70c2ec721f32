"""
FastAPI dependency injection module for the SMS Insights service.

Endpoints receive their collaborators through these providers, so tests can
swap any of them with app.dependency_overrides.

Key Dependencies Provided:
- get_settings_dependency / SettingsDep: the cached Settings singleton
- get_store_dependency / StoreDep: the process-wide ReconciliationStore
- get_source_client / SourceClientDep: sheet fetcher bound to the shared HTTP client
- get_estimator_config / EstimatorDep: SMS-viewed ratios built from settings

Usage Examples:
    @router.get("/report")
    async def get_report(store: StoreDep, estimator: EstimatorDep) -> CategoryReport:
        return build_category_report(store.current(), None, estimator, store.config)

    # In tests
    app.dependency_overrides[get_store_dependency] = lambda: populated_store
"""

from typing import Annotated

from fastapi import Depends

from sms_insights.core.config import Settings, get_settings
from sms_insights.core.state import get_store, get_http_client
from sms_insights.services.aggregation import EstimatorConfig
from sms_insights.services.loader import ReconciliationStore
from sms_insights.services.sources import SheetsSourceClient


# =============================================================================
# Providers
# =============================================================================


def get_settings_dependency() -> Settings:
    """
    Return the Settings singleton instance.

    A thin wrapper around get_settings() so it can be overridden in tests:

        app.dependency_overrides[get_settings_dependency] = lambda: test_settings
    """
    return get_settings()


SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]


def get_store_dependency() -> ReconciliationStore:
    """Return the process-wide reconciliation store."""
    return get_store()


def get_source_client(settings: SettingsDep) -> SheetsSourceClient:
    """Build a sheet fetcher on top of the shared httpx client."""
    return SheetsSourceClient(settings, get_http_client())


def get_estimator_config(settings: SettingsDep) -> EstimatorConfig:
    return EstimatorConfig.from_settings(settings)


# =============================================================================
# Type Aliases for Dependency Injection
# =============================================================================

StoreDep = Annotated[ReconciliationStore, Depends(get_store_dependency)]

SourceClientDep = Annotated[SheetsSourceClient, Depends(get_source_client)]

EstimatorDep = Annotated[EstimatorConfig, Depends(get_estimator_config)]

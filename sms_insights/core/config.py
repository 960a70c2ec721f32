"""
Settings and environment management module for the SMS Insights service.

This module provides centralized configuration management using pydantic-settings,
which automatically loads settings from environment variables and .env files.

Key Features:
- Environment variable validation and type coercion
- Defaults reproducing the production dashboard deployment
- Singleton pattern via @lru_cache for efficient access
- Engine-facing configuration (campaign source allow-list, excluded specialties,
  SMS view estimator ratios) kept outside of the engine itself

Environment Variables:
- EVENTS_SOURCE_ID / EVENTS_SUBSHEET_ID: Spreadsheet holding the page-view log
- DIRECTORY_SOURCE_ID / DIRECTORY_SUBSHEET_ID: Spreadsheet holding the user directory
- CAMPAIGNS_SOURCE_ID / CAMPAIGNS_SUBSHEET_ID: Spreadsheet holding the SMS send log
- HTTP_TIMEOUT_SECONDS: Timeout for each sheet export request (default: 30)
- ALLOWED_CAMPAIGN_SOURCES: JSON list of campaign log source labels to keep
- EXCLUDED_SPECIALTY_KEYWORDS: JSON list of specialty keywords to drop
- SMS_VIEW_MULTIPLIERS: JSON object mapping content category to estimator ratio

List and dict values are parsed as JSON by pydantic-settings, e.g.:

    ALLOWED_CAMPAIGN_SOURCES='["Delta Medical", "Delta Pharma"]'
    SMS_VIEW_MULTIPLIERS='{"Пимафуцин": 1.44, "Донормил": 4.6}'

Usage:
    from sms_insights.core.config import get_settings

    settings = get_settings()
    ratio = settings.sms_view_multipliers.get("Донормил", settings.default_sms_view_multiplier)
"""

from functools import lru_cache
from typing import Dict, List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    The class inherits from pydantic-settings BaseSettings which provides:
    - Automatic loading from environment variables (case-insensitive)
    - Support for .env file loading
    - Type validation and coercion
    - Default values for every setting, so the service starts without a .env

    Attributes:
        company_name: Display name of the company whose campaigns are analysed.
        events_source_id: Spreadsheet id of the page-view event log.
        events_subsheet_id: Sub-sheet (gid) of the event log.
        directory_source_id: Spreadsheet id of the user directory.
        directory_subsheet_id: Sub-sheet (gid) of the user directory.
        campaigns_source_id: Spreadsheet id of the SMS campaign log.
        campaigns_subsheet_id: Sub-sheet (gid) of the campaign log.
        sheets_export_url_template: CSV export URL with {source_id}/{subsheet_id} slots.
        http_timeout_seconds: Per-request timeout for sheet exports.
        campaign_source_filter_enabled: Whether the source allow-list is applied.
        allowed_campaign_sources: Campaign log source labels that participate in joins.
        exclude_users_enabled: Whether users with excluded specialties are dropped.
        excluded_specialty_keywords: Specialty keywords marking non-clinician users.
        sms_view_multipliers: Estimator ratio (SMS viewed per page view) per category.
        default_sms_view_multiplier: Ratio used for unconfigured categories.
        national_phone_prefix: Country code digits used for phone matching.
        cors_origins: Origins allowed to call the API from a browser.
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
        case_sensitive=False,
    )

    company_name: str = 'Delta Medical'

    # =========================================================================
    # Table sources
    # =========================================================================

    events_source_id: str = '1iIm0hx5bDEqvd3kpJBBbv_FgdpI6qxM-0pDGvl6bWJY'
    events_subsheet_id: str = '0'

    directory_source_id: str = '13hEDBGU-nzz0ak8D_JNBzGeOy5lgSRy__kpJTXbk9ZA'
    directory_subsheet_id: str = '0'

    campaigns_source_id: str = '1wtiGT4vn5o4icOKnON8a-Orwhz87nGV1qA2Xu6lpuss'
    campaigns_subsheet_id: str = '754461975'

    sheets_export_url_template: str = (
        'https://docs.google.com/spreadsheets/d/{source_id}/export?format=csv&gid={subsheet_id}'
    )

    http_timeout_seconds: float = 30.0

    # =========================================================================
    # Reconciliation filters
    # =========================================================================

    # Level 1: only campaigns from these campaign-log sources are joined
    campaign_source_filter_enabled: bool = True
    allowed_campaign_sources: List[str] = Field(default_factory=lambda: ['Delta Medical'])

    # Level 2: matched users whose specialty contains one of these keywords are dropped
    exclude_users_enabled: bool = True
    excluded_specialty_keywords: List[str] = Field(
        default_factory=lambda: ['не врач', 'неврач', 'не врач.', 'не врач!']
    )

    national_phone_prefix: str = '375'

    # =========================================================================
    # SMS viewed estimator
    # =========================================================================

    # Page views are multiplied by this ratio to estimate how many SMS were read
    sms_view_multipliers: Dict[str, float] = Field(
        default_factory=lambda: {'Пимафуцин': 1.44, 'Донормил': 4.6}
    )
    default_sms_view_multiplier: float = 1.0

    # =========================================================================
    # HTTP API
    # =========================================================================

    cors_origins: List[str] = Field(
        default_factory=lambda: ['http://localhost:5173', 'http://127.0.0.1:5173']
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Returns:
        Settings: The cached settings instance.

    Note:
        To refresh settings in tests, clear the cache:
        >>> get_settings.cache_clear()
    """
    return Settings()

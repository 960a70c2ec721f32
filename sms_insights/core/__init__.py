"""
Core infrastructure package for the SMS Insights service.

Provides:
- Configuration management via pydantic-settings (config)
- Exceptions that abort a load or a request (exceptions)
- Process-wide state: shared HTTP client and reconciliation store (state)
- FastAPI dependency injection utilities (dependencies)

Only configuration and exceptions are re-exported here; the engine imports
them, while state and dependencies import the engine. Import those two from
their modules:

    from sms_insights.core import get_settings, TransportError
    from sms_insights.core.dependencies import StoreDep
"""

from sms_insights.core.config import Settings, get_settings
from sms_insights.core.exceptions import DataNotLoadedError, TransportError

__all__ = [
    # Configuration
    "Settings",
    "get_settings",
    # Exceptions
    "DataNotLoadedError",
    "TransportError",
]

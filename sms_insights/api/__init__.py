"""
API package initialization.

Router modules:
- dashboard: refresh trigger and read-only rollups of the published reconciliation
"""

from sms_insights.api.dashboard import router as dashboard_router

__all__ = [
    "dashboard_router",
]

"""
Process-wide state for the SMS Insights service.

Two objects live for the lifetime of the application:
- The shared httpx.AsyncClient used to fetch the table exports
- The ReconciliationStore holding the latest published reconciliation

Both are created by init_state() in the FastAPI lifespan and released by
close_state() on shutdown. The accessors initialize lazily, so scripts and
tests can use them without running the lifespan.

Usage:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await init_state()
        yield
        await close_state()
"""

from typing import Optional
import logging

import httpx

from sms_insights.core.config import get_settings
from sms_insights.services.loader import ReconciliationStore
from sms_insights.services.reconciliation import ReconciliationConfig

logger = logging.getLogger(__name__)


# =============================================================================
# Global Singletons
# =============================================================================

# None until init_state() or the first accessor call
_http_client: Optional[httpx.AsyncClient] = None
_store: Optional[ReconciliationStore] = None


# =============================================================================
# Lifecycle Functions
# =============================================================================


async def init_state() -> ReconciliationStore:
    """
    Create the HTTP client and the reconciliation store.

    Idempotent: existing instances are kept.

    Returns:
        ReconciliationStore: The process-wide store (empty until the first refresh).
    """
    global _http_client, _store

    settings = get_settings()

    if _http_client is None:
        _http_client = httpx.AsyncClient(timeout=settings.http_timeout_seconds)

    if _store is None:
        _store = ReconciliationStore(ReconciliationConfig.from_settings(settings))
        logger.info("Reconciliation store initialized")

    return _store


def get_store() -> ReconciliationStore:
    """Get the reconciliation store, creating an empty one if needed."""
    global _store

    if _store is None:
        _store = ReconciliationStore(ReconciliationConfig.from_settings(get_settings()))

    return _store


def get_http_client() -> httpx.AsyncClient:
    """Get the shared HTTP client, creating it if needed."""
    global _http_client

    if _http_client is None:
        _http_client = httpx.AsyncClient(timeout=get_settings().http_timeout_seconds)

    return _http_client


async def close_state() -> None:
    """
    Close the HTTP client and forget the published reconciliation.

    Idempotent; safe to call when nothing was initialized.
    """
    global _http_client, _store

    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None

    _store = None

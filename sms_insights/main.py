"""
FastAPI application entry point for the SMS Insights API.

Configures logging and CORS, owns the lifespan of the shared HTTP client and
the reconciliation store, and mounts the dashboard router.

Run locally with:
    python -m sms_insights.main
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sms_insights import __version__
from sms_insights.api.dashboard import router as dashboard_router
from sms_insights.core.config import get_settings
from sms_insights.core.dependencies import SettingsDep, StoreDep
from sms_insights.core.state import init_state, close_state

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for FastAPI application startup and shutdown events.

    On startup:
        - Create the shared HTTP client and an empty reconciliation store
    On shutdown:
        - Close the HTTP client

    No data is fetched at startup; the dashboard triggers POST /dashboard/refresh.
    """
    logger.info("SMS Insights API starting")
    await init_state()

    yield

    logger.info("SMS Insights API shutting down")
    await close_state()


settings = get_settings()

# Create FastAPI application
app = FastAPI(
    title="SMS Insights API",
    version=__version__,
    description=(
        f"Reconciles SMS campaign views for {settings.company_name} and serves "
        "campaign, client and time-series rollups to the dashboard."
    ),
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(dashboard_router)


@app.get("/health")
async def health_check(store: StoreDep):
    """
    Health check endpoint for monitoring and load balancer probes.

    Returns:
        Dict with status 'healthy' and whether a load has been published yet
    """
    return {"status": "healthy", "dataLoaded": store.is_loaded}


@app.get("/")
async def root(settings: SettingsDep):
    """
    Root endpoint providing API information.

    Returns:
        Dict with API name, version and the company being analysed
    """
    return {
        "name": "SMS Insights API",
        "company": settings.company_name,
        "version": __version__,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


# Run with uvicorn when executed directly
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "sms_insights.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )

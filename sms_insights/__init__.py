"""
SMS Insights backend.

Reconciles the landing-page view log, the user directory and the SMS campaign
log into one enriched record per view, and serves campaign, client and
time-series rollups to the dashboard through a FastAPI application.

Packages:
- core: settings, exceptions, process state and FastAPI dependencies
- models: pydantic records and response models
- services: reconciliation and aggregation engine plus its I/O collaborators
- api: HTTP routers
"""

__version__ = "1.0.0"

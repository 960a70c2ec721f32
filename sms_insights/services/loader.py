"""
Load Orchestration

ReconciliationStore owns the published ReconciliationResult. A load fetches a
snapshot of the three feeds, maps rows to typed records, reconciles them and
publishes the result in one step, so consumers never see a half-built state.

Concurrent refreshes:
    Each refresh takes a generation ticket when it starts. A finished load is
    published only if no later-started load has published already; otherwise
    its result is discarded and the newer one stays in place.

Failures:
    A failed fetch is logged and re-raised without retrying. The previously
    published result, if any, is left untouched.
"""

from typing import Awaitable, Callable, Optional
import logging

from fastapi.concurrency import run_in_threadpool

from sms_insights.core.exceptions import DataNotLoadedError, TransportError
from sms_insights.models.schemas import ReconciliationResult
from sms_insights.services.reconciliation import ReconciliationConfig, reconcile_sources
from sms_insights.services.sources import SourceSnapshot
from sms_insights.services.tabular import (
    map_view_events,
    map_user_profiles,
    map_campaign_records,
)

# Configure module logger
logger = logging.getLogger(__name__)

SnapshotFetcher = Callable[[], Awaitable[SourceSnapshot]]


def reconcile_snapshot(
    snapshot: SourceSnapshot,
    config: Optional[ReconciliationConfig] = None,
) -> ReconciliationResult:
    """Map a RawRow snapshot to typed records and reconcile it."""
    return reconcile_sources(
        map_view_events(snapshot.events),
        map_user_profiles(snapshot.profiles),
        map_campaign_records(snapshot.campaigns),
        config=config,
    )


class ReconciliationStore:
    """
    Holds the latest published reconciliation of the process.

    Example:
        >>> store = ReconciliationStore(ReconciliationConfig())
        >>> await store.refresh(source_client.fetch_snapshot)
        >>> store.current().stats.keptEvents
        42
    """

    def __init__(self, config: Optional[ReconciliationConfig] = None):
        self._config = config or ReconciliationConfig()
        self._result: Optional[ReconciliationResult] = None
        self._generation = 0
        self._published_generation = 0

    @property
    def config(self) -> ReconciliationConfig:
        return self._config

    @property
    def is_loaded(self) -> bool:
        return self._result is not None

    @property
    def published_generation(self) -> int:
        return self._published_generation

    def current(self) -> ReconciliationResult:
        """
        The published reconciliation.

        Raises:
            DataNotLoadedError: No load has succeeded yet.
        """
        if self._result is None:
            raise DataNotLoadedError()
        return self._result

    async def refresh(self, fetch: SnapshotFetcher) -> ReconciliationResult:
        """
        Run one load and publish it unless a newer load already has.

        Args:
            fetch: Coroutine function returning a complete SourceSnapshot.

        Returns:
            The published result after this load: its own, or the newer one
            that superseded it.

        Raises:
            TransportError: A feed could not be fetched; nothing is published.
        """
        self._generation += 1
        generation = self._generation
        logger.info(f"Load #{generation} started")

        try:
            snapshot = await fetch()
        except TransportError:
            logger.exception(f"Load #{generation} failed; keeping load #{self._published_generation}")
            raise

        # CPU-bound, runs in a worker thread
        result = await run_in_threadpool(reconcile_snapshot, snapshot, self._config)

        if generation < self._published_generation:
            logger.info(
                f"Load #{generation} finished after load #{self._published_generation}; "
                f"discarding stale result"
            )
            return self.current()

        self._result = result
        self._published_generation = generation
        logger.info(
            f"Load #{generation} published: {result.stats.keptEvents} of "
            f"{result.stats.totalEvents} events kept"
        )
        return result

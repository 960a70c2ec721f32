"""
Table Source Client

Fetches the three feeds as CSV exports of Google Sheets and parses them into
RawRows. A feed is addressed by an opaque source id plus an optional sub-sheet
(gid); the export URL comes from settings.sheets_export_url_template.

Failure semantics:
- Any httpx.HTTPError or non-200 response raises TransportError naming the
  failing feed. Nothing is retried here.
- fetch_snapshot returns only after all three feeds have arrived; if one
  fails the whole snapshot fails.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional
import asyncio
import logging

import httpx
from fastapi.concurrency import run_in_threadpool

from sms_insights.core.config import Settings
from sms_insights.core.exceptions import TransportError
from sms_insights.models.enums import SourceKind
from sms_insights.services.tabular import parse_delimited

# Configure module logger
logger = logging.getLogger(__name__)

CSV_ACCEPT_HEADER = {'Accept': 'text/csv'}


@dataclass(frozen=True)
class SourceSnapshot:
    """RawRows of the three feeds, fetched together."""
    events: List[Dict[str, str]]
    profiles: List[Dict[str, str]]
    campaigns: List[Dict[str, str]]


class SheetsSourceClient:
    """
    Fetches feeds through a shared httpx.AsyncClient.

    The client is owned by the caller (the application lifespan), so one
    connection pool serves every load.
    """

    def __init__(self, settings: Settings, client: httpx.AsyncClient):
        self._settings = settings
        self._client = client

    def export_url(self, source_id: str, subsheet_id: Optional[str] = None) -> str:
        return self._settings.sheets_export_url_template.format(
            source_id=source_id,
            subsheet_id=subsheet_id if subsheet_id is not None else '0',
        )

    async def fetch_rows(
        self,
        source_id: str,
        subsheet_id: Optional[str] = None,
        source: str = 'table',
    ) -> List[Dict[str, str]]:
        """
        Fetch one feed and parse it into RawRows.

        Args:
            source_id: Spreadsheet id.
            subsheet_id: Sheet gid; "0" when omitted.
            source: Feed name used in logs and errors.

        Returns:
            Parsed rows in sheet order.

        Raises:
            TransportError: The request failed or the server did not answer 200.
        """
        url = self.export_url(source_id, subsheet_id)

        try:
            response = await self._client.get(
                url,
                headers=CSV_ACCEPT_HEADER,
                follow_redirects=True,
                timeout=self._settings.http_timeout_seconds,
            )
        except httpx.HTTPError as e:
            raise TransportError(source, url, str(e) or type(e).__name__) from e

        if response.status_code != 200:
            raise TransportError(
                source,
                url,
                f"HTTP {response.status_code}",
                status_code=response.status_code,
            )

        text = response.content.decode('utf-8', errors='replace')
        rows = await run_in_threadpool(parse_delimited, text)
        logger.info(f"Loaded {len(rows)} {source} rows")
        return rows

    async def fetch_snapshot(self) -> SourceSnapshot:
        """Fetch the event log, the directory and the campaign log concurrently."""
        settings = self._settings
        events, profiles, campaigns = await asyncio.gather(
            self.fetch_rows(
                settings.events_source_id,
                settings.events_subsheet_id,
                source=SourceKind.EVENTS.value,
            ),
            self.fetch_rows(
                settings.directory_source_id,
                settings.directory_subsheet_id,
                source=SourceKind.DIRECTORY.value,
            ),
            self.fetch_rows(
                settings.campaigns_source_id,
                settings.campaigns_subsheet_id,
                source=SourceKind.CAMPAIGNS.value,
            ),
        )
        return SourceSnapshot(events=events, profiles=profiles, campaigns=campaigns)

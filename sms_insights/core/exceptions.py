"""
Exception types surfaced by the SMS Insights service.

Only failures that abort a whole load are modelled as exceptions. Bad rows,
unparsable timestamps and filtered-out records are ordinary values handled
inside the engine and never raise.
"""

from typing import Optional


class TransportError(Exception):
    """
    A table source could not be fetched.

    Fatal to the current load. The loader logs it and re-raises without retrying,
    so the previously published reconciliation stays in place.

    Attributes:
        source: Which feed failed ("events", "directory" or "campaigns").
        url: The export URL that was requested.
        status_code: HTTP status when the server answered, None on network errors.
    """

    def __init__(
        self,
        source: str,
        url: str,
        message: str,
        status_code: Optional[int] = None,
    ) -> None:
        self.source = source
        self.url = url
        self.status_code = status_code
        super().__init__(f"Failed to fetch {source} source: {message}")


class DataNotLoadedError(Exception):
    """Raised when reconciled data is requested before any load succeeded."""

    def __init__(self) -> None:
        super().__init__("No data has been loaded yet; trigger a refresh first")

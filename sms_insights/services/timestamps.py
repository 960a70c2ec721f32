"""
Timestamp Parser

The feeds are filled in by hand and by several landing-page generations, so a
timestamp cell may be "05.03.2024 14:30:00", "5.3.2024, 9:05", "2024-03-05" or
something else a spreadsheet produced. parse_timestamp tries the known formats
in a fixed precedence and falls back to pandas' generic parser.

Precedence (first format that matches AND forms a valid calendar date wins):
1. D.M.YYYY H:M[:S]   (an optional comma may separate date and time)
2. D.M.YYYY
3. YYYY-M-D H:M[:S]
4. YYYY-M-D
5. pandas.to_datetime(dayfirst=True) as the last resort

A time carrying "Z" or a UTC offset ("2024-03-05T14:30:00+03:00") skips the
fixed formats and goes straight to pandas, so it comes back as naive UTC.

The parser is total: it never raises and returns None for anything it cannot
read. Call sites pick their own policy for None:
- time buckets skip the event
- sorting uses parse_timestamp_or_epoch, which puts it at 1970-01-01
"""

from datetime import datetime, timezone
from typing import Callable, List, Optional, Pattern, Tuple
import logging
import re
import warnings

import pandas as pd

# Configure module logger
logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1)

_DMY_TIME = re.compile(
    r'(\d{1,2})\.(\d{1,2})\.(\d{4}),?\s+(\d{1,2}):(\d{1,2})(?::(\d{1,2}))?'
)
_DMY = re.compile(r'(\d{1,2})\.(\d{1,2})\.(\d{4})')
_YMD_TIME = re.compile(
    r'(\d{4})-(\d{1,2})-(\d{1,2})[\sT]+(\d{1,2}):(\d{1,2})(?::(\d{1,2}))?'
)
_YMD = re.compile(r'(\d{4})-(\d{1,2})-(\d{1,2})')

_HAS_DIGIT = re.compile(r'\d')

# A time followed by "Z" or a numeric UTC offset
_UTC_OFFSET = re.compile(r'\d:\d{2}(?::\d{2})?(?:\.\d+)?\s*(?:Z|[+-]\d{2}:?\d{2})$')


def _from_day_first(groups: Tuple[Optional[str], ...]) -> datetime:
    day, month, year = groups[:3]
    hour, minute, second = (groups[3:] + (None, None, None))[:3]
    return datetime(
        int(year), int(month), int(day),
        int(hour or 0), int(minute or 0), int(second or 0),
    )


def _from_year_first(groups: Tuple[Optional[str], ...]) -> datetime:
    year, month, day = groups[:3]
    hour, minute, second = (groups[3:] + (None, None, None))[:3]
    return datetime(
        int(year), int(month), int(day),
        int(hour or 0), int(minute or 0), int(second or 0),
    )


_FORMATS: List[Tuple[Pattern[str], Callable[[Tuple[Optional[str], ...]], datetime]]] = [
    (_DMY_TIME, _from_day_first),
    (_DMY, _from_day_first),
    (_YMD_TIME, _from_year_first),
    (_YMD, _from_year_first),
]


def _parse_generic(text: str) -> Optional[datetime]:
    # Words like "now" or "today" are not timestamps
    if not _HAS_DIGIT.search(text):
        return None

    try:
        with warnings.catch_warnings():
            warnings.simplefilter('ignore')
            parsed = pd.to_datetime(text, errors='coerce', dayfirst=True)
    except (ValueError, TypeError, OverflowError):
        return None

    if parsed is None or pd.isna(parsed):
        return None

    logger.debug(f"Timestamp {text!r} parsed by the generic fallback")
    result = parsed.to_pydatetime()
    if result.tzinfo is not None:
        result = result.astimezone(timezone.utc).replace(tzinfo=None)
    return result


def parse_timestamp(text: Optional[str]) -> Optional[datetime]:
    """
    Parse a feed timestamp into a naive datetime.

    Args:
        text: Raw cell text. None and blank strings are accepted.

    Returns:
        The parsed datetime, or None when no format yields a valid date.

    Example:
        >>> parse_timestamp("05.03.2024 14:30:00")
        datetime.datetime(2024, 3, 5, 14, 30)
        >>> parse_timestamp("not a date") is None
        True
    """
    if text is None:
        return None

    cleaned = str(text).strip()
    if not cleaned:
        return None

    # The fixed formats would drop the offset, the generic parser converts to UTC
    if _UTC_OFFSET.search(cleaned):
        return _parse_generic(cleaned)

    for pattern, build in _FORMATS:
        match = pattern.search(cleaned)
        if match is None:
            continue
        try:
            return build(match.groups())
        except ValueError:
            # Matched the shape but not a real calendar date (e.g. 31.02.2024)
            continue

    return _parse_generic(cleaned)


def parse_timestamp_or_epoch(text: Optional[str]) -> datetime:
    """Parse a timestamp, using 1970-01-01 for unparsable text so it sorts last."""
    parsed = parse_timestamp(text)
    return parsed if parsed is not None else EPOCH

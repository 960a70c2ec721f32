"""
Tabular Source Reader and Field Mapping

This module turns the CSV exports of the three table feeds into typed records.
It is the only place in the service that knows what a source column header
means; everything downstream works with ViewEvent, UserProfile and
CampaignRecord instances.

Two steps:
1. parse_delimited: delimited text -> ordered RawRow dicts (header -> cell text)
2. map_view_event / map_user_profile / map_campaign_record: RawRow -> typed record

Key Features:
- Quoted fields, embedded delimiters and embedded newlines handled by pandas
- Ragged lines padded or truncated to the header width instead of failing
- Stray or unterminated quotes tolerated instead of failing the load
- Blank lines skipped, cells and headers trimmed
- Missing columns map to "" and unparsable numbers map to 0 (coerce_int);
  a malformed row never aborts a load
"""

from io import StringIO
from typing import Any, Dict, Iterable, List, Optional
import csv
import logging
import math
import re
import warnings

import pandas as pd

from sms_insights.models.schemas import (
    RawRow,
    ViewEvent,
    UserProfile,
    CampaignRecord,
)

# Configure module logger
logger = logging.getLogger(__name__)

# =============================================================================
# CONSTANTS - Source Column Headers
# =============================================================================

EVENT_COLUMNS: Dict[str, str] = {
    'timestamp': 'Дата и время',
    'phoneRaw': 'Номер телефона (utm_medium)',
    'contentCategory': 'Тип контента',
    'videoName': 'Название видео',
    'viewDurationSeconds': 'Время сек',
    'viewPercent': '% просмотра',
    'sessionId': 'SessionID',
    'distributionId': 'Тип дистрибуции',
    'abGroupTag': 'Доп сведения (utm_test)',
}

DIRECTORY_COLUMNS: Dict[str, str] = {
    'phoneRaw': 'Телефон',
    'fullName': 'ФИО',
    'specialty': 'Специальность',
    'workplace': 'Место работы',
    'district': 'Район',
}

CAMPAIGN_COLUMNS: Dict[str, str] = {
    'sourceLabel': 'Название таблицы (Источник)',
    'distributionId': 'ID дистрибуции',
    'abGroupTag': 'Группа A/B',
    'campaignName': 'Название кампании',
    'smsText': 'Текст SMS',
    'contactsSent': 'Кол-во обычных контактов',
    'timestamp': 'Дата и время',
}

# Leading optional sign followed by digits, the rest of the cell is ignored
_LEADING_INT_PATTERN = re.compile(r'^\s*([+-]?\d+)')


# =============================================================================
# Numeric Coercion
# =============================================================================


def coerce_int(value: Any) -> int:
    """
    Convert a cell to an integer, defaulting to 0.

    The leading integer of the text is used, so "95 сек" gives 95 and "12.7"
    gives 12. Empty, missing or non-numeric cells give 0.

    Args:
        value: Cell content, usually a string; ints pass through and floats
            are truncated.

    Returns:
        The parsed integer, or 0 when nothing numeric leads the cell.

    Example:
        >>> coerce_int("  42 ")
        42
        >>> coerce_int("n/a")
        0
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0

    match = _LEADING_INT_PATTERN.match(str(value))
    if match is None:
        return 0
    return int(match.group(1))


def _cell(row: RawRow, column: str) -> str:
    value = row.get(column)
    if value is None:
        return ''
    return str(value).strip()


# =============================================================================
# Delimited Text Parsing
# =============================================================================


def _read_frame(text: str, delimiter: str, quoting: int = csv.QUOTE_MINIMAL) -> pd.DataFrame:
    # index_col=False keeps over-long lines from turning the first column into
    # an index; their extra fields are dropped with a ParserWarning
    with warnings.catch_warnings():
        warnings.simplefilter('ignore', pd.errors.ParserWarning)
        return pd.read_csv(
            StringIO(text),
            sep=delimiter,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            index_col=False,
            quoting=quoting,
        )


def parse_delimited(text: Optional[str], delimiter: str = ',') -> List[Dict[str, str]]:
    """
    Parse delimited text into ordered rows keyed by header.

    The first non-blank line is the header. Every following non-blank line
    becomes one row; short lines are padded with "" and long lines are
    truncated to the header width.

    A stray quote inside a field is kept as part of the cell. A quote left
    open until the end of the body makes the whole body re-read with quoting
    disabled, in which case quote characters stay in the cells verbatim.

    Args:
        text: Full CSV export body.
        delimiter: Field separator (default ",").

    Returns:
        List of {header: cell} dicts in source order. Empty input, or a
        header with no data lines, gives an empty list.
    """
    if not text or not text.strip():
        return []

    text = text.lstrip('\ufeff')

    try:
        df = _read_frame(text, delimiter)
    except pd.errors.EmptyDataError:
        return []
    except pd.errors.ParserError as e:
        logger.warning(f"Quoted parse failed ({e}); re-reading with quoting disabled")
        df = _read_frame(text, delimiter, quoting=csv.QUOTE_NONE)

    width = len(df.columns)

    df.columns = [str(column).strip() for column in df.columns]
    df = df.fillna('').map(lambda value: value.strip() if isinstance(value, str) else '')

    # Rows made only of delimiters carry no data
    df = df[(df != '').any(axis=1)]

    rows = df.to_dict(orient='records')
    logger.debug(f"Parsed {len(rows)} rows with {width} columns")
    return rows


# =============================================================================
# Field Mapping (RawRow -> typed record)
# =============================================================================


def map_view_event(row: RawRow) -> ViewEvent:
    """
    Map one event log row to a ViewEvent.

    viewDurationSeconds is clamped at 0; viewPercent is passed through as-is,
    out-of-range values included.
    """
    return ViewEvent(
        timestamp=_cell(row, EVENT_COLUMNS['timestamp']),
        phoneRaw=_cell(row, EVENT_COLUMNS['phoneRaw']),
        contentCategory=_cell(row, EVENT_COLUMNS['contentCategory']),
        videoName=_cell(row, EVENT_COLUMNS['videoName']),
        viewDurationSeconds=max(0, coerce_int(row.get(EVENT_COLUMNS['viewDurationSeconds']))),
        viewPercent=coerce_int(row.get(EVENT_COLUMNS['viewPercent'])),
        sessionId=_cell(row, EVENT_COLUMNS['sessionId']),
        distributionId=_cell(row, EVENT_COLUMNS['distributionId']),
        abGroupTag=_cell(row, EVENT_COLUMNS['abGroupTag']),
    )


def map_user_profile(row: RawRow) -> UserProfile:
    """Map one user directory row to a UserProfile."""
    return UserProfile(
        **{field: _cell(row, column) for field, column in DIRECTORY_COLUMNS.items()}
    )


def map_campaign_record(row: RawRow) -> CampaignRecord:
    """Map one campaign log row to a CampaignRecord; contactsSent is clamped at 0."""
    return CampaignRecord(
        sourceLabel=_cell(row, CAMPAIGN_COLUMNS['sourceLabel']),
        distributionId=_cell(row, CAMPAIGN_COLUMNS['distributionId']),
        abGroupTag=_cell(row, CAMPAIGN_COLUMNS['abGroupTag']),
        campaignName=_cell(row, CAMPAIGN_COLUMNS['campaignName']),
        smsText=_cell(row, CAMPAIGN_COLUMNS['smsText']),
        contactsSent=max(0, coerce_int(row.get(CAMPAIGN_COLUMNS['contactsSent']))),
        timestamp=_cell(row, CAMPAIGN_COLUMNS['timestamp']),
    )


def map_view_events(rows: Iterable[RawRow]) -> List[ViewEvent]:
    return [map_view_event(row) for row in rows]


def map_user_profiles(rows: Iterable[RawRow]) -> List[UserProfile]:
    return [map_user_profile(row) for row in rows]


def map_campaign_records(rows: Iterable[RawRow]) -> List[CampaignRecord]:
    return [map_campaign_record(row) for row in rows]

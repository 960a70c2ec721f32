"""
Spreadsheet Export

Writes the view log and the rollups of one category to an .xlsx workbook with
openpyxl. The export reads the reconciled structures and never modifies them.

Sheets:
- Лог просмотров: reconciled view log, newest first
- Кампании: campaign statistics in presentation order
- Клиенты: client statistics, most active first
"""

from datetime import datetime
from pathlib import Path
from typing import Any, List, Sequence, Union
import io
import logging

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from sms_insights.models.schemas import CategoryReport, EnrichedViewEvent
from sms_insights.services.aggregation import format_duration

# Configure module logger
logger = logging.getLogger(__name__)

# =============================================================================
# Styles
# =============================================================================

HEADER_FILL = PatternFill(start_color="4F5BD5", end_color="4F5BD5", fill_type="solid")
HEADER_FONT = Font(bold=True, color="FFFFFF")

MAX_COLUMN_WIDTH = 50
DATE_FORMAT = '%d.%m.%Y %H:%M'

VIEW_LOG_SHEET = 'Лог просмотров'
CAMPAIGNS_SHEET = 'Кампании'
CLIENTS_SHEET = 'Клиенты'

VIEW_LOG_HEADERS: List[str] = [
    'Дата и время',
    'ФИО',
    'Специальность',
    'Место работы',
    'Район',
    'Название кампании',
    'Название видео',
    'Группа A/B',
    'Текст SMS',
    'Время',
    '% просмотра',
]

CAMPAIGN_HEADERS: List[str] = [
    'Название кампании',
    'Дата и время',
    'Отправлено СМС',
    'Просмотров СМС',
    'Просмотров страниц',
    'Конверсия, %',
]

CLIENT_HEADERS: List[str] = [
    'ФИО',
    'Специальность',
    'Место работы',
    'Район',
    'Просмотров страниц',
    'Время просмотров',
]


# =============================================================================
# Main Output Function
# =============================================================================


def write_report_xlsx(
    output: Union[io.BytesIO, Path],
    views: Sequence[EnrichedViewEvent],
    report: CategoryReport,
) -> None:
    """
    Write the view log and rollups of one category to Excel.

    Args:
        output: In-memory buffer (rewound after writing) or file path.
        views: View log rows, already in display order.
        report: Category report providing campaign and client statistics.
    """
    wb = Workbook()
    wb.remove(wb.active)

    _write_sheet(wb, VIEW_LOG_SHEET, VIEW_LOG_HEADERS, [_view_row(v) for v in views])
    _write_sheet(wb, CAMPAIGNS_SHEET, CAMPAIGN_HEADERS, [
        [
            c.campaignName,
            _format_date(c.latestTimestamp),
            c.smsSent,
            c.smsViewedEstimate,
            c.pageViews,
            c.conversionRate if c.conversionRate is not None else '',
        ]
        for c in report.campaigns
    ])
    _write_sheet(wb, CLIENTS_SHEET, CLIENT_HEADERS, [
        [
            c.fullName,
            c.specialty,
            c.workplace,
            c.district,
            c.pageViews,
            format_duration(c.totalViewSeconds),
        ]
        for c in report.clients
    ])

    if isinstance(output, io.BytesIO):
        wb.save(output)
        output.seek(0)
    else:
        wb.save(str(output))

    logger.info(
        f"Exported {len(views)} views, {len(report.campaigns)} campaigns and "
        f"{len(report.clients)} clients for category {report.category!r}"
    )


# =============================================================================
# Helpers
# =============================================================================


def _format_date(value: Union[datetime, None]) -> str:
    return value.strftime(DATE_FORMAT) if value is not None else ''


def _view_row(event: EnrichedViewEvent) -> List[Any]:
    return [
        event.timestamp,
        event.fullName,
        event.specialty,
        event.workplace,
        event.district,
        event.campaignName,
        event.videoName,
        event.abGroupTag,
        event.smsText,
        format_duration(event.viewDurationSeconds),
        event.viewPercent,
    ]


def _write_sheet(
    wb: Workbook,
    title: str,
    headers: Sequence[str],
    rows: Sequence[Sequence[Any]],
) -> Worksheet:
    ws = wb.create_sheet(title)

    for col, header in enumerate(headers, 1):
        cell = ws.cell(row=1, column=col, value=header)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL

    for row_index, values in enumerate(rows, 2):
        for col, value in enumerate(values, 1):
            _write_cell(ws, row_index, col, value)

    ws.freeze_panes = 'A2'
    _auto_width(ws)
    return ws


def _write_cell(ws: Worksheet, row: int, column: int, value: Any) -> None:
    if not isinstance(value, str):
        ws.cell(row=row, column=column, value=value)
        return

    # Control characters are not allowed in the sheet XML
    cell = ws.cell(row=row, column=column, value=ILLEGAL_CHARACTERS_RE.sub('', value))
    # Source text is never a formula
    if cell.data_type == 'f':
        cell.data_type = 's'


def _auto_width(ws: Worksheet) -> None:
    """Fit columns to their longest value, capped at MAX_COLUMN_WIDTH."""
    for column in ws.columns:
        column_letter = get_column_letter(column[0].column)
        max_length = max((len(str(cell.value)) for cell in column if cell.value is not None), default=0)
        ws.column_dimensions[column_letter].width = min(max_length + 2, MAX_COLUMN_WIDTH)

"""
Test Module for the Spreadsheet Export.

Validates:
- Sheet names, headers and header styling
- View log, campaign and client rows
- Writing to an in-memory buffer and to a file path
- Control characters and formula-like text in source cells
"""

import io

from openpyxl import load_workbook

from sms_insights.services.export import (
    CAMPAIGN_HEADERS,
    CLIENT_HEADERS,
    VIEW_LOG_HEADERS,
    write_report_xlsx,
)
from sms_insights.services.query import build_category_report, view_log
from sms_insights.tests.conftest import make_enriched


def _export(result, category, estimator, config, output=None):
    output = output if output is not None else io.BytesIO()
    write_report_xlsx(
        output,
        view_log(result, category),
        build_category_report(result, category, estimator, config),
    )
    return output


class TestWriteReportXlsx:
    """Tests for write_report_xlsx."""

    def test_sheets_and_headers(self, sample_result, estimator, recon_config):
        wb = load_workbook(_export(sample_result, 'Донормил', estimator, recon_config))

        assert wb.sheetnames == ['Лог просмотров', 'Кампании', 'Клиенты']
        for name, headers in zip(wb.sheetnames, [VIEW_LOG_HEADERS, CAMPAIGN_HEADERS, CLIENT_HEADERS]):
            ws = wb[name]
            assert [cell.value for cell in ws[1]] == headers
            assert ws['A1'].font.bold
            assert ws.freeze_panes == 'A2'

    def test_view_log_rows_newest_first(self, sample_result, estimator, recon_config):
        ws = load_workbook(_export(sample_result, 'Донормил', estimator, recon_config))['Лог просмотров']

        assert ws.max_row == 4
        assert ws['A2'].value == '2024-03-07 20:00:00'
        assert ws['B2'].value == 'Иванов Иван Иванович'
        assert ws['J2'].value == '00:01:00'
        assert ws['K2'].value == 100

    def test_campaign_rows(self, sample_result, estimator, recon_config):
        ws = load_workbook(_export(sample_result, 'Донормил', estimator, recon_config))['Кампании']

        assert [ws.cell(row=r, column=1).value for r in range(2, 5)] == ['Y', 'X', 'Z']
        assert ws['B2'].value == '03.03.2024 10:00'
        assert [ws['C2'].value, ws['D2'].value, ws['E2'].value, ws['F2'].value] == [100, 5, 1, 1.0]

    def test_client_rows(self, sample_result, estimator, recon_config):
        ws = load_workbook(_export(sample_result, 'Донормил', estimator, recon_config))['Клиенты']

        assert ws.max_row == 2
        assert ws['A2'].value == 'Иванов Иван Иванович'
        assert ws['E2'].value == 2
        assert ws['F2'].value == '00:02:00'

    def test_column_width_capped(self, sample_result, estimator, recon_config):
        ws = load_workbook(_export(sample_result, None, estimator, recon_config))['Лог просмотров']

        widths = [dim.width for dim in ws.column_dimensions.values() if dim.width]
        assert widths
        assert max(widths) <= 50

    def test_buffer_rewound(self, sample_result, estimator, recon_config):
        buffer = _export(sample_result, 'Пимафуцин', estimator, recon_config)

        assert buffer.tell() == 0
        assert buffer.read(2) == b'PK'

    def test_write_to_path(self, sample_result, estimator, recon_config, tmp_path):
        path = tmp_path / 'report.xlsx'

        _export(sample_result, None, estimator, recon_config, output=path)

        assert load_workbook(path)['Лог просмотров'].max_row == 5

    def test_control_characters_stripped(self, sample_result, estimator, recon_config):
        buffer = io.BytesIO()
        write_report_xlsx(
            buffer,
            [make_enriched(fullName='A\x0bB')],
            build_category_report(sample_result, 'Донормил', estimator, recon_config),
        )

        assert load_workbook(buffer)['Лог просмотров']['B2'].value == 'AB'

    def test_formula_like_text_written_as_text(self, sample_result, estimator, recon_config):
        buffer = io.BytesIO()
        write_report_xlsx(
            buffer,
            [make_enriched(videoName='=HYPERLINK("http://x","y")')],
            build_category_report(sample_result, 'Донормил', estimator, recon_config),
        )

        cell = load_workbook(buffer)['Лог просмотров']['G2']
        assert cell.data_type == 's'
        assert cell.value == '=HYPERLINK("http://x","y")'

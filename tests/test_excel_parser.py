"""
Unit tests for the ExcelParser.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest
import xlrd
from xlrd.sheet import Cell

from financial_ingest.excel_parser import ExcelParser, _format_number
from financial_ingest.exceptions import ParseError
from financial_ingest.schema import FormatKind


@pytest.fixture
def parser() -> ExcelParser:
    return ExcelParser()


# ======================================================================
# Cell stringification
# ======================================================================

class TestCellText:
    def test_dates_render_as_iso(self, parser: ExcelParser, xlsx_builder) -> None:
        data = xlsx_builder([
            ["Date", "Posted"],
            [datetime(2024, 3, 5), datetime(2024, 3, 5, 12, 0)],
        ])
        row = parser.parse_xlsx(data)[0]
        assert row["Date"] == "2024-03-05"
        assert row["Posted"] == "2024-03-05 12:00:00"

    def test_plain_date_object(self, parser: ExcelParser, xlsx_builder) -> None:
        data = xlsx_builder([["Date"], [date(2023, 12, 31)]])
        assert parser.parse_xlsx(data)[0]["Date"] == "2023-12-31"

    def test_numbers_without_exponent(self, parser: ExcelParser, xlsx_builder) -> None:
        data = xlsx_builder([["A", "B", "C"], [1234.5, 1e20, 100]])
        row = parser.parse_xlsx(data)[0]
        assert row == {"A": "1234.5", "B": "100000000000000000000", "C": "100"}

    def test_formula_text_and_boolean(self, parser: ExcelParser, xlsx_builder) -> None:
        data = xlsx_builder([["Total", "Cleared"], ["=SUM(B2:B3)", True]])
        row = parser.parse_xlsx(data)[0]
        assert row["Total"] == "SUM(B2:B3)"
        assert row["Cleared"] == "true"

    def test_text_verbatim(self, parser: ExcelParser, xlsx_builder) -> None:
        data = xlsx_builder([["Memo"], ["Office chairs"]])
        assert parser.parse_xlsx(data)[0]["Memo"] == "Office chairs"

    def test_format_number_helper(self) -> None:
        assert _format_number(0.1) == "0.1"
        assert _format_number(-3) == "-3"
        assert _format_number(1.5e-7) == "0.00000015"


# ======================================================================
# Sheet layout
# ======================================================================

class TestSheetLayout:
    def test_header_and_rows(self, parser: ExcelParser, xlsx_builder) -> None:
        data = xlsx_builder([
            ["Date", "Amount"],
            ["2024-01-01", 10],
            ["2024-01-02", 20],
        ])
        rows = parser.parse_xlsx(data)
        assert rows == [
            {"Date": "2024-01-01", "Amount": "10"},
            {"Date": "2024-01-02", "Amount": "20"},
        ]

    def test_gap_rows_skipped(self, parser: ExcelParser, xlsx_builder) -> None:
        data = xlsx_builder([["Amount"], [1], [], [None], [2]])
        assert [r["Amount"] for r in parser.parse_xlsx(data)] == ["1", "2"]

    def test_short_rows_padded(self, parser: ExcelParser, xlsx_builder) -> None:
        data = xlsx_builder([["A", "B", "C"], ["x"]])
        assert parser.parse_xlsx(data) == [{"A": "x", "B": "", "C": ""}]

    def test_only_first_sheet_read(self, parser: ExcelParser, xlsx_builder) -> None:
        data = xlsx_builder([["Amount"], [5]], extra_sheets=["Second"])
        assert parser.parse_xlsx(data) == [{"Amount": "5"}]

    def test_header_only(self, parser: ExcelParser, xlsx_builder) -> None:
        assert parser.parse_xlsx(xlsx_builder([["Date", "Amount"]])) == []

    def test_blank_workbook(self, parser: ExcelParser, xlsx_builder) -> None:
        with pytest.raises(ParseError):
            parser.parse_xlsx(xlsx_builder([]))

    def test_dispatch_defaults_to_xlsx(self, parser: ExcelParser, xlsx_builder) -> None:
        data = xlsx_builder([["Amount"], [7]])
        assert parser.parse(data) == [{"Amount": "7"}]


# ======================================================================
# Legacy .xls workbooks
# ======================================================================

class _Sheet:
    name = "Sheet1"

    def __init__(self, rows):
        self._rows = rows
        self.nrows = len(rows)
        self.ncols = max((len(r) for r in rows), default=0)

    def row(self, index):
        return self._rows[index]


class _Book:
    datemode = 0

    def __init__(self, rows):
        self._sheet = _Sheet(rows)
        self.released = False

    def sheet_by_index(self, index):
        return self._sheet

    def release_resources(self):
        self.released = True


def _text(value):
    return Cell(xlrd.XL_CELL_TEXT, value)


_EMPTY = Cell(xlrd.XL_CELL_EMPTY, "")


@pytest.fixture
def xls_book(monkeypatch):
    """Serve a fixed legacy workbook from ``xlrd.open_workbook``."""
    book = _Book([
        [_text("Date"), _text("Posted"), _text("Amount"), _text("Cleared"), _text("Memo")],
        [
            Cell(xlrd.XL_CELL_DATE, 45356.0),
            Cell(xlrd.XL_CELL_DATE, 45356.5),
            Cell(xlrd.XL_CELL_NUMBER, 100.0),
            Cell(xlrd.XL_CELL_BOOLEAN, 1),
            _text("Office chairs"),
        ],
        [_EMPTY, _EMPTY, _EMPTY, _EMPTY, _EMPTY],
        [
            _EMPTY,
            Cell(xlrd.XL_CELL_ERROR, 0x07),
            Cell(xlrd.XL_CELL_NUMBER, -1234.5),
            Cell(xlrd.XL_CELL_BOOLEAN, 0),
        ],
    ])
    calls = []

    def open_workbook(*args, **kwargs):
        calls.append(kwargs)
        return book

    monkeypatch.setattr(xlrd, "open_workbook", open_workbook)
    book.calls = calls
    return book


class TestLegacyWorkbook:
    def test_cells_stringified(self, parser: ExcelParser, xls_book) -> None:
        rows = parser.parse_xls(b"xls bytes")
        assert rows == [
            {
                "Date": "2024-03-05",
                "Posted": "2024-03-05 12:00:00",
                "Amount": "100",
                "Cleared": "true",
                "Memo": "Office chairs",
            },
            {
                "Date": "",
                "Posted": "",
                "Amount": "-1234.5",
                "Cleared": "false",
                "Memo": "",
            },
        ]

    def test_payload_passed_as_contents(self, parser: ExcelParser, xls_book) -> None:
        parser.parse(b"xls bytes", FormatKind.EXCEL_XLS)
        assert xls_book.calls == [{"file_contents": b"xls bytes"}]
        assert xls_book.released

    def test_pipeline_routes_by_media_type(self, pipeline, xls_book) -> None:
        records = pipeline.process_file(
            b"xls bytes", "export.bin", "application/vnd.ms-excel"
        )
        assert [r.date for r in records] == [date(2024, 3, 5), None]
        assert records[0].amount == 100
        assert records[1].amount == Decimal("-1234.5")
        assert records[0].description == "Office chairs"


# ======================================================================
# Unreadable input
# ======================================================================

class TestUnreadable:
    def test_garbage_xlsx(self, parser: ExcelParser) -> None:
        with pytest.raises(ParseError, match="Cannot open Excel workbook"):
            parser.parse_xlsx(b"definitely not a workbook")

    def test_garbage_xls(self, parser: ExcelParser) -> None:
        with pytest.raises(ParseError) as exc_info:
            parser.parse(b"definitely not a workbook", FormatKind.EXCEL_XLS)
        assert exc_info.value.format_label == "EXCEL_XLS"

    def test_non_spreadsheet_kind(self, parser: ExcelParser) -> None:
        with pytest.raises(ParseError, match="Not a spreadsheet format"):
            parser.parse(b"a,b", FormatKind.CSV)

"""
Excel Workbook Parser.

Reads the first worksheet of a workbook as a header row followed by data
rows, producing one raw field map per data row.

* Modern ``.xlsx`` workbooks are read with ``openpyxl``; legacy ``.xls``
  workbooks with ``xlrd``.
* Row 0 is the header.  A missing or blank header row is a ``ParseError``.
* Rows with no populated cell (gap rows) are skipped.  Rows shorter than the
  header are padded with ``""``.

Cell stringification
--------------------
* text        -> verbatim
* date number -> ISO ``YYYY-MM-DD`` (or ISO date-time when a time part exists)
* number      -> plain decimal string, never in exponent form
* boolean     -> ``"true"`` / ``"false"``
* formula     -> the formula text, without the leading ``=``
* anything else (blank, error) -> ``""``
"""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from io import BytesIO
from typing import Any, List, Sequence
from zipfile import BadZipFile

import openpyxl
import xlrd
from openpyxl.utils.exceptions import InvalidFileException
from xlrd.compdoc import CompDocError

from financial_ingest.exceptions import ParseError
from financial_ingest.logging_setup import get_logger
from financial_ingest.schema import FormatKind, RawFieldMap

logger = get_logger("excel_parser")


def _format_number(val: Any) -> str:
    """Render an int / float without scientific notation."""
    if isinstance(val, int):
        return str(val)
    return format(Decimal(repr(val)), "f")


def _format_temporal(val: Any) -> str:
    """Render a date-formatted cell value as ISO text."""
    if isinstance(val, datetime):
        if val.time() == time(0, 0):
            return val.date().isoformat()
        return val.isoformat(sep=" ")
    if isinstance(val, (date, time)):
        return val.isoformat()
    return str(val)


def _xlsx_cell_text(cell: Any) -> str:
    """Stringify an openpyxl cell according to its data type."""
    if cell is None:
        return ""
    val = cell.value
    if val is None:
        return ""

    kind = getattr(cell, "data_type", None)
    if kind == "f":
        # ArrayFormula objects keep their text on ``.text``
        text = val if isinstance(val, str) else getattr(val, "text", "") or ""
        return text[1:] if text.startswith("=") else text
    if kind == "b" or isinstance(val, bool):
        return "true" if val else "false"
    if kind == "d" or isinstance(val, (datetime, date, time)):
        return _format_temporal(val)
    if kind == "n" and isinstance(val, (int, float)):
        return _format_number(val)
    if kind in ("s", "inlineStr") or isinstance(val, str):
        return str(val)
    return ""


def _xls_cell_text(cell: Any, datemode: int) -> str:
    """Stringify an xlrd cell according to its cell type."""
    ctype = cell.ctype
    if ctype == xlrd.XL_CELL_TEXT:
        return cell.value
    if ctype == xlrd.XL_CELL_DATE:
        try:
            return _format_temporal(xlrd.xldate_as_datetime(cell.value, datemode))
        except (xlrd.xldate.XLDateError, ValueError, OverflowError):
            return _format_number(cell.value)
    if ctype == xlrd.XL_CELL_NUMBER:
        val = cell.value
        return _format_number(int(val) if val.is_integer() else val)
    if ctype == xlrd.XL_CELL_BOOLEAN:
        return "true" if cell.value else "false"
    return ""


def _trim_headers(headers: List[str]) -> List[str]:
    """Drop trailing blank header cells (unused columns at the sheet edge)."""
    while headers and not headers[-1].strip():
        headers.pop()
    return headers


def _build_rows(
    headers: Sequence[str], rows: Sequence[Sequence[str]]
) -> List[RawFieldMap]:
    result: List[RawFieldMap] = []
    for values in rows:
        if not any(values):
            continue
        fields: RawFieldMap = {}
        for j, header in enumerate(headers):
            fields[header] = values[j] if j < len(values) else ""
        result.append(fields)
    return result


class ExcelParser:
    """Parse the first worksheet of an Excel workbook into raw field maps."""

    def parse(
        self, data: bytes, kind: FormatKind = FormatKind.EXCEL_XLSX
    ) -> List[RawFieldMap]:
        """Dispatch on workbook flavour.

        Raises
        ------
        ParseError
            If the workbook cannot be opened or has no header row.
        """
        if not kind.is_spreadsheet:
            raise ParseError(
                f"Not a spreadsheet format: {kind.value}", format_label=kind.value
            )
        if kind is FormatKind.EXCEL_XLS:
            return self.parse_xls(data)
        return self.parse_xlsx(data)

    def parse_xlsx(self, data: bytes) -> List[RawFieldMap]:
        try:
            wb = openpyxl.load_workbook(BytesIO(data), data_only=False)
        except (BadZipFile, InvalidFileException, KeyError, OSError, ValueError) as exc:
            raise ParseError(
                f"Cannot open Excel workbook: {exc}", format_label="EXCEL_XLSX"
            ) from exc

        try:
            ws = wb.worksheets[0]
            logger.info(
                "Parsing sheet: %s (%d rows × %d cols)",
                ws.title, ws.max_row, ws.max_column,
            )
            grid: List[List[str]] = [
                [_xlsx_cell_text(cell) for cell in row] for row in ws.iter_rows()
            ]
        finally:
            wb.close()

        return self._from_grid(grid, "EXCEL_XLSX")

    def parse_xls(self, data: bytes) -> List[RawFieldMap]:
        try:
            book = xlrd.open_workbook(file_contents=data)
        except (xlrd.XLRDError, CompDocError, OSError, ValueError) as exc:
            raise ParseError(
                f"Cannot open Excel workbook: {exc}", format_label="EXCEL_XLS"
            ) from exc

        try:
            sheet = book.sheet_by_index(0)
            logger.info(
                "Parsing sheet: %s (%d rows × %d cols)",
                sheet.name, sheet.nrows, sheet.ncols,
            )
            grid = [
                [_xls_cell_text(cell, book.datemode) for cell in sheet.row(i)]
                for i in range(sheet.nrows)
            ]
        finally:
            book.release_resources()

        return self._from_grid(grid, "EXCEL_XLS")

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _from_grid(grid: List[List[str]], format_label: str) -> List[RawFieldMap]:
        if not grid:
            raise ParseError("Excel file is empty", format_label=format_label)

        headers = _trim_headers(list(grid[0]))
        if not headers:
            raise ParseError("Excel file has no header row", format_label=format_label)

        records = _build_rows(headers, grid[1:])
        logger.info(
            "Extracted %d rows (%d columns) from first sheet",
            len(records), len(headers),
        )
        return records

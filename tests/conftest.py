"""
Shared fixtures: in-memory workbook and archive builders.
"""

from __future__ import annotations

import logging
import zipfile
from io import BytesIO
from typing import Any, Callable, Dict, Iterable, Sequence

import openpyxl
import pytest

from financial_ingest.config import PipelineConfig
from financial_ingest.pipeline import FinancialIngestPipeline


def build_xlsx(
    rows: Sequence[Sequence[Any]],
    extra_sheets: Iterable[str] = (),
) -> bytes:
    """Write ``rows`` into the first sheet of a new workbook."""
    wb = openpyxl.Workbook()
    ws = wb.active
    for row in rows:
        ws.append(list(row))
    for title in extra_sheets:
        other = wb.create_sheet(title)
        other.append(["Ignored", "Sheet"])
        other.append(["x", "y"])
    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()


def build_zip(entries: Dict[str, bytes], directories: Iterable[str] = ()) -> bytes:
    """Write a ZIP archive; entries keep insertion order."""
    buf = BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for directory in directories:
            zf.writestr(directory.rstrip("/") + "/", b"")
        for name, data in entries.items():
            zf.writestr(name, data)
    return buf.getvalue()


CSV_TRANSACTIONS = (
    b"Date,Description,Amount,Category\n"
    b"2024-03-05,Coffee,$4.50,Food\n"
    b"03/06/2024,Rent,\"$1,200.00\",Housing\n"
)


@pytest.fixture
def xlsx_builder() -> Callable[..., bytes]:
    return build_xlsx


@pytest.fixture
def zip_builder() -> Callable[..., bytes]:
    return build_zip


@pytest.fixture
def csv_transactions() -> bytes:
    return CSV_TRANSACTIONS


@pytest.fixture
def pipeline() -> FinancialIngestPipeline:
    return FinancialIngestPipeline(config=PipelineConfig(log_level=logging.WARNING))


"""
Unit tests for the ArchiveProcessor.
"""

from __future__ import annotations

import struct
import zipfile
from decimal import Decimal
from io import BytesIO

import pytest

from financial_ingest.archive import NESTED_ARCHIVE_MESSAGE, ArchiveProcessor
from financial_ingest.exceptions import ArchiveError


@pytest.fixture
def processor() -> ArchiveProcessor:
    return ArchiveProcessor()


# ======================================================================
# Happy path
# ======================================================================

class TestProcessArchive:
    def test_mixed_formats(self, processor, zip_builder, xlsx_builder, csv_transactions) -> None:
        data = zip_builder({
            "march.csv": csv_transactions,
            "april.json": b'[{"date": "2024-04-01", "amount": "-15.25"}]',
            "may.xlsx": xlsx_builder([["Date", "Amount"], ["2024-05-01", 99]]),
        })
        result = processor.process_archive(data)

        assert result.total_files == 3
        assert result.successfully_processed_files == 3
        assert result.failed_files == 0
        assert [i.file_type for i in result.file_infos] == ["CSV", "JSON", "EXCEL_XLSX"]
        assert [i.record_count for i in result.file_infos] == [2, 1, 1]
        assert [r.amount for r in result.all_records] == [
            Decimal("4.50"), Decimal("1200.00"), Decimal("-15.25"), Decimal("99"),
        ]

    def test_records_grouped_by_entry(self, processor, zip_builder, csv_transactions) -> None:
        data = zip_builder({
            "a.csv": csv_transactions,
            "broken.json": b"{",
            "b.txt": b"Date|Amount\n2024-02-02|3\n",
        })
        groups = [
            (info.filename, len(records))
            for info, records in processor.process_archive(data).records_by_file()
        ]
        assert groups == [("a.csv", 2), ("b.txt", 1)]

    def test_directories_not_counted(self, processor, zip_builder, csv_transactions) -> None:
        data = zip_builder({"reports/q1.csv": csv_transactions}, directories=["reports"])
        result = processor.process_archive(data)
        assert result.total_files == 1
        assert result.file_infos[0].filename == "reports/q1.csv"

    def test_empty_archive(self, processor, zip_builder) -> None:
        result = processor.process_archive(zip_builder({}))
        assert result.total_files == 0
        assert result.all_records == []


# ======================================================================
# Per-entry failure isolation
# ======================================================================

class TestEntryFailures:
    def test_bad_entries_do_not_abort(self, processor, zip_builder, csv_transactions) -> None:
        data = zip_builder({
            "good.csv": csv_transactions,
            "bad.json": b"{not json",
            "inner.zip": zip_builder({"x.csv": csv_transactions}),
        })
        result = processor.process_archive(data)

        assert result.total_files == 3
        assert result.successfully_processed_files == 1
        assert len(result.all_records) == 2

        good, bad, nested = result.file_infos
        assert good.processed and good.error_message is None
        assert not bad.processed
        assert "Invalid JSON" in bad.error_message
        assert bad.file_type == "JSON"
        assert nested.error_message == NESTED_ARCHIVE_MESSAGE
        assert nested.file_type == "ZIP"

    def test_unsupported_entry(self, processor, zip_builder) -> None:
        result = processor.process_archive(zip_builder({"notes.md": b"# hi"}))
        info = result.file_infos[0]
        assert not info.processed
        assert info.file_type is None
        assert info.error_message.startswith("Unsupported file format:")

    def test_entry_running_past_end_of_container(self, processor, csv_transactions) -> None:
        buf = BytesIO()
        with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_STORED) as zf:
            zf.writestr("good.csv", csv_transactions)
            zf.writestr("short.csv", csv_transactions)
        data = bytearray(buf.getvalue())

        # Claim the last entry is far larger than the bytes that follow it
        header = data.rfind(b"PK\x01\x02")
        struct.pack_into("<II", data, header + 20, 10000, 10000)

        result = processor.process_archive(bytes(data))
        good, short = result.file_infos
        assert good.processed
        assert not short.processed
        assert short.file_type == "CSV"
        assert short.error_message.startswith("Cannot read entry:")
        assert len(result.all_records) == 2

    def test_empty_entry(self, processor, zip_builder) -> None:
        result = processor.process_archive(zip_builder({"blank.csv": b""}))
        info = result.file_infos[0]
        assert not info.processed
        assert info.error_message == "CSV file is empty"

    def test_ledger_invariants(self, processor, zip_builder, csv_transactions) -> None:
        data = zip_builder({
            "a.csv": csv_transactions,
            "b.json": b"[1]",
            "c.txt": b"",
        })
        result = processor.process_archive(data)
        assert result.successfully_processed_files == sum(i.processed for i in result.file_infos)
        assert len(result.all_records) == sum(
            i.record_count for i in result.file_infos if i.processed
        )
        for info in result.file_infos:
            assert info.processed != bool(info.error_message)


# ======================================================================
# Container failures
# ======================================================================

class TestContainerFailures:
    def test_not_a_zip(self, processor) -> None:
        with pytest.raises(ArchiveError, match="Error processing ZIP file"):
            processor.process_archive(b"not a zip")

    def test_truncated_zip(self, processor, zip_builder, csv_transactions) -> None:
        data = zip_builder({"a.csv": csv_transactions})
        with pytest.raises(ArchiveError):
            processor.process_archive(data[: len(data) // 3])

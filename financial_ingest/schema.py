"""
Format catalogue and data models.

Defines the supported input formats and the typed data structures carried
through the pipeline: the normalised ``Record``, the per-entry archive
``EntryOutcome`` ledger row, and the aggregate ``ArchiveResult``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

# Ordered column label -> text value, exactly as extracted from one source row.
RawFieldMap = Dict[str, str]


# ---------------------------------------------------------------------------
# Format catalogue
# ---------------------------------------------------------------------------

class FormatKind(str, Enum):
    """
    Every input format the system can classify.

    Declaration order is the lookup order used by the classifier, so the
    first member whose MIME type or extension matches wins.
    """

    CSV = "CSV"
    EXCEL_XLSX = "EXCEL_XLSX"
    EXCEL_XLS = "EXCEL_XLS"
    JSON = "JSON"
    TEXT = "TEXT"
    ZIP = "ZIP"

    @property
    def mime_type(self) -> str:
        return _MIME_TYPES[self]

    @property
    def extension(self) -> str:
        return _EXTENSIONS[self]

    @property
    def is_spreadsheet(self) -> bool:
        return self in (FormatKind.EXCEL_XLSX, FormatKind.EXCEL_XLS)


_MIME_TYPES: Dict[FormatKind, str] = {
    FormatKind.CSV: "text/csv",
    FormatKind.EXCEL_XLSX: (
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    ),
    FormatKind.EXCEL_XLS: "application/vnd.ms-excel",
    FormatKind.JSON: "application/json",
    FormatKind.TEXT: "text/plain",
    FormatKind.ZIP: "application/zip",
}

_EXTENSIONS: Dict[FormatKind, str] = {
    FormatKind.CSV: "csv",
    FormatKind.EXCEL_XLSX: "xlsx",
    FormatKind.EXCEL_XLS: "xls",
    FormatKind.JSON: "json",
    FormatKind.TEXT: "txt",
    FormatKind.ZIP: "zip",
}

# Media types browsers and OSes use for ZIP uploads besides the canonical one.
ZIP_MEDIA_TYPES: frozenset[str] = frozenset({
    "application/zip",
    "application/x-zip-compressed",
})


# ---------------------------------------------------------------------------
# Pipeline Data Models
# ---------------------------------------------------------------------------

@dataclass
class Record:
    """One normalised row: the raw field map plus best-effort canonical slots.

    ``fields`` is the source of truth.  The canonical attributes are inferred
    by keyword heuristics and may be ``None`` when nothing matched.
    """

    fields: RawFieldMap = field(default_factory=dict)
    date: Optional[date] = None
    amount: Optional[Decimal] = None
    description: Optional[str] = None
    category: Optional[str] = None
    account: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "fields": dict(self.fields),
            "date": self.date.isoformat() if self.date else None,
            "amount": str(self.amount) if self.amount is not None else None,
            "description": self.description,
            "category": self.category,
            "account": self.account,
        }


@dataclass
class EntryOutcome:
    """Ledger row describing what happened to one archive entry."""

    filename: str
    file_type: Optional[str] = None
    record_count: int = 0
    processed: bool = False
    error_message: Optional[str] = None

    @classmethod
    def success(
        cls, filename: str, file_type: str, record_count: int
    ) -> "EntryOutcome":
        return cls(
            filename=filename,
            file_type=file_type,
            record_count=record_count,
            processed=True,
        )

    @classmethod
    def failure(
        cls, filename: str, error_message: str, file_type: Optional[str] = None
    ) -> "EntryOutcome":
        return cls(
            filename=filename,
            file_type=file_type,
            processed=False,
            error_message=error_message,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "filename": self.filename,
            "file_type": self.file_type,
            "record_count": self.record_count,
            "processed": self.processed,
            "error_message": self.error_message,
        }


@dataclass
class ArchiveResult:
    """Aggregate result of processing every entry of one archive."""

    all_records: List[Record] = field(default_factory=list)
    file_infos: List[EntryOutcome] = field(default_factory=list)
    total_files: int = 0
    successfully_processed_files: int = 0

    @property
    def failed_files(self) -> int:
        return self.total_files - self.successfully_processed_files

    def records_by_file(self) -> Iterator[Tuple[EntryOutcome, List[Record]]]:
        """Yield ``(outcome, records)`` for every processed entry.

        Records are stored flat in entry order, so each entry's slice is
        recovered from the ledger's record counts.
        """
        offset = 0
        for info in self.file_infos:
            if not info.processed:
                continue
            yield info, self.all_records[offset:offset + info.record_count]
            offset += info.record_count

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_files": self.total_files,
            "successfully_processed_files": self.successfully_processed_files,
            "file_infos": [info.to_dict() for info in self.file_infos],
            "records": [r.to_dict() for r in self.all_records],
        }


@dataclass
class ConversionResult:
    """Envelope returned to the HTTP layer for one converted upload."""

    markdown: str
    filename: str
    record_count: int
    file_type: Optional[str] = None
    status: str = "SUCCESS"
    processed_at: datetime = field(default_factory=datetime.now)
    archive: Optional[ArchiveResult] = None

    @property
    def is_zip_archive(self) -> bool:
        return self.archive is not None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "markdown": self.markdown,
            "filename": self.filename,
            "record_count": self.record_count,
            "processed_at": self.processed_at.isoformat(timespec="seconds"),
            "file_type": self.file_type,
            "status": self.status,
            "is_zip_archive": self.is_zip_archive,
        }
        if self.archive is not None:
            payload["zip_file_contents"] = [
                info.to_dict() for info in self.archive.file_infos
            ]
            payload["total_files_in_zip"] = self.archive.total_files
            payload["successfully_processed_files"] = (
                self.archive.successfully_processed_files
            )
        return payload

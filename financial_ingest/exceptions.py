"""Financial Ingest exception hierarchy."""

from __future__ import annotations

from typing import Optional


class FinancialIngestError(Exception):
    """Base exception for all Financial Ingest errors."""


class UnsupportedFormat(FinancialIngestError):
    """No parser is registered for the file's media type or extension."""

    def __init__(
        self,
        message: str,
        extension: Optional[str] = None,
        media_type: Optional[str] = None,
    ) -> None:
        self.extension = extension
        self.media_type = media_type
        super().__init__(message)


class ParseError(FinancialIngestError):
    """The payload does not have the shape expected for its format."""

    def __init__(self, message: str, format_label: Optional[str] = None) -> None:
        self.format_label = format_label
        super().__init__(message)


class ArchiveError(FinancialIngestError):
    """The archive container itself could not be opened or read."""

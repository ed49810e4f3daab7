"""
Parser Registry.

Maps each classified ``FormatKind`` onto the reader that understands it and
guarantees a single failure type: whatever goes wrong inside a reader
surfaces as ``ParseError``.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional

from financial_ingest.config import ParserConfig
from financial_ingest.excel_parser import ExcelParser
from financial_ingest.exceptions import FinancialIngestError, ParseError, UnsupportedFormat
from financial_ingest.logging_setup import get_logger
from financial_ingest.readers import TabularReader
from financial_ingest.schema import FormatKind, RawFieldMap

logger = get_logger("parsers")


class FormatParsers:
    """Dispatch raw bytes to the reader registered for their format."""

    def __init__(self, config: Optional[ParserConfig] = None) -> None:
        reader = TabularReader(config)
        excel = ExcelParser()
        self._parsers: Dict[FormatKind, Callable[[bytes], List[RawFieldMap]]] = {
            FormatKind.CSV: reader.read_csv,
            FormatKind.JSON: reader.read_json,
            FormatKind.TEXT: reader.read_text,
            FormatKind.EXCEL_XLSX: excel.parse_xlsx,
            FormatKind.EXCEL_XLS: excel.parse_xls,
        }

    def supports(self, kind: FormatKind) -> bool:
        return kind in self._parsers

    def parse(self, kind: FormatKind, data: bytes) -> List[RawFieldMap]:
        """Parse ``data`` as ``kind``.

        Raises
        ------
        UnsupportedFormat
            If no reader handles ``kind`` (archives are not row sources).
        ParseError
            If the payload does not fit the format.
        """
        parser = self._parsers.get(kind)
        if parser is None:
            raise UnsupportedFormat(
                f"Unsupported file type: {kind.value}", extension=kind.extension
            )
        try:
            return parser(data)
        except FinancialIngestError:
            raise
        except Exception as exc:
            logger.debug("Reader for %s failed", kind.value, exc_info=True)
            raise ParseError(
                f"Error processing {kind.value} file: {exc}", format_label=kind.value
            ) from exc

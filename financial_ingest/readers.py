"""
Text Format Readers.

Turns the bytes of delimited-text, JSON and plain-text uploads into an
ordered list of raw field maps (``{header: value}``), one per data row.

Shared rules
------------
* The first row / line is the header.
* Data rows are zipped positionally against the header; when the counts
  differ the row is truncated to the shorter of the two.  Extra values or
  extra headers are dropped for that row only.
* Insertion order of every map follows source column order.
"""

from __future__ import annotations

import csv
import json
import re
from io import StringIO
from typing import Any, List, Optional, Sequence

from financial_ingest.config import ParserConfig
from financial_ingest.exceptions import ParseError
from financial_ingest.logging_setup import get_logger
from financial_ingest.schema import RawFieldMap

logger = get_logger("readers")


def zip_row(headers: Sequence[str], values: Sequence[str]) -> RawFieldMap:
    """Pair headers with values positionally, stripping both sides."""
    return {
        header.strip(): value.strip()
        for header, value in zip(headers, values)
    }


def stringify(value: Any) -> str:
    """Render a decoded JSON value as text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return str(value)


class TabularReader:
    """Reads delimited text, JSON and plain text into raw field maps.

    Parameters
    ----------
    config:
        Encoding and tokenisation settings.
    """

    def __init__(self, config: Optional[ParserConfig] = None) -> None:
        self._config = config or ParserConfig()
        self._text_split = re.compile(self._config.text_delimiters)

    # ------------------------------------------------------------------ #
    # Readers
    # ------------------------------------------------------------------ #

    def read_csv(self, data: bytes) -> List[RawFieldMap]:
        """Read comma-delimited text (RFC 4180 quoting)."""
        text = self._decode(data, "CSV")
        rows = [row for row in csv.reader(StringIO(text, newline="")) if row]
        if not rows:
            raise ParseError("CSV file is empty", format_label="CSV")

        headers = rows[0]
        result = [zip_row(headers, row) for row in rows[1:]]
        logger.info("Read %d rows from CSV (%d columns)", len(result), len(headers))
        return result

    def read_json(self, data: bytes) -> List[RawFieldMap]:
        """Read a JSON array of objects."""
        text = self._decode(data, "JSON")
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ParseError(
                f"Invalid JSON: {exc}", format_label="JSON"
            ) from exc

        if not isinstance(payload, list):
            raise ParseError(
                f"Unsupported JSON root type: {type(payload).__name__}; "
                f"expected an array of objects",
                format_label="JSON",
            )

        result: List[RawFieldMap] = []
        for index, item in enumerate(payload):
            if not isinstance(item, dict):
                raise ParseError(
                    f"JSON array element {index} is "
                    f"{type(item).__name__}, not an object",
                    format_label="JSON",
                )
            result.append({str(k): stringify(v) for k, v in item.items()})

        logger.info("Read %d objects from JSON", len(result))
        return result

    def read_text(self, data: bytes) -> List[RawFieldMap]:
        """Read free-form text whose columns are split by tab, comma or pipe."""
        text = self._decode(data, "TEXT")
        lines = [line for line in text.splitlines() if line.strip()]
        if not lines:
            raise ParseError("Text file is empty", format_label="TEXT")

        headers = self._text_split.split(lines[0])
        result = [
            zip_row(headers, self._text_split.split(line)) for line in lines[1:]
        ]
        logger.info("Read %d lines from text (%d columns)", len(result), len(headers))
        return result

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _decode(self, data: bytes, format_label: str) -> str:
        try:
            return data.decode(self._config.encoding)
        except UnicodeDecodeError as exc:
            raise ParseError(
                f"Cannot decode {format_label} payload as "
                f"{self._config.encoding}: {exc}",
                format_label=format_label,
            ) from exc

"""
Configuration module for Financial Ingest.

All tuneable parameters (encodings, report limits, log level) live here.
Nothing is hard-coded in business logic modules.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ParserConfig:
    """Controls how raw bytes are decoded and tokenised."""

    # Text encoding for delimited / plain-text / JSON payloads.  ``utf-8-sig``
    # strips a leading BOM, which spreadsheet exports commonly add.
    encoding: str = "utf-8-sig"

    # Regex used to split plain-text lines into tokens.
    text_delimiters: str = r"\t|,|\|"


@dataclass(frozen=True)
class ReportConfig:
    """Controls the Markdown report layout."""

    # Maximum number of source columns shown in the records table (before the
    # date / amount columns are added back).
    max_table_columns: int = 10

    currency_symbol: str = "$"

    date_format: str = "%Y-%m-%d"


@dataclass(frozen=True)
class PipelineConfig:
    """Top-level configuration aggregating all sub-configs."""

    parser: ParserConfig = field(default_factory=ParserConfig)
    report: ReportConfig = field(default_factory=ReportConfig)

    # Logging level for the ingestion audit trail
    log_level: int = logging.INFO

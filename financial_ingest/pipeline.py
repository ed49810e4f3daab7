"""
Pipeline Orchestrator.

The central entry point that wires together every layer:

    Upload  →  TypeClassifier  →  FormatParsers  →  FieldNormalizer
            →  Records  →  MarkdownReportRenderer  →  Report

ZIP uploads go through the ``ArchiveProcessor`` instead, which runs the
same chain once per entry and keeps a per-entry ledger.

Usage
-----
>>> from financial_ingest.pipeline import FinancialIngestPipeline
>>>
>>> pipe = FinancialIngestPipeline()
>>> result = pipe.convert(b"Date,Amount\\n2024-03-05,$12.50\\n", "tx.csv")
>>> print(result.markdown)
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from financial_ingest.archive import ArchiveProcessor
from financial_ingest.classifier import TypeClassifier
from financial_ingest.config import PipelineConfig
from financial_ingest.logging_setup import configure_logging, get_logger
from financial_ingest.normalizer import FieldNormalizer
from financial_ingest.parsers import FormatParsers
from financial_ingest.report import MarkdownReportRenderer
from financial_ingest.schema import ArchiveResult, ConversionResult, FormatKind, Record

logger = get_logger("pipeline")


class FinancialIngestPipeline:
    """Orchestrates classification, parsing, normalisation and rendering.

    Parameters
    ----------
    config:
        All tuneable knobs.  Defaults suit typical bank / ledger exports.
    """

    def __init__(self, config: Optional[PipelineConfig] = None) -> None:
        self._config = config or PipelineConfig()

        # Bootstrap logging before anything else
        configure_logging(level=self._config.log_level)

        # Construct layers
        self._classifier = TypeClassifier()
        self._parsers = FormatParsers(self._config.parser)
        self._normalizer = FieldNormalizer()
        self._archives = ArchiveProcessor(
            classifier=self._classifier,
            parsers=self._parsers,
            normalizer=self._normalizer,
        )
        self._renderer = MarkdownReportRenderer(self._config.report)

        logger.info(
            "Pipeline initialised: max_table_columns=%d, encoding=%s",
            self._config.report.max_table_columns,
            self._config.parser.encoding,
        )

    # ------------------------------------------------------------------ #
    # Entry points
    # ------------------------------------------------------------------ #

    def classify(
        self, filename: Optional[str], media_type: Optional[str] = None
    ) -> FormatKind:
        return self._classifier.classify(filename, media_type)

    def is_supported(
        self, filename: Optional[str], media_type: Optional[str] = None
    ) -> bool:
        return self._classifier.is_supported(filename, media_type)

    def process_file(
        self,
        data: bytes,
        filename: Optional[str],
        media_type: Optional[str] = None,
    ) -> List[Record]:
        """Parse one upload into records.

        A ZIP upload yields the combined records of every processed entry.

        Raises
        ------
        UnsupportedFormat, ParseError, ArchiveError
        """
        kind = self.classify(filename, media_type)
        logger.info("Processing file: %s with type: %s", filename, kind.value)

        if kind is FormatKind.ZIP:
            return self.process_archive(data).all_records

        return self._process_single(kind, data)

    def process_archive(self, data: bytes) -> ArchiveResult:
        """Process every entry of a ZIP upload."""
        return self._archives.process_archive(data)

    def render(self, records: Sequence[Record], source_label: str) -> str:
        return self._renderer.render(records, source_label)

    def render_archive(self, result: ArchiveResult, source_label: str) -> str:
        return self._renderer.render_archive(result, source_label)

    def convert(
        self,
        data: bytes,
        filename: Optional[str],
        media_type: Optional[str] = None,
    ) -> ConversionResult:
        """Classify, process and render an upload in one call."""
        kind = self.classify(filename, media_type)
        label = filename or "unknown"

        if kind is FormatKind.ZIP:
            archive = self.process_archive(data)
            markdown = self.render_archive(archive, label)
            logger.info(
                "Converted ZIP file %s: %d files, %d records",
                label, archive.total_files, len(archive.all_records),
            )
            return ConversionResult(
                markdown=markdown,
                filename=label,
                record_count=len(archive.all_records),
                file_type=media_type or kind.mime_type,
                archive=archive,
            )

        records = self._process_single(kind, data)
        markdown = self.render(records, label)
        logger.info("Converted file %s with %d records", label, len(records))
        return ConversionResult(
            markdown=markdown,
            filename=label,
            record_count=len(records),
            file_type=media_type or kind.mime_type,
        )

    # ------------------------------------------------------------------ #
    # Core pipeline logic
    # ------------------------------------------------------------------ #

    def _process_single(self, kind: FormatKind, data: bytes) -> List[Record]:
        rows = self._parsers.parse(kind, data)
        records = self._normalizer.normalize_all(rows)
        logger.info("Processed %d records from %s file", len(records), kind.value)
        return records

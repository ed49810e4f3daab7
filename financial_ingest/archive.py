"""
Archive Processor.

Fans a ZIP upload out into its entries and runs each one through the
classify -> parse -> normalise chain independently.

Failure isolation
-----------------
Each entry is handled by ``_process_entry``, which always returns an
``EntryOutcome`` value; classification and parse failures are recorded in
the ledger and the next entry is processed.  Only a container that cannot
be opened at all raises (``ArchiveError``).

Directory entries are skipped and not counted.  Nested archives are not
expanded.
"""

from __future__ import annotations

import zipfile
import zlib
from io import BytesIO
from typing import List, Optional, Tuple

from financial_ingest.classifier import TypeClassifier, guess_media_type
from financial_ingest.exceptions import ArchiveError, ParseError, UnsupportedFormat
from financial_ingest.logging_setup import get_logger
from financial_ingest.normalizer import FieldNormalizer
from financial_ingest.parsers import FormatParsers
from financial_ingest.schema import ArchiveResult, EntryOutcome, FormatKind, Record

logger = get_logger("archive")

NESTED_ARCHIVE_MESSAGE = "Nested ZIP files are not supported"


class ArchiveProcessor:
    """Process every file inside a ZIP archive.

    Parameters
    ----------
    classifier, parsers, normalizer:
        The per-entry processing chain.  Defaults are built when omitted.
    """

    def __init__(
        self,
        classifier: Optional[TypeClassifier] = None,
        parsers: Optional[FormatParsers] = None,
        normalizer: Optional[FieldNormalizer] = None,
    ) -> None:
        self._classifier = classifier or TypeClassifier()
        self._parsers = parsers or FormatParsers()
        self._normalizer = normalizer or FieldNormalizer()

    def process_archive(self, data: bytes) -> ArchiveResult:
        """Process all entries, in container order, into an ``ArchiveResult``.

        Raises
        ------
        ArchiveError
            If the container itself cannot be opened.
        """
        result = ArchiveResult()

        try:
            archive = zipfile.ZipFile(BytesIO(data))
        except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, ValueError) as exc:
            raise ArchiveError(f"Error processing ZIP file: {exc}") from exc

        with archive:
            for info in archive.infolist():
                if info.is_dir():
                    continue

                result.total_files += 1
                logger.info("Processing file from ZIP: %s", info.filename)

                outcome, records = self._process_entry(archive, info)
                result.file_infos.append(outcome)
                if outcome.processed:
                    result.all_records.extend(records)
                    result.successfully_processed_files += 1

        logger.info(
            "ZIP processing complete. Total files: %d, successfully processed: %d, "
            "failed: %d, total records: %d",
            result.total_files,
            result.successfully_processed_files,
            result.failed_files,
            len(result.all_records),
        )
        return result

    # ------------------------------------------------------------------ #
    # Per-entry processing
    # ------------------------------------------------------------------ #

    def _process_entry(
        self, archive: zipfile.ZipFile, info: zipfile.ZipInfo
    ) -> Tuple[EntryOutcome, List[Record]]:
        """Run one entry through the chain; never raises."""
        name = info.filename
        kind: Optional[FormatKind] = None

        try:
            kind = self._classifier.classify(name, guess_media_type(name))
            if kind is FormatKind.ZIP:
                logger.warning(
                    "Nested ZIP files are not supported. Skipping file: %s", name
                )
                return EntryOutcome.failure(name, NESTED_ARCHIVE_MESSAGE, kind.value), []

            content = archive.read(info)
            rows = self._parsers.parse(kind, content)
            records = self._normalizer.normalize_all(rows)

        except UnsupportedFormat as exc:
            logger.warning("Unsupported file format in ZIP: %s - %s", name, exc)
            return EntryOutcome.failure(
                name, f"Unsupported file format: {exc}", _label(kind)
            ), []
        except ParseError as exc:
            logger.warning("Could not parse file %s from ZIP: %s", name, exc)
            return EntryOutcome.failure(name, str(exc), _label(kind)), []
        except (
            zipfile.BadZipFile, zlib.error, EOFError, RuntimeError, OSError
        ) as exc:
            # Unreadable entry (bad CRC, encrypted, truncated data)
            logger.error("Error reading file %s from ZIP: %s", name, exc)
            return EntryOutcome.failure(
                name, f"Cannot read entry: {exc}", _label(kind)
            ), []

        logger.info(
            "Successfully processed %d records from ZIP file: %s", len(records), name
        )
        return EntryOutcome.success(name, kind.value, len(records)), records


def _label(kind: Optional[FormatKind]) -> Optional[str]:
    return kind.value if kind is not None else None

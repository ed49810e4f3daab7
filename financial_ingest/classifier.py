"""
File Type Classifier.

Decides which parser handles an upload from its filename and optional
declared media type.  Resolution order:

1. Declared media type, matched case-insensitively against the MIME table.
2. Filename extension (text after the last ``.``, lower-cased).
3. Loose fallbacks: anything mentioning JSON is JSON, and the known ZIP
   media-type variants are ZIP.

Anything left over raises ``UnsupportedFormat``.
"""

from __future__ import annotations

from typing import Optional

from financial_ingest.exceptions import UnsupportedFormat
from financial_ingest.logging_setup import get_logger
from financial_ingest.schema import ZIP_MEDIA_TYPES, FormatKind

logger = get_logger("classifier")

OCTET_STREAM = "application/octet-stream"


def file_extension(filename: str) -> str:
    """Return the lower-cased text after the last ``.`` (the whole name if none)."""
    return filename[filename.rfind(".") + 1:].lower()


def guess_media_type(filename: str) -> str:
    """Best-effort media type for an archive entry, derived from its extension."""
    ext = file_extension(filename)
    for kind in FormatKind:
        if kind is FormatKind.ZIP:
            continue
        if ext == kind.extension:
            return kind.mime_type
    return OCTET_STREAM


class TypeClassifier:
    """Stateless file-type classifier.  All methods are pure functions."""

    def classify(
        self, filename: Optional[str], media_type: Optional[str] = None
    ) -> FormatKind:
        """Return the ``FormatKind`` for an upload.

        Raises
        ------
        UnsupportedFormat
            If the filename is empty or nothing matches.
        """
        if not filename:
            raise UnsupportedFormat(
                "Filename is empty or missing", media_type=media_type
            )

        extension = file_extension(filename)

        if media_type:
            for kind in FormatKind:
                if media_type.lower() == kind.mime_type:
                    logger.debug(
                        "Detected %s by media type %r", kind.value, media_type
                    )
                    return kind

        for kind in FormatKind:
            if extension == kind.extension:
                logger.debug("Detected %s by extension %r", kind.value, extension)
                return kind

        if extension == "json" or (media_type and "json" in media_type.lower()):
            return FormatKind.JSON

        if extension == "zip" or (
            media_type and media_type.lower() in ZIP_MEDIA_TYPES
        ):
            return FormatKind.ZIP

        raise UnsupportedFormat(
            f"Unsupported file format. Extension: {extension}, "
            f"ContentType: {media_type}",
            extension=extension,
            media_type=media_type,
        )

    def is_supported(
        self, filename: Optional[str], media_type: Optional[str] = None
    ) -> bool:
        """Return True when ``classify`` would succeed."""
        try:
            self.classify(filename, media_type)
        except UnsupportedFormat:
            return False
        return True

"""
Logging for the ingestion audit trail.

Each module logs under ``financial_ingest.<module>`` via ``get_logger``:

* INFO    - per-file row counts, sheet dimensions, archive totals
* WARNING - archive entries that were skipped or failed to parse
* ERROR   - archive entries whose bytes could not be read
* DEBUG   - classification decisions and columns the normaliser could not coerce

``FinancialIngestPipeline`` calls ``configure_logging`` when it is built; later
calls are no-ops, so the first pipeline decides the level and handlers.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional


_CONFIGURED = False

LOG_NAMESPACE = "financial_ingest"

LOG_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)-34s | %(message)s"
)
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
) -> None:
    """Set up the root logger for the ``financial_ingest`` namespace.

    Parameters
    ----------
    level:
        Minimum severity to emit.
    log_file:
        If provided, a ``FileHandler`` is added alongside the console handler.
    """
    global _CONFIGURED  # noqa: PLW0603
    if _CONFIGURED:
        return

    root = logging.getLogger(LOG_NAMESPACE)
    root.setLevel(level)
    root.propagate = False

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_file:
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(level)
        fh.setFormatter(formatter)
        root.addHandler(fh)

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """Return a child logger under the ``financial_ingest`` namespace."""
    return logging.getLogger(f"{LOG_NAMESPACE}.{name}")

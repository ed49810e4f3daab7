"""
Financial Ingest HTTP API.

Accepts an uploaded file (CSV, Excel, JSON, TXT or a ZIP bundle of those)
and returns the rendered Markdown report in a JSON envelope.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Tuple

from flask import Flask, request
from werkzeug.exceptions import RequestEntityTooLarge
from werkzeug.utils import secure_filename

from financial_ingest.config import PipelineConfig
from financial_ingest.exceptions import (
    ArchiveError,
    FinancialIngestError,
    ParseError,
    UnsupportedFormat,
)
from financial_ingest.pipeline import FinancialIngestPipeline

# -------------------------------------------------------
# App Setup
# -------------------------------------------------------

app = Flask(__name__)

app.config["MAX_CONTENT_LENGTH"] = 16 * 1024 * 1024

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1/financial-data"

# -------------------------------------------------------
# Pipeline Setup
# -------------------------------------------------------

pipeline = FinancialIngestPipeline(
    config=PipelineConfig(log_level=logging.WARNING)
)

# -------------------------------------------------------
# Helpers
# -------------------------------------------------------

def error_response(status: int, error: str, message: str) -> Tuple[Dict[str, Any], int]:
    return {
        "success": False,
        "timestamp": datetime.now().isoformat(timespec="seconds"),
        "status": status,
        "error": error,
        "message": message,
        "path": request.path,
    }, status


# -------------------------------------------------------
# Error Mapping
# -------------------------------------------------------

@app.errorhandler(UnsupportedFormat)
def handle_unsupported_format(exc: UnsupportedFormat):
    logger.error("Unsupported file format: %s", exc)
    return error_response(415, "Unsupported File Format", str(exc))


@app.errorhandler(ParseError)
@app.errorhandler(ArchiveError)
def handle_processing_error(exc: Exception):
    logger.error("File processing error: %s", exc)
    return error_response(400, "File Processing Error", str(exc))


@app.errorhandler(RequestEntityTooLarge)
def handle_too_large(exc: RequestEntityTooLarge):
    logger.error("File size exceeded: %s", exc)
    return error_response(
        413, "File Size Exceeded", "File size exceeds the maximum allowed limit"
    )


# -------------------------------------------------------
# API
# -------------------------------------------------------

@app.route(f"{API_PREFIX}/convert", methods=["POST"])
def api_convert():
    """Convert an uploaded financial data file to a Markdown report."""
    if "file" not in request.files:
        return error_response(400, "Bad Request", "No file uploaded")

    file = request.files["file"]

    if file.filename == "":
        return error_response(400, "Bad Request", "No file selected")

    filename = secure_filename(file.filename) or "unknown"
    data = file.read()
    if not data:
        return error_response(400, "Bad Request", "File is empty")

    logger.info("Received file upload request: %s", filename)

    try:
        result = pipeline.convert(data, filename, file.mimetype or None)
    except FinancialIngestError:
        raise
    except Exception:
        logger.exception("Error processing upload")
        return error_response(
            500, "Internal Server Error", "An unexpected error occurred"
        )

    logger.info(
        "Successfully processed file: %s with %d records",
        filename, result.record_count,
    )
    return {"success": True, **result.to_dict()}, 200


@app.route(f"{API_PREFIX}/health", methods=["GET"])
def api_health():
    """Health check endpoint."""
    return "Financial Data API is running", 200


if __name__ == "__main__":
    print("=" * 60)
    print("Financial Ingest Server Running")
    print("http://localhost:5000")
    print("=" * 60)

    app.run(host="0.0.0.0", port=5000, debug=True)

"""
Financial Ingest: Multi-Format Financial Data Ingestion Engine.

Reads financial data from CSV, Excel, JSON, plain-text and ZIP uploads,
infers canonical attributes (date, amount, description, category, account)
from arbitrary column names, and renders the result as a Markdown report.

Canonical attributes are a best-effort projection; every record keeps its
original field map, so nothing from the source is lost.
"""

__version__ = "1.0.0"
__author__ = "Financial Ingest Team"

from financial_ingest.pipeline import FinancialIngestPipeline  # noqa: F401

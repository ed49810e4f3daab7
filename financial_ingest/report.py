"""
Markdown Report Renderer.

Turns normalised records into a human-readable Markdown report.

Single-file report layout
-------------------------
1. Title block (source label, record count)
2. Summary table: record counts, total / average amount, category breakdown
3. Records table: up to ``max_table_columns`` source columns, chosen in
   sorted order, plus a date-like and an amount-like column when available
4. Detailed records: canonical attributes followed by every raw field

Archive reports prepend a contents ledger (one row per entry) and then reuse
the same summary and table over the combined records.

Every value written into a table cell is escaped so that a ``|`` or a line
break in the source data cannot break the table.
"""

from __future__ import annotations

from collections import Counter
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Sequence

from financial_ingest.config import ReportConfig
from financial_ingest.logging_setup import get_logger
from financial_ingest.schema import ArchiveResult, Record

logger = get_logger("report")

_CENTS = Decimal("0.01")


def escape_markdown(text: Optional[str]) -> str:
    """Neutralise the table-cell delimiter and collapse line breaks."""
    if text is None:
        return ""
    return text.replace("|", "\\|").replace("\n", " ").replace("\r", " ")


class MarkdownReportRenderer:
    """Render records and archive results as Markdown.

    Parameters
    ----------
    config:
        Table width limit and value formatting.
    """

    def __init__(self, config: Optional[ReportConfig] = None) -> None:
        self._config = config or ReportConfig()

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def render(self, records: Sequence[Record], source_label: str) -> str:
        """Render the report for a single source file."""
        if not records:
            return self._render_empty(source_label)

        parts = [
            "# Financial Data Report\n\n",
            f"**Source File:** {escape_markdown(source_label)}\n\n",
            f"**Total Records:** {len(records)}\n\n",
            "---\n\n",
            "## Summary\n\n",
            self.render_summary(records),
            "\n---\n\n",
            "## Financial Records\n\n",
            self.render_table(records),
            "\n",
            "## Detailed Records\n\n",
        ]
        for index, record in enumerate(records, start=1):
            parts.append(self._render_record_details(record, index))
            parts.append("\n")

        logger.info("Rendered %d records to markdown", len(records))
        return "".join(parts)

    def render_archive(self, result: ArchiveResult, source_label: str) -> str:
        """Render the report for a processed archive."""
        parts = [
            "# Financial Data Report - ZIP Archive\n\n",
            f"**Source ZIP File:** {escape_markdown(source_label)}\n\n",
            f"**Total Files in Archive:** {result.total_files}\n\n",
            f"**Successfully Processed:** {result.successfully_processed_files}\n\n",
            f"**Total Records:** {len(result.all_records)}\n\n",
            "---\n\n",
            "## ZIP Archive Contents\n\n",
            "| File Name | Type | Records | Status |\n",
            "|-----------|------|---------|--------|\n",
        ]
        for info in result.file_infos:
            status = "✓ Success" if info.processed else "✗ Failed"
            if info.error_message:
                status += f" ({info.error_message})"
            parts.append(
                f"| {escape_markdown(info.filename)} "
                f"| {escape_markdown(info.file_type or 'Unknown')} "
                f"| {info.record_count} "
                f"| {escape_markdown(status)} |\n"
            )
        parts.append("\n---\n\n")

        if result.all_records:
            parts += [
                "## Combined Summary\n\n",
                self.render_summary(result.all_records),
                "\n---\n\n",
                "## All Financial Records\n\n",
                self.render_table(result.all_records),
                "\n---\n\n",
                "## Records by File\n\n",
            ]
            first = 1
            for info, records in result.records_by_file():
                if not records:
                    continue
                last = first + len(records) - 1
                parts.append(
                    f"### File: {escape_markdown(info.filename)} "
                    f"({len(records)} records)\n\n"
                    f"_Rows {first}–{last} of the combined table above._\n\n"
                )
                first = last + 1
        else:
            parts += [
                "## No Records Processed\n\n",
                "No financial data records were successfully extracted "
                "from the ZIP archive.\n\n",
            ]

        logger.info(
            "Rendered ZIP archive with %d files and %d records to markdown",
            result.total_files,
            len(result.all_records),
        )
        return "".join(parts)

    # ------------------------------------------------------------------ #
    # Sections
    # ------------------------------------------------------------------ #

    def render_summary(self, records: Sequence[Record]) -> str:
        amounts = [r.amount for r in records if r.amount is not None]
        with_date = sum(1 for r in records if r.date is not None)
        total = sum(amounts, Decimal(0))

        lines = [
            "| Metric | Value |",
            "|--------|-------|",
            f"| Total Records | {len(records)} |",
            f"| Records with Amount | {len(amounts)} |",
            f"| Records with Date | {with_date} |",
        ]
        if total != 0:
            average = (total / len(amounts)).quantize(_CENTS, rounding=ROUND_HALF_UP)
            lines.append(f"| Total Amount | {self.format_currency(total)} |")
            lines.append(f"| Average Amount | {self.format_currency(average)} |")

        categories = self.category_counts(records)
        if categories:
            lines += [
                "",
                "### Categories",
                "",
                "| Category | Count |",
                "|----------|-------|",
            ]
            for category, count in categories:
                lines.append(f"| {escape_markdown(category)} | {count} |")

        return "\n".join(lines) + "\n"

    def render_table(self, records: Sequence[Record]) -> str:
        if not records:
            return "No records available."

        columns = self.select_columns(records)

        lines = [
            "| # | " + "".join(f"{escape_markdown(c)} | " for c in columns),
            "|" + "---|" * (len(columns) + 1),
        ]
        for index, record in enumerate(records, start=1):
            cells = "".join(
                f"{escape_markdown(self._cell_value(record, c))} | " for c in columns
            )
            lines.append(f"| {index} | {cells}")

        return "\n".join(lines) + "\n"

    def select_columns(self, records: Sequence[Record]) -> List[str]:
        """Pick the table columns.

        The first ``max_table_columns`` keys in sorted order, then the first
        date-like key prepended and the first amount-like key appended when
        they were cut off.
        """
        all_keys = sorted({key for r in records for key in r.fields})
        columns = all_keys[: self._config.max_table_columns]

        date_key = next((k for k in all_keys if "date" in k.lower()), None)
        if date_key is not None and date_key not in columns:
            columns.insert(0, date_key)

        amount_key = next((k for k in all_keys if "amount" in k.lower()), None)
        if amount_key is not None and amount_key not in columns:
            columns.append(amount_key)

        return columns

    @staticmethod
    def category_counts(records: Sequence[Record]) -> List[tuple[str, int]]:
        """Non-empty categories by descending count; ties keep first-seen order."""
        counts = Counter(r.category for r in records if r.category)
        return sorted(counts.items(), key=lambda item: -item[1])

    # ------------------------------------------------------------------ #
    # Formatting helpers
    # ------------------------------------------------------------------ #

    def format_currency(self, amount: Optional[Decimal]) -> str:
        if amount is None:
            return "N/A"
        rounded = amount.quantize(_CENTS, rounding=ROUND_HALF_UP)
        return f"{self._config.currency_symbol}{rounded:,.2f}"

    def _format_date(self, record: Record) -> str:
        return record.date.strftime(self._config.date_format) if record.date else ""

    def _cell_value(self, record: Record, column: str) -> str:
        lowered = column.lower()
        if "date" in lowered and record.date is not None:
            return self._format_date(record)
        if "amount" in lowered and record.amount is not None:
            return self.format_currency(record.amount)
        value = record.fields.get(column)
        return "" if value is None else str(value)

    def _render_empty(self, source_label: str) -> str:
        return (
            "# Financial Data Report\n\n"
            f"**Source File:** {escape_markdown(source_label)}\n\n"
            "**Status:** No records found in the file.\n\n"
        )

    def _render_record_details(self, record: Record, index: int) -> str:
        lines = [f"### Record #{index}", ""]

        if record.date is not None:
            lines.append(f"- **Date:** {self._format_date(record)}")
        if record.amount is not None:
            lines.append(f"- **Amount:** {self.format_currency(record.amount)}")
        if record.description:
            lines.append(f"- **Description:** {escape_markdown(record.description)}")
        if record.category:
            lines.append(f"- **Category:** {escape_markdown(record.category)}")
        if record.account:
            lines.append(f"- **Account:** {escape_markdown(record.account)}")

        if record.fields:
            lines += ["", "**All Fields:**", "", "| Field | Value |", "|-------|-------|"]
            for key in sorted(record.fields):
                lines.append(
                    f"| {escape_markdown(key)} | {escape_markdown(record.fields[key])} |"
                )

        return "\n".join(lines) + "\n"

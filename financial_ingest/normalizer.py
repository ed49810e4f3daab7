"""
Field Normalization Layer.

Projects an arbitrary raw field map onto the canonical ``Record`` shape by
keyword-matching column labels.

Every ``(label, value)`` pair is tested against every rule, in column order;
a label may satisfy several rules at once (e.g. ``"Account Type"`` feeds both
``account`` and ``category``).  The last successful match for an attribute
wins.  Date and amount coercion can fail; a failure leaves the attribute as
it was and is never raised.

Rules (substring of the lower-cased label -> attribute):

* ``date``                                  -> ``date``        (date cascade)
* ``amount`` / ``value`` / ``price`` / ``balance`` -> ``amount`` (decimal)
* ``description`` / ``note`` / ``memo``     -> ``description`` (verbatim)
* ``category`` / ``type``                   -> ``category``    (verbatim)
* ``account``                               -> ``account``     (verbatim)

Date patterns go through ``strptime``, which also accepts unpadded fields
(``3/5/2024``, ``2024-3-5``).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple

from financial_ingest.logging_setup import get_logger
from financial_ingest.schema import RawFieldMap, Record

logger = get_logger("normalizer")


class InferenceMiss(ValueError):
    """A matched field whose value could not be coerced."""


# Tried in order; the first pattern that parses the trimmed text wins.
_DATE_PATTERNS: Tuple[str, ...] = (
    "%m/%d/%Y",
    "%d/%m/%Y",
    "%Y-%m-%d",
    "%m-%d-%Y",
)

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Anything that is not a digit, a decimal point or a minus sign
_AMOUNT_JUNK_RE = re.compile(r"[^0-9.\-]")


def _text(value: Optional[str]) -> Optional[str]:
    """Verbatim text, with blank collapsed to ``None``."""
    if value is None or not value.strip():
        return None
    return value


def parse_date(raw: Optional[str]) -> Optional[date]:
    """Parse a calendar date using the fixed format cascade.

    Returns ``None`` for blank input.

    Raises
    ------
    InferenceMiss
        If no format matches.
    """
    if raw is None or not raw.strip():
        return None
    text = raw.strip()

    if _ISO_DATE_RE.match(text):
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass

    for pattern in _DATE_PATTERNS:
        try:
            return datetime.strptime(text, pattern).date()
        except ValueError:
            continue

    raise InferenceMiss(f"Unable to parse date: {raw!r}")


def parse_amount(raw: Optional[str]) -> Optional[Decimal]:
    """Parse a monetary amount, keeping its sign.

    Everything except digits, ``.`` and ``-`` is stripped first, so
    ``"$1,234.56"`` parses and ``"n/a"`` yields ``None``.

    Raises
    ------
    InferenceMiss
        If what remains is not a well-formed decimal (``"1.2.3"``).
    """
    if not raw:
        return None
    cleaned = _AMOUNT_JUNK_RE.sub("", raw).strip()
    if not cleaned:
        return None
    try:
        return Decimal(cleaned)
    except InvalidOperation as exc:
        raise InferenceMiss(f"Unable to parse amount: {raw!r}") from exc


@dataclass(frozen=True)
class FieldRule:
    """A single keyword -> attribute inference rule."""

    keywords: Tuple[str, ...]
    attribute: str
    coerce: Callable[[str], Any]
    # When True a ``None`` result leaves any earlier value in place
    skip_empty: bool = False

    def matches(self, lowered_label: str) -> bool:
        return any(kw in lowered_label for kw in self.keywords)


DEFAULT_RULES: Tuple[FieldRule, ...] = (
    FieldRule(("date",), "date", parse_date, skip_empty=True),
    FieldRule(
        ("amount", "value", "price", "balance"), "amount", parse_amount,
        skip_empty=True,
    ),
    FieldRule(("description", "note", "memo"), "description", _text),
    FieldRule(("category", "type"), "category", _text),
    FieldRule(("account",), "account", _text),
)


class FieldNormalizer:
    """Stateless field normaliser.

    Parameters
    ----------
    rules:
        Ordered inference rules.  Defaults to ``DEFAULT_RULES``.
    """

    parse_date = staticmethod(parse_date)
    parse_amount = staticmethod(parse_amount)

    def __init__(self, rules: Optional[Sequence[FieldRule]] = None) -> None:
        self._rules: Tuple[FieldRule, ...] = tuple(rules or DEFAULT_RULES)

    def normalize(self, fields: RawFieldMap) -> Record:
        """Build a ``Record`` from one raw field map.  Never raises."""
        record = Record(fields=fields)

        for label, raw_value in fields.items():
            lowered = label.lower()
            value = "" if raw_value is None else str(raw_value)

            for rule in self._rules:
                if not rule.matches(lowered):
                    continue
                try:
                    coerced = rule.coerce(value)
                except InferenceMiss as exc:
                    logger.debug(
                        "Could not infer %s from field %r: %s",
                        rule.attribute, label, exc,
                    )
                    continue
                if coerced is None and rule.skip_empty:
                    continue
                setattr(record, rule.attribute, coerced)

        return record

    def normalize_all(self, rows: Iterable[RawFieldMap]) -> List[Record]:
        """Normalise a sequence of rows, preserving order."""
        return [self.normalize(fields) for fields in rows]

"""Row extraction from raw statement text.

Detection runs once per file on the first non-blank line:

- Structured layout: the header names date/description/amount columns
  (see :mod:`property_ledger.ingest.detect`). Each following line is split
  with the quote-aware splitter and the three mapped columns are read
  positionally. Negative amounts are expenses.
- Fallback layout: each line is scanned for a ``D/M/YYYY`` date and a
  European-format amount, with a numeric heuristic when no such amount is
  present. Positive amounts are expenses on this path, which matches the
  statements it was written for.

Unusable lines are skipped and reported in :attr:`Extraction.skipped`; no
exception escapes for data-quality problems.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

from ..locale_parsers import ZERO, amount_in_range, parse_amount
from ..logging_setup import get_logger
from ..models import Layout, RawRow
from .detect import ColumnMap, detect_columns, looks_like_header, split_line

logger = get_logger("property_ledger.ingest.extract")

_DATE_RE = re.compile(r"(\d{1,2}/\d{1,2}/\d{4})")
_EURO_AMOUNT_RE = re.compile(r"-?\d{1,3}(?:\.\d{3})*,\d{2}\s*(?:EUR)?", re.IGNORECASE)
_BARE_NUMBER_RE = re.compile(r"-?\d+\.?\d*")
_TRAILING_NUMBER_RE = re.compile(r"-?\d+\.?\d*\s*$")
_WHITESPACE_RE = re.compile(r"\s+")

DEFAULT_DESCRIPTION = "Imported transaction"


@dataclass(frozen=True, slots=True)
class SkippedLine:
    line_no: int
    reason: str


@dataclass(slots=True)
class Extraction:
    """Rows extracted from one file, in file order."""

    layout: Layout
    columns: ColumnMap | None = None
    rows: list[RawRow] = field(default_factory=list)
    skipped: list[SkippedLine] = field(default_factory=list)


def statement_lines(text: str) -> list[str]:
    """Split file text into its non-blank lines (CR stripped)."""

    return [line.rstrip("\r") for line in text.split("\n") if line.strip()]


# ---------------------------------------------------------------------------
# Structured layout
# ---------------------------------------------------------------------------


def _structured_rows(
    lines: list[str], columns: ColumnMap, source_file: str, out: Extraction
) -> None:
    # Line numbers are 1-based over non-blank lines; the header is line 1.
    for line_no, line in enumerate(lines[1:], start=2):
        fields = split_line(line)
        if len(fields) < columns.min_fields:
            out.skipped.append(SkippedLine(line_no, "too few fields"))
            continue

        date_text = fields[columns.date]
        description = fields[columns.description].replace('"', "").strip()
        amount_text = fields[columns.amount]
        if not date_text or not description or not amount_text:
            out.skipped.append(SkippedLine(line_no, "empty date, description or amount"))
            continue

        amount = parse_amount(amount_text)
        if amount == 0:
            out.skipped.append(SkippedLine(line_no, f"no amount in {amount_text!r}"))
            continue

        out.rows.append(
            RawRow(
                date=date_text,
                description=description,
                amount_text=amount_text,
                source_file=source_file,
                amount=amount,
                layout=Layout.STRUCTURED,
            )
        )


# ---------------------------------------------------------------------------
# Fallback layout
# ---------------------------------------------------------------------------


def _to_decimal(token: str) -> Decimal | None:
    try:
        return Decimal(token)
    except InvalidOperation:
        return None


def _heuristic_amount(cleaned: str) -> Decimal:
    # Statement lines often end with "<amount> <running balance>": prefer the
    # second-to-last figure above 1, else the last one.
    candidates = [
        d
        for d in (_to_decimal(t) for t in _BARE_NUMBER_RE.findall(cleaned))
        if d is not None and abs(d) > 1 and amount_in_range(d)
    ]
    if len(candidates) >= 2:
        return candidates[-2]
    if candidates:
        return candidates[-1]
    return ZERO


def parse_raw_line(line: str) -> tuple[str, str, str, Decimal] | None:
    """Scan one unstructured line for ``(date, description, amount_text, amount)``.

    Returns ``None`` when the line has no ``D/M/YYYY`` date or no non-zero
    amount.
    """

    cleaned = line.replace('"""', "").replace('""', '"').replace('"', "").strip()
    if not cleaned:
        return None
    date_match = _DATE_RE.search(cleaned)
    if date_match is None:
        return None
    date_text = date_match.group(1)

    euro = _EURO_AMOUNT_RE.search(cleaned)
    if euro is not None:
        amount_text = euro.group(0)
        amount = parse_amount(amount_text)
    else:
        amount = _heuristic_amount(cleaned)
        amount_text = str(amount)
    if amount == 0:
        return None

    tail = cleaned[date_match.end() :]
    description = _EURO_AMOUNT_RE.sub("", tail).replace(",", " ")
    description = _WHITESPACE_RE.sub(" ", description).strip()
    description = _TRAILING_NUMBER_RE.sub("", description, count=1).strip()
    return date_text, description or DEFAULT_DESCRIPTION, amount_text, amount


def _fallback_rows(lines: list[str], source_file: str, out: Extraction) -> None:
    start = 1 if lines and looks_like_header(lines[0]) else 0
    for line_no, line in enumerate(lines[start:], start=start + 1):
        parsed = parse_raw_line(line)
        if parsed is None:
            out.skipped.append(SkippedLine(line_no, "no date or amount found"))
            continue
        date_text, description, amount_text, amount = parsed
        out.rows.append(
            RawRow(
                date=date_text,
                description=description,
                amount_text=amount_text,
                source_file=source_file,
                amount=amount,
                layout=Layout.FALLBACK,
            )
        )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def extract_statement(text: str, source_file: str) -> Extraction:
    """Detect the layout of ``text`` and extract its rows."""

    lines = statement_lines(text)
    columns = detect_columns(lines[0]) if lines else None

    if columns is not None:
        out = Extraction(layout=Layout.STRUCTURED, columns=columns)
        _structured_rows(lines, columns, source_file, out)
    else:
        out = Extraction(layout=Layout.FALLBACK)
        _fallback_rows(lines, source_file, out)

    logger.debug(
        "extracted %d rows (%d skipped) from %s using %s layout",
        len(out.rows),
        len(out.skipped),
        source_file,
        out.layout,
    )
    for skipped in out.skipped:
        logger.debug("%s line %d skipped: %s", source_file, skipped.line_no, skipped.reason)
    return out


def iter_rows(text: str, source_file: str) -> Iterator[RawRow]:
    """Convenience wrapper yielding only the extracted rows."""

    yield from extract_statement(text, source_file).rows


__all__ = [
    "DEFAULT_DESCRIPTION",
    "Extraction",
    "SkippedLine",
    "extract_statement",
    "iter_rows",
    "parse_raw_line",
    "statement_lines",
]

"""Header detection and quote-aware line splitting for statement exports.

Bank exports disagree on delimiter (comma, semicolon, tab) and on header
language. A file is "structured" when its first line names a date, a
description and an amount column using any of the English or Spanish
synonyms below; otherwise the fallback line scanner is used.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

DATE_HEADERS: frozenset[str] = frozenset(
    {"date", "fecha", "fecha operacion", "fecha valor", "f.operacion", "f.valor"}
)
DESCRIPTION_HEADERS: frozenset[str] = frozenset(
    {"description", "concepto", "descripcion", "descripción", "movimiento", "detalle"}
)
AMOUNT_HEADERS: frozenset[str] = frozenset(
    {"amount", "importe", "cantidad", "monto", "valor", "debito", "credito"}
)

DELIMITERS = frozenset({",", ";", "\t"})
_HEADER_SPLIT_RE = re.compile(r"[,;\t]")


@dataclass(frozen=True, slots=True)
class ColumnMap:
    """Zero-based positions of the three columns the extractor needs."""

    date: int
    description: int
    amount: int

    @property
    def min_fields(self) -> int:
        return max(self.date, self.description, self.amount) + 1


def _first_index(headers: list[str], synonyms: frozenset[str]) -> int | None:
    for i, h in enumerate(headers):
        if h in synonyms:
            return i
    return None


def detect_columns(header_line: str) -> ColumnMap | None:
    """Map the date/description/amount columns named in ``header_line``.

    Returns ``None`` unless all three roles are present. The first column
    matching a role wins.
    """

    headers = [h.lower().replace('"', "").strip() for h in _HEADER_SPLIT_RE.split(header_line)]
    date_idx = _first_index(headers, DATE_HEADERS)
    desc_idx = _first_index(headers, DESCRIPTION_HEADERS)
    amount_idx = _first_index(headers, AMOUNT_HEADERS)
    if date_idx is None or desc_idx is None or amount_idx is None:
        return None
    return ColumnMap(date=date_idx, description=desc_idx, amount=amount_idx)


def looks_like_header(line: str) -> bool:
    """Loose check used by the fallback scanner to skip a leading title row."""

    lowered = line.lower()
    return "date" in lowered or "fecha" in lowered


def split_line(line: str) -> list[str]:
    """Split a delimited line, keeping delimiters that appear inside quotes.

    Double quotes toggle quoting and are dropped from the output; every field
    is stripped of surrounding whitespace.
    """

    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    for ch in line:
        if ch == '"':
            in_quotes = not in_quotes
        elif ch in DELIMITERS and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
    fields.append("".join(current).strip())
    return fields


__all__ = [
    "AMOUNT_HEADERS",
    "DATE_HEADERS",
    "DESCRIPTION_HEADERS",
    "ColumnMap",
    "detect_columns",
    "looks_like_header",
    "split_line",
]

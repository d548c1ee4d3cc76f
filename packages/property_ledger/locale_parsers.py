"""Locale-aware amount and date parsing for European bank exports.

Amounts use ``.`` as the thousands separator and ``,`` as the decimal mark,
optionally suffixed with ``EUR`` (``"1.234,56 EUR"``, ``"-315,51EUR"``).
Dates are ``DD/MM/YYYY`` or already-canonical ``YYYY-MM-DD``.

Both parsers are permissive by default: an unparseable amount yields ``0``
(which callers treat as "no amount") and an unrecognized date yields the
processing date. ``parse_date(strict=True)`` raises instead.
"""

from __future__ import annotations

import re
from datetime import date
from decimal import Decimal, InvalidOperation

from .errors import DateParseError

_CURRENCY_RE = re.compile(r"EUR", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s")
# Leading numeric prefix, mirroring how lenient float parsing treats trailing junk.
_NUMERIC_PREFIX_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_DMY_RE = re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})")
_ISO_RE = re.compile(r"\d{4}-\d{2}-\d{2}")

ZERO = Decimal("0")
# Stored as Numeric(18, 2): at most 16 integer digits.
MAX_AMOUNT = Decimal("1E16")


def parse_amount(text: str | None) -> Decimal:
    """Parse a European-formatted amount; ``Decimal(0)`` when nothing parses.

    >>> parse_amount("1.234,56 EUR")
    Decimal('1234.56')
    >>> parse_amount("-315,51EUR")
    Decimal('-315.51')
    """

    if not text:
        return ZERO
    cleaned = _CURRENCY_RE.sub("", str(text).strip())
    cleaned = _WHITESPACE_RE.sub("", cleaned)
    cleaned = cleaned.replace(".", "").replace(",", ".", 1)
    m = _NUMERIC_PREFIX_RE.match(cleaned)
    if m is None:
        return ZERO
    try:
        value = Decimal(m.group(0))
    except InvalidOperation:
        return ZERO
    return value if amount_in_range(value) else ZERO


def amount_in_range(value: Decimal) -> bool:
    """Whether ``value`` is finite and small enough to store."""

    return value.is_finite() and abs(value) < MAX_AMOUNT


def parse_date(text: str | None, *, strict: bool = False, today: date | None = None) -> date:
    """Parse ``DD/MM/YYYY`` or ``YYYY-MM-DD`` into a :class:`date`.

    A ``D/M/YYYY`` substring anywhere in ``text`` is accepted (single-digit
    day and month included). Anything else, including impossible calendar
    dates, returns ``today`` (the processing date when omitted) unless
    ``strict`` is set, in which case :class:`DateParseError` is raised.
    """

    cleaned = (text or "").strip()
    if cleaned:
        m = _DMY_RE.search(cleaned)
        if m:
            day, month, year = (int(g) for g in m.groups())
            try:
                return date(year, month, day)
            except ValueError:
                pass
        elif _ISO_RE.fullmatch(cleaned):
            try:
                return date.fromisoformat(cleaned)
            except ValueError:
                pass

    if strict:
        raise DateParseError(text or "")
    return today if today is not None else date.today()


__all__ = ["MAX_AMOUNT", "ZERO", "amount_in_range", "parse_amount", "parse_date"]

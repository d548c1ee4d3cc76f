"""Transaction fingerprinting and batch deduplication.

A fingerprint is a short, stable hex string over ``(date, description,
|amount|)``. It is the deduplication key: a row whose fingerprint is already
known for the user is never inserted again. The hash is a 32-bit rolling hash
(``h = h * 31 + unit`` over the UTF-16 code units of the canonical string),
which keeps fingerprints compatible with rows already stored by earlier
importers. Collisions are possible and are indistinguishable from genuine
duplicates.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

_MASK_32 = 0xFFFFFFFF
_SIGN_BIT = 0x80000000


def canonical_key(tx_date: date | str, description: str, amount: Decimal | int | float) -> str:
    """Return the canonical ``date|description|amount`` string that gets hashed."""

    day = tx_date.isoformat() if isinstance(tx_date, date) else str(tx_date)
    magnitude = abs(Decimal(str(amount))).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{day}|{description.strip().lower()}|{magnitude:.2f}"


def _utf16_units(text: str) -> Iterator[int]:
    data = text.encode("utf-16-le")
    for i in range(0, len(data), 2):
        yield data[i] | (data[i + 1] << 8)


def rolling_hash32(text: str) -> int:
    """Signed 32-bit ``h * 31 + c`` hash over UTF-16 code units."""

    h = 0
    for unit in _utf16_units(text):
        h = (h * 31 + unit) & _MASK_32
    return h - (1 << 32) if h & _SIGN_BIT else h


def fingerprint(tx_date: date | str, description: str, amount: Decimal | int | float) -> str:
    """Fingerprint a transaction for deduplication.

    Invariant to description case and surrounding whitespace, and to the sign
    of ``amount``.
    """

    return format(abs(rolling_hash32(canonical_key(tx_date, description, amount))), "x")


class FingerprintSet:
    """Known fingerprints for one user, threaded through a single import.

    Seed it with the fingerprints already in storage, then call
    :meth:`claim` for each candidate row in file order. A claimed fingerprint
    is recorded immediately, so a second identical row in the same file is
    reported as a duplicate of the first.
    """

    __slots__ = ("_seen", "duplicates")

    def __init__(self, known: Iterable[str] = ()) -> None:
        self._seen: set[str] = set(known)
        self.duplicates = 0

    def __contains__(self, fp: object) -> bool:
        return fp in self._seen

    def __len__(self) -> int:
        return len(self._seen)

    def claim(self, fp: str) -> bool:
        """Record ``fp``; return ``False`` (and count a duplicate) if already known."""

        if fp in self._seen:
            self.duplicates += 1
            return False
        self._seen.add(fp)
        return True


__all__ = ["FingerprintSet", "canonical_key", "fingerprint", "rolling_hash32"]

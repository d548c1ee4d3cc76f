"""Recurring-payment detection over a user's transaction history.

A vendor is recurring when it has at least three transactions whose amounts
stay within 10% of their mean and whose spacing stays within five days of the
mean interval, with that interval at least a week long. Detection is pure:
the same history always yields the same patterns.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal

from .logging_setup import get_logger
from .models import RecurrencePattern, StoredTransaction, TransactionStatus

logger = get_logger("property_ledger.recurrence")

MIN_OCCURRENCES = 3
AMOUNT_TOLERANCE = Decimal("0.10")
INTERVAL_TOLERANCE_DAYS = 5
MIN_INTERVAL_DAYS = 7

_CENT = Decimal("0.01")


def vendor_key(tx: StoredTransaction) -> str:
    return (tx.description_clean or tx.description or "").strip().lower()


def _amounts_stable(members: Sequence[StoredTransaction]) -> Decimal | None:
    amounts = [abs(tx.amount) for tx in members]
    mean = sum(amounts, Decimal(0)) / len(amounts)
    if mean == 0:
        return None
    if any(abs(a - mean) / mean >= AMOUNT_TOLERANCE for a in amounts):
        return None
    return mean


def _intervals_stable(members: Sequence[StoredTransaction]) -> float | None:
    intervals = [(b.date - a.date).days for a, b in zip(members, members[1:])]
    mean = sum(intervals) / len(intervals)
    if mean < MIN_INTERVAL_DAYS:
        return None
    if any(abs(i - mean) >= INTERVAL_TOLERANCE_DAYS for i in intervals):
        return None
    return mean


def _pattern_for(members: list[StoredTransaction]) -> RecurrencePattern | None:
    # The label comes from the first-seen member, not the earliest-dated one.
    labelled = members[0]
    members.sort(key=lambda tx: tx.date)

    mean_amount = _amounts_stable(members)
    if mean_amount is None:
        return None
    mean_interval = _intervals_stable(members)
    if mean_interval is None:
        return None

    last = members[-1]
    return RecurrencePattern(
        vendor=labelled.description_clean or labelled.description,
        average_amount=mean_amount.quantize(_CENT, rounding=ROUND_HALF_UP),
        average_interval_days=mean_interval,
        occurrence_count=len(members),
        next_expected_date=last.date + timedelta(days=int(mean_interval)),
        member_transaction_ids=tuple(tx.id for tx in members),
    )


def detect_recurring(transactions: Iterable[StoredTransaction]) -> list[RecurrencePattern]:
    """Find recurring vendors in ``transactions``.

    Parameters
    ----------
    transactions
        History to scan. Callers are expected to have removed excluded rows
        already (see :func:`detect_recurring_for_history`).

    Returns
    -------
    list[RecurrencePattern]
        Patterns ordered by occurrence count, most frequent first. Vendors
        with equal counts keep first-seen order.
    """

    groups: dict[str, list[StoredTransaction]] = defaultdict(list)
    for tx in transactions:
        key = vendor_key(tx)
        if key:
            groups[key].append(tx)

    patterns: list[RecurrencePattern] = []
    for key, members in groups.items():
        if len(members) < MIN_OCCURRENCES:
            continue
        pattern = _pattern_for(list(members))
        if pattern is not None:
            logger.debug(
                "recurring vendor %r: %d occurrences every %.1f days",
                key,
                pattern.occurrence_count,
                pattern.average_interval_days,
            )
            patterns.append(pattern)

    patterns.sort(key=lambda p: p.occurrence_count, reverse=True)
    return patterns


def detect_recurring_for_history(
    transactions: Iterable[StoredTransaction],
) -> list[RecurrencePattern]:
    """Like :func:`detect_recurring`, skipping transactions marked excluded."""

    return detect_recurring(tx for tx in transactions if tx.status != TransactionStatus.EXCLUDED)


__all__ = [
    "AMOUNT_TOLERANCE",
    "INTERVAL_TOLERANCE_DAYS",
    "MIN_INTERVAL_DAYS",
    "MIN_OCCURRENCES",
    "detect_recurring",
    "detect_recurring_for_history",
    "vendor_key",
]

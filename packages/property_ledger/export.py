"""CSV export of stored transactions.

Fields containing a comma, a double quote or a newline are quoted, with inner
quotes doubled; everything else is written bare. Category and property ids
are resolved to names when lookup tables are provided.
"""

from __future__ import annotations

import csv
from collections.abc import Iterable, Mapping
from typing import IO

from .models import RefId, StoredTransaction

EXPORT_COLUMNS: tuple[str, ...] = (
    "date",
    "description",
    "vendor",
    "amount",
    "kind",
    "status",
    "category",
    "property",
    "source_file",
)


def _lookup(names: Mapping[RefId, str] | None, ref: RefId | None) -> str:
    if ref is None:
        return ""
    if names is None:
        return str(ref)
    return names.get(ref, str(ref))


def transaction_row(
    tx: StoredTransaction,
    *,
    category_names: Mapping[RefId, str] | None = None,
    property_names: Mapping[RefId, str] | None = None,
) -> dict[str, str]:
    return {
        "date": tx.date.isoformat(),
        "description": tx.description,
        "vendor": tx.description_clean or "",
        "amount": f"{tx.amount:.2f}",
        "kind": str(tx.kind),
        "status": str(tx.status),
        "category": _lookup(category_names, tx.category_id),
        "property": _lookup(property_names, tx.property_id),
        "source_file": tx.source_file or "",
    }


def write_transactions_csv(
    transactions: Iterable[StoredTransaction],
    out: IO[str],
    *,
    category_names: Mapping[RefId, str] | None = None,
    property_names: Mapping[RefId, str] | None = None,
) -> int:
    """Write ``transactions`` to ``out`` as CSV and return the row count.

    Nothing at all (not even the header) is written when there are no
    transactions.
    """

    writer: csv.DictWriter[str] | None = None
    count = 0
    for tx in transactions:
        if writer is None:
            writer = csv.DictWriter(
                out, fieldnames=EXPORT_COLUMNS, quoting=csv.QUOTE_MINIMAL, lineterminator="\n"
            )
            writer.writeheader()
        writer.writerow(
            transaction_row(tx, category_names=category_names, property_names=property_names)
        )
        count += 1
    return count


__all__ = ["EXPORT_COLUMNS", "transaction_row", "write_transactions_csv"]

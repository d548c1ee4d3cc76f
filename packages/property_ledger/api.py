"""Public API surface for the ``property_ledger`` package.

Pure functions are re-exported from their modules. The DB-backed helpers
below open their own session through ``db.client`` and import the SQLAlchemy
layer lazily, so consumers of the pure pipeline never pay for it.
"""

from __future__ import annotations

from datetime import date

from .fingerprint import fingerprint
from .locale_parsers import parse_amount, parse_date
from .models import ImportSummary, RecurrencePattern
from .pipeline import ingest_statement, prepare_batch
from .properties import match_property
from .recurrence import detect_recurring, detect_recurring_for_history
from .rules import apply_rules_to_pending, classify_batch, count_rule_matches, suggest_rule
from .vendor import normalize_vendor


def import_statement_file(
    text: str,
    source_file: str,
    *,
    user_id: str,
    database_url: str | None = None,
    strict: bool = False,
    today: date | None = None,
) -> ImportSummary:
    """Import one statement into the database configured by ``DATABASE_URL``.

    The import commits only when the batch was stored; otherwise the
    :class:`~property_ledger.errors.PersistenceError` propagates and nothing
    (including the audit row) is kept.
    """

    from db.client import session_scope

    from .persistence import SqlLedgerStore

    with session_scope(database_url=database_url) as session:
        return ingest_statement(
            text,
            source_file,
            user_id=user_id,
            store=SqlLedgerStore(session),
            strict=strict,
            raise_on_persist_error=True,
            today=today,
        )


def recurring_payments(
    user_id: str, *, database_url: str | None = None
) -> list[RecurrencePattern]:
    """Detect recurring payments across the user's stored, non-excluded history."""

    from db.client import session_scope

    from .persistence import load_history

    with session_scope(database_url=database_url) as session:
        history = load_history(session, user_id, include_excluded=False)
    return detect_recurring_for_history(history)


__all__ = [
    "apply_rules_to_pending",
    "classify_batch",
    "count_rule_matches",
    "detect_recurring",
    "detect_recurring_for_history",
    "fingerprint",
    "import_statement_file",
    "ingest_statement",
    "match_property",
    "normalize_vendor",
    "parse_amount",
    "parse_date",
    "prepare_batch",
    "recurring_payments",
    "suggest_rule",
]

"""SQLAlchemy-backed storage collaborator for ``property_ledger``.

Reads and writes the ``pl_*`` tables owned by ``libs/db`` through a session
supplied by the caller (typically ``db.client.session_scope``). Commit and
rollback of the outer transaction stay with the caller; batch inserts run in a
SAVEPOINT so a rejected batch leaves the session usable for the import audit
row.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from pydantic import ValidationError
from sqlalchemy import or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.models.ledger import (
    PlAdvancedRule,
    PlCategory,
    PlImport,
    PlProperty,
    PlStandardRule,
    PlTransaction,
)

from .errors import PersistenceError
from .logging_setup import get_logger
from .models import (
    AdvancedRule,
    Category,
    ImportSummary,
    ParsedTransaction,
    Property,
    StandardRule,
    StoredTransaction,
    TransactionKind,
    TransactionStatus,
)
from .rules import RuleUpdate

logger = get_logger("property_ledger.persistence")


# ---------------------------------------------------------------------------
# Row conversion
# ---------------------------------------------------------------------------


def _to_standard_rule(row: PlStandardRule) -> StandardRule:
    return StandardRule(
        id=row.id,
        name=row.name,
        pattern=row.pattern,
        match_type=row.match_type,
        category_id=row.category_id,
        property_id=row.property_id,
        priority=row.priority,
        active=row.active,
    )


def _to_advanced_rule(row: PlAdvancedRule) -> AdvancedRule | None:
    try:
        return AdvancedRule(
            id=row.id,
            name=row.name,
            description_match=row.description_match,
            match_type=row.match_type,
            provider_match=row.provider_match,
            date_logic=row.date_logic,
            property_id=row.property_id,
            priority=row.priority,
            enabled=row.enabled,
        )
    except ValidationError as exc:
        logger.warning("skipping advanced rule %s with invalid date logic: %s", row.id, exc)
        return None


def _to_stored(row: PlTransaction) -> StoredTransaction:
    return StoredTransaction(
        id=row.id,
        date=row.date,
        description=row.description,
        amount=row.amount,
        kind=TransactionKind(row.kind),
        description_clean=row.description_clean,
        status=TransactionStatus(row.status),
        source_file=row.source_file,
        property_id=row.property_id,
        category_id=row.category_id,
    )


def _insert_values(user_id: str, tx: ParsedTransaction) -> dict[str, Any]:
    return {
        "user_id": user_id,
        "date": tx.date,
        "description": tx.description,
        "description_clean": tx.description_clean,
        "amount": tx.amount,
        "kind": tx.kind.value,
        "status": TransactionStatus.PENDING.value,
        "fingerprint": tx.fingerprint,
        "source_file": tx.source_file,
        "property_id": tx.property_id,
        "category_id": tx.category_id,
    }


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class SqlLedgerStore:
    """:class:`~property_ledger.pipeline.LedgerStore` over the ``pl_*`` tables."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def known_fingerprints(self, user_id: str) -> set[str]:
        stmt = select(PlTransaction.fingerprint).where(PlTransaction.user_id == user_id)
        return set(self.session.scalars(stmt))

    def standard_rules(self, user_id: str) -> list[StandardRule]:
        stmt = (
            select(PlStandardRule)
            .where(PlStandardRule.user_id == user_id, PlStandardRule.active.is_(True))
            .order_by(PlStandardRule.priority.desc(), PlStandardRule.id)
        )
        return [_to_standard_rule(r) for r in self.session.scalars(stmt)]

    def advanced_rules(self, user_id: str) -> list[AdvancedRule]:
        stmt = (
            select(PlAdvancedRule)
            .where(PlAdvancedRule.user_id == user_id, PlAdvancedRule.enabled.is_(True))
            .order_by(PlAdvancedRule.priority.desc(), PlAdvancedRule.id)
        )
        rules = (_to_advanced_rule(r) for r in self.session.scalars(stmt))
        return [r for r in rules if r is not None]

    def properties(self, user_id: str) -> list[Property]:
        stmt = (
            select(PlProperty)
            .where(PlProperty.user_id == user_id)
            .order_by(PlProperty.name, PlProperty.id)
        )
        return [
            Property(id=p.id, name=p.name, keywords=list(p.keywords or ()))
            for p in self.session.scalars(stmt)
        ]

    def categories(self, user_id: str) -> list[Category]:
        stmt = (
            select(PlCategory)
            .where(or_(PlCategory.user_id == user_id, PlCategory.user_id.is_(None)))
            .order_by(PlCategory.name, PlCategory.id)
        )
        return [Category(id=c.id, name=c.name, kind=c.kind) for c in self.session.scalars(stmt)]

    def insert_transactions(self, user_id: str, rows: Sequence[ParsedTransaction]) -> int:
        """Insert ``rows`` in one SAVEPOINT; raise :class:`PersistenceError` on failure."""

        if not rows:
            return 0
        try:
            with self.session.begin_nested():
                self.session.add_all(PlTransaction(**_insert_values(user_id, tx)) for tx in rows)
                self.session.flush()
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"could not store {len(rows)} transactions for user {user_id}: {exc}"
            ) from exc
        return len(rows)

    def record_import(self, user_id: str, source_file: str, summary: ImportSummary) -> None:
        self.session.add(
            PlImport(
                user_id=user_id,
                source_file=source_file,
                imported=summary.imported,
                duplicates=summary.duplicates,
                errors=summary.errors,
                auto_categorized=summary.auto_categorized,
                advanced_rule_matches=summary.advanced_rule_matches,
            )
        )
        self.session.flush()


# ---------------------------------------------------------------------------
# History and maintenance
# ---------------------------------------------------------------------------


def load_history(
    session: Session, user_id: str, *, include_excluded: bool = True
) -> list[StoredTransaction]:
    """Return the user's stored transactions, oldest first."""

    stmt = select(PlTransaction).where(PlTransaction.user_id == user_id)
    if not include_excluded:
        stmt = stmt.where(PlTransaction.status != TransactionStatus.EXCLUDED.value)
    stmt = stmt.order_by(PlTransaction.date, PlTransaction.id)
    return [_to_stored(r) for r in session.scalars(stmt)]


def update_transactions(session: Session, user_id: str, updates: Iterable[RuleUpdate]) -> int:
    """Write rule matches back to stored transactions; return rows changed.

    Only rows still pending and uncategorized are touched, so a row the user
    reviewed between matching and writing keeps its manual values.
    """

    changed = 0
    for item in updates:
        values: dict[str, Any] = {}
        if item.category_id is not None:
            values["category_id"] = item.category_id
        if item.property_id is not None:
            values["property_id"] = item.property_id
        if not values:
            continue
        stmt = (
            update(PlTransaction)
            .where(
                PlTransaction.id == item.transaction_id,
                PlTransaction.user_id == user_id,
                PlTransaction.status == TransactionStatus.PENDING.value,
                PlTransaction.category_id.is_(None),
            )
            .values(**values)
        )
        changed += session.execute(stmt).rowcount or 0
    logger.debug("applied rule updates to %d transactions for user %s", changed, user_id)
    return changed


__all__ = ["SqlLedgerStore", "load_history", "update_transactions"]

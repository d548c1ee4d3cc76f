"""Statement ingestion orchestrator.

``ingest_statement`` sequences the core steps for one uploaded file:

1. load reference data (fingerprints, rules, properties, categories) from the
   storage collaborator, once;
2. extract raw rows from the file text;
3. parse dates, fingerprint and deduplicate rows in file order;
4. associate properties by keyword;
5. classify with advanced rules, then standard rules;
6. insert the batch atomically and record the import summary.

Steps 2 to 5 are pure and exposed separately as :func:`prepare_batch`, which
is what the tests and the CLI preview paths use.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Protocol

from .errors import DateParseError, PersistenceError
from .fingerprint import FingerprintSet, fingerprint
from .ingest.extract import Extraction, SkippedLine, extract_statement
from .locale_parsers import parse_date
from .logging_setup import get_logger, import_logger
from .models import (
    AdvancedRule,
    Category,
    ImportSummary,
    ParsedTransaction,
    Property,
    RefId,
    StandardRule,
)
from .properties import assign_property
from .rules import classify_batch
from .vendor import normalize_vendor

logger = get_logger("property_ledger.pipeline")


class LedgerStore(Protocol):
    """Storage collaborator consulted by :func:`ingest_statement`.

    Reference data is read once per import. ``insert_transactions`` must be
    atomic: either every row of the batch is stored or none is, in which case
    it raises :class:`~property_ledger.errors.PersistenceError`.
    """

    def known_fingerprints(self, user_id: str) -> Iterable[str]: ...

    def advanced_rules(self, user_id: str) -> Sequence[AdvancedRule]: ...

    def standard_rules(self, user_id: str) -> Sequence[StandardRule]: ...

    def properties(self, user_id: str) -> Sequence[Property]: ...

    def categories(self, user_id: str) -> Sequence[Category]: ...

    def insert_transactions(self, user_id: str, rows: Sequence[ParsedTransaction]) -> int: ...

    def record_import(self, user_id: str, source_file: str, summary: ImportSummary) -> None: ...


@dataclass(slots=True)
class PreparedBatch:
    """Classified rows for one file plus the counters gathered on the way."""

    transactions: list[ParsedTransaction] = field(default_factory=list)
    summary: ImportSummary = field(default_factory=ImportSummary)
    skipped: list[SkippedLine] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Pure steps
# ---------------------------------------------------------------------------


def build_transactions(
    extraction: Extraction,
    fingerprints: FingerprintSet,
    *,
    strict: bool = False,
    today: date | None = None,
) -> tuple[list[ParsedTransaction], list[SkippedLine]]:
    """Turn extracted rows into deduplicated :class:`ParsedTransaction` records.

    Rows are processed in file order and each accepted fingerprint is claimed
    immediately, so a repeated row later in the same file counts as a
    duplicate. With ``strict`` set, rows whose date cannot be parsed are
    skipped instead of being dated ``today``.

    Returns
    -------
    tuple[list[ParsedTransaction], list[SkippedLine]]
        The accepted transactions and the rows rejected for bad dates.
        Duplicates are counted on ``fingerprints``.
    """

    accepted: list[ParsedTransaction] = []
    rejected: list[SkippedLine] = []
    for row_no, row in enumerate(extraction.rows, start=1):
        try:
            tx_date = parse_date(row.date, strict=strict, today=today)
        except DateParseError as exc:
            rejected.append(SkippedLine(row_no, str(exc)))
            continue

        fp = fingerprint(tx_date, row.description, row.amount)
        if not fingerprints.claim(fp):
            continue

        accepted.append(
            ParsedTransaction(
                date=tx_date,
                description=row.description,
                description_clean=normalize_vendor(row.description),
                amount=abs(row.amount),
                kind=row.kind,
                fingerprint=fp,
                source_file=row.source_file,
            )
        )
    return accepted, rejected


def _known_category_rules(
    rules: Sequence[StandardRule], categories: Sequence[Category]
) -> list[StandardRule]:
    # Rules pointing at a category the user cannot see lose that target.
    if not categories:
        return list(rules)
    known: set[RefId] = {c.id for c in categories}
    usable: list[StandardRule] = []
    for rule in rules:
        if rule.category_id is not None and rule.category_id not in known:
            logger.warning(
                "rule %r references unknown category %s; ignoring its category",
                rule.name or rule.id,
                rule.category_id,
            )
            rule = rule.model_copy(update={"category_id": None})
        usable.append(rule)
    return usable


def prepare_batch(
    text: str,
    source_file: str,
    *,
    known_fingerprints: Iterable[str] = (),
    properties: Sequence[Property] = (),
    advanced_rules: Sequence[AdvancedRule] = (),
    standard_rules: Sequence[StandardRule] = (),
    categories: Sequence[Category] = (),
    strict: bool = False,
    today: date | None = None,
) -> PreparedBatch:
    """Extract, deduplicate and classify one file without touching storage."""

    extraction = extract_statement(text, source_file)
    fingerprints = FingerprintSet(known_fingerprints)
    transactions, bad_dates = build_transactions(
        extraction, fingerprints, strict=strict, today=today
    )

    for tx in transactions:
        assign_property(tx, properties)

    counts = classify_batch(
        transactions,
        advanced_rules=advanced_rules,
        standard_rules=_known_category_rules(standard_rules, categories),
    )

    skipped = [*extraction.skipped, *bad_dates]
    summary = ImportSummary(
        imported=len(transactions),
        duplicates=fingerprints.duplicates,
        errors=len(skipped) if strict else 0,
        auto_categorized=counts.auto_categorized,
        advanced_rule_matches=counts.advanced_rule_matches,
        skipped=len(skipped),
    )
    return PreparedBatch(transactions=transactions, summary=summary, skipped=skipped)


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------


def ingest_statement(
    text: str,
    source_file: str,
    *,
    user_id: str,
    store: LedgerStore,
    strict: bool = False,
    raise_on_persist_error: bool = False,
    today: date | None = None,
) -> ImportSummary:
    """Import one statement file for ``user_id`` through ``store``.

    Parameters
    ----------
    text:
        Full text content of the uploaded file.
    source_file:
        File name; stored on every row and matched by advanced rules'
        ``provider_match``.
    user_id:
        Owner of the imported rows; scopes deduplication and rule lookup.
    store:
        Storage collaborator (see :class:`LedgerStore`).
    strict:
        Skip rows with unrecognized dates rather than dating them today, and
        report every skipped row under ``errors``.
    raise_on_persist_error:
        Re-raise :class:`PersistenceError` instead of reporting the batch as
        failed in the summary.
    today:
        Processing date used for lenient date parsing; defaults to the
        current date.

    Returns
    -------
    ImportSummary
        Counters for the file. When the batch insert fails, ``imported`` is 0
        and ``errors`` includes the whole batch.
    """

    batch = prepare_batch(
        text,
        source_file,
        known_fingerprints=store.known_fingerprints(user_id),
        properties=store.properties(user_id),
        advanced_rules=store.advanced_rules(user_id),
        standard_rules=store.standard_rules(user_id),
        categories=store.categories(user_id),
        strict=strict,
        today=today,
    )
    summary = batch.summary
    log = import_logger(logger, user_id=user_id, source_file=source_file)

    if batch.transactions:
        try:
            store.insert_transactions(user_id, batch.transactions)
        except PersistenceError:
            log.exception("failed to store %d transactions", len(batch.transactions))
            if raise_on_persist_error:
                raise
            summary.errors += len(batch.transactions)
            summary.imported = 0
            summary.auto_categorized = 0
            summary.advanced_rule_matches = 0

    store.record_import(user_id, source_file, summary)
    log.info(
        "%d new, %d duplicates, %d errors, %d auto-categorized, %d advanced rule matches",
        summary.imported,
        summary.duplicates,
        summary.errors,
        summary.auto_categorized,
        summary.advanced_rule_matches,
    )
    return summary


__all__ = [
    "LedgerStore",
    "PreparedBatch",
    "build_transactions",
    "ingest_statement",
    "prepare_batch",
]

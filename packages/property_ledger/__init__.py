"""Public interface for the ``property_ledger`` package.

Bank statement ingestion and transaction classification for rental property
ledgers. This module only re-exports symbols; there is no runtime logic here.
"""

from .api import (
    apply_rules_to_pending,
    classify_batch,
    count_rule_matches,
    detect_recurring,
    detect_recurring_for_history,
    fingerprint,
    import_statement_file,
    ingest_statement,
    match_property,
    normalize_vendor,
    parse_amount,
    parse_date,
    prepare_batch,
    recurring_payments,
    suggest_rule,
)
from .errors import DateParseError, LedgerError, PersistenceError
from .models import (
    AdvancedMatchType,
    AdvancedRule,
    Category,
    DayOfMonthRange,
    ImportSummary,
    MatchType,
    OrdinalInMonth,
    ParsedTransaction,
    Property,
    RecurrencePattern,
    StandardRule,
    StoredTransaction,
    TransactionKind,
    TransactionStatus,
)

__all__ = [
    # API
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
    # Errors
    "DateParseError",
    "LedgerError",
    "PersistenceError",
    # Models / types
    "AdvancedMatchType",
    "AdvancedRule",
    "Category",
    "DayOfMonthRange",
    "ImportSummary",
    "MatchType",
    "OrdinalInMonth",
    "ParsedTransaction",
    "Property",
    "RecurrencePattern",
    "StandardRule",
    "StoredTransaction",
    "TransactionKind",
    "TransactionStatus",
]

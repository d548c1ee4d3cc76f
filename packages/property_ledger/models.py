"""Data models and type aliases for ``property_ledger``.

Two families live here, following the split used throughout the package:

- pydantic models for everything that crosses the storage boundary (rules,
  properties, categories, import summaries). These are validated when loaded
  from the database or from user-authored JSON.
- slotted dataclasses for the in-process records produced and consumed by the
  pipeline (raw rows, parsed transactions, recurrence patterns).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Identifiers are database primary keys in practice, but the core algorithms
# only compare them for equality.
type RefId = int | str


class TransactionKind(StrEnum):
    INCOME = "income"
    EXPENSE = "expense"


class TransactionStatus(StrEnum):
    PENDING = "pending"
    POSTED = "posted"
    EXCLUDED = "excluded"


class MatchType(StrEnum):
    """How a standard rule's pattern is compared with a description."""

    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    EXACT = "exact"
    REGEX = "regex"


class AdvancedMatchType(StrEnum):
    """Description comparison modes available to advanced rules."""

    CONTAINS = "contains"
    EXACT = "exact"
    REGEX = "regex"


class Layout(StrEnum):
    """Which extractor produced a row."""

    STRUCTURED = "structured"
    FALLBACK = "fallback"


class AssignmentSource(StrEnum):
    """Who set a transaction's property. Later sources outrank earlier ones."""

    KEYWORD = "keyword"
    STANDARD_RULE = "standard_rule"
    ADVANCED_RULE = "advanced_rule"


# ---------------------------------------------------------------------------
# Reference data (loaded once per import)
# ---------------------------------------------------------------------------


class Property(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int | str
    name: str
    keywords: tuple[str, ...] = ()

    @field_validator("keywords", mode="before")
    @classmethod
    def _drop_blank_keywords(cls, v: object) -> object:
        # An empty keyword would be a substring of every description.
        if isinstance(v, list | tuple):
            return tuple(k.strip() for k in v if isinstance(k, str) and k.strip())
        return v


class Category(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int | str
    name: str
    kind: TransactionKind


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


class StandardRule(BaseModel):
    """Pattern rule assigning a category and/or property by description text."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int | str | None = None
    name: str | None = None
    pattern: str
    match_type: MatchType = MatchType.CONTAINS
    category_id: int | str | None = None
    property_id: int | str | None = None
    priority: int = 0
    active: bool = True


class DayOfMonthRange(BaseModel):
    """Matches when the transaction's day of month lies in ``[start, end]``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Literal["day_of_month_range"] = "day_of_month_range"
    start: int = Field(default=1, ge=1, le=31)
    end: int = Field(default=31, ge=1, le=31)

    @model_validator(mode="after")
    def _ordered_bounds(self) -> DayOfMonthRange:
        if self.start > self.end:
            raise ValueError(f"start ({self.start}) is after end ({self.end})")
        return self


class OrdinalInMonth(BaseModel):
    """Matches the N-th same-description transaction of a calendar month."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Literal["ordinal_in_month"] = "ordinal_in_month"
    position: int = Field(default=1, ge=1)


DateLogic = Annotated[DayOfMonthRange | OrdinalInMonth, Field(discriminator="type")]


class AdvancedRule(BaseModel):
    """Date-aware rule that assigns a property; evaluated before standard rules."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int | str | None = None
    name: str | None = None
    description_match: str
    match_type: AdvancedMatchType = AdvancedMatchType.CONTAINS
    # When set, only rows imported from a file with exactly this name match.
    provider_match: str | None = None
    date_logic: DateLogic
    property_id: int | str | None = None
    priority: int = 0
    enabled: bool = True

    @field_validator("provider_match")
    @classmethod
    def _empty_provider_is_unset(cls, v: str | None) -> str | None:
        return v if v else None


# ---------------------------------------------------------------------------
# Pipeline records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RawRow:
    """A minimally parsed statement row, as extracted from the file text.

    ``amount`` is the signed value parsed from ``amount_text``. Its polarity
    is interpreted per ``layout`` (see :attr:`kind`).
    """

    date: str
    description: str
    amount_text: str
    source_file: str
    amount: Decimal
    layout: Layout

    @property
    def kind(self) -> TransactionKind:
        negative = self.amount < 0
        if self.layout is Layout.FALLBACK:
            # Unstructured statements print debits as positive figures.
            return TransactionKind.INCOME if negative else TransactionKind.EXPENSE
        return TransactionKind.EXPENSE if negative else TransactionKind.INCOME


@dataclass(slots=True)
class ParsedTransaction:
    """A deduplicated transaction ready for classification and persistence.

    ``amount`` is always the non-negative magnitude; direction is ``kind``.
    """

    date: date
    description: str
    description_clean: str
    amount: Decimal
    kind: TransactionKind
    fingerprint: str
    source_file: str
    property_id: RefId | None = None
    category_id: RefId | None = None
    property_source: AssignmentSource | None = None

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError("ParsedTransaction.amount must be non-negative")


@dataclass(frozen=True, slots=True)
class StoredTransaction:
    """A transaction read back from storage (history, export, rule backfill)."""

    id: RefId
    date: date
    description: str
    amount: Decimal
    kind: TransactionKind
    description_clean: str | None = None
    status: TransactionStatus = TransactionStatus.PENDING
    source_file: str | None = None
    property_id: RefId | None = None
    category_id: RefId | None = None


@dataclass(frozen=True, slots=True)
class RecurrencePattern:
    """A vendor whose transactions repeat at a stable interval and amount."""

    vendor: str
    average_amount: Decimal
    average_interval_days: float
    occurrence_count: int
    next_expected_date: date
    member_transaction_ids: tuple[RefId, ...] = field(default_factory=tuple)


class ImportSummary(BaseModel):
    """Per-file counters surfaced to the caller after an import.

    ``skipped`` counts unparseable rows; it is diagnostic only and is folded
    into ``errors`` only when the import runs in strict mode.
    """

    model_config = ConfigDict(extra="forbid")

    imported: int = 0
    duplicates: int = 0
    errors: int = 0
    auto_categorized: int = 0
    advanced_rule_matches: int = 0
    skipped: int = 0


__all__ = [
    "AdvancedMatchType",
    "AdvancedRule",
    "AssignmentSource",
    "Category",
    "DateLogic",
    "DayOfMonthRange",
    "ImportSummary",
    "Layout",
    "MatchType",
    "OrdinalInMonth",
    "ParsedTransaction",
    "Property",
    "RawRow",
    "RecurrencePattern",
    "RefId",
    "StandardRule",
    "StoredTransaction",
    "TransactionKind",
    "TransactionStatus",
]

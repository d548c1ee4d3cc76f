"""Two-tier classification rules.

Evaluation order for every row of a batch:

1. **Advanced rules** (enabled only, highest priority first). They match on
   description, optional source file, and date logic (day-of-month range or
   ordinal position within the month). The first match sets the row's
   property; advanced rules never set a category.
2. **Standard rules** (active only, highest priority first). The first rule
   whose pattern matches wins. It sets the category when it has one, and the
   property when it has one unless an advanced rule already set it.

Keyword-based property matches (:mod:`property_ledger.properties`) rank below
both tiers and are overwritten by either.

Ordinal positions are computed once per batch by :class:`OrdinalIndex` so
that every rule sees the same numbering.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .logging_setup import get_logger
from .matching import text_matches
from .models import (
    AdvancedRule,
    AssignmentSource,
    Category,
    DateLogic,
    DayOfMonthRange,
    MatchType,
    OrdinalInMonth,
    ParsedTransaction,
    RefId,
    StandardRule,
    StoredTransaction,
    TransactionStatus,
)

logger = get_logger("property_ledger.rules")


def ordered_standard_rules(rules: Iterable[StandardRule]) -> list[StandardRule]:
    """Active rules, highest priority first (stable for ties)."""

    return sorted((r for r in rules if r.active), key=lambda r: r.priority, reverse=True)


def ordered_advanced_rules(rules: Iterable[AdvancedRule]) -> list[AdvancedRule]:
    """Enabled rules, highest priority first (stable for ties)."""

    return sorted((r for r in rules if r.enabled), key=lambda r: r.priority, reverse=True)


# ---------------------------------------------------------------------------
# Ordinal-in-month grouping
# ---------------------------------------------------------------------------


def ordinal_group_key(tx: ParsedTransaction) -> tuple[str, str]:
    return tx.description.strip().lower(), tx.date.strftime("%Y-%m")


class OrdinalIndex:
    """1-based rank of each batch row among same-description, same-month rows.

    Rows are addressed by their position in the batch passed to
    :meth:`build`. Ties on date keep batch order.
    """

    __slots__ = ("_positions",)

    def __init__(self, positions: Sequence[int]) -> None:
        self._positions = list(positions)

    @classmethod
    def build(cls, batch: Sequence[ParsedTransaction]) -> OrdinalIndex:
        groups: dict[tuple[str, str], list[int]] = defaultdict(list)
        for i, tx in enumerate(batch):
            groups[ordinal_group_key(tx)].append(i)

        positions = [0] * len(batch)
        for members in groups.values():
            members.sort(key=lambda i: batch[i].date)
            for rank, i in enumerate(members, start=1):
                positions[i] = rank
        return cls(positions)

    def position(self, batch_index: int) -> int:
        return self._positions[batch_index]


# ---------------------------------------------------------------------------
# Advanced rules
# ---------------------------------------------------------------------------


def date_logic_matches(logic: DateLogic, tx: ParsedTransaction, ordinal: int) -> bool:
    match logic:
        case DayOfMonthRange(start=start, end=end):
            return start <= tx.date.day <= end
        case OrdinalInMonth(position=position):
            return ordinal == position


def advanced_rule_matches(rule: AdvancedRule, tx: ParsedTransaction, ordinal: int) -> bool:
    """Return whether ``rule`` applies to ``tx`` at month position ``ordinal``."""

    if rule.property_id is None:
        return False
    if not text_matches(tx.description, rule.description_match, rule.match_type):
        return False
    if rule.provider_match is not None and tx.source_file != rule.provider_match:
        return False
    return date_logic_matches(rule.date_logic, tx, ordinal)


def apply_advanced_rules(
    tx: ParsedTransaction, rules: Sequence[AdvancedRule], ordinal: int
) -> AdvancedRule | None:
    """First pass: set the property from the first matching advanced rule.

    ``rules`` must already be filtered and ordered (see
    :func:`ordered_advanced_rules`). Returns the rule that applied.
    """

    for rule in rules:
        if advanced_rule_matches(rule, tx, ordinal):
            tx.property_id = rule.property_id
            tx.property_source = AssignmentSource.ADVANCED_RULE
            logger.debug(
                "advanced rule %r matched %r -> property %s",
                rule.name or rule.id,
                tx.description,
                rule.property_id,
            )
            return rule
    return None


# ---------------------------------------------------------------------------
# Standard rules
# ---------------------------------------------------------------------------


def find_standard_rule(description: str, rules: Sequence[StandardRule]) -> StandardRule | None:
    """First rule in ``rules`` whose pattern matches ``description``."""

    for rule in rules:
        if text_matches(description, rule.pattern, rule.match_type):
            return rule
    return None


def apply_standard_rules(tx: ParsedTransaction, rules: Sequence[StandardRule]) -> StandardRule | None:
    """Second pass: apply the first matching standard rule.

    A matching rule with neither a category nor a property still ends the
    search. Returns the rule only when it changed ``tx``.
    """

    rule = find_standard_rule(tx.description, rules)
    if rule is None:
        return None

    changed = False
    if rule.category_id is not None:
        tx.category_id = rule.category_id
        changed = True
    if rule.property_id is not None and tx.property_source is not AssignmentSource.ADVANCED_RULE:
        tx.property_id = rule.property_id
        tx.property_source = AssignmentSource.STANDARD_RULE
        changed = True

    if changed:
        logger.debug(
            "rule %r matched %r -> category %s, property %s",
            rule.name or rule.id,
            tx.description,
            tx.category_id,
            tx.property_id,
        )
        return rule
    return None


@dataclass(frozen=True, slots=True)
class ClassificationCounts:
    advanced_rule_matches: int = 0
    auto_categorized: int = 0


def classify_batch(
    batch: Sequence[ParsedTransaction],
    *,
    advanced_rules: Iterable[AdvancedRule] = (),
    standard_rules: Iterable[StandardRule] = (),
) -> ClassificationCounts:
    """Run both rule tiers over ``batch`` in place and return the match counts."""

    advanced = ordered_advanced_rules(advanced_rules)
    standard = ordered_standard_rules(standard_rules)
    ordinals = OrdinalIndex.build(batch) if advanced else None

    advanced_hits = 0
    standard_hits = 0
    for i, tx in enumerate(batch):
        if ordinals is not None and apply_advanced_rules(tx, advanced, ordinals.position(i)):
            advanced_hits += 1
        if standard and apply_standard_rules(tx, standard):
            standard_hits += 1

    return ClassificationCounts(advanced_rule_matches=advanced_hits, auto_categorized=standard_hits)


# ---------------------------------------------------------------------------
# Rule maintenance helpers
# ---------------------------------------------------------------------------


def count_rule_matches(rule: StandardRule, descriptions: Iterable[str | None]) -> int:
    """How many of ``descriptions`` ``rule`` would match, ignoring its priority."""

    return sum(1 for d in descriptions if text_matches(d or "", rule.pattern, rule.match_type))


@dataclass(frozen=True, slots=True)
class RuleUpdate:
    """Fields to write back to a stored transaction after a rule matched it."""

    transaction_id: RefId
    category_id: RefId | None
    property_id: RefId | None
    rule: StandardRule


def apply_rules_to_pending(
    transactions: Iterable[StoredTransaction], rules: Iterable[StandardRule]
) -> list[RuleUpdate]:
    """Match active rules against pending, uncategorized stored transactions.

    Returns one update per transaction whose first matching rule carries a
    category or a property. Nothing is written here; persistence applies the
    updates.
    """

    ordered = ordered_standard_rules(rules)
    updates: list[RuleUpdate] = []
    for tx in transactions:
        if tx.status != TransactionStatus.PENDING or tx.category_id is not None:
            continue
        rule = find_standard_rule(tx.description, ordered)
        if rule is None or (rule.category_id is None and rule.property_id is None):
            continue
        updates.append(
            RuleUpdate(
                transaction_id=tx.id,
                category_id=rule.category_id,
                property_id=rule.property_id,
                rule=rule,
            )
        )
    return updates


def suggest_rule(description: str, category: Category) -> StandardRule:
    """Build a ``contains`` rule from a transaction the user just categorized.

    The pattern is the first three words of the (clean) description, lower
    cased.
    """

    pattern = " ".join(description.split(" ")[:3]).lower()
    return StandardRule(
        name=f"Auto: {category.name}",
        pattern=pattern,
        match_type=MatchType.CONTAINS,
        category_id=category.id,
        priority=0,
        active=True,
    )


__all__ = [
    "ClassificationCounts",
    "OrdinalIndex",
    "RuleUpdate",
    "advanced_rule_matches",
    "apply_advanced_rules",
    "apply_rules_to_pending",
    "apply_standard_rules",
    "classify_batch",
    "count_rule_matches",
    "date_logic_matches",
    "find_standard_rule",
    "ordered_advanced_rules",
    "ordered_standard_rules",
    "ordinal_group_key",
    "suggest_rule",
]

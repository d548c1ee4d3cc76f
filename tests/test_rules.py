from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from property_ledger.matching import compile_pattern, text_matches
from property_ledger.models import (
    AdvancedMatchType,
    AdvancedRule,
    AssignmentSource,
    Category,
    DayOfMonthRange,
    MatchType,
    OrdinalInMonth,
    ParsedTransaction,
    Property,
    StandardRule,
    StoredTransaction,
    TransactionKind,
    TransactionStatus,
)
from property_ledger.properties import assign_property, match_property
from property_ledger.rules import (
    OrdinalIndex,
    advanced_rule_matches,
    apply_rules_to_pending,
    apply_standard_rules,
    classify_batch,
    count_rule_matches,
    ordered_standard_rules,
    suggest_rule,
)


def _tx(day: int, description: str = "TRANSFERENCIA ALQUILER", *, month: int = 3, source: str = "bank.csv"):
    return ParsedTransaction(
        date=date(2024, month, day),
        description=description,
        description_clean=description.title(),
        amount=Decimal("100.00"),
        kind=TransactionKind.INCOME,
        fingerprint=f"fp-{month}-{day}-{description}",
        source_file=source,
    )


def _stored(tx_id: int, description: str, **kwargs):
    return StoredTransaction(
        id=tx_id,
        date=date(2024, 3, 1),
        description=description,
        amount=Decimal("10"),
        kind=TransactionKind.EXPENSE,
        **kwargs,
    )


# ---- matching ---------------------------------------------------------------


def test_text_matches_all_standard_match_types():
    desc = "Recibo Comunidad Propietarios"
    assert text_matches(desc, "COMUNIDAD", MatchType.CONTAINS)
    assert text_matches(desc, "recibo", MatchType.STARTS_WITH)
    assert text_matches(desc, "propietarios", MatchType.ENDS_WITH)
    assert text_matches(desc, "recibo comunidad propietarios", MatchType.EXACT)
    assert not text_matches(desc, "recibo comunidad", MatchType.EXACT)
    assert text_matches(desc, r"comunidad\s+prop", MatchType.REGEX)
    assert text_matches(desc, "recibo", AdvancedMatchType.CONTAINS)


def test_malformed_regex_never_matches():
    assert compile_pattern("([") is None
    assert not text_matches("anything ([", "([", MatchType.REGEX)


# ---- property keywords ------------------------------------------------------


def test_match_property_first_property_in_input_order_wins():
    props = [
        Property(id=1, name="Calle Mayor", keywords=["mayor 12", ""]),
        Property(id=2, name="Playa", keywords=["playa", "mayor"]),
    ]
    assert props[0].keywords == ("mayor 12",)
    assert match_property("RECIBO AGUA CALLE MAYOR 12", props) == 1
    assert match_property("Recibo agua Mayor 14", props) == 2
    assert match_property("Bizum", props) is None


def test_assign_property_records_keyword_source():
    tx = _tx(1, "Recibo Playa")
    assert assign_property(tx, [Property(id=2, name="Playa", keywords=["playa"])])
    assert tx.property_id == 2
    assert tx.property_source is AssignmentSource.KEYWORD


# ---- ordinal grouping and date logic ---------------------------------------


def test_ordinal_in_month_matches_only_the_requested_position():
    # Batch order differs from date order on purpose
    batch = [_tx(28), _tx(1), _tx(15), _tx(15, "OTRA COSA"), _tx(2, month=4)]
    rule = AdvancedRule(
        description_match="transferencia alquiler",
        date_logic=OrdinalInMonth(position=2),
        property_id=7,
    )

    counts = classify_batch(batch, advanced_rules=[rule])

    assert counts.advanced_rule_matches == 1
    assert [tx.property_id for tx in batch] == [None, None, 7, None, None]


def test_ordinal_index_groups_by_trimmed_lowercase_description_and_month():
    batch = [_tx(10, "Rent "), _tx(5, "RENT"), _tx(20, "rent", month=4)]
    index = OrdinalIndex.build(batch)
    assert [index.position(i) for i in range(3)] == [2, 1, 1]


def test_day_of_month_range_is_inclusive():
    rule = AdvancedRule(
        description_match="alquiler",
        date_logic=DayOfMonthRange(start=1, end=10),
        property_id=3,
    )
    assert advanced_rule_matches(rule, _tx(1), 1)
    assert advanced_rule_matches(rule, _tx(10), 1)
    assert not advanced_rule_matches(rule, _tx(11), 1)


def test_advanced_rule_provider_and_property_requirements():
    scoped = AdvancedRule(
        description_match="alquiler",
        provider_match="santander.csv",
        date_logic=DayOfMonthRange(),
        property_id=3,
    )
    assert advanced_rule_matches(scoped, _tx(5, source="santander.csv"), 1)
    assert not advanced_rule_matches(scoped, _tx(5, source="bbva.csv"), 1)

    unscoped = AdvancedRule(
        description_match="alquiler", provider_match="", date_logic=DayOfMonthRange(), property_id=3
    )
    assert unscoped.provider_match is None
    assert advanced_rule_matches(unscoped, _tx(5, source="bbva.csv"), 1)

    no_target = AdvancedRule(description_match="alquiler", date_logic=DayOfMonthRange())
    assert not advanced_rule_matches(no_target, _tx(5), 1)


def test_advanced_exact_match_is_case_insensitive():
    rule = AdvancedRule(
        description_match="Transferencia Alquiler",
        match_type=AdvancedMatchType.EXACT,
        date_logic=DayOfMonthRange(),
        property_id=3,
    )
    assert advanced_rule_matches(rule, _tx(5), 1)
    assert not advanced_rule_matches(rule, _tx(5, "TRANSFERENCIA ALQUILER MARZO"), 1)


def test_date_logic_parses_from_tagged_payload():
    rule = AdvancedRule.model_validate(
        {
            "description_match": "alquiler",
            "date_logic": {"type": "ordinal_in_month", "position": 2},
            "property_id": 1,
        }
    )
    assert rule.date_logic == OrdinalInMonth(position=2)


def test_inverted_day_of_month_range_is_rejected():
    with pytest.raises(ValidationError):
        DayOfMonthRange(start=20, end=5)
    with pytest.raises(ValidationError):
        AdvancedRule.model_validate(
            {
                "description_match": "alquiler",
                "date_logic": {"type": "day_of_month_range", "start": 28, "end": 1},
                "property_id": 1,
            }
        )
    assert DayOfMonthRange(start=15, end=15).end == 15


# ---- standard rules and precedence -----------------------------------------


def test_advanced_property_survives_standard_rule_which_still_sets_category():
    tx = _tx(5)
    advanced = AdvancedRule(description_match="alquiler", date_logic=DayOfMonthRange(), property_id=1)
    standard = StandardRule(pattern="alquiler", category_id=10, property_id=2)

    counts = classify_batch([tx], advanced_rules=[advanced], standard_rules=[standard])

    assert (tx.property_id, tx.category_id) == (1, 10)
    assert tx.property_source is AssignmentSource.ADVANCED_RULE
    assert counts.advanced_rule_matches == 1
    assert counts.auto_categorized == 1


def test_standard_rule_overwrites_keyword_property():
    tx = _tx(5)
    assign_property(tx, [Property(id=5, name="Mayor", keywords=["alquiler"])])

    rule = apply_standard_rules(tx, [StandardRule(pattern="alquiler", property_id=9)])

    assert rule is not None
    assert tx.property_id == 9
    assert tx.property_source is AssignmentSource.STANDARD_RULE


def test_highest_priority_active_rule_wins():
    rules = [
        StandardRule(id="low", pattern="alquiler", category_id=1, priority=1),
        StandardRule(id="off", pattern="alquiler", category_id=2, priority=50, active=False),
        StandardRule(id="high", pattern="transferencia", category_id=3, priority=10),
    ]
    assert [r.id for r in ordered_standard_rules(rules)] == ["high", "low"]

    tx = _tx(5)
    classify_batch([tx], standard_rules=rules)
    assert tx.category_id == 3


def test_matching_rule_without_targets_stops_evaluation():
    rules = ordered_standard_rules(
        [
            StandardRule(pattern="alquiler", priority=10),
            StandardRule(pattern="alquiler", category_id=3, priority=1),
        ]
    )
    tx = _tx(5)
    assert apply_standard_rules(tx, rules) is None
    assert tx.category_id is None


def test_malformed_regex_rule_is_skipped_not_fatal():
    rules = [
        StandardRule(pattern="([", match_type=MatchType.REGEX, category_id=1, priority=10),
        StandardRule(pattern="^transferencia", match_type=MatchType.REGEX, category_id=2),
    ]
    tx = _tx(5)
    counts = classify_batch([tx], standard_rules=rules)
    assert tx.category_id == 2
    assert counts.auto_categorized == 1


# ---- rule maintenance helpers ----------------------------------------------


def test_count_rule_matches():
    rule = StandardRule(pattern="recibo", match_type=MatchType.STARTS_WITH)
    assert count_rule_matches(rule, ["Recibo agua", "RECIBO luz", "Bizum recibo", None]) == 2


def test_apply_rules_to_pending_only_touches_pending_uncategorized():
    transactions = [
        _stored(1, "Recibo Agua"),
        _stored(2, "Recibo Agua", category_id=4),
        _stored(3, "Recibo Agua", status=TransactionStatus.POSTED),
        _stored(4, "Bizum"),
        _stored(5, "Recibo Luz"),
    ]
    rules = [
        StandardRule(id=1, pattern="agua", category_id=8, property_id=2),
        StandardRule(id=2, pattern="recibo", priority=-1),
    ]

    updates = apply_rules_to_pending(transactions, rules)

    assert [(u.transaction_id, u.category_id, u.property_id) for u in updates] == [(1, 8, 2)]


def test_suggest_rule_uses_first_three_words():
    category = Category(id=4, name="Suministros", kind="expense")
    rule = suggest_rule("Recibo Agua Canal Isabel II", category)
    assert rule.name == "Auto: Suministros"
    assert rule.pattern == "recibo agua canal"
    assert rule.match_type is MatchType.CONTAINS
    assert rule.category_id == 4
    assert rule.priority == 0
    assert rule.active

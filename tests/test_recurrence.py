from datetime import date, timedelta
from decimal import Decimal

from property_ledger.models import StoredTransaction, TransactionKind, TransactionStatus
from property_ledger.recurrence import detect_recurring, detect_recurring_for_history

_next_id = iter(range(1, 10_000))


def _tx(day: date, vendor: str, amount: str, **kwargs) -> StoredTransaction:
    return StoredTransaction(
        id=next(_next_id),
        date=day,
        description=vendor.upper(),
        description_clean=vendor,
        amount=Decimal(amount),
        kind=TransactionKind.EXPENSE,
        **kwargs,
    )


def _monthly(vendor: str, amount: str, months: int, *, start: date = date(2024, 1, 15)):
    return [_tx(date(start.year, start.month + i, start.day), vendor, amount) for i in range(months)]


def test_detects_monthly_subscription_and_projects_next_date():
    netflix = _monthly("Netflix Monthly", "15.99", 3)
    history = netflix + [
        _tx(date(2024, 1, 3), "Ferreteria Lopez", "40.00"),
        _tx(date(2024, 2, 9), "Ferreteria Lopez", "40.00"),
    ]

    patterns = detect_recurring(history)

    assert len(patterns) == 1
    (p,) = patterns
    assert p.vendor == "Netflix Monthly"
    assert p.occurrence_count == 3
    assert p.average_amount == Decimal("15.99")
    assert p.average_interval_days == 30
    assert abs((p.next_expected_date - date(2024, 4, 15)).days) <= 1
    assert p.member_transaction_ids == tuple(tx.id for tx in netflix)


def test_members_are_ordered_by_date_regardless_of_input_order():
    txs = _monthly("Seguro Hogar", "30.00", 3)
    patterns = detect_recurring(list(reversed(txs)))
    assert patterns[0].member_transaction_ids == tuple(tx.id for tx in txs)
    assert patterns[0].next_expected_date > txs[-1].date


def test_groups_vendor_case_insensitively():
    txs = [
        _tx(date(2024, 1, 1), "Gimnasio", "25.00"),
        _tx(date(2024, 2, 1), "GIMNASIO ", "25.00"),
        _tx(date(2024, 3, 1), "gimnasio", "25.00"),
    ]
    (p,) = detect_recurring(txs)
    assert p.vendor == "Gimnasio"


def test_rejects_amounts_deviating_ten_percent_or_more():
    # 9 deviates from the mean of 10 by exactly 10%
    txs = [
        _tx(date(2024, 1, 1), "Agua", "9.00"),
        _tx(date(2024, 2, 1), "Agua", "11.00"),
        _tx(date(2024, 3, 1), "Agua", "10.00"),
    ]
    assert detect_recurring(txs) == []


def test_rejects_irregular_or_too_frequent_intervals():
    irregular = [
        _tx(date(2024, 1, 1), "Luz", "50.00"),
        _tx(date(2024, 1, 8), "Luz", "50.00"),
        _tx(date(2024, 2, 20), "Luz", "50.00"),
    ]
    daily = [_tx(date(2024, 1, 1) + timedelta(days=i), "Cafe", "2.00") for i in range(5)]
    assert detect_recurring(irregular + daily) == []


def test_accepts_small_interval_jitter_and_weekly_cadence():
    weekly = [_tx(date(2024, 1, 1) + timedelta(days=7 * i), "Limpieza", "60.00") for i in range(4)]
    (p,) = detect_recurring(weekly)
    assert p.average_interval_days == 7
    assert p.next_expected_date == date(2024, 1, 29)


def test_zero_amount_group_is_not_recurring():
    txs = _monthly("Ajuste", "0.00", 3)
    assert detect_recurring(txs) == []


def test_sorted_by_occurrence_count():
    three = _monthly("Seguro", "20.00", 3)
    five = _monthly("Alquiler Garaje", "80.00", 5)
    patterns = detect_recurring(three + five)
    assert [p.vendor for p in patterns] == ["Alquiler Garaje", "Seguro"]


def test_history_helper_skips_excluded_transactions():
    txs = _monthly("Netflix Monthly", "15.99", 2)
    txs.append(_tx(date(2024, 3, 15), "Netflix Monthly", "15.99", status=TransactionStatus.EXCLUDED))
    assert len(detect_recurring(txs)) == 1
    assert detect_recurring_for_history(txs) == []


def test_falls_back_to_raw_description_without_clean_label():
    txs = [
        StoredTransaction(
            id=i,
            date=date(2024, i, 10),
            description="COMUNIDAD PROPIETARIOS",
            amount=Decimal("75.00"),
            kind=TransactionKind.EXPENSE,
        )
        for i in (1, 2, 3)
    ]
    (p,) = detect_recurring(txs)
    assert p.vendor == "COMUNIDAD PROPIETARIOS"


def test_vendor_label_comes_from_first_seen_transaction():
    txs = [
        _tx(date(2024, 3, 15), "Netflix.com", "15.99"),
        _tx(date(2024, 1, 15), "netflix.com", "15.99"),
        _tx(date(2024, 2, 15), "NETFLIX.COM", "15.99"),
    ]
    (p,) = detect_recurring(txs)
    assert p.vendor == "Netflix.com"
    assert p.next_expected_date == date(2024, 4, 14)

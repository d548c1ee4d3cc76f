from datetime import date
from decimal import Decimal

import pytest

from property_ledger.errors import DateParseError
from property_ledger.locale_parsers import parse_amount, parse_date


def test_parse_amount_european_formats():
    assert parse_amount("1.234,56 EUR") == Decimal("1234.56")
    assert parse_amount("-315,51EUR") == Decimal("-315.51")
    assert parse_amount(" 12,5 ") == Decimal("12.5")
    assert parse_amount("1.000") == Decimal("1000")


def test_parse_amount_unparseable_is_zero():
    assert parse_amount("") == 0
    assert parse_amount(None) == 0
    assert parse_amount("n/a") == 0


def test_parse_date_day_month_year_and_iso():
    assert parse_date("05/03/2024") == date(2024, 3, 5)
    assert parse_date("2024-03-05") == date(2024, 3, 5)
    assert parse_date("5/3/2024") == date(2024, 3, 5)
    assert parse_date("F.Valor 05/03/2024 ") == date(2024, 3, 5)


def test_parse_date_lenient_defaults_to_processing_date():
    today = date(2024, 6, 1)
    assert parse_date("yesterday", today=today) == today
    assert parse_date("", today=today) == today
    # Impossible calendar dates are treated like any other unrecognized text
    assert parse_date("31/02/2024", today=today) == today
    assert parse_date("2024-13-01", today=today) == today


def test_parse_date_strict_raises():
    with pytest.raises(DateParseError) as excinfo:
        parse_date("31/02/2024", strict=True)
    assert excinfo.value.text == "31/02/2024"
    # Still a ValueError for callers that only know the builtin
    with pytest.raises(ValueError):
        parse_date("March 5th", strict=True)


def test_parse_amount_out_of_range_is_zero():
    assert parse_amount("1e50") == 0
    assert parse_amount("123456789012345678901234567890,00") == 0
    assert parse_amount("10.000.000.000.000.000,00") == 0
    assert parse_amount("9.999.999.999.999.999,99") == Decimal("9999999999999999.99")

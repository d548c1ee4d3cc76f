from datetime import date
from decimal import Decimal

from property_ledger.fingerprint import FingerprintSet, canonical_key, fingerprint, rolling_hash32


def test_canonical_key_normalizes_description_and_amount():
    assert canonical_key(date(2024, 3, 5), "  Rent March ", Decimal("-850.5")) == (
        "2024-03-05|rent march|850.50"
    )


def test_fingerprint_is_case_whitespace_and_sign_invariant():
    d = date(2024, 3, 5)
    base = fingerprint(d, "Recibo Comunidad", Decimal("120.50"))
    assert fingerprint(d, "RECIBO COMUNIDAD", Decimal("120.50")) == base
    assert fingerprint(d, "  recibo comunidad  ", Decimal("120.50")) == base
    assert fingerprint(d, "Recibo Comunidad", Decimal("-120.50")) == base


def test_fingerprint_distinguishes_fields():
    d = date(2024, 3, 5)
    base = fingerprint(d, "Recibo Comunidad", Decimal("120.50"))
    assert fingerprint(date(2024, 3, 6), "Recibo Comunidad", Decimal("120.50")) != base
    assert fingerprint(d, "Recibo Agua", Decimal("120.50")) != base
    assert fingerprint(d, "Recibo Comunidad", Decimal("120.51")) != base


def test_fingerprint_is_short_lowercase_hex():
    fp = fingerprint(date(2024, 1, 15), "Netflix", Decimal("15.99"))
    assert fp == fp.lower()
    int(fp, 16)
    assert 1 <= len(fp) <= 8


def test_rolling_hash_wraps_to_signed_32_bits():
    assert rolling_hash32("") == 0
    assert rolling_hash32("a") == 97
    assert rolling_hash32("ab") == 97 * 31 + 98
    long_value = rolling_hash32("x" * 200)
    assert -(2**31) <= long_value < 2**31


def test_fingerprint_set_claims_once():
    seen = FingerprintSet(["abc"])
    assert "abc" in seen
    assert seen.claim("abc") is False
    assert seen.claim("def") is True
    assert seen.claim("def") is False
    assert seen.duplicates == 2
    assert len(seen) == 2

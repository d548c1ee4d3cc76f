import io
from datetime import date
from decimal import Decimal

from property_ledger.export import EXPORT_COLUMNS, write_transactions_csv
from property_ledger.models import StoredTransaction, TransactionKind, TransactionStatus


def _stored(**kwargs) -> StoredTransaction:
    defaults = dict(
        id=1,
        date=date(2024, 3, 5),
        description="RECIBO COMUNIDAD",
        amount=Decimal("120.5"),
        kind=TransactionKind.EXPENSE,
        description_clean="Recibo Comunidad",
    )
    defaults.update(kwargs)
    return StoredTransaction(**defaults)


def test_writes_header_and_resolves_names():
    out = io.StringIO()
    written = write_transactions_csv(
        [_stored(category_id=3, property_id=7, source_file="santander.csv")],
        out,
        category_names={3: "Comunidad"},
        property_names={7: "Calle Mayor"},
    )

    assert written == 1
    header, row = out.getvalue().splitlines()
    assert header == ",".join(EXPORT_COLUMNS)
    assert row == (
        "2024-03-05,RECIBO COMUNIDAD,Recibo Comunidad,120.50,expense,pending,"
        "Comunidad,Calle Mayor,santander.csv"
    )


def test_quotes_fields_with_commas_quotes_and_newlines():
    out = io.StringIO()
    write_transactions_csv(
        [_stored(description='Pago "urgente", fontanero', status=TransactionStatus.POSTED)],
        out,
    )
    row = out.getvalue().splitlines()[1]
    assert row.startswith('2024-03-05,"Pago ""urgente"", fontanero",')
    assert ",posted,,," in row


def test_unknown_ids_fall_back_to_the_id():
    out = io.StringIO()
    write_transactions_csv([_stored(category_id=42)], out, category_names={})
    assert ",42," in out.getvalue()


def test_no_transactions_writes_nothing():
    out = io.StringIO()
    assert write_transactions_csv([], out) == 0
    assert out.getvalue() == ""

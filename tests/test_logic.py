from datetime import datetime, timezone
from decimal import Decimal

import pytest

from audit_ledger.errors import ValidationError
from audit_ledger.logic import (
    format_cents,
    format_timestamp,
    parse_amount_to_cents,
    parse_timestamp,
    validate_currency,
    validate_new_transaction,
)


@pytest.mark.parametrize(
    "s,expected",
    [
        ("0.01", 1),
        ("1", 100),
        ("1.2", 120),
        ("1.20", 120),
        ("10.05", 1005),
        (Decimal("19.99"), 1999),
        (7, 700),
    ],
)
def test_parse_amount_to_cents_ok(s, expected):
    assert parse_amount_to_cents(s) == expected


@pytest.mark.parametrize(
    "s", ["", "-5", "0", "abc", "1.234", "NaN", "Infinity", "1e999999999", True, None]
)
def test_parse_amount_to_cents_bad(s):
    with pytest.raises(ValidationError):
        parse_amount_to_cents(s)


def test_format_cents_is_exact():
    assert format_cents(1999) == Decimal("19.99")
    assert str(format_cents(100)) == "1.00"
    assert str(format_cents(1)) == "0.01"


@pytest.mark.parametrize("s,expected", [("USD", "USD"), ("eur", "EUR"), (" chf ", "CHF")])
def test_validate_currency_ok(s, expected):
    assert validate_currency(s) == expected


@pytest.mark.parametrize("s", ["US", "USDT", "", "U$D", "12A", None, 840])
def test_validate_currency_bad(s):
    with pytest.raises(ValidationError):
        validate_currency(s)


def test_parse_timestamp_normalizes_to_utc():
    ts = parse_timestamp("2026-03-10T14:30:00+02:00")
    assert ts == datetime(2026, 3, 10, 12, 30, tzinfo=timezone.utc)
    assert parse_timestamp("2026-03-10T12:30:00Z") == ts
    assert parse_timestamp("2026-03-10T12:30:00") == ts


def test_parse_timestamp_bare_date_bounds():
    assert format_timestamp(parse_timestamp("2026-03-10")) == "2026-03-10T00:00:00.000Z"
    assert (
        format_timestamp(parse_timestamp("2026-03-10", end_of_day=True))
        == "2026-03-10T23:59:59.999Z"
    )


@pytest.mark.parametrize("s", ["", "yesterday", "2026-13-01", "2026-02-30", None])
def test_parse_timestamp_bad(s):
    with pytest.raises(ValidationError):
        parse_timestamp(s)


def test_validate_new_transaction_names_the_failing_field():
    with pytest.raises(ValidationError) as excinfo:
        validate_new_transaction(
            {
                "transactionType": "payment",
                "amount": "5",
                "currency": "USD",
                "transactionTimestamp": "2026-03-10",
            }
        )
    assert excinfo.value.field == "accountId"


def test_validate_new_transaction_optional_fields():
    txn = validate_new_transaction(
        {
            "transactionType": " refund ",
            "amount": Decimal("0.01"),
            "currency": "gbp",
            "accountId": "ACC-9",
            "transactionTimestamp": "2025-12-31T23:00:00-02:00",
            "description": "",
        }
    )
    assert txn.transaction_type == "refund"
    assert txn.amount_cents == 1
    assert txn.currency == "GBP"
    assert txn.transaction_timestamp == "2026-01-01T01:00:00.000Z"
    assert txn.description is None
    assert txn.source_system is None


def test_validate_new_transaction_rejects_non_string_description():
    with pytest.raises(ValidationError):
        validate_new_transaction(
            {
                "transactionType": "payment",
                "amount": "5",
                "currency": "USD",
                "accountId": "ACC-1",
                "transactionTimestamp": "2026-03-10",
                "description": 42,
            }
        )


@pytest.mark.parametrize(
    "s,expected",
    [
        ("2026-03-01T10:00:00.5Z", "2026-03-01T10:00:00.500Z"),
        ("2026-03-01T10:00:00.1234567Z", "2026-03-01T10:00:00.123Z"),
        ("2026-03-01T10:00:00.25+01:00", "2026-03-01T09:00:00.250Z"),
    ],
)
def test_parse_timestamp_accepts_any_fraction_width(s, expected):
    assert format_timestamp(parse_timestamp(s)) == expected


def test_amount_range_limit_applies_to_stored_amounts():
    assert parse_amount_to_cents("999999999999999.99") == 99999999999999999
    with pytest.raises(ValidationError):
        parse_amount_to_cents("1000000000000000")

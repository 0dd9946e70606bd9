from collections.abc import Mapping
from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from .errors import ValidationError
from .models import NewTransaction

# integer digits; keeps minor units inside a signed 64-bit SQLite INTEGER
MAX_AMOUNT_DIGITS = 15


def parse_decimal(value, field: str) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} required", field=field)
    if isinstance(value, str):
        if not value.strip():
            raise ValidationError(f"{field} required", field=field)
        value = value.strip()
    elif isinstance(value, float):
        value = repr(value)
    elif not isinstance(value, (int, Decimal)):
        raise ValidationError(f"{field} must be a number", field=field)
    try:
        d = Decimal(value)
    except InvalidOperation as e:
        raise ValidationError(f"{field} must be a number", field=field) from e
    if not d.is_finite():
        raise ValidationError(f"{field} must be a number", field=field)
    return d


def parse_amount_to_cents(value, field: str = "amount") -> int:
    d = parse_decimal(value, field)
    if d <= 0:
        raise ValidationError(f"{field} must be positive", field=field)
    if d.adjusted() >= MAX_AMOUNT_DIGITS:
        raise ValidationError(f"{field} is out of range", field=field)
    cents = (d * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    if (d * 100) != cents:
        raise ValidationError(f"{field} supports up to 2 decimals", field=field)
    return int(cents)


def format_cents(cents: int) -> Decimal:
    return Decimal(int(cents)).scaleb(-2)


def validate_currency(value) -> str:
    if not isinstance(value, str):
        raise ValidationError("currency required", field="currency")
    code = value.strip()
    if len(code) != 3 or not code.isascii() or not code.isalpha():
        raise ValidationError(
            "currency must be a 3-letter code", field="currency"
        )
    return code.upper()


def parse_timestamp(
    value, field: str = "transactionTimestamp", *, end_of_day: bool = False
) -> datetime:
    """Parse an ISO-8601 date or datetime into an aware UTC datetime.

    A bare date maps to the first instant of that day, or to the last one
    when ``end_of_day`` is set. Naive datetimes are taken to be UTC.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} required", field=field)
    text = value.strip()
    try:
        if len(text) == 10:
            day = date.fromisoformat(text)
            ts = datetime.combine(day, time.max if end_of_day else time.min)
        else:
            if text[-1] in "Zz":
                text = text[:-1] + "+00:00"
            ts = datetime.fromisoformat(text)
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        return ts.astimezone(timezone.utc)
    except (ValueError, OverflowError) as e:
        raise ValidationError(
            f"{field} must be an ISO-8601 date", field=field
        ) from e


def format_timestamp(ts: datetime) -> str:
    # fixed width so text order in storage is chronological order
    utc = ts.astimezone(timezone.utc).replace(tzinfo=None)
    return utc.isoformat(timespec="milliseconds") + "Z"


def utc_now() -> str:
    return format_timestamp(datetime.now(timezone.utc))


def _required_text(payload: Mapping, key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{key} required", field=key)
    return value.strip()


def _optional_text(payload: Mapping, key: str) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string", field=key)
    return value.strip() or None


def validate_new_transaction(payload: Mapping) -> NewTransaction:
    if not isinstance(payload, Mapping):
        raise ValidationError("transaction body must be an object")
    return NewTransaction(
        transaction_type=_required_text(payload, "transactionType"),
        amount_cents=parse_amount_to_cents(payload.get("amount")),
        currency=validate_currency(payload.get("currency")),
        account_id=_required_text(payload, "accountId"),
        transaction_timestamp=format_timestamp(
            parse_timestamp(payload.get("transactionTimestamp"))
        ),
        description=_optional_text(payload, "description"),
        source_system=_optional_text(payload, "sourceSystem"),
    )

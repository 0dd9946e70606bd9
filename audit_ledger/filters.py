"""Turn raw query parameters into typed filters and pagination.

Values arrive as strings (or ``None``). Empty values are treated as
absent so a client can clear a filter by sending ``field=``. Keys that
are not listed below are ignored.
"""

from collections.abc import Mapping

from .errors import ValidationError
from .logic import parse_decimal, parse_timestamp
from .models import Pagination, TransactionFilters

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10


def _clean(raw: Mapping, key: str) -> str | None:
    value = raw.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _parse_int(value: str, field: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise ValidationError(f"{field} must be an integer", field=field) from exc


def normalize_filters(raw: Mapping) -> TransactionFilters:
    start = _clean(raw, "startDate")
    end = _clean(raw, "endDate")
    min_amount = _clean(raw, "minAmount")
    max_amount = _clean(raw, "maxAmount")
    created_by = _clean(raw, "createdById")
    return TransactionFilters(
        transaction_type=_clean(raw, "transactionType"),
        account_id=_clean(raw, "accountId"),
        start_date=parse_timestamp(start, "startDate") if start else None,
        end_date=parse_timestamp(end, "endDate", end_of_day=True) if end else None,
        min_amount=parse_decimal(min_amount, "minAmount") if min_amount else None,
        max_amount=parse_decimal(max_amount, "maxAmount") if max_amount else None,
        keyword=_clean(raw, "keyword"),
        created_by_id=_parse_int(created_by, "createdById") if created_by else None,
    )


def normalize_pagination(raw: Mapping) -> Pagination:
    page_raw = _clean(raw, "page")
    size_raw = _clean(raw, "pageSize")
    page = _parse_int(page_raw, "page") if page_raw else 1
    page_size = _parse_int(size_raw, "pageSize") if size_raw else DEFAULT_PAGE_SIZE
    if page < 1:
        raise ValidationError("page must be at least 1", field="page")
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise ValidationError(
            f"pageSize must be between 1 and {MAX_PAGE_SIZE}", field="pageSize"
        )
    return Pagination(page=page, page_size=page_size)

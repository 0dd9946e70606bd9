"""Compose the SQL predicate behind listing, counting and reporting.

The WHERE clause is built once per request by ``compose_query``; the count
query, the paged data query and the unbounded report query are all
rendered from that same ``TransactionQuery`` object.
"""

from dataclasses import dataclass
from decimal import ROUND_CEILING, ROUND_FLOOR, Decimal

from .logic import format_timestamp
from .models import TransactionFilters

COLUMNS = (
    "id, transaction_type, amount_cents, currency, account_id, "
    "transaction_timestamp, description, source_system, created_at, created_by_id"
)
ORDER_BY = "ORDER BY transaction_timestamp DESC, id DESC"

_SQLITE_INT_MAX = 2**63 - 1


def _to_cents(amount: Decimal, rounding: str) -> int:
    if amount.adjusted() > 18:
        return _SQLITE_INT_MAX if amount > 0 else -_SQLITE_INT_MAX
    cents = int((amount * 100).to_integral_value(rounding=rounding))
    return max(-_SQLITE_INT_MAX, min(_SQLITE_INT_MAX, cents))


@dataclass(frozen=True)
class TransactionQuery:
    clauses: tuple[str, ...] = ()
    params: tuple = ()

    @property
    def where(self) -> str:
        return " AND ".join(self.clauses) if self.clauses else "1 = 1"

    def count_sql(self) -> tuple[str, tuple]:
        return f"SELECT COUNT(*) AS c FROM transactions WHERE {self.where}", self.params

    def select_sql(
        self, *, limit: int | None = None, offset: int = 0
    ) -> tuple[str, tuple]:
        sql = f"SELECT {COLUMNS} FROM transactions WHERE {self.where} {ORDER_BY}"
        if limit is None:
            return sql, self.params
        return f"{sql} LIMIT ? OFFSET ?", (*self.params, limit, offset)

    def for_id(self, txn_id: int) -> "TransactionQuery":
        return TransactionQuery(
            clauses=(*self.clauses, "id = ?"), params=(*self.params, txn_id)
        )


def compose_query(filters: TransactionFilters) -> TransactionQuery:
    clauses: list[str] = []
    params: list = []

    if filters.created_by_id is not None:
        clauses.append("created_by_id = ?")
        params.append(filters.created_by_id)
    if filters.transaction_type is not None:
        clauses.append("transaction_type = ?")
        params.append(filters.transaction_type)
    if filters.account_id is not None:
        clauses.append("account_id = ?")
        params.append(filters.account_id)
    if filters.start_date is not None:
        clauses.append("transaction_timestamp >= ?")
        params.append(format_timestamp(filters.start_date))
    if filters.end_date is not None:
        clauses.append("transaction_timestamp <= ?")
        params.append(format_timestamp(filters.end_date))
    if filters.min_amount is not None:
        clauses.append("amount_cents >= ?")
        params.append(_to_cents(filters.min_amount, ROUND_CEILING))
    if filters.max_amount is not None:
        clauses.append("amount_cents <= ?")
        params.append(_to_cents(filters.max_amount, ROUND_FLOOR))
    if filters.keyword is not None:
        clauses.append("instr(casefold(COALESCE(description, '')), ?) > 0")
        params.append(filters.keyword.casefold())

    return TransactionQuery(clauses=tuple(clauses), params=tuple(params))

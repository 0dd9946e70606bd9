from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal


class Role:
    AUDITOR = "auditor"
    TRANSACTOR = "transactor"

    ALL = frozenset({AUDITOR, TRANSACTOR})


@dataclass(frozen=True)
class Transaction:
    id: int
    transaction_type: str
    amount: Decimal
    currency: str
    account_id: str
    transaction_timestamp: str
    description: str | None
    source_system: str | None
    created_at: str
    created_by_id: int


@dataclass(frozen=True)
class NewTransaction:
    transaction_type: str
    amount_cents: int
    currency: str
    account_id: str
    transaction_timestamp: str
    description: str | None = None
    source_system: str | None = None


@dataclass(frozen=True)
class User:
    id: int
    username: str
    role: str


@dataclass(frozen=True)
class Caller:
    """Trusted identity resolved by the authentication layer."""

    id: int
    role: str


@dataclass(frozen=True)
class TransactionFilters:
    transaction_type: str | None = None
    account_id: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    min_amount: Decimal | None = None
    max_amount: Decimal | None = None
    keyword: str | None = None
    created_by_id: int | None = None


@dataclass(frozen=True)
class Pagination:
    page: int = 1
    page_size: int = 10

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass(frozen=True)
class TransactionPage:
    data: list[Transaction] = field(default_factory=list)
    total_count: int = 0
    page_size: int = 10

    @property
    def page_count(self) -> int:
        return -(-self.total_count // self.page_size)

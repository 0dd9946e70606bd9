"""Transaction listing, reporting and creation.

Every read path goes through ``apply_visibility`` and ``compose_query``
exactly once, so the count, the page and the report share one predicate.
Count and page are separate reads with no snapshot between them: a row
committed in between can make ``total_count`` and the page disagree.
"""

import logging
from collections.abc import Iterator, Mapping

from . import repo
from .errors import NotFoundError, ValidationError
from .logic import utc_now, validate_new_transaction
from .models import (
    Caller,
    Pagination,
    Role,
    Transaction,
    TransactionFilters,
    TransactionPage,
)
from .query import compose_query
from .visibility import apply_visibility, require_role

logger = logging.getLogger(__name__)


def list_transactions(
    db_path,
    filters: TransactionFilters,
    pagination: Pagination,
    caller: Caller,
) -> TransactionPage:
    query = compose_query(apply_visibility(caller, filters))
    total = repo.count_txns(db_path, query)
    data = repo.find_txns(
        db_path, query, limit=pagination.page_size, offset=pagination.offset
    )
    return TransactionPage(data=data, total_count=total, page_size=pagination.page_size)


def iter_report(
    db_path,
    filters: TransactionFilters,
    caller: Caller,
    *,
    batch_size: int = 500,
) -> Iterator[Transaction]:
    # role check runs here, before the lazy iterator touches storage
    require_role(caller, Role.AUDITOR)
    query = compose_query(apply_visibility(caller, filters))
    return repo.iter_txns(db_path, query, batch_size=batch_size)


def generate_report(
    db_path,
    filters: TransactionFilters,
    caller: Caller,
    *,
    batch_size: int = 500,
) -> list[Transaction]:
    rows = list(iter_report(db_path, filters, caller, batch_size=batch_size))
    logger.info("report_generated caller_id=%s rows=%d", caller.id, len(rows))
    return rows


def get_transaction(db_path, txn_id: int, caller: Caller) -> Transaction:
    query = compose_query(apply_visibility(caller, TransactionFilters()))
    txn = repo.get_txn(db_path, query, txn_id)
    if txn is None:
        raise NotFoundError("transaction not found")
    return txn


def create_transaction(db_path, payload: Mapping, creator_id: int) -> Transaction:
    if creator_id is None:
        raise ValidationError("creator is required", field="createdById")
    new_txn = validate_new_transaction(payload)
    txn = repo.create_txn(
        db_path, new_txn, created_by_id=creator_id, created_at=utc_now()
    )
    logger.info(
        "transaction_created id=%s creator_id=%s amount=%s currency=%s",
        txn.id,
        creator_id,
        txn.amount,
        txn.currency,
    )
    return txn

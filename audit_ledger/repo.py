import sqlite3
from collections.abc import Iterator

from .db import connect
from .errors import ValidationError
from .logic import format_cents
from .models import NewTransaction, Transaction, User
from .query import COLUMNS, TransactionQuery


def _row_to_txn(row: sqlite3.Row) -> Transaction:
    return Transaction(
        id=int(row["id"]),
        transaction_type=row["transaction_type"],
        amount=format_cents(row["amount_cents"]),
        currency=row["currency"],
        account_id=row["account_id"],
        transaction_timestamp=row["transaction_timestamp"],
        description=row["description"],
        source_system=row["source_system"],
        created_at=row["created_at"],
        created_by_id=int(row["created_by_id"]),
    )


def _row_to_user(row: sqlite3.Row) -> User:
    return User(id=int(row["id"]), username=row["username"], role=row["role"])


def create_txn(
    db_path,
    txn: NewTransaction,
    *,
    created_by_id: int,
    created_at: str,
) -> Transaction:
    with connect(db_path) as conn:
        try:
            cur = conn.execute(
                """
                INSERT INTO transactions(
                  transaction_type, amount_cents, currency, account_id,
                  transaction_timestamp, description, source_system,
                  created_at, created_by_id
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    txn.transaction_type,
                    txn.amount_cents,
                    txn.currency,
                    txn.account_id,
                    txn.transaction_timestamp,
                    txn.description,
                    txn.source_system,
                    created_at,
                    created_by_id,
                ),
            )
        except sqlite3.IntegrityError as exc:
            raise ValidationError(
                "transaction rejected by storage constraints", field="createdById"
            ) from exc
        row = conn.execute(
            f"SELECT {COLUMNS} FROM transactions WHERE id = ?",
            (cur.lastrowid,),
        ).fetchone()
        return _row_to_txn(row)


def count_txns(db_path, query: TransactionQuery) -> int:
    sql, params = query.count_sql()
    with connect(db_path) as conn:
        return int(conn.execute(sql, params).fetchone()["c"])


def find_txns(
    db_path, query: TransactionQuery, *, limit: int, offset: int
) -> list[Transaction]:
    sql, params = query.select_sql(limit=limit, offset=offset)
    with connect(db_path) as conn:
        return [_row_to_txn(row) for row in conn.execute(sql, params).fetchall()]


def iter_txns(
    db_path, query: TransactionQuery, *, batch_size: int = 500
) -> Iterator[Transaction]:
    sql, params = query.select_sql()
    with connect(db_path) as conn:
        cur = conn.execute(sql, params)
        while True:
            rows = cur.fetchmany(batch_size)
            if not rows:
                return
            for row in rows:
                yield _row_to_txn(row)


def get_txn(db_path, query: TransactionQuery, txn_id: int) -> Transaction | None:
    sql, params = query.for_id(txn_id).select_sql()
    with connect(db_path) as conn:
        row = conn.execute(sql, params).fetchone()
    return _row_to_txn(row) if row is not None else None


def create_user(db_path, username: str, password_hash: str, role: str) -> int:
    name = username.strip()
    if not name:
        raise ValidationError("username required", field="username")
    with connect(db_path) as conn:
        try:
            cur = conn.execute(
                """
                INSERT INTO users(username, password_hash, role)
                VALUES (?, ?, ?)
                """,
                (name, password_hash, role),
            )
        except sqlite3.IntegrityError as exc:
            raise ValidationError(
                "username already exists or role invalid", field="username"
            ) from exc
        return int(cur.lastrowid)


def get_user(db_path, user_id: int) -> User | None:
    with connect(db_path) as conn:
        row = conn.execute(
            "SELECT id, username, role FROM users WHERE id = ?",
            (user_id,),
        ).fetchone()
    return _row_to_user(row) if row is not None else None


def get_user_credentials(db_path, username: str) -> tuple[User, str] | None:
    with connect(db_path) as conn:
        row = conn.execute(
            """
            SELECT id, username, role, password_hash
            FROM users
            WHERE username = ?
            """,
            (username,),
        ).fetchone()
    if row is None:
        return None
    return _row_to_user(row), row["password_hash"]


def create_session(
    db_path, token_hash: str, user_id: int, *, expires_at: str, now: str
) -> None:
    with connect(db_path) as conn:
        conn.execute("DELETE FROM sessions WHERE expires_at <= ?", (now,))
        conn.execute(
            """
            INSERT INTO sessions(token_hash, user_id, expires_at)
            VALUES (?, ?, ?)
            """,
            (token_hash, user_id, expires_at),
        )


def get_session_user(db_path, token_hash: str, *, now: str) -> User | None:
    with connect(db_path) as conn:
        row = conn.execute(
            """
            SELECT u.id, u.username, u.role
            FROM sessions s
            JOIN users u ON u.id = s.user_id
            WHERE s.token_hash = ? AND s.expires_at > ?
            """,
            (token_hash, now),
        ).fetchone()
    return _row_to_user(row) if row is not None else None

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path

from .errors import StorageError
from .settings import Settings

logger = logging.getLogger(__name__)


def _casefold(value):
    return value.casefold() if isinstance(value, str) else value


@contextmanager
def connect(db_path: str | Path):
    try:
        conn = sqlite3.connect(str(db_path), check_same_thread=False)
    except sqlite3.Error as exc:
        logger.exception("storage_connect_failed db_path=%s", db_path)
        raise StorageError("storage unavailable") from exc
    conn.row_factory = sqlite3.Row
    try:
        conn.execute("PRAGMA foreign_keys = ON;")
        # Unicode-aware folding; SQLite lower() only folds ASCII
        conn.create_function("casefold", 1, _casefold, deterministic=True)
        with conn:
            yield conn
    except sqlite3.Error as exc:
        logger.exception("storage_query_failed db_path=%s", db_path)
        raise StorageError("storage query failed") from exc
    finally:
        conn.close()


def init_db(settings: Settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)
    with connect(settings.db_path) as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS users (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              username TEXT NOT NULL UNIQUE,
              password_hash TEXT NOT NULL,
              role TEXT NOT NULL CHECK(role IN ('auditor','transactor')),
              created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
            );
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS sessions (
              token_hash TEXT PRIMARY KEY,
              user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
              expires_at TEXT NOT NULL,
              created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
            );
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS transactions (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              transaction_type TEXT NOT NULL CHECK(length(transaction_type) > 0),
              amount_cents INTEGER NOT NULL CHECK(amount_cents > 0),
              currency TEXT NOT NULL CHECK(length(currency) = 3),
              account_id TEXT NOT NULL CHECK(length(account_id) > 0),
              transaction_timestamp TEXT NOT NULL,
              description TEXT,
              source_system TEXT,
              created_at TEXT NOT NULL,
              created_by_id INTEGER NOT NULL REFERENCES users(id) ON DELETE RESTRICT
            );
            """
        )
        conn.execute(
            """
            CREATE TRIGGER IF NOT EXISTS transactions_append_only_update
            BEFORE UPDATE ON transactions
            FOR EACH ROW
            BEGIN
              SELECT RAISE(ABORT, 'transactions are append-only');
            END;
            """
        )
        conn.execute(
            """
            CREATE TRIGGER IF NOT EXISTS transactions_append_only_delete
            BEFORE DELETE ON transactions
            FOR EACH ROW
            BEGIN
              SELECT RAISE(ABORT, 'transactions are append-only');
            END;
            """
        )
        conn.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_transactions_timestamp
            ON transactions(transaction_timestamp DESC, id DESC)
            """
        )
        conn.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_transactions_creator_timestamp
            ON transactions(created_by_id, transaction_timestamp DESC, id DESC)
            """
        )
    logger.info("database_initialized db_path=%s", settings.db_path)

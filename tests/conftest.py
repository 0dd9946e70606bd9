import pytest

from audit_ledger import repo
from audit_ledger.db import init_db
from audit_ledger.models import Caller, Role
from audit_ledger.service import create_transaction
from audit_ledger.settings import Settings


@pytest.fixture
def settings(tmp_path):
    settings = Settings(data_dir=tmp_path, db_path=tmp_path / "t.sqlite")
    init_db(settings)
    return settings


@pytest.fixture
def callers(settings):
    # password hashes are irrelevant outside the auth tests
    auditor_id = repo.create_user(settings.db_path, "audrey", "x", Role.AUDITOR)
    alice_id = repo.create_user(settings.db_path, "alice", "x", Role.TRANSACTOR)
    bob_id = repo.create_user(settings.db_path, "bob", "x", Role.TRANSACTOR)
    return {
        "auditor": Caller(id=auditor_id, role=Role.AUDITOR),
        "alice": Caller(id=alice_id, role=Role.TRANSACTOR),
        "bob": Caller(id=bob_id, role=Role.TRANSACTOR),
    }


def txn_payload(**overrides):
    payload = {
        "transactionType": "payment",
        "amount": "10.00",
        "currency": "USD",
        "accountId": "ACC-1",
        "transactionTimestamp": "2026-03-10T12:00:00Z",
        "description": "Invoice payment",
        "sourceSystem": "erp",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def log_txn(settings):
    def _log(caller: Caller, **overrides):
        return create_transaction(settings.db_path, txn_payload(**overrides), caller.id)

    return _log

"""Create demo users for local development.

Run with ``python -m audit_ledger.seed``; existing usernames are skipped.
"""

import logging

from . import repo
from .auth import register_user
from .db import init_db
from .models import Role
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

DEMO_USERS = [
    ("auditor", "auditorpass", Role.AUDITOR),
    ("transactor1", "transactorpass", Role.TRANSACTOR),
    ("transactor2", "transactorpass", Role.TRANSACTOR),
]


def seed_demo_users(settings: Settings) -> list[str]:
    init_db(settings)
    created = []
    for username, password, role in DEMO_USERS:
        if repo.get_user_credentials(settings.db_path, username) is not None:
            continue
        register_user(settings.db_path, username, password, role)
        created.append(username)
    logger.info("demo_users_seeded created=%s", ",".join(created) or "-")
    return created


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    print(f"Seeded users: {seed_demo_users(get_settings()) or 'none'}")

"""Password login and bearer-token resolution.

Only ``resolve_token`` feeds the services: it turns a bearer token into a
trusted ``Caller``. Tokens are opaque; storage keeps their SHA-256 digest.
"""

import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone

import bcrypt

from . import repo
from .errors import AuthenticationError, ValidationError
from .logic import format_timestamp
from .models import Caller, Role, User

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("ascii"))
    except ValueError:
        return False


def _token_digest(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def register_user(db_path, username: str, password: str, role: str) -> User:
    if role not in Role.ALL:
        raise ValidationError(f"role must be one of {sorted(Role.ALL)}", field="role")
    if not password:
        raise ValidationError("password required", field="password")
    if len(password.encode("utf-8")) > 72:
        # bcrypt input limit
        raise ValidationError("password too long", field="password")
    user_id = repo.create_user(db_path, username, hash_password(password), role)
    return User(id=user_id, username=username.strip(), role=role)


def login(
    db_path, username: str, password: str, *, ttl_minutes: int = 60
) -> tuple[str, User]:
    found = repo.get_user_credentials(db_path, username)
    if found is None or not verify_password(password, found[1]):
        logger.warning("login_failed username=%s", username)
        raise AuthenticationError("Invalid username or password.")
    user = found[0]

    now = datetime.now(timezone.utc)
    token = secrets.token_urlsafe(32)
    repo.create_session(
        db_path,
        _token_digest(token),
        user.id,
        expires_at=format_timestamp(now + timedelta(minutes=ttl_minutes)),
        now=format_timestamp(now),
    )
    logger.info("login_succeeded user_id=%s role=%s", user.id, user.role)
    return token, user


def resolve_token(db_path, token: str | None) -> Caller:
    if not token:
        raise AuthenticationError("Access token is required")
    user = repo.get_session_user(
        db_path,
        _token_digest(token),
        now=format_timestamp(datetime.now(timezone.utc)),
    )
    if user is None:
        raise AuthenticationError("Invalid or expired token")
    return Caller(id=user.id, role=user.role)

"""Role decisions for transaction access.

Both the listing and the report paths scope their queries through
``apply_visibility``; routes check operation-level access through
``require_role``.
"""

from dataclasses import replace

from .errors import AuthorizationError
from .models import Caller, Role, TransactionFilters


def apply_visibility(caller: Caller, filters: TransactionFilters) -> TransactionFilters:
    if caller.role == Role.AUDITOR:
        return filters
    if caller.role == Role.TRANSACTOR:
        # overrides any client-supplied createdById
        return replace(filters, created_by_id=caller.id)
    raise AuthorizationError(f"unknown role {caller.role!r}")


def require_role(caller: Caller, role: str) -> None:
    if caller.role != role:
        raise AuthorizationError(
            "You do not have permission to access this resource"
        )

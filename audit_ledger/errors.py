"""Error taxonomy shared by the service layer and the HTTP surface."""


class AppError(Exception):
    status_code = 500
    error = "Internal Server Error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AppError, ValueError):
    """Malformed or out-of-range input the caller can correct."""

    status_code = 400
    error = "Bad Request"

    def __init__(self, message: str, *, field: str | None = None):
        super().__init__(message)
        self.field = field


class AuthenticationError(AppError):
    status_code = 401
    error = "Unauthorized"


class AuthorizationError(AppError):
    """The caller's role forbids the operation entirely."""

    status_code = 403
    error = "Forbidden"


class NotFoundError(AppError):
    status_code = 404
    error = "Not Found"


class StorageError(AppError):
    """The storage engine is unreachable or a query failed."""

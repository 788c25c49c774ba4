"""Error taxonomy for the reservation kernel.

Every failure that leaves the API is rendered by the handlers registered in
``app.main`` as ``{"success": false, "error": {"code", "message", "field"?}}``.
"""
from __future__ import annotations


class AppError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str = "Internal server error", field: str | None = None, details: list | None = None):
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details

    def to_dict(self) -> dict:
        err = {"code": self.code, "message": self.message}
        if self.field:
            err["field"] = self.field
        if self.details:
            err["details"] = self.details
        return {"success": False, "error": err}


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"


class AuthenticationError(AppError):
    status_code = 401
    code = "AUTHENTICATION_ERROR"

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message)


class AuthorizationError(AppError):
    status_code = 403
    code = "AUTHORIZATION_ERROR"

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found")


class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT_ERROR"

    def __init__(self, message: str = "Resource already exists", field: str | None = None):
        super().__init__(message, field=field)


class TransactionError(AppError):
    status_code = 500
    code = "TRANSACTION_ERROR"


class CardVaultError(AppError):
    """Raised when a stored card cannot be read. The message never carries crypto details."""
    status_code = 500
    code = "CARD_VAULT_ERROR"

    def __init__(self, message: str = "Saved card could not be read"):
        super().__init__(message)


class StorageUnavailableError(AppError):
    status_code = 503
    code = "STORAGE_UNAVAILABLE"

    def __init__(self, message: str = "Storage is unavailable"):
        super().__init__(message)

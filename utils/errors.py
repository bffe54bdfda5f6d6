"""Error taxonomy shared by the stores, the ledger, and the HTTP layer."""
from __future__ import annotations


class ServiceError(Exception):
    """Base class for failures that map onto a JSON error response."""

    status_code = 500
    default_message = "Unexpected error"

    def __init__(self, message: str | None = None, errors: list[dict] | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.errors = errors or []

    def to_payload(self) -> dict:
        payload = {"success": False, "message": self.message}
        if self.errors:
            payload["errors"] = self.errors
        return payload


class ValidationError(ServiceError):
    """Malformed or missing input; carries field-level detail."""

    status_code = 400
    default_message = "Validation errors"

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(errors=[{"field": field, "message": message}])


class NotFoundError(ServiceError):
    status_code = 404
    default_message = "Resource not found"


class Unauthenticated(ServiceError):
    status_code = 401
    default_message = "Authentication required"


class Forbidden(ServiceError):
    status_code = 403
    default_message = "Access denied"


class PersistenceError(ServiceError):
    """Storage-layer fault. The message never includes driver details."""

    status_code = 500
    default_message = "A storage error occurred. Please try again later."

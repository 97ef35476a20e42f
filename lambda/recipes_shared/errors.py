"""
Domain error classes for the Recipe Management Service.

These error classes provide explicit, typed exceptions that map cleanly to API responses.
The data-access core raises them; handlers translate them into HTTP status codes.
"""

from typing import Dict, Any


class DomainError(Exception):
    """
    Base class for all domain errors.

    Domain errors are explicit business logic errors that should be mapped
    to appropriate HTTP responses by the handler layer.
    """

    def __init__(self, code: str, message: str, details: Dict[str, Any] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}


class ValidationError(DomainError):
    """
    Raised when input validation fails.

    Maps to HTTP 400 Bad Request.
    Details should contain field-level validation errors.
    """

    def __init__(self, message: str, details: Dict[str, Any]):
        super().__init__('VALIDATION_ERROR', message, details)


class NotFoundError(DomainError):
    """
    Raised when a mutation targets a record that does not exist.

    Maps to HTTP 404 Not Found. Lookups return None instead of raising.
    """

    def __init__(self, message: str):
        super().__init__('NOT_FOUND', message, {})


class OwnershipError(DomainError):
    """
    Raised when a conditional write fails because the caller does not own the record.

    Maps to HTTP 403 Forbidden. Kept apart from NotFoundError so handlers
    can tell "missing" from "not yours".
    """

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__('OWNERSHIP_VIOLATION', message, details or {})


class ConflictError(DomainError):
    """
    Raised when an operation conflicts with existing state.

    Maps to HTTP 409 Conflict.
    Example: the record changed between the read and the guarded write.
    """

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__('CONFLICT', message, details or {})


class AuthenticationError(DomainError):
    """
    Raised when authentication fails.

    Maps to HTTP 401 Unauthorized.
    """

    def __init__(self, message: str):
        super().__init__('AUTHENTICATION_ERROR', message, {})


class StoreUnavailableError(DomainError):
    """
    Raised when the store could not complete a read after all retries.

    Maps to HTTP 503 Service Unavailable.
    Details carry the keys that could not be retrieved.
    """

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__('STORE_UNAVAILABLE', message, details or {})


class QuantityParseError(DomainError):
    """Raised for quantity input that cannot be scaled (e.g. a zero scale factor)."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__('PARSE_ERROR', message, details or {})

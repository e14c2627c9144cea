from typing import Optional


class PortalError(Exception):
    """Base class for errors surfaced to API callers as a failure envelope."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, errors: Optional[list] = None):
        self.message = message or self.default_message
        self.errors = errors or []
        super().__init__(self.message)


class ValidationError(PortalError):
    status_code = 400
    default_message = "Validation failed"


class DuplicateReport(PortalError):
    status_code = 400
    default_message = "You have already submitted a report for this date"


class DuplicateIdentity(PortalError):
    status_code = 400
    default_message = "Username or email already exists"


class InvalidCredentials(PortalError):
    status_code = 401
    default_message = "Invalid credentials"


class InvalidToken(PortalError):
    status_code = 401
    default_message = "Invalid or expired token"


class StaleIdentity(PortalError):
    status_code = 403
    default_message = "User not found or inactive"


class Forbidden(PortalError):
    status_code = 403
    default_message = "Access denied"


class NotFound(PortalError):
    status_code = 404
    default_message = "Resource not found"


class StorageError(PortalError):
    status_code = 500
    default_message = "Database error"

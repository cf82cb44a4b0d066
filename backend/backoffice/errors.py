# Overview: Error taxonomy shared by services and routes; each error maps to one HTTP status.

"""
Application errors.

Services raise these; the handlers registered in create_app() turn them into
a structured ``{"error": message}`` body with the matching status code.
Nothing below the message (stack traces, SQL, namespace names) is ever
returned to the caller.
"""


class AppError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class BadRequestError(AppError):
    """Malformed or missing required fields, invalid enum values."""
    status_code = 400
    default_message = "Bad request"


class UnauthorizedError(AppError):
    """Missing, invalid or expired credentials."""
    status_code = 401
    default_message = "Authentication required"


class ForbiddenError(AppError):
    """Role or tenant-boundary violation."""
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(AppError):
    """Referenced entity absent in the bound namespace."""
    status_code = 404
    default_message = "Not found"


class ConflictError(AppError):
    """Unique-constraint or state-transition conflict."""
    status_code = 409
    default_message = "Conflict"


class ServiceUnavailableError(AppError):
    """Namespace selection or provisioning DDL failure."""
    status_code = 500
    default_message = "Service unavailable"

"""
Domain errors raised by services and rendered by the exception handlers in main.py.

Each error carries the HTTP status it maps to; the message is shown to the
client verbatim, so keep it human readable and free of internals.
"""

from fastapi import status


class ChatError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal Server Error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ChatError):
    """Missing or malformed input."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class AuthenticationError(ChatError):
    """Missing, invalid or expired credentials."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class PermissionDeniedError(ChatError):
    """Authenticated, but not allowed to act on the target resource."""

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"


class NotFoundError(ChatError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ConflictError(ChatError):
    """Duplicate membership or invite."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Conflict"


class InviteAlreadyProcessedError(ConflictError):
    """Transition attempted from a terminal invite state."""

    default_message = "Invite already processed"


class ConfigurationError(ChatError):
    """Server-side misconfiguration, e.g. a missing signing secret."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Server misconfiguration"

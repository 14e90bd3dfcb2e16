"""Error taxonomy shared by the provider clients, the booking pipeline and the formatter.

Every class carries the HTTP status it maps to so the response layer never has
to guess.
"""

from typing import Any


class IntegrationError(Exception):
    status_code: int = 500
    error_type: str = "Error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(IntegrationError):
    status_code = 400
    error_type = "ValidationError"

    def __init__(self, message: str, field: str):
        super().__init__(message)
        self.field = field


class NotFoundError(IntegrationError):
    status_code = 404
    error_type = "NotFoundError"

    def __init__(self, message: str, resource: str):
        super().__init__(message)
        self.resource = resource


class AuthError(IntegrationError):
    status_code = 401
    error_type = "AuthError"


class ConflictError(IntegrationError):
    """The requested time is taken. Always carries the ranked alternatives."""

    status_code = 409
    error_type = "ConflictError"

    def __init__(self, message: str, alternative_slots: list[dict[str, Any]]):
        super().__init__(message)
        self.alternative_slots = alternative_slots


class UnclassifiedError(IntegrationError):
    status_code = 500
    error_type = "UnclassifiedError"


class ProviderError(UnclassifiedError):
    """Upstream failure that is not auth, not-found or plain validation."""

    error_type = "ProviderError"

    def __init__(
        self,
        message: str,
        source: str,
        status_code: int | None = None,
        details: Any = None,
        booking_conflict: bool = False,
    ):
        super().__init__(message)
        self.source = source
        if status_code:
            self.status_code = status_code
        self.details = details
        self.booking_conflict = booking_conflict

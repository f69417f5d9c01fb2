"""
Error taxonomy shared by the matching and recruitment core.

Services raise these; the HTTP layer maps them to status codes in
machi.main. Nothing here knows about FastAPI.
"""


class MachiError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500
    default_code = "INTERNAL_ERROR"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ValidationError(MachiError):
    """Malformed input, rejected before any store access."""

    status_code = 400
    default_code = "VALIDATION_ERROR"


class ConflictError(MachiError):
    """State-machine violation with a specific, renderable code."""

    status_code = 409
    default_code = "CONFLICT"

    SELF_APPLICATION = "SELF_APPLICATION"
    RECRUITMENT_CLOSED = "RECRUITMENT_CLOSED"
    RECRUITMENT_FULL = "RECRUITMENT_FULL"
    DUPLICATE_APPLICATION = "DUPLICATE_APPLICATION"
    ALREADY_PARTICIPANT = "ALREADY_PARTICIPANT"
    INVALID_STATE = "INVALID_STATE"
    SELF_OFFER = "SELF_OFFER"
    DUPLICATE_OFFER = "DUPLICATE_OFFER"
    DUPLICATE_WANT_TO_DO = "DUPLICATE_WANT_TO_DO"


class ForbiddenError(ConflictError):
    """Actor is not allowed to perform the transition."""

    status_code = 403
    default_code = "FORBIDDEN"

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, code="FORBIDDEN")


class NotFoundError(MachiError):
    """Referenced recruitment/application/offer/category does not exist."""

    status_code = 404
    default_code = "NOT_FOUND"

    def __init__(self, resource: str, resource_id: str | None = None):
        message = f"{resource} not found"
        super().__init__(message)
        self.resource = resource
        self.resource_id = resource_id


class InfrastructureError(MachiError):
    """Repository or timeout failure. Never retried inside the core."""

    status_code = 503
    default_code = "SERVICE_UNAVAILABLE"

    def __init__(self, message: str, operation: str = "unknown", recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable

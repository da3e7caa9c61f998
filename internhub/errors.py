"""
Lifecycle error taxonomy

Every failure a lifecycle operation reports to its caller is one of these.
The API layer renders them as {"error": {"code", "message", "details"}}.
"""
from typing import Any, List, Optional


class LifecycleError(Exception):
    """Base class for errors that cross the service boundary."""

    status_code = 500
    default_code = "INTERNAL_ERROR"

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[List[Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or []

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details or None,
            }
        }

    def __repr__(self):
        return f"<{self.__class__.__name__}(code={self.code}, message={self.message!r})>"


class ValidationError(LifecycleError):
    """Malformed or missing input"""

    status_code = 400
    default_code = "VALIDATION_ERROR"

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, details=[{"field": field, "message": message}])


class NotFoundError(LifecycleError):
    """Referenced entity does not exist"""

    status_code = 404
    default_code = "NOT_FOUND"

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id is not None:
            message += f" (id={resource_id})"
        super().__init__(message)
        self.resource = resource


class ConflictError(LifecycleError):
    """State, capacity or duplicate violation"""

    status_code = 409
    default_code = "CONFLICT"


class ForbiddenError(LifecycleError):
    """Caller lacks the required role or ownership"""

    status_code = 403
    default_code = "FORBIDDEN"


class InternalError(LifecycleError):
    """Unexpected persistence or infrastructure failure"""

    status_code = 500
    default_code = "INTERNAL_ERROR"


# Business error codes
DUPLICATE_APPLICATION = "DUPLICATE_APPLICATION"
POSITION_FULL = "POSITION_FULL"
INVALID_STATUS = "INVALID_STATUS"
BUSINESS_LOGIC_ERROR = "BUSINESS_LOGIC_ERROR"
EVALUATION_ALREADY_SUBMITTED = "EVALUATION_ALREADY_SUBMITTED"

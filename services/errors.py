"""Errors raised by the service layer.

Services raise these and never catch them; the web layer maps each ``code`` to
an HTTP status in one place (see ``web_app.py``).
"""

from typing import Any, Dict, Optional


class ServiceError(Exception):
    code = "service_error"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "message": self.message, **self.details}


class NotFound(ServiceError):
    """Entity does not exist, or is hidden from the viewer by a block."""

    code = "not_found"


class Forbidden(ServiceError):
    """Actor is not the owner/author required for the action."""

    code = "forbidden"


class AuthenticationRequired(ServiceError):
    """Guests (no auth_id) cannot post, comment, like, block, report or DM."""

    code = "authentication_required"


class SelfTarget(ServiceError):
    code = "self_target"


class SelfBlock(SelfTarget):
    code = "self_block"


class SelfReport(SelfTarget):
    code = "self_report"


class SelfInterest(SelfTarget, Forbidden):
    code = "self_interest"


class AlreadyBlocked(ServiceError):
    code = "already_blocked"


class ValidationError(ServiceError):
    code = "validation_error"

    def __init__(
        self,
        field: str,
        message: str,
        limit: Optional[int] = None,
        actual: Any = None,
    ):
        super().__init__(message, field=field, limit=limit, actual=actual)
        self.field = field
        self.limit = limit
        self.actual = actual


class InvalidStatusTransition(ServiceError):
    code = "invalid_status_transition"


class UsernameTaken(ServiceError):
    code = "username_taken"

    def __init__(self, username: str, suggestion: str):
        super().__init__(
            f'Username "{username}" is already taken',
            username=username,
            suggestion=suggestion,
        )
        self.username = username
        self.suggestion = suggestion

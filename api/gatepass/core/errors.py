"""
Domain errors raised by the workflow engine and the services around it.

Routers never catch these; the handlers registered in ``gatepass.main`` turn
them into JSON responses with the matching HTTP status.
"""
from typing import Any, Dict, Optional


class GatepassError(Exception):
    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"detail": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(GatepassError):
    """Malformed identifier, missing field, bad enum value, non-positive step."""
    status_code = 400
    code = "VALIDATION_ERROR"


class NotFoundError(GatepassError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(GatepassError):
    """Duplicate step, slot already booked, duplicate submission, stale state."""
    status_code = 409
    code = "CONFLICT"


class NotificationError(GatepassError):
    # Raised inside the mail dispatcher only; it never reaches a caller.
    code = "NOTIFICATION_FAILED"

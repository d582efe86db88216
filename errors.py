"""
Exceptions raised by the campus events service layer.

Every error carries the HTTP status the API answers with, so route handlers
can simply let them propagate:

    from errors import NotFound

    if event is None:
        raise NotFound("Event not found")
"""

from typing import Any, Dict, Optional


class CampusEventsError(Exception):
    """Base exception for all campus events errors"""

    status = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body = {"error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


# =====================
# AUTH
# =====================
class InvalidCredentials(CampusEventsError):
    """Unknown email or wrong password. Both look the same to the caller."""

    status = 401

    def __init__(self):
        super().__init__("Invalid credentials", code="INVALID_CREDENTIALS")


class RoleMismatch(CampusEventsError):
    status = 403

    def __init__(self, role: str):
        super().__init__(f"Invalid credentials for {role} role", code="ROLE_MISMATCH")


class DuplicateEmail(CampusEventsError):
    status = 400

    def __init__(self):
        super().__init__("Email already exists", code="DUPLICATE_EMAIL")


# =====================
# EVENTS / REGISTRATIONS
# =====================
class DuplicateRegistration(CampusEventsError):
    status = 400

    def __init__(self):
        super().__init__(
            "Student already registered for this event",
            code="DUPLICATE_REGISTRATION"
        )


class NotFound(CampusEventsError):
    status = 404

    def __init__(self, message: str = "Not found"):
        super().__init__(message, code="NOT_FOUND")


class ValidationError(CampusEventsError):
    """Request is missing a required field or carries an incomplete material set"""

    status = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="VALIDATION_ERROR", details=details)


# =====================
# STORAGE
# =====================
class StorageFailure(CampusEventsError):
    """Database or content store could not complete the operation. Never retried."""

    status = 500

    def __init__(self, message: str = "Database error"):
        super().__init__(message, code="STORAGE_FAILURE")


class PayloadTooLarge(CampusEventsError):
    status = 413

    def __init__(self, limit: Optional[int] = None):
        details = {"max_bytes": limit} if limit else None
        super().__init__("File too large", code="PAYLOAD_TOO_LARGE", details=details)

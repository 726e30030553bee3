"""
Service-level error taxonomy.

Services raise these; the handler in main.py renders every one of them as
{"error": {"code": "...", "message": "..."}} with the matching HTTP status.
"""

from typing import Any, Optional


class ServiceError(Exception):
    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Any] = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details

    def to_dict(self) -> dict:
        body = {"code": self.code, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return {"error": body}


class NotFoundError(ServiceError):
    status_code = 404
    code = "NOT_FOUND"


class ForbiddenError(ServiceError):
    status_code = 403
    code = "FORBIDDEN"


class ValidationFailedError(ServiceError):
    status_code = 400
    code = "VALIDATION_ERROR"


class ConflictError(ServiceError):
    status_code = 409
    code = "CONFLICT"


class InternalError(ServiceError):
    status_code = 500
    code = "INTERNAL_ERROR"

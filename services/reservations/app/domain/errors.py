"""Error taxonomy shared by the reservation engine, sweeper and API layer."""
from typing import Any, Optional


class ReservationError(Exception):
    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.code, "message": self.message, "statusCode": self.status_code}
        if self.details is not None:
            body["details"] = self.details
        return body


class InvalidInput(ReservationError):
    code = "VALIDATION_ERROR"
    status_code = 400


class Unauthorized(ReservationError):
    code = "UNAUTHORIZED"
    status_code = 401


class Forbidden(ReservationError):
    code = "FORBIDDEN"
    status_code = 403


class NotFound(ReservationError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str):
        super().__init__(f"{resource} not found")
        self.resource = resource


class Conflict(ReservationError):
    code = "CONFLICT"
    status_code = 409

# satfusion/errors.py
"""
Errors raised by the analysis pipeline and the dataset collaborator.

Each ServiceError knows the HTTP status it is rendered with; the handler
registered in create_app turns them into {"ok": false, "error": ...}.
"""


class ServiceError(Exception):
    status_code = 500
    default_message = "internal error"

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ValidationError(ServiceError):
    status_code = 400
    default_message = "invalid request"


class Unauthenticated(ServiceError):
    status_code = 401
    default_message = "authentication required"


class NotFound(ServiceError):
    status_code = 404
    default_message = "not found"


class InvalidTransition(ServiceError):
    status_code = 409
    default_message = "invalid state transition"


class StorageUnavailable(ServiceError):
    status_code = 500
    default_message = "storage unavailable"


class SimulationCancelled(Exception):
    """Raised inside a simulator run once its job stops being writable."""

"""Domain error taxonomy.

Services raise these; the HTTP layer renders them as ``{"message": ...}``
with the matching status code (see ``app.main``).
"""
from typing import Optional


class ServiceError(Exception):
    status_code = 500
    default_message = "Server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ServiceError):
    status_code = 400
    default_message = "Invalid request"


class Unauthenticated(ServiceError):
    status_code = 401
    default_message = "Not authorized"


class Forbidden(ServiceError):
    status_code = 403
    default_message = "Not authorized"


class NotFound(ServiceError):
    status_code = 404
    default_message = "Not found"


class PrincipalNotFound(NotFound):
    default_message = "User not found"


class Conflict(ServiceError):
    status_code = 400
    default_message = "Conflict"


class ServerError(ServiceError):
    status_code = 500


__all__ = [
    "ServiceError",
    "ValidationError",
    "Unauthenticated",
    "Forbidden",
    "NotFound",
    "PrincipalNotFound",
    "Conflict",
    "ServerError",
]

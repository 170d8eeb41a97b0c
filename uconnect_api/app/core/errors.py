"""
Error taxonomy shared by services and the HTTP layer.

Services raise these exceptions; ``main`` registers exception handlers
that turn them into ``{"error": ...}`` JSON responses carrying the
matching status code.
"""

from typing import Dict, Optional


class ServiceError(Exception):
    """Base class for failures reported to API clients."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, headers: Optional[Dict[str, str]] = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.headers = headers


class InvalidInput(ServiceError):
    status_code = 400
    default_message = "Invalid input"


class MissingCredential(ServiceError):
    status_code = 401
    default_message = "Token not provided"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class InvalidCredential(ServiceError):
    status_code = 401
    default_message = "Invalid or expired token"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(ServiceError):
    status_code = 403
    default_message = "Insufficient permissions"


class NotFound(ServiceError):
    status_code = 404
    default_message = "Not found"


class Conflict(ServiceError):
    status_code = 409
    default_message = "Already exists"


class UpstreamFailure(ServiceError):
    status_code = 502
    default_message = "Upstream service failure"

from typing import Any, Dict, Optional

AUTH_SESSION_MARKERS = (
    "Authentication token missing",
    "Unauthorized",
    "401",
    "Session expired",
)

TOKEN_MISSING_MESSAGE = "Authentication token missing. Please login again."
SESSION_EXPIRED_MESSAGE = "Session expired. Please login again."


class ApiError(Exception):
    """Non-success response from the REST API."""

    def __init__(self, message: str, status: Optional[int] = None, body: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.body = body or {}


class AuthSessionError(ApiError):
    """The caller has no usable session; tokens were cleared."""


def is_auth_session_error(message: str) -> bool:
    return any(marker in (message or "") for marker in AUTH_SESSION_MARKERS)

"""Base exception and error codes shared by the services.

Each service raises a subclass carrying a machine readable code and a
user-facing message; the HTTP layer maps codes to status codes.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standard error codes."""

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Auth errors
    AUTH_REQUIRED = "AUTH_REQUIRED"
    AUTH_INVALID_TOKEN = "AUTH_INVALID_TOKEN"
    AUTH_TOKEN_EXPIRED = "AUTH_TOKEN_EXPIRED"
    AUTH_USER_NOT_SYNCED = "AUTH_USER_NOT_SYNCED"
    AUTH_EMAIL_MISSING = "AUTH_EMAIL_MISSING"
    AUTH_EMAIL_EXISTS = "AUTH_EMAIL_EXISTS"

    # Group errors
    GROUP_NOT_FOUND = "GROUP_NOT_FOUND"
    GROUP_NOT_OWNER = "GROUP_NOT_OWNER"
    GROUP_TITLE_REQUIRED = "GROUP_TITLE_REQUIRED"
    INVITE_NOT_FOUND = "INVITE_NOT_FOUND"

    # Check-in errors
    CHECKIN_TITLE_REQUIRED = "CHECKIN_TITLE_REQUIRED"
    CHECKIN_ALREADY_EXISTS = "CHECKIN_ALREADY_EXISTS"

    # Photo errors
    PHOTO_INVALID_TYPE = "PHOTO_INVALID_TYPE"
    PHOTO_TOO_LARGE = "PHOTO_TOO_LARGE"
    PHOTO_UPLOAD_FAILED = "PHOTO_UPLOAD_FAILED"


class BookRatsError(Exception):
    """Base exception for service errors.

    Attributes:
        code: Error code for programmatic handling
        message: User-friendly error message
        details: Additional error details
    """

    def __init__(
        self,
        code: ErrorCode | str,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        self.code = code.value if isinstance(code, ErrorCode) else code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }

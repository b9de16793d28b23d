"""
Application error taxonomy.
Each error carries the HTTP status it maps to and a client-safe message.
"""
from typing import List, Optional


class AppError(Exception):
    """Base class for errors rendered as JSON responses."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[str]] = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)

    def to_content(self) -> dict:
        content = {"success": False, "message": self.message}
        if self.errors:
            content["errors"] = self.errors
        return content


class ValidationError(AppError):
    status_code = 400
    default_message = "Validation failed"


class UploadError(AppError):
    status_code = 400
    default_message = "Only image files are allowed"


class AuthError(AppError):
    status_code = 401
    default_message = "Unauthorized. Please log in."


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"


class RateLimitError(AppError):
    status_code = 429
    default_message = "Too many requests. Please try again later."


class StorageError(AppError):
    """Persistence or blob store failure; the cause is logged, never returned."""

    status_code = 500
    default_message = "Storage operation failed"

"""
School Registry Backend: Custom Exception Hierarchy
=====================================================

What:  Application-specific exceptions for each error scenario.
How:   Each exception carries a message and an optional context dict.
       Global exception handlers (registered in main.py) turn them into
       `{"success": false, "message": ...}` JSON responses.
Who:   Raised by services; caught by global handlers.

Exception Hierarchy:
    SchoolRegistryError (base)
    ├── ValidationError          → 400 Bad Request
    │   └── FileTooLargeError    → 400 Bad Request (upload over the ceiling)
    ├── NotFoundError            → 404 Not Found
    ├── FileStorageError         → 500 Internal Server Error
    └── DatabaseError            → 500 Internal Server Error (raw driver text in `error`)
"""

from typing import Any, Dict, Optional


class SchoolRegistryError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (returned in the API response)
        context:  Additional debug info (logged, not returned)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(SchoolRegistryError):
    """
    Raised when client input fails validation.

    When:    Missing or empty form fields, non-numeric contact, image with a
             disallowed extension or content type.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class FileTooLargeError(ValidationError):
    """
    Raised while reading an upload that exceeds the configured ceiling.

    The upload is abandoned before anything reaches the image directory.
    """

    def __init__(self, max_size_mb: int = 5, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx["max_size_mb"] = max_size_mb
        super().__init__(
            message=f"File too large. Maximum size is {max_size_mb}MB.",
            field="image",
            context=ctx,
        )
        self.max_size_mb = max_size_mb


class NotFoundError(SchoolRegistryError):
    """
    Raised when a requested resource does not exist.

    When:    GET /api/schools/{id} with an unknown id, or an image file that
             is not in the image directory.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        message: str = "The requested resource was not found",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(SchoolRegistryError):
    """
    Raised when writing an uploaded image to disk fails.

    When:    Disk full, permission denied, directory not writable.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "Failed to save uploaded image",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(SchoolRegistryError):
    """
    Raised when a database operation fails.

    When:    Connection could not be acquired, constraint violation, query error.
    HTTP:    500 Internal Server Error

    `message` names the failed operation ("Failed to add school"); `error`
    holds the driver's own error text and is returned to the client as-is.
    """

    def __init__(
        self,
        message: str = "A database error occurred",
        error: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.error = error

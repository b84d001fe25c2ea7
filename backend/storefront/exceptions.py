"""
Storefront Backend — Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions for every failure the API reports.
Why:   Each exception carries its HTTP status and a client-safe message, so the
       global handlers in main.py can turn any of them into the uniform
       `{status, data, message}` envelope without per-route try/except.
How:   Services raise; handlers registered in main.py catch and respond.

Exception Hierarchy:
    StorefrontError (base)                 → 500
    ├── ValidationError                    → 400 (malformed/missing input)
    │   └── InvalidFormatError             → 400 (image type not JPEG/PNG)
    ├── DuplicateError                     → 400 (unique name taken)
    ├── LimitExceededError                 → 400 (banner cap reached)
    ├── NoOpError                          → 400 (update changes nothing)
    ├── UnauthorizedError                  → 401 (credential mismatch)
    ├── NotFoundError                      → 404
    ├── UploadFailureError                 → 500 (asset host rejected/unreachable)
    └── PersistFailureError                → 500 (database write failed)

    Anything else is caught by the catch-all handler and reported as 500
    "Something went wrong".
"""

from typing import Any, Dict, Optional


class StorefrontError(Exception):
    """
    Base exception for all storefront application errors.

    Attributes:
        message:     User-facing error description (safe to return in API response)
        context:     Additional debug info (logged but NOT returned to client)
        status_code: HTTP status mirrored into the envelope
    """

    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(StorefrontError):
    """
    Raised when client input fails validation.

    When:  A schema rule fails, a required image is missing, or a path/body
           value cannot be parsed.
    HTTP:  400 Bad Request. Only the first failing field is reported.
    """

    status_code = 400

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


class InvalidFormatError(ValidationError):
    """
    Raised when an uploaded image is not an accepted raster format.

    Checked against the declared MIME type before any upload is attempted,
    and again when Pillow cannot decode the bytes.
    """

    def __init__(
        self,
        message: str = "Invalid image format",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, field=field, context=context)


class DuplicateError(StorefrontError):
    """Raised when a write would create a second record with a unique name."""

    status_code = 400

    def __init__(
        self,
        message: str = "Record already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class LimitExceededError(StorefrontError):
    """Raised when a collection already holds its maximum number of records."""

    status_code = 400

    def __init__(
        self,
        message: str = "Limit reached",
        limit: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if limit is not None:
            ctx["limit"] = limit
        super().__init__(message=message, context=ctx)
        self.limit = limit


class NoOpError(StorefrontError):
    """Raised when an update request neither changes a field nor replaces an image."""

    status_code = 400

    def __init__(
        self,
        message: str = "No fields to update",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class UnauthorizedError(StorefrontError):
    """
    Raised when credentials do not match.

    HTTP:  401 Unauthorized. The message never says which half was wrong.
    """

    status_code = 401

    def __init__(
        self,
        message: str = "Invalid email or password",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(StorefrontError):
    """
    Raised when a requested record does not exist.

    Mongo returns None for missing documents (and malformed ObjectIds can never
    match), so the store converts both cases into this exception.
    """

    status_code = 404

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message or f"{resource} not found", context=ctx)


class UploadFailureError(StorefrontError):
    """
    Raised when the asset host did not return a URL for an upload.

    Recovery: nothing was written to the database; the client may retry.
    """

    status_code = 500

    def __init__(
        self,
        message: str = "Image upload failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PersistFailureError(StorefrontError):
    """
    Raised when a database operation fails unexpectedly.

    The message returned to the client is generic; driver details are logged
    server-side only.
    """

    status_code = 500

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


"""
Custom Exceptions

This module defines the error taxonomy of the service. Every exception
carries the HTTP status code and the user-readable message returned at the
request boundary, so endpoints never build error payloads themselves.
"""

from typing import Optional


class URLShortenerException(Exception):
    """Base exception for the URL shortener service."""

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class InvalidInputError(URLShortenerException):
    """Raised when the submitted URL is missing or malformed."""

    status_code = 400
    message = "Invalid URL"


class InvalidAliasFormatError(URLShortenerException):
    """Raised when a custom alias contains characters outside [A-Za-z0-9_-]."""

    status_code = 400
    message = (
        "Invalid alias format. Only letters, numbers, dashes (-), "
        "and underscores (_) are allowed."
    )


class InvalidAliasLengthError(URLShortenerException):
    """Raised when a custom alias is too short or too long."""

    status_code = 400

    def __init__(self, min_length: int, max_length: int, actual_length: int):
        self.min_length = min_length
        self.max_length = max_length
        self.actual_length = actual_length
        if actual_length < min_length:
            message = f"Alias must be at least {min_length} characters"
        else:
            message = f"Alias must be at most {max_length} characters"
        super().__init__(message)


class AliasTakenError(URLShortenerException):
    """Raised when a custom alias is already in use."""

    status_code = 409
    message = "Alias is already taken"

    def __init__(self, alias: str):
        self.alias = alias
        super().__init__()


class RateLimitExceededError(URLShortenerException):
    """Raised when a client exceeds its submission quota."""

    status_code = 429

    def __init__(self, retry_after: int):
        self.retry_after = retry_after
        super().__init__(f"Rate limit exceeded. Try again in {retry_after}s.")


class StorageError(URLShortenerException):
    """Raised when record store operations fail."""

    status_code = 500
    message = "Failed to save URL"

    def __init__(self, message: Optional[str] = None, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(message)


class NotFoundError(URLShortenerException):
    """Raised when a short code or link is not found."""

    status_code = 404
    message = "Short URL not found"

    def __init__(self, short_code: Optional[str] = None, message: Optional[str] = None):
        self.short_code = short_code
        super().__init__(message)


class ServiceUnavailableError(URLShortenerException):
    """Raised when a required service is unavailable."""

    status_code = 503

    def __init__(self, service_name: str):
        self.service_name = service_name
        super().__init__(f"Service '{service_name}' is unavailable")

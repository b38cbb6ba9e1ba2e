"""
Core Exceptions
================

Exception hierarchy for the locate tracker.

Validation errors are raised before any request reaches the locates API.
Upstream failures carry the HTTP status (when there was a response) so
callers can tell a retryable outage from a rejected request.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationException(ApplicationException):
    """Rejected input. Nothing has been sent upstream."""


class NothingSelectedException(ValidationException):
    """A bulk action was requested for an empty selection."""

    def __init__(self, bucket: str):
        self.bucket = bucket
        super().__init__("No locates selected", {"bucket": bucket})


class ConfirmationRequiredException(ValidationException):
    """A destructive bulk action was requested without confirmation."""

    def __init__(self, bucket: str, count: int):
        self.bucket = bucket
        self.count = count
        super().__init__(
            f"Deleting {count} work order(s) requires confirmation",
            {"bucket": bucket, "count": count}
        )


class ResourceNotFoundException(ApplicationException):
    """A locate id that is not in the last-known record set."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class ConfigurationException(ApplicationException):
    """Locate SLA rules missing or invalid."""


class ExternalServiceException(ApplicationException):
    """Base exception for external service failures."""

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}", details)


class LocatesApiException(ExternalServiceException):
    """The work-order / locates API failed or rejected a request."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[dict] = None
    ):
        self.status_code = status_code
        super().__init__("Locates API", message, details)

    @property
    def retryable(self) -> bool:
        """Transport errors and 5xx responses may succeed on a later attempt."""
        return self.status_code is None or self.status_code >= 500

"""
Core Module
============

Framework-agnostic building blocks shared by every layer: the exception
hierarchy the API layer maps onto HTTP status codes.
"""

from core.exceptions import (
    ApplicationException,
    ValidationException,
    NothingSelectedException,
    ConfirmationRequiredException,
    ResourceNotFoundException,
    ConfigurationException,
    ExternalServiceException,
    LocatesApiException,
)

__all__ = [
    "ApplicationException",
    "ValidationException",
    "NothingSelectedException",
    "ConfirmationRequiredException",
    "ResourceNotFoundException",
    "ConfigurationException",
    "ExternalServiceException",
    "LocatesApiException",
]

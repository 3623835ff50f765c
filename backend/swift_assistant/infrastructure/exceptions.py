"""
Custom Exceptions for Swift Assistant

Hierarchical exception classes for proper error handling across layers.
Each class maps to exactly one HTTP status in main.py.
"""

from typing import Optional, Dict, Any


class SwiftAssistantError(Exception):
    """Base exception for all Swift Assistant errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details
        }


class ClientInputInvalid(SwiftAssistantError):
    """Raised when form data or audio from the client is unusable."""
    pass


class Unauthenticated(SwiftAssistantError):
    """Raised when an operation requires a signed-in user."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class SubscriptionRequired(SwiftAssistantError):
    """Raised by the paywall when a signed-in user is not entitled."""

    def __init__(self, message: str = "A subscription is required"):
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": "subscription_required", "message": self.message}


class NotFoundError(SwiftAssistantError):
    """Raised when a requested resource (e.g. a billing customer) is not found."""

    def __init__(
        self,
        message: str,
        reason: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if reason:
            details["reason"] = reason
        super().__init__(message, details, original_error)
        self.reason = reason


class StoreError(SwiftAssistantError):
    """Raised when database operations fail."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if table:
            details["table"] = table
        super().__init__(message, details, original_error)


class DownstreamUnavailable(SwiftAssistantError):
    """Raised when a provider call fails in transport or returns non-2xx."""

    def __init__(
        self,
        message: str,
        service: str,
        body: Optional[str] = None,
        status_code: Optional[int] = None,
        original_error: Optional[Exception] = None
    ):
        details = {"service": service}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, details, original_error)
        self.service = service
        self.body = body
        self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        # Provider detail stays server-side
        return {
            "error": self.__class__.__name__,
            "message": "Something went wrong. Please try again.",
        }


class InternalEmptyResult(SwiftAssistantError):
    """Raised when a provider succeeded but returned no usable content."""

    def __init__(self, message: str, service: str):
        super().__init__(message, {"service": service})
        self.service = service

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "message": "Something went wrong. Please try again.",
        }


class SignatureInvalid(SwiftAssistantError):
    """Raised when a webhook payload cannot be authenticated."""
    pass


class ConfigurationError(SwiftAssistantError):
    """Raised when configuration is missing or invalid."""

    def __init__(
        self,
        message: str,
        missing_keys: Optional[list] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if missing_keys:
            details["missing_keys"] = missing_keys
        super().__init__(message, details, original_error)

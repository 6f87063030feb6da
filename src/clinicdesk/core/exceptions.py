"""
Exception handling for ClinicDesk application.

This module provides custom exception classes for the different layers
of the application. Business-rule violations live in ``domain.errors``.
"""

from typing import Any, Dict, Optional


class ClinicDeskException(Exception):
    """Base exception class for ClinicDesk application."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(ClinicDeskException):
    """Raised when there's a configuration error."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, "CONFIG_ERROR", details)


class ValidationError(ClinicDeskException):
    """Raised when input is rejected before any call to the record store."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, "VALIDATION_ERROR", details)


class AuthenticationError(ClinicDeskException):
    """Raised when the record store rejects the current session."""

    def __init__(
        self,
        message: str = "Authentication failed",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, "AUTH_ERROR", details)


class ExternalServiceError(ClinicDeskException):
    """Raised when there's an external service error."""

    def __init__(
        self, service: str, message: str, details: Optional[Dict[str, Any]] = None
    ) -> None:
        self.service = service
        full_message = f"{service} service error: {message}"
        super().__init__(full_message, "EXTERNAL_SERVICE_ERROR", details)


class RecordStoreError(ExternalServiceError):
    """Raised when a request against the ERP record store fails."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        detail: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.status = status
        # Server-provided reason, surfaced verbatim to operators
        self.detail = detail or message
        merged = {"status": status, **(details or {})}
        super().__init__("ERP", message, merged)


class NegotiationError(ClinicDeskException):
    """Raised when a session negotiation step cannot proceed."""

    def __init__(
        self, step: str, message: str, details: Optional[Dict[str, Any]] = None
    ) -> None:
        self.step = step
        super().__init__(message, "NEGOTIATION_ERROR", {"step": step, **(details or {})})

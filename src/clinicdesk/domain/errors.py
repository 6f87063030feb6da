"""
Domain-specific error types for business rule violations.
"""

from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base domain error."""

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


class InvalidTransitionError(DomainError):
    """Queue status transition not allowed from the current status."""

    def __init__(self, registration_id: int, current: str, target: str) -> None:
        message = f"Registration {registration_id} cannot move from {current} to {target}"
        super().__init__(
            message,
            "INVALID_TRANSITION",
            {"registration_id": registration_id, "current": current, "target": target},
        )


class RegistrationNotFoundError(DomainError):
    """Registration not found."""

    def __init__(self, registration_id: int) -> None:
        message = f"Registration with ID '{registration_id}' not found"
        super().__init__(message, "REGISTRATION_NOT_FOUND", {"registration_id": registration_id})


class MissingScopeError(DomainError):
    """No organization scope is set on the current session."""

    def __init__(self, message: str = "No organization selected for this session") -> None:
        super().__init__(message, "MISSING_SCOPE", {})


class InvalidPrescriptionError(DomainError):
    """Prescription data rejected before it is saved."""

    def __init__(self, field: str, value: Any) -> None:
        message = f"Invalid prescription data. Field: {field}, Value: {value}"
        super().__init__(message, "INVALID_PRESCRIPTION", {"field": field, "value": value})

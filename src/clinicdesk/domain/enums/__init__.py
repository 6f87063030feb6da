"""
Workflow enums package.
"""

from .workflow import (
    FREQUENCY_MULTIPLIER,
    STATUS_RANK,
    CheckoutStatus,
    DispenseStatus,
    Frequency,
    PatientTag,
    PrescriptionStatus,
    RegistrationStatus,
    RegistrationType,
    status_rank,
)

__all__ = [
    "RegistrationStatus",
    "RegistrationType",
    "PrescriptionStatus",
    "DispenseStatus",
    "CheckoutStatus",
    "Frequency",
    "PatientTag",
    "STATUS_RANK",
    "FREQUENCY_MULTIPLIER",
    "status_rank",
]

"""
Status enums for the clinic visit workflows.

None of these has a native column in the ERP; each is stored as a ledger value.
"""

from enum import Enum
from typing import Dict


class RegistrationStatus(str, Enum):
    """Patient queue status."""
    WAITING = "WAITING"        # Initial state, implied by a missing ledger entry
    CALLING = "CALLING"
    CONSULTING = "CONSULTING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @property
    def rank(self) -> int:
        return STATUS_RANK[self]

    @property
    def is_terminal(self) -> bool:
        return self in (RegistrationStatus.COMPLETED, RegistrationStatus.CANCELLED)


# Both terminal states tie at the highest rank
STATUS_RANK: Dict[RegistrationStatus, int] = {
    RegistrationStatus.WAITING: 0,
    RegistrationStatus.CALLING: 1,
    RegistrationStatus.CONSULTING: 2,
    RegistrationStatus.COMPLETED: 3,
    RegistrationStatus.CANCELLED: 3,
}


def status_rank(status: RegistrationStatus) -> int:
    """Rank used to decide which of two observed statuses is newer."""
    return STATUS_RANK.get(status, 0)


class RegistrationType(str, Enum):
    """How the patient entered the queue."""
    WALK_IN = "WALK_IN"
    APPOINTMENT = "APPOINTMENT"


class PrescriptionStatus(str, Enum):
    DRAFT = "DRAFT"
    COMPLETED = "COMPLETED"


class DispenseStatus(str, Enum):
    PENDING = "PENDING"
    DISPENSING = "DISPENSING"
    DISPENSED = "DISPENSED"


class CheckoutStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"


class Frequency(str, Enum):
    """Dosing frequency codes."""
    QD = "QD"    # once daily
    BID = "BID"  # twice daily
    TID = "TID"  # three times daily
    QID = "QID"  # four times daily
    PRN = "PRN"  # as needed


FREQUENCY_MULTIPLIER: Dict[str, int] = {
    Frequency.QD.value: 1,
    Frequency.BID.value: 2,
    Frequency.TID.value: 3,
    Frequency.QID.value: 4,
    Frequency.PRN.value: 1,
}


class PatientTag(str, Enum):
    WARNING = "WARNING"
    ALLERGY = "ALLERGY"
    VIP = "VIP"
    CHRONIC = "CHRONIC"
    DEBT = "DEBT"

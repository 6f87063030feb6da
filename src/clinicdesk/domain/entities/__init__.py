"""
Domain entities package.
"""

from .dispense import (
    CheckoutItem,
    DispenseItem,
    DispenseOutcome,
    DispenseRecord,
    DispenseRecordLine,
    StockDeductionResult,
    StockInfo,
)
from .prescription import (
    Medicine,
    Prescription,
    PrescriptionLine,
    PrescriptionTemplate,
    compute_total_quantity,
)
from .registration import Doctor, Patient, PatientInfo, Registration
from .session import (
    Choice,
    Credentials,
    Done,
    LoginState,
    OrganizationSelection,
    RoleSelection,
    SessionContext,
    SessionUser,
    TenantSelection,
    WarehouseSelection,
)

__all__ = [
    "Choice",
    "SessionContext",
    "SessionUser",
    "LoginState",
    "Credentials",
    "TenantSelection",
    "RoleSelection",
    "OrganizationSelection",
    "WarehouseSelection",
    "Done",
    "Patient",
    "PatientInfo",
    "Doctor",
    "Registration",
    "Medicine",
    "Prescription",
    "PrescriptionLine",
    "PrescriptionTemplate",
    "compute_total_quantity",
    "DispenseItem",
    "StockInfo",
    "StockDeductionResult",
    "DispenseRecord",
    "DispenseRecordLine",
    "DispenseOutcome",
    "CheckoutItem",
]

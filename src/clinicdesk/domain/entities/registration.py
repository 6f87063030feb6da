"""
Registration, patient and doctor entities.

A registration is a resource assignment in the ERP. The patient it belongs to
is stored in the assignment description, and its queue status lives in the
status ledger.
"""

import json
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ...core.utils.datetime_utils import parse_erp_datetime
from ..enums.workflow import RegistrationStatus, RegistrationType

_LEGACY_DESCRIPTION = re.compile(r"^(.+?) \((.+?)\) #(\d+)$")


@dataclass
class Patient:
    """Customer business partner registered as a patient."""

    id: int
    name: str
    value: str = ""
    tax_id: str = ""
    phone: str = ""
    is_active: bool = True

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Patient":
        return cls(
            id=int(record.get("id") or 0),
            name=str(record.get("Name") or ""),
            value=str(record.get("Value") or ""),
            tax_id=str(record.get("TaxID") or ""),
            phone=str(record.get("Phone") or ""),
            is_active=bool(record.get("IsActive", True)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "value": self.value,
            "name": self.name,
            "tax_id": self.tax_id,
            "phone": self.phone,
            "is_active": self.is_active,
        }


@dataclass
class Doctor:
    """Active clinical resource that registrations are assigned to."""

    id: int
    name: str

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Doctor":
        return cls(id=int(record.get("id") or 0), name=str(record.get("Name") or ""))


@dataclass
class PatientInfo:
    """Patient reference parsed from an assignment description."""

    patient_id: int = 0
    patient_name: str = ""
    patient_tax_id: str = ""
    registration_type: RegistrationType = RegistrationType.WALK_IN

    def to_description(self) -> str:
        return json.dumps(
            {
                "patientId": self.patient_id,
                "patientName": self.patient_name,
                "patientTaxId": self.patient_tax_id,
                "type": self.registration_type.value,
            },
            ensure_ascii=False,
        )

    @classmethod
    def parse(cls, description: Optional[str]) -> "PatientInfo":
        """Parse the JSON description, falling back to ``Name (TaxId) #Id``."""
        if not description:
            return cls()
        try:
            data = json.loads(description)
        except (TypeError, ValueError):
            data = None
        if isinstance(data, dict):
            try:
                reg_type = RegistrationType(data.get("type") or RegistrationType.WALK_IN.value)
            except ValueError:
                reg_type = RegistrationType.WALK_IN
            return cls(
                patient_id=int(data.get("patientId") or 0),
                patient_name=str(data.get("patientName") or ""),
                patient_tax_id=str(data.get("patientTaxId") or ""),
                registration_type=reg_type,
            )
        match = _LEGACY_DESCRIPTION.match(description)
        if match:
            return cls(
                patient_id=int(match.group(3)),
                patient_name=match.group(1),
                patient_tax_id=match.group(2),
            )
        return cls(patient_name=description)


@dataclass
class Registration:
    """One patient's place in a doctor's queue for a day."""

    id: int
    resource_id: int
    resource_name: str = ""
    queue_number: str = ""
    patient_id: int = 0
    patient_name: str = ""
    patient_tax_id: str = ""
    assign_date_from: Optional[datetime] = None
    assign_date_to: Optional[datetime] = None
    is_confirmed: bool = False
    status: RegistrationStatus = RegistrationStatus.WAITING
    registration_type: RegistrationType = RegistrationType.WALK_IN
    description: str = ""
    tags: List[str] = field(default_factory=list)

    @classmethod
    def from_record(
        cls,
        record: Dict[str, Any],
        status: RegistrationStatus = RegistrationStatus.WAITING,
    ) -> "Registration":
        """Build from an ``S_ResourceAssignment`` row with the resource expanded."""
        resource = record.get("S_Resource_ID")
        resource_id = 0
        resource_name = ""
        if isinstance(resource, dict):
            resource_id = int(resource.get("id") or 0)
            resource_name = str(resource.get("identifier") or resource.get("Name") or "")
        elif resource:
            resource_id = int(resource)
        description = str(record.get("Description") or "")
        info = PatientInfo.parse(description)
        return cls(
            id=int(record.get("id") or 0),
            resource_id=resource_id,
            resource_name=resource_name,
            queue_number=str(record.get("Name") or ""),
            patient_id=info.patient_id,
            patient_name=info.patient_name,
            patient_tax_id=info.patient_tax_id,
            assign_date_from=parse_erp_datetime(record.get("AssignDateFrom")),
            assign_date_to=parse_erp_datetime(record.get("AssignDateTo")),
            is_confirmed=bool(record.get("IsConfirmed", False)),
            status=status,
            registration_type=info.registration_type,
            description=description,
        )

    @property
    def queue_order(self) -> int:
        try:
            return int(self.queue_number)
        except (TypeError, ValueError):
            return 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "resource_id": self.resource_id,
            "resource_name": self.resource_name,
            "queue_number": self.queue_number,
            "patient_id": self.patient_id,
            "patient_name": self.patient_name,
            "patient_tax_id": self.patient_tax_id,
            "assign_date_from": self.assign_date_from.isoformat() if self.assign_date_from else None,
            "assign_date_to": self.assign_date_to.isoformat() if self.assign_date_to else None,
            "is_confirmed": self.is_confirmed,
            "status": self.status.value,
            "registration_type": self.registration_type.value,
            "tags": list(self.tags),
        }

"""
Prescription entities.

Prescriptions and templates are persisted as JSON ledger values, so each
entity knows its own camelCase wire shape.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..enums.workflow import FREQUENCY_MULTIPLIER, Frequency, PrescriptionStatus

DEFAULT_DOSAGE = 3
DEFAULT_UNIT = "g"
DEFAULT_TOTAL_DAYS = 7


def compute_total_quantity(dosage: float, frequency: str, days: int) -> float:
    """Dose times daily multiplier times days; unknown frequencies count once."""
    multiplier = FREQUENCY_MULTIPLIER.get(str(getattr(frequency, "value", frequency)), 1)
    return dosage * multiplier * days


def _number(value: Any, default: float = 0) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return int(number) if number.is_integer() else number


@dataclass
class PrescriptionLine:
    product_id: int
    product_name: str
    dosage: float = DEFAULT_DOSAGE
    unit: str = DEFAULT_UNIT
    frequency: str = Frequency.TID.value
    days: int = DEFAULT_TOTAL_DAYS
    total_quantity: float = 0
    instructions: str = ""

    def recalculate(self) -> None:
        self.total_quantity = compute_total_quantity(self.dosage, self.frequency, self.days)

    def to_json(self) -> Dict[str, Any]:
        return {
            "productId": self.product_id,
            "productName": self.product_name,
            "dosage": self.dosage,
            "unit": self.unit,
            "frequency": self.frequency,
            "days": self.days,
            "totalQuantity": self.total_quantity,
            "instructions": self.instructions,
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "PrescriptionLine":
        return cls(
            product_id=int(data.get("productId") or 0),
            product_name=str(data.get("productName") or ""),
            dosage=_number(data.get("dosage"), DEFAULT_DOSAGE),
            unit=str(data.get("unit") or DEFAULT_UNIT),
            frequency=str(data.get("frequency") or Frequency.TID.value),
            days=int(_number(data.get("days"), DEFAULT_TOTAL_DAYS)),
            total_quantity=_number(data.get("totalQuantity"), 0),
            instructions=str(data.get("instructions") or ""),
        )


@dataclass
class Prescription:
    assignment_id: int
    patient_id: int = 0
    patient_name: str = ""
    diagnosis: str = ""
    lines: List[PrescriptionLine] = field(default_factory=list)
    total_days: int = DEFAULT_TOTAL_DAYS
    status: PrescriptionStatus = PrescriptionStatus.DRAFT
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_json(self) -> Dict[str, Any]:
        """Ledger value; the assignment id lives in the ledger name instead."""
        return {
            "patientId": self.patient_id,
            "patientName": self.patient_name,
            "diagnosis": self.diagnosis,
            "lines": [line.to_json() for line in self.lines],
            "totalDays": self.total_days,
            "status": self.status.value,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_json(cls, assignment_id: int, data: Dict[str, Any]) -> "Prescription":
        try:
            status = PrescriptionStatus(data.get("status") or PrescriptionStatus.DRAFT.value)
        except ValueError:
            status = PrescriptionStatus.DRAFT
        return cls(
            assignment_id=assignment_id,
            patient_id=int(data.get("patientId") or 0),
            patient_name=str(data.get("patientName") or ""),
            diagnosis=str(data.get("diagnosis") or ""),
            lines=[PrescriptionLine.from_json(line) for line in data.get("lines") or []],
            total_days=int(_number(data.get("totalDays"), DEFAULT_TOTAL_DAYS)),
            status=status,
            created_at=str(data.get("createdAt") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"assignmentId": self.assignment_id, **self.to_json()}


@dataclass
class PrescriptionTemplate:
    id: str
    name: str
    lines: List[PrescriptionLine] = field(default_factory=list)
    total_days: int = DEFAULT_TOTAL_DAYS

    def to_json(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "lines": [line.to_json() for line in self.lines],
            "totalDays": self.total_days,
        }

    @classmethod
    def from_json(cls, config_name: str, data: Dict[str, Any], prefix: str = "") -> "PrescriptionTemplate":
        fallback_name = config_name[len(prefix):] if prefix and config_name.startswith(prefix) else config_name
        return cls(
            id=config_name,
            name=str(data.get("name") or fallback_name),
            lines=[PrescriptionLine.from_json(line) for line in data.get("lines") or []],
            total_days=int(_number(data.get("totalDays"), DEFAULT_TOTAL_DAYS)) or DEFAULT_TOTAL_DAYS,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, **self.to_json()}


def copy_lines(lines: List[PrescriptionLine], total_days: Optional[int] = None) -> List[PrescriptionLine]:
    """Fresh line copies, optionally re-based onto ``total_days``."""
    copies = []
    for line in lines:
        copy = PrescriptionLine.from_json(line.to_json())
        if total_days is not None:
            copy.days = total_days
        copy.recalculate()
        copies.append(copy)
    return copies


@dataclass
class Medicine:
    """Active product that can be prescribed."""

    id: int
    name: str
    value: str = ""
    upc: str = ""

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Medicine":
        return cls(
            id=int(record.get("id") or 0),
            name=str(record.get("Name") or ""),
            value=str(record.get("Value") or ""),
            upc=str(record.get("UPC") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "value": self.value, "name": self.name, "upc": self.upc}

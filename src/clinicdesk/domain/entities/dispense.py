"""Dispensing and checkout entities."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..enums.workflow import CheckoutStatus, DispenseStatus
from .prescription import Prescription


@dataclass
class DispenseItem:
    """Completed prescription waiting at the pharmacy counter."""

    assignment_id: int
    prescription: Prescription
    status: DispenseStatus = DispenseStatus.PENDING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "assignment_id": self.assignment_id,
            "status": self.status.value,
            "prescription": self.prescription.to_dict(),
        }


@dataclass
class StockInfo:
    product_id: int
    product_name: str = ""
    qty_on_hand: float = 0
    warehouse_name: str = ""

    @classmethod
    def from_record(cls, product_id: int, record: Dict[str, Any]) -> "StockInfo":
        locator = record.get("M_Locator_ID")
        name = locator.get("identifier", "") if isinstance(locator, dict) else ""
        return cls(
            product_id=product_id,
            qty_on_hand=record.get("QtyOnHand") or 0,
            warehouse_name=str(name or ""),
        )


@dataclass
class StockDeductionResult:
    """Outcome of the internal-use inventory document."""

    inventory_id: int
    completed: bool
    error: Optional[str] = None


@dataclass
class DispenseRecordLine:
    product_id: int
    product_name: str
    total_quantity: float
    unit: str = ""

    def to_json(self) -> Dict[str, Any]:
        return {
            "productId": self.product_id,
            "productName": self.product_name,
            "totalQuantity": self.total_quantity,
            "unit": self.unit,
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "DispenseRecordLine":
        return cls(
            product_id=int(data.get("productId") or 0),
            product_name=str(data.get("productName") or ""),
            total_quantity=data.get("totalQuantity") or 0,
            unit=str(data.get("unit") or ""),
        )


@dataclass
class DispenseRecord:
    """Permanent trace of what left the pharmacy for one visit."""

    assignment_id: int
    patient_name: str
    dispensed_at: str = field(default_factory=lambda: datetime.now().isoformat())
    lines: List[DispenseRecordLine] = field(default_factory=list)
    inventory_id: Optional[int] = None

    @classmethod
    def from_prescription(
        cls, prescription: Prescription, inventory_id: Optional[int] = None
    ) -> "DispenseRecord":
        return cls(
            assignment_id=prescription.assignment_id,
            patient_name=prescription.patient_name,
            lines=[
                DispenseRecordLine(
                    product_id=line.product_id,
                    product_name=line.product_name,
                    total_quantity=line.total_quantity,
                    unit=line.unit,
                )
                for line in prescription.lines
            ],
            inventory_id=inventory_id,
        )

    def to_json(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "patientName": self.patient_name,
            "dispensedAt": self.dispensed_at,
            "lines": [line.to_json() for line in self.lines],
        }
        if self.inventory_id:
            data["inventoryId"] = self.inventory_id
        return data

    @classmethod
    def from_json(cls, assignment_id: int, data: Dict[str, Any]) -> "DispenseRecord":
        inventory_id = data.get("inventoryId")
        return cls(
            assignment_id=assignment_id,
            patient_name=str(data.get("patientName") or ""),
            dispensed_at=str(data.get("dispensedAt") or ""),
            lines=[DispenseRecordLine.from_json(line) for line in data.get("lines") or []],
            inventory_id=int(inventory_id) if inventory_id else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"assignmentId": self.assignment_id, "inventoryId": self.inventory_id, **self.to_json()}


@dataclass
class DispenseOutcome:
    """What the operator sees after completing a dispense."""

    assignment_id: int
    stage: str
    completed: bool
    inventory_id: Optional[int] = None
    warning: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "assignment_id": self.assignment_id,
            "stage": self.stage,
            "completed": self.completed,
            "inventory_id": self.inventory_id,
            "warning": self.warning,
        }


@dataclass
class CheckoutItem:
    """Dispensed visit whose copayment has not been collected yet."""

    assignment_id: int
    prescription: Prescription
    dispense_status: DispenseStatus = DispenseStatus.DISPENSED
    checkout_status: CheckoutStatus = CheckoutStatus.PENDING

    @property
    def patient_name(self) -> str:
        return self.prescription.patient_name

    def summary(self, copayment: float) -> Dict[str, Any]:
        lines = [
            {"name": line.product_name, "qty": line.total_quantity, "unit": line.unit}
            for line in self.prescription.lines
        ]
        return {"prescription_lines": lines, "total_items": len(lines), "copayment": copayment}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "assignment_id": self.assignment_id,
            "patient_name": self.patient_name,
            "dispense_status": self.dispense_status.value,
            "checkout_status": self.checkout_status.value,
            "prescription": self.prescription.to_dict(),
        }

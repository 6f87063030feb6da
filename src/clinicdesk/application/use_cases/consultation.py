"""Consultation use case: the doctor's prescription pad for one visit."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from ...core.config import ClinicSettings
from ...core.constants import PRESCRIPTION_PREFIX, PRODUCT_TABLE, TEMPLATE_PREFIX
from ...core.exceptions import ClinicDeskException, RecordStoreError, ValidationError
from ...core.utils.odata import contains, escape_odata_string
from ...domain.entities.prescription import (
    DEFAULT_DOSAGE,
    Medicine,
    Prescription,
    PrescriptionLine,
    PrescriptionTemplate,
    compute_total_quantity,
    copy_lines,
)
from ...domain.enums.workflow import Frequency, PrescriptionStatus
from ...domain.errors import InvalidPrescriptionError, MissingScopeError
from ..ports.services.record_store import RecordStore
from ..services.status_ledger import StatusLedger
from .registration_workflow import RegistrationWorkflowUseCase
from .session_negotiation import SessionNegotiationUseCase

logger = logging.getLogger(__name__)

_EDITABLE_LINE_FIELDS = ("dosage", "unit", "frequency", "days", "instructions")


@dataclass
class ActiveConsultation:
    """The visit currently open on the doctor's screen."""

    assignment_id: int
    patient_name: str
    patient_tax_id: str
    resource_name: str
    prescription: Prescription


def prescription_ledger_name(assignment_id: int) -> str:
    return f"{PRESCRIPTION_PREFIX}{assignment_id}"


async def load_prescription(ledger: StatusLedger, assignment_id: int) -> Optional[Prescription]:
    """Saved prescription of an assignment, if any."""
    data = await ledger.get_json(prescription_ledger_name(assignment_id))
    if not isinstance(data, dict):
        return None
    return Prescription.from_json(assignment_id, data)


async def list_prescriptions(
    ledger: StatusLedger,
    status: Optional[PrescriptionStatus] = None,
    top: int = 50,
) -> List[Prescription]:
    """Recently updated prescriptions; unparseable entries are skipped."""
    prescriptions = []
    for entry in await ledger.list_by_prefix(PRESCRIPTION_PREFIX, "Updated desc", top):
        data = entry.json_value()
        assignment_id = entry.subject_id
        if not isinstance(data, dict) or assignment_id is None:
            continue
        prescription = Prescription.from_json(assignment_id, data)
        if status is None or prescription.status == status:
            prescriptions.append(prescription)
    return prescriptions


class ConsultationUseCase:
    """Holds the active prescription and persists it to the ledger."""

    def __init__(
        self,
        record_store: RecordStore,
        ledger: StatusLedger,
        session: SessionNegotiationUseCase,
        registration: RegistrationWorkflowUseCase,
        settings: ClinicSettings,
    ) -> None:
        self._store = record_store
        self._ledger = ledger
        self._session = session
        self._registration = registration
        self._settings = settings
        self.current: Optional[ActiveConsultation] = None
        self.templates: List[PrescriptionTemplate] = []
        self.history: List[Prescription] = []
        self.error: Optional[str] = None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_current(self) -> ActiveConsultation:
        if self.current is None:
            raise ValidationError("No active consultation")
        return self.current

    def _org_id(self) -> int:
        context = self._session.context
        if context is None or context.organization_id is None:
            raise MissingScopeError()
        return context.organization_id

    @property
    def lines(self) -> List[PrescriptionLine]:
        return self.current.prescription.lines if self.current else []

    # ------------------------------------------------------------------
    # Medicines
    # ------------------------------------------------------------------

    async def search_medicines(self, keyword: str) -> List[Medicine]:
        keyword = (keyword or "").strip()
        if not keyword:
            return []
        records = await self._store.list(
            PRODUCT_TABLE,
            filter=f"IsActive eq true and ({contains('Name', keyword)} or {contains('Value', keyword)})",
            select="M_Product_ID,Value,Name,UPC",
            top=20,
            order_by="Name asc",
        )
        return [Medicine.from_record(r) for r in records]

    async def list_medicines(self) -> List[Medicine]:
        records = await self._store.list(
            PRODUCT_TABLE,
            filter="IsActive eq true",
            select="M_Product_ID,Value,Name,UPC",
            order_by="Name asc",
            top=100,
        )
        return [Medicine.from_record(r) for r in records]

    # ------------------------------------------------------------------
    # Consultation lifecycle
    # ------------------------------------------------------------------

    async def start(
        self,
        assignment_id: int,
        patient_name: str,
        patient_tax_id: str = "",
        resource_name: str = "",
    ) -> ActiveConsultation:
        """Open a visit, resuming its saved prescription when there is one."""
        self.error = None
        prescription = Prescription(
            assignment_id=assignment_id,
            patient_name=patient_name,
            total_days=self._settings.default_total_days,
        )
        try:
            existing = await load_prescription(self._ledger, assignment_id)
        except RecordStoreError as e:
            logger.warning("Could not load saved prescription for %s: %s", assignment_id, e.detail)
            existing = None
        if existing is not None:
            existing.patient_name = existing.patient_name or patient_name
            prescription = existing

        registration = self._registration.find_local(assignment_id)
        if registration is not None and not prescription.patient_id:
            prescription.patient_id = registration.patient_id

        self.current = ActiveConsultation(
            assignment_id=assignment_id,
            patient_name=patient_name,
            patient_tax_id=patient_tax_id,
            resource_name=resource_name,
            prescription=prescription,
        )
        return self.current

    def set_diagnosis(self, diagnosis: str) -> None:
        self._require_current().prescription.diagnosis = diagnosis or ""

    def add_medicine(
        self,
        medicine: Medicine,
        dosage: float = DEFAULT_DOSAGE,
        frequency: str = Frequency.TID.value,
        days: Optional[int] = None,
    ) -> PrescriptionLine:
        current = self._require_current()
        if dosage < 0:
            raise InvalidPrescriptionError("dosage", dosage)
        line_days = days or current.prescription.total_days
        line = PrescriptionLine(
            product_id=medicine.id,
            product_name=medicine.name,
            dosage=dosage,
            frequency=frequency,
            days=line_days,
            total_quantity=compute_total_quantity(dosage, frequency, line_days),
        )
        current.prescription.lines.append(line)
        return line

    def remove_line(self, index: int) -> PrescriptionLine:
        lines = self._require_current().prescription.lines
        if not 0 <= index < len(lines):
            raise InvalidPrescriptionError("index", index)
        return lines.pop(index)

    def update_line(self, index: int, updates: Dict[str, Any]) -> PrescriptionLine:
        """Apply edits to one line and recompute its total quantity."""
        lines = self._require_current().prescription.lines
        if not 0 <= index < len(lines):
            raise InvalidPrescriptionError("index", index)
        line = lines[index]
        for key, value in updates.items():
            if key not in _EDITABLE_LINE_FIELDS:
                raise InvalidPrescriptionError(key, value)
            if value is None:
                continue
            if key in ("dosage", "days") and value < 0:
                raise InvalidPrescriptionError(key, value)
            setattr(line, key, value)
        line.recalculate()
        return line

    def set_total_days(self, days: int) -> None:
        """Re-base every line onto ``days``."""
        if days < 0:
            raise InvalidPrescriptionError("total_days", days)
        prescription = self._require_current().prescription
        prescription.total_days = days
        for line in prescription.lines:
            line.days = days
            line.recalculate()

    async def save(self) -> Prescription:
        current = self._require_current()
        org_id = self._org_id()
        self.error = None
        prescription = current.prescription
        prescription.patient_name = prescription.patient_name or current.patient_name
        prescription.created_at = datetime.now().isoformat()
        try:
            await self._ledger.upsert_json(
                prescription_ledger_name(current.assignment_id),
                prescription.to_json(),
                org_id,
                "Clinic prescription data",
            )
        except ClinicDeskException as e:
            self.error = e.message
            raise
        return prescription

    async def complete(self) -> Prescription:
        """Mark the prescription completed, save it and close the visit."""
        current = self._require_current()
        self._org_id()
        previous_status = current.prescription.status
        current.prescription.status = PrescriptionStatus.COMPLETED
        try:
            prescription = await self.save()
        except ClinicDeskException:
            current.prescription.status = previous_status
            raise
        await self._registration.complete(current.assignment_id)
        logger.info("Consultation %s completed with %d line(s)", current.assignment_id, len(prescription.lines))
        self.clear()
        return prescription

    def clear(self) -> None:
        self.current = None
        self.error = None

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    async def list_templates(self) -> List[PrescriptionTemplate]:
        templates = []
        for entry in await self._ledger.list_by_prefix(TEMPLATE_PREFIX, "Name asc"):
            data = entry.json_value()
            if isinstance(data, dict):
                templates.append(PrescriptionTemplate.from_json(entry.name, data, TEMPLATE_PREFIX))
        self.templates = templates
        return templates

    async def save_template(self, name: str) -> PrescriptionTemplate:
        prescription = self._require_current().prescription
        name = (name or "").strip()
        if not name:
            raise ValidationError("Template name is required")
        if not prescription.lines:
            raise ValidationError("No medicines to save as template")
        org_id = self._org_id()

        config_name = f"{TEMPLATE_PREFIX}{escape_odata_string(name)}"
        template = PrescriptionTemplate(
            id=config_name,
            name=name,
            lines=copy_lines(prescription.lines),
            total_days=prescription.total_days,
        )
        await self._ledger.upsert_json(
            config_name, template.to_json(), org_id, f"Prescription template: {name}"
        )
        await self.list_templates()
        return template

    async def delete_template(self, template_id: str) -> bool:
        if not template_id.startswith(TEMPLATE_PREFIX):
            raise ValidationError(f"Not a template: {template_id}")
        deleted = await self._ledger.delete(template_id)
        self.templates = [t for t in self.templates if t.id != template_id]
        return deleted

    def apply_template(self, template: PrescriptionTemplate) -> None:
        """Replace the current lines with the template's."""
        prescription = self._require_current().prescription
        prescription.lines = copy_lines(template.lines)
        prescription.total_days = template.total_days

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    async def list_history(self) -> List[Prescription]:
        self.history = await list_prescriptions(self._ledger)
        return self.history

    def apply_history(self, prescription: Prescription) -> None:
        """Append a past prescription's lines, re-based onto the current days."""
        current = self._require_current().prescription
        current.lines.extend(copy_lines(prescription.lines, current.total_days))

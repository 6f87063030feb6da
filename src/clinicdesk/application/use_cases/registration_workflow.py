"""Registration workflow use case.

Front-desk side of a visit: patient lookup and creation, the doctor list,
queue registration and the queue status machine
WAITING → CALLING → CONSULTING → COMPLETED, with CANCELLED reachable from any
non-terminal status.
"""

import logging
import random
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional

from ...core.config import ClinicSettings
from ...core.constants import (
    ASSIGNMENT_TABLE,
    PARTNER_TABLE,
    PATIENT_TAGS_PREFIX,
    QUEUE_STATUS_PREFIX,
    RESOURCE_TABLE,
)
from ...core.exceptions import ClinicDeskException, RecordStoreError, ValidationError
from ...core.utils.datetime_utils import day_bounds, max_appointment_date, to_erp_datetime
from ...core.utils.odata import contains, eq
from ...domain.entities.registration import Doctor, Patient, PatientInfo, Registration
from ...domain.enums.workflow import PatientTag, RegistrationStatus, RegistrationType
from ...domain.errors import InvalidTransitionError, MissingScopeError, RegistrationNotFoundError
from ...domain.services.queue_merge import merge_registrations
from ..ports.services.record_store import RecordStore
from ..services.lookup_cache import LookupCache
from ..services.status_ledger import StatusLedger, SubjectStatusLedger
from .session_negotiation import SessionNegotiationUseCase

logger = logging.getLogger(__name__)


def _day_filter(day: date) -> str:
    start, end = day_bounds(day)
    return f"AssignDateFrom ge '{to_erp_datetime(start)}' and AssignDateFrom lt '{to_erp_datetime(end)}'"


def _generate_chart_number(now: Optional[datetime] = None) -> str:
    """Chart number ``P{yyyymmdd}{nnn}``."""
    now = now or datetime.now()
    return f"P{now.strftime('%Y%m%d')}{random.randint(0, 999):03d}"


class RegistrationWorkflowUseCase:
    """Queue state for one clinic day, kept in step with the ERP by merge."""

    def __init__(
        self,
        record_store: RecordStore,
        ledger: StatusLedger,
        lookup_cache: LookupCache,
        session: SessionNegotiationUseCase,
        settings: ClinicSettings,
    ) -> None:
        self._store = record_store
        self._ledger = ledger
        self._lookup_cache = lookup_cache
        self._session = session
        self._settings = settings
        self.queue_status: SubjectStatusLedger[RegistrationStatus] = SubjectStatusLedger(
            ledger,
            QUEUE_STATUS_PREFIX,
            RegistrationStatus,
            RegistrationStatus.WAITING,
            "Clinic queue status",
        )
        self.registrations: List[Registration] = []
        self.patient_tags: Dict[int, List[str]] = {}
        self.error: Optional[str] = None

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def _with_status(self, status: RegistrationStatus) -> List[Registration]:
        return [r for r in self.registrations if r.status == status]

    @property
    def waiting(self) -> List[Registration]:
        return self._with_status(RegistrationStatus.WAITING)

    @property
    def calling(self) -> List[Registration]:
        return self._with_status(RegistrationStatus.CALLING)

    @property
    def consulting(self) -> List[Registration]:
        return self._with_status(RegistrationStatus.CONSULTING)

    @property
    def completed(self) -> List[Registration]:
        return self._with_status(RegistrationStatus.COMPLETED)

    def waiting_count_by_doctor(self) -> Dict[int, int]:
        counts: Dict[int, int] = {}
        for reg in self.waiting:
            counts[reg.resource_id] = counts.get(reg.resource_id, 0) + 1
        return counts

    def find_local(self, registration_id: int) -> Optional[Registration]:
        return next((r for r in self.registrations if r.id == registration_id), None)

    # ------------------------------------------------------------------
    # Scope
    # ------------------------------------------------------------------

    def _org_id(self) -> int:
        context = self._session.context
        if context is None or context.organization_id is None:
            raise MissingScopeError()
        return context.organization_id

    def _registration_org_id(self) -> int:
        """Organization to create assignments under; ``0`` is not accepted there."""
        org_id = self._org_id()
        if org_id != 0:
            return org_id
        real = next((o for o in self._session.available_organizations if o.id != 0), None)
        if real is None:
            raise MissingScopeError("No concrete organization is available for registration")
        return real.id

    # ------------------------------------------------------------------
    # Patients
    # ------------------------------------------------------------------

    async def find_patient(self, tax_id: str) -> Optional[Patient]:
        records = await self._store.list(
            PARTNER_TABLE,
            filter=f"{eq('TaxID', tax_id)} and IsCustomer eq true and IsActive eq true",
        )
        return Patient.from_record(records[0]) if records else None

    async def search_patients(self, keyword: str) -> List[Patient]:
        keyword = (keyword or "").strip()
        if len(keyword) < 2:
            return []
        records = await self._store.list(
            PARTNER_TABLE,
            filter=(
                "IsCustomer eq true and IsActive eq true and "
                f"({contains('Name', keyword)} or {contains('TaxID', keyword)})"
            ),
            top=20,
        )
        return [Patient.from_record(r) for r in records]

    async def add_patient(self, name: str, tax_id: str, phone: str = "") -> Patient:
        name = (name or "").strip()
        tax_id = (tax_id or "").strip()
        if not name or not tax_id:
            raise ValidationError("Patient name and tax id are required")
        org_id = self._org_id()

        value = _generate_chart_number()
        values = {
            "AD_Org_ID": org_id,
            "Value": value,
            "Name": name,
            "TaxID": tax_id,
            "Phone": phone or "",
            "IsCustomer": True,
            "IsActive": True,
        }
        group_id = await self._lookup_cache.customer_group_id()
        if group_id:
            values["C_BP_Group_ID"] = group_id

        created = await self._store.create(PARTNER_TABLE, values)
        logger.info("Created patient %s", value)
        return Patient(
            id=int(created.get("id") or 0),
            value=value,
            name=name,
            tax_id=tax_id,
            phone=phone or "",
        )

    # ------------------------------------------------------------------
    # Doctors
    # ------------------------------------------------------------------

    async def list_doctors(self) -> List[Doctor]:
        records = await self._store.list(
            RESOURCE_TABLE,
            filter="IsActive eq true",
            select="S_Resource_ID,Name",
            order_by="Name asc",
            top=50,
        )
        return [Doctor.from_record(r) for r in records]

    async def add_doctor(self, name: str) -> Doctor:
        """Create a bookable resource for a doctor."""
        name = (name or "").strip()
        if not name:
            raise ValidationError("Doctor name is required")
        org_id = self._org_id()
        resource_type_id = await self._lookup_cache.doctor_resource_type_id(org_id)
        warehouse_id = await self._lookup_cache.default_warehouse_id()
        if not warehouse_id:
            raise ValidationError("No warehouse exists to attach the doctor to")
        created = await self._store.create(
            RESOURCE_TABLE,
            {
                "AD_Org_ID": org_id,
                "S_ResourceType_ID": resource_type_id,
                "Name": name,
                "Value": name,
                "M_Warehouse_ID": warehouse_id,
                "PercentUtilization": 100,
                "IsAvailable": True,
            },
        )
        return Doctor(id=int(created.get("id") or 0), name=name)

    async def deactivate_doctor(self, resource_id: int) -> None:
        await self._store.update(RESOURCE_TABLE, resource_id, {"IsActive": False})

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    async def next_queue_number(self, resource_id: int, day: Optional[date] = None) -> str:
        records = await self._store.list(
            ASSIGNMENT_TABLE,
            filter=f"S_Resource_ID eq {int(resource_id)} and {_day_filter(day or date.today())}",
            select="Name",
        )
        # Names are zero-padded strings, so the maximum is taken numerically
        last = 0
        for record in records:
            try:
                last = max(last, int(record.get("Name") or 0))
            except (TypeError, ValueError):
                continue
        return f"{last + 1:03d}"

    async def register(
        self,
        patient: Patient,
        doctor: Doctor,
        registration_type: RegistrationType = RegistrationType.WALK_IN,
        appointment_date: Optional[date] = None,
    ) -> Registration:
        if not patient or not patient.id:
            raise ValidationError("Select a patient first")
        if not doctor or not doctor.id:
            raise ValidationError("Select a doctor first")

        now = datetime.now().replace(microsecond=0)
        today = now.date()
        if registration_type == RegistrationType.APPOINTMENT:
            if appointment_date is None:
                raise ValidationError("Appointments need a date")
            latest = max_appointment_date(self._settings.appointment_window_days, now)
            if not today <= appointment_date <= latest:
                raise ValidationError(
                    f"Appointment date must be between {today.isoformat()} and {latest.isoformat()}"
                )
            target_day = appointment_date
        else:
            target_day = today

        org_id = self._registration_org_id()
        queue_number = await self.next_queue_number(doctor.id, target_day)

        start = datetime.combine(target_day, now.time())
        end = start + timedelta(minutes=self._settings.registration_slot_minutes)
        info = PatientInfo(
            patient_id=patient.id,
            patient_name=patient.name,
            patient_tax_id=patient.tax_id,
            registration_type=registration_type,
        )
        description = info.to_description()

        created = await self._store.create(
            ASSIGNMENT_TABLE,
            {
                "AD_Org_ID": org_id,
                "S_Resource_ID": doctor.id,
                "Name": queue_number,
                "AssignDateFrom": to_erp_datetime(start),
                "AssignDateTo": to_erp_datetime(end),
                "Qty": 1,
                "IsConfirmed": False,
                "Description": description,
            },
        )
        registration = Registration(
            id=int(created.get("id") or 0),
            resource_id=doctor.id,
            resource_name=doctor.name,
            queue_number=queue_number,
            patient_id=patient.id,
            patient_name=patient.name,
            patient_tax_id=patient.tax_id,
            assign_date_from=start,
            assign_date_to=end,
            registration_type=registration_type,
            description=description,
        )
        await self.queue_status.set(registration.id, RegistrationStatus.WAITING, org_id)

        if target_day == today:
            self.registrations.append(registration)
        logger.info(
            "Registered patient %s with doctor %s as #%s on %s",
            patient.id,
            doctor.id,
            queue_number,
            target_day.isoformat(),
        )
        return registration

    async def list_registrations(
        self, resource_id: Optional[int] = None, day: Optional[date] = None
    ) -> List[Registration]:
        """Registrations of one day with their queue status joined in."""
        filter_ = _day_filter(day or date.today())
        if resource_id:
            filter_ += f" and S_Resource_ID eq {int(resource_id)}"
        records = await self._store.list(
            ASSIGNMENT_TABLE, filter=filter_, order_by="Name asc", expand="S_Resource_ID"
        )
        ids = [int(r.get("id") or 0) for r in records]
        statuses = await self.queue_status.get_many(ids)
        return [
            Registration.from_record(r, statuses.get(int(r.get("id") or 0), RegistrationStatus.WAITING))
            for r in records
        ]

    async def refresh(
        self, resource_id: Optional[int] = None, day: Optional[date] = None
    ) -> List[Registration]:
        """Re-fetch and merge; a status never moves backwards on refresh."""
        self.error = None
        try:
            fetched = await self.list_registrations(resource_id, day)
        except ClinicDeskException as e:
            self.error = e.message
            raise
        self.registrations = merge_registrations(self.registrations, fetched)
        self._stamp_tags()
        return self.registrations

    async def get_status(self, registration_id: int) -> RegistrationStatus:
        return await self.queue_status.get(registration_id)

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    def _check_transition(self, registration_id: int, target: RegistrationStatus) -> None:
        local = self.find_local(registration_id)
        if local is None:
            return
        current = local.status
        if current.is_terminal or current.rank > target.rank:
            raise InvalidTransitionError(registration_id, current.value, target.value)

    async def _transition(self, registration_id: int, target: RegistrationStatus) -> Registration:
        self.error = None
        org_id = self._org_id()
        self._check_transition(registration_id, target)
        try:
            await self.queue_status.set(registration_id, target, org_id)
        except ClinicDeskException as e:
            self.error = e.message
            raise
        local = self.find_local(registration_id)
        if local is None:
            # Not held locally; the next refresh picks it up
            return Registration(id=registration_id, resource_id=0, status=target)
        local.status = target
        return local

    async def call(self, registration_id: int) -> Registration:
        return await self._transition(registration_id, RegistrationStatus.CALLING)

    async def start_consultation(self, registration_id: int) -> Registration:
        registration = await self._transition(registration_id, RegistrationStatus.CONSULTING)
        try:
            await self._store.update(ASSIGNMENT_TABLE, registration_id, {"IsConfirmed": True})
        except RecordStoreError as e:
            self.error = e.detail
            raise
        registration.is_confirmed = True
        return registration

    async def complete(self, registration_id: int) -> Registration:
        return await self._transition(registration_id, RegistrationStatus.COMPLETED)

    async def cancel(self, registration_id: int) -> Registration:
        return await self._transition(registration_id, RegistrationStatus.CANCELLED)

    async def call_next(self, resource_id: Optional[int] = None) -> Optional[Registration]:
        """Call the waiting registration with the lowest queue number."""
        candidates = [r for r in self.waiting if not resource_id or r.resource_id == resource_id]
        if not candidates:
            return None
        nxt = min(candidates, key=lambda r: r.queue_order)
        return await self.call(nxt.id)

    def require(self, registration_id: int) -> Registration:
        registration = self.find_local(registration_id)
        if registration is None:
            raise RegistrationNotFoundError(registration_id)
        return registration

    # ------------------------------------------------------------------
    # Patient tags
    # ------------------------------------------------------------------

    def _stamp_tags(self, patient_ids: Optional[Iterable[int]] = None) -> None:
        wanted = set(patient_ids) if patient_ids is not None else None
        for reg in self.registrations:
            if wanted is not None and reg.patient_id not in wanted:
                continue
            if reg.patient_id in self.patient_tags:
                reg.tags = list(self.patient_tags[reg.patient_id])

    async def load_patient_tags(self, patient_id: int) -> List[str]:
        if patient_id in self.patient_tags:
            return self.patient_tags[patient_id]
        try:
            data = await self._ledger.get_json(f"{PATIENT_TAGS_PREFIX}{patient_id}")
        except RecordStoreError as e:
            logger.warning("Could not load tags for patient %s: %s", patient_id, e.detail)
            return []
        tags = [str(t) for t in data] if isinstance(data, list) else []
        self.patient_tags[patient_id] = tags
        self._stamp_tags([patient_id])
        return tags

    async def update_patient_tags(self, patient_id: int, tags: List[str]) -> List[str]:
        self.error = None
        valid = {t.value for t in PatientTag}
        unknown = [t for t in tags if t not in valid]
        if unknown:
            raise ValidationError(f"Unknown patient tag(s): {', '.join(unknown)}")
        org_id = self._org_id()
        # Keep first occurrence order, drop duplicates
        cleaned = list(dict.fromkeys(tags))
        try:
            await self._ledger.upsert_json(
                f"{PATIENT_TAGS_PREFIX}{patient_id}", cleaned, org_id, "Patient tags"
            )
        except ClinicDeskException as e:
            self.error = e.message
            raise
        self.patient_tags[patient_id] = cleaned
        self._stamp_tags([patient_id])
        return cleaned

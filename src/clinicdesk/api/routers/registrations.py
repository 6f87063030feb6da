"""
Front desk endpoints: patients, doctors and the registration queue.
"""

import logging
from dataclasses import asdict
from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Request

from ...application.use_cases import RegistrationWorkflowUseCase
from ...domain.entities.registration import Doctor, Patient
from ..deps import get_registration, require_session
from ..schemas.clinic import AddDoctorRequest, AddPatientRequest, PatientTagsRequest, RegisterRequest
from ..schemas.common import ApiResponse
from ..utils.responses import ok

router = APIRouter(tags=["registrations"], dependencies=[Depends(require_session)])
logger = logging.getLogger("clinicdesk")


# ---------------------------------------------------------------------------
# Patients
# ---------------------------------------------------------------------------


@router.get("/patients", response_model=ApiResponse[list])
async def search_patients(
    request: Request,
    keyword: str = Query("", description="Name or tax id fragment (2+ characters)"),
    workflow: RegistrationWorkflowUseCase = Depends(get_registration),
):
    patients = await workflow.search_patients(keyword)
    return ok(request, data=[p.to_dict() for p in patients])


@router.get("/patients/by-tax-id/{tax_id}", response_model=ApiResponse[Optional[dict]])
async def find_patient(
    tax_id: str, request: Request, workflow: RegistrationWorkflowUseCase = Depends(get_registration)
):
    patient = await workflow.find_patient(tax_id)
    return ok(
        request,
        data=patient.to_dict() if patient else None,
        message="" if patient else "No patient with that tax id",
    )


@router.post("/patients", response_model=ApiResponse[dict], status_code=201)
async def add_patient(
    payload: AddPatientRequest,
    request: Request,
    workflow: RegistrationWorkflowUseCase = Depends(get_registration),
):
    patient = await workflow.add_patient(payload.name, payload.tax_id, payload.phone)
    return ok(request, data=patient.to_dict(), message="Patient created")


@router.get("/patients/{patient_id}/tags", response_model=ApiResponse[list])
async def get_patient_tags(
    patient_id: int, request: Request, workflow: RegistrationWorkflowUseCase = Depends(get_registration)
):
    return ok(request, data=await workflow.load_patient_tags(patient_id))


@router.put("/patients/{patient_id}/tags", response_model=ApiResponse[list])
async def update_patient_tags(
    patient_id: int,
    payload: PatientTagsRequest,
    request: Request,
    workflow: RegistrationWorkflowUseCase = Depends(get_registration),
):
    return ok(request, data=await workflow.update_patient_tags(patient_id, payload.tags))


# ---------------------------------------------------------------------------
# Doctors
# ---------------------------------------------------------------------------


@router.get("/doctors", response_model=ApiResponse[list])
async def list_doctors(request: Request, workflow: RegistrationWorkflowUseCase = Depends(get_registration)):
    doctors = await workflow.list_doctors()
    waiting = workflow.waiting_count_by_doctor()
    return ok(request, data=[{**asdict(d), "waiting": waiting.get(d.id, 0)} for d in doctors])


@router.post("/doctors", response_model=ApiResponse[dict], status_code=201)
async def add_doctor(
    payload: AddDoctorRequest,
    request: Request,
    workflow: RegistrationWorkflowUseCase = Depends(get_registration),
):
    doctor = await workflow.add_doctor(payload.name)
    return ok(request, data=asdict(doctor), message="Doctor created")


@router.delete("/doctors/{resource_id}", response_model=ApiResponse[dict])
async def deactivate_doctor(
    resource_id: int, request: Request, workflow: RegistrationWorkflowUseCase = Depends(get_registration)
):
    await workflow.deactivate_doctor(resource_id)
    return ok(request, data={"id": resource_id, "is_active": False}, message="Doctor deactivated")


# ---------------------------------------------------------------------------
# Registration queue
# ---------------------------------------------------------------------------


@router.get("/registrations", response_model=ApiResponse[list])
async def list_registrations(
    request: Request,
    resource_id: Optional[int] = Query(None, description="Only this doctor's queue"),
    day: Optional[date] = Query(None, description="Defaults to today"),
    workflow: RegistrationWorkflowUseCase = Depends(get_registration),
):
    """Refresh from the ERP and return the merged queue."""
    registrations = await workflow.refresh(resource_id, day)
    return ok(request, data=[r.to_dict() for r in registrations])


@router.post("/registrations", response_model=ApiResponse[dict], status_code=201)
async def register(
    payload: RegisterRequest,
    request: Request,
    workflow: RegistrationWorkflowUseCase = Depends(get_registration),
):
    patient = Patient(id=payload.patient_id, name=payload.patient_name, tax_id=payload.patient_tax_id)
    doctor = Doctor(id=payload.doctor_id, name=payload.doctor_name)
    registration = await workflow.register(
        patient, doctor, payload.registration_type, payload.appointment_date
    )
    logger.info("Registration %s created", registration.id)
    return ok(request, data=registration.to_dict(), message="Registered")


@router.post("/registrations/call-next", response_model=ApiResponse[Optional[dict]])
async def call_next(
    request: Request,
    resource_id: Optional[int] = Query(None),
    workflow: RegistrationWorkflowUseCase = Depends(get_registration),
):
    registration = await workflow.call_next(resource_id)
    if registration is None:
        return ok(request, data=None, message="Nobody is waiting")
    return ok(request, data=registration.to_dict())


@router.get("/registrations/{registration_id}/status", response_model=ApiResponse[dict])
async def get_status(
    registration_id: int, request: Request, workflow: RegistrationWorkflowUseCase = Depends(get_registration)
):
    status = await workflow.get_status(registration_id)
    return ok(request, data={"id": registration_id, "status": status.value})


_ACTIONS = {
    "call": RegistrationWorkflowUseCase.call,
    "start": RegistrationWorkflowUseCase.start_consultation,
    "complete": RegistrationWorkflowUseCase.complete,
    "cancel": RegistrationWorkflowUseCase.cancel,
}


@router.post("/registrations/{registration_id}/{action}", response_model=ApiResponse[dict])
async def transition(
    registration_id: int,
    action: Literal["call", "start", "complete", "cancel"],
    request: Request,
    workflow: RegistrationWorkflowUseCase = Depends(get_registration),
):
    """Move a registration forward: call, start, complete or cancel."""
    registration = await _ACTIONS[action](workflow, registration_id)
    return ok(request, data=registration.to_dict())

"""
Doctor-side endpoints: the active consultation and its prescription.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from ...application.use_cases import ConsultationUseCase
from ...application.use_cases.consultation import ActiveConsultation
from ...core.exceptions import ValidationError
from ...domain.entities.prescription import Medicine
from ..deps import get_consultation, require_session
from ..schemas.clinic import (
    AddMedicineRequest,
    ApplyHistoryRequest,
    ApplyTemplateRequest,
    DiagnosisRequest,
    StartConsultationRequest,
    TemplateRequest,
    TotalDaysRequest,
    UpdateLineRequest,
)
from ..schemas.common import ApiResponse
from ..utils.responses import ok

router = APIRouter(tags=["consultation"], dependencies=[Depends(require_session)])


def _view(current: Optional[ActiveConsultation]) -> Optional[dict]:
    if current is None:
        return None
    return {
        "assignment_id": current.assignment_id,
        "patient_name": current.patient_name,
        "patient_tax_id": current.patient_tax_id,
        "resource_name": current.resource_name,
        "prescription": current.prescription.to_dict(),
    }


@router.get("/medicines", response_model=ApiResponse[list])
async def search_medicines(
    request: Request,
    keyword: str = Query("", description="Name or search key fragment; empty lists all"),
    consultation: ConsultationUseCase = Depends(get_consultation),
):
    if keyword.strip():
        medicines = await consultation.search_medicines(keyword)
    else:
        medicines = await consultation.list_medicines()
    return ok(request, data=[m.to_dict() for m in medicines])


@router.get("/consultation", response_model=ApiResponse[Optional[dict]])
async def get_consultation_view(request: Request, consultation: ConsultationUseCase = Depends(get_consultation)):
    return ok(request, data=_view(consultation.current))


@router.post("/consultation", response_model=ApiResponse[dict])
async def start_consultation(
    payload: StartConsultationRequest,
    request: Request,
    consultation: ConsultationUseCase = Depends(get_consultation),
):
    current = await consultation.start(
        payload.assignment_id, payload.patient_name, payload.patient_tax_id, payload.resource_name
    )
    return ok(request, data=_view(current))


@router.put("/consultation/diagnosis", response_model=ApiResponse[dict])
async def set_diagnosis(
    payload: DiagnosisRequest, request: Request, consultation: ConsultationUseCase = Depends(get_consultation)
):
    consultation.set_diagnosis(payload.diagnosis)
    return ok(request, data=_view(consultation.current))


@router.put("/consultation/total-days", response_model=ApiResponse[dict])
async def set_total_days(
    payload: TotalDaysRequest, request: Request, consultation: ConsultationUseCase = Depends(get_consultation)
):
    consultation.set_total_days(payload.days)
    return ok(request, data=_view(consultation.current))


@router.post("/consultation/lines", response_model=ApiResponse[dict], status_code=201)
async def add_line(
    payload: AddMedicineRequest, request: Request, consultation: ConsultationUseCase = Depends(get_consultation)
):
    line = consultation.add_medicine(
        Medicine(id=payload.product_id, name=payload.product_name),
        dosage=payload.dosage,
        frequency=payload.frequency.value,
        days=payload.days,
    )
    return ok(request, data=line.to_json())


@router.patch("/consultation/lines/{index}", response_model=ApiResponse[dict])
async def update_line(
    index: int,
    payload: UpdateLineRequest,
    request: Request,
    consultation: ConsultationUseCase = Depends(get_consultation),
):
    line = consultation.update_line(index, payload.model_dump(exclude_none=True, mode="json"))
    return ok(request, data=line.to_json())


@router.delete("/consultation/lines/{index}", response_model=ApiResponse[dict])
async def remove_line(index: int, request: Request, consultation: ConsultationUseCase = Depends(get_consultation)):
    return ok(request, data=consultation.remove_line(index).to_json(), message="Line removed")


@router.post("/consultation/save", response_model=ApiResponse[dict])
async def save(request: Request, consultation: ConsultationUseCase = Depends(get_consultation)):
    prescription = await consultation.save()
    return ok(request, data=prescription.to_dict(), message="Prescription saved")


@router.post("/consultation/complete", response_model=ApiResponse[dict])
async def complete(request: Request, consultation: ConsultationUseCase = Depends(get_consultation)):
    prescription = await consultation.complete()
    return ok(request, data=prescription.to_dict(), message="Consultation completed")


@router.delete("/consultation", response_model=ApiResponse[None])
async def clear(request: Request, consultation: ConsultationUseCase = Depends(get_consultation)):
    consultation.clear()
    return ok(request, message="Consultation closed")


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


@router.get("/templates", response_model=ApiResponse[list])
async def list_templates(request: Request, consultation: ConsultationUseCase = Depends(get_consultation)):
    templates = await consultation.list_templates()
    return ok(request, data=[t.to_dict() for t in templates])


@router.post("/templates", response_model=ApiResponse[dict], status_code=201)
async def save_template(
    payload: TemplateRequest, request: Request, consultation: ConsultationUseCase = Depends(get_consultation)
):
    template = await consultation.save_template(payload.name)
    return ok(request, data=template.to_dict(), message="Template saved")


@router.delete("/templates/{template_id}", response_model=ApiResponse[dict])
async def delete_template(
    template_id: str, request: Request, consultation: ConsultationUseCase = Depends(get_consultation)
):
    deleted = await consultation.delete_template(template_id)
    return ok(request, data={"id": template_id, "deleted": deleted})


@router.post("/consultation/apply-template", response_model=ApiResponse[dict])
async def apply_template(
    payload: ApplyTemplateRequest, request: Request, consultation: ConsultationUseCase = Depends(get_consultation)
):
    templates = consultation.templates or await consultation.list_templates()
    template = next((t for t in templates if t.id == payload.template_id), None)
    if template is None:
        raise ValidationError(f"Unknown template: {payload.template_id}")
    consultation.apply_template(template)
    return ok(request, data=_view(consultation.current))


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


@router.get("/prescriptions", response_model=ApiResponse[list])
async def list_history(request: Request, consultation: ConsultationUseCase = Depends(get_consultation)):
    history = await consultation.list_history()
    return ok(request, data=[p.to_dict() for p in history])


@router.post("/consultation/apply-history", response_model=ApiResponse[dict])
async def apply_history(
    payload: ApplyHistoryRequest, request: Request, consultation: ConsultationUseCase = Depends(get_consultation)
):
    history = consultation.history or await consultation.list_history()
    prescription = next((p for p in history if p.assignment_id == payload.assignment_id), None)
    if prescription is None:
        raise ValidationError(f"No saved prescription for assignment {payload.assignment_id}")
    consultation.apply_history(prescription)
    return ok(request, data=_view(consultation.current))

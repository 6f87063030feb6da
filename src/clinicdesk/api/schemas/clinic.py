"""
Pydantic schemas for the registration, consultation, pharmacy and checkout
endpoints.
"""

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ...domain.enums.workflow import Frequency, RegistrationType


class AddPatientRequest(BaseModel):
    name: str = Field(..., min_length=1, description="Patient full name")
    tax_id: str = Field(..., min_length=1, description="National id / tax id")
    phone: str = Field("", description="Contact phone")

    @field_validator("name", "tax_id")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Field cannot be blank")
        return v.strip()


class AddDoctorRequest(BaseModel):
    name: str = Field(..., min_length=1, description="Doctor display name")


class RegisterRequest(BaseModel):
    patient_id: int = Field(..., gt=0)
    patient_name: str = Field("", description="Patient name shown on the queue")
    patient_tax_id: str = Field("", description="Patient tax id")
    doctor_id: int = Field(..., gt=0)
    doctor_name: str = Field("", description="Doctor name shown on the queue")
    registration_type: RegistrationType = RegistrationType.WALK_IN
    appointment_date: Optional[date] = None


class PatientTagsRequest(BaseModel):
    tags: List[str] = Field(default_factory=list)


class StartConsultationRequest(BaseModel):
    assignment_id: int = Field(..., gt=0)
    patient_name: str = ""
    patient_tax_id: str = ""
    resource_name: str = ""


class DiagnosisRequest(BaseModel):
    diagnosis: str = ""


class AddMedicineRequest(BaseModel):
    product_id: int = Field(..., gt=0)
    product_name: str = Field(..., min_length=1)
    dosage: float = Field(3, ge=0)
    frequency: Frequency = Frequency.TID
    days: Optional[int] = Field(None, ge=0)


class UpdateLineRequest(BaseModel):
    dosage: Optional[float] = Field(None, ge=0)
    unit: Optional[str] = None
    frequency: Optional[Frequency] = None
    days: Optional[int] = Field(None, ge=0)
    instructions: Optional[str] = None


class TotalDaysRequest(BaseModel):
    days: int = Field(..., ge=0)


class TemplateRequest(BaseModel):
    name: str = Field(..., min_length=1)


class ApplyTemplateRequest(BaseModel):
    template_id: str = Field(..., min_length=1)


class ApplyHistoryRequest(BaseModel):
    assignment_id: int = Field(..., gt=0)


class ReceivedAmountRequest(BaseModel):
    amount: float = Field(..., ge=0)

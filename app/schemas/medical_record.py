"""
Pydantic schemas for medical records
"""

from datetime import date, datetime
from typing import Any, Optional

from pydantic import Field

from app.schemas.common import ApiModel, UserSummary
from app.schemas.patient import PatientResponse


class MedicalRecordCreate(ApiModel):
    patient_id: Optional[int] = None
    doctor_id: Optional[int] = None
    title: str = Field(..., min_length=1, max_length=255)
    visit_date: Optional[date] = None
    description: Optional[str] = None
    diagnosis: Optional[str] = None
    treatment_plan: Optional[str] = None
    follow_up_date: Optional[date] = None
    attachments: Optional[list[dict[str, Any]]] = Field(None, description="Attachment metadata")


class MedicalRecordUpdate(ApiModel):
    patient_id: Optional[int] = None
    doctor_id: Optional[int] = None
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    visit_date: Optional[date] = None
    description: Optional[str] = None
    diagnosis: Optional[str] = None
    treatment_plan: Optional[str] = None
    follow_up_date: Optional[date] = None
    attachments: Optional[list[dict[str, Any]]] = None


class MedicalRecordResponse(ApiModel):
    id: int
    patient_id: int
    doctor_id: Optional[int] = None
    created_by_id: Optional[int] = None
    title: str
    visit_date: Optional[date] = None
    description: Optional[str] = None
    diagnosis: Optional[str] = None
    treatment_plan: Optional[str] = None
    follow_up_date: Optional[date] = None
    attachments: Optional[list[dict[str, Any]]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    patient: Optional[PatientResponse] = None
    doctor: Optional[UserSummary] = None
    created_by: Optional[UserSummary] = None

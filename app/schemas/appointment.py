"""
Pydantic schemas for appointments
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from app.models.appointment import AppointmentStatus
from app.schemas.common import ApiModel, UserSummary
from app.schemas.patient import PatientResponse


class AppointmentCreate(ApiModel):
    patient_id: Optional[int] = Field(None, description="Required unless the caller is a patient")
    doctor_id: Optional[int] = Field(None, description="Defaults to the caller when the caller is a doctor")
    appointment_date: datetime
    status: Optional[AppointmentStatus] = None
    reason: Optional[str] = None
    notes: Optional[str] = None
    location: Optional[str] = Field(None, max_length=255)


class AppointmentUpdate(ApiModel):
    patient_id: Optional[int] = None
    doctor_id: Optional[int] = None
    appointment_date: Optional[datetime] = None
    status: Optional[AppointmentStatus] = None
    reason: Optional[str] = None
    notes: Optional[str] = None
    location: Optional[str] = None


class AppointmentResponse(ApiModel):
    id: int
    patient_id: int
    doctor_id: int
    created_by_id: Optional[int] = None
    appointment_date: datetime
    status: str
    reason: Optional[str] = None
    notes: Optional[str] = None
    location: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    patient: Optional[PatientResponse] = None
    doctor: Optional[UserSummary] = None
    created_by: Optional[UserSummary] = None

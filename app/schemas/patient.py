"""
Pydantic schemas for patient profiles
"""

from datetime import date, datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from app.models.patient import Gender
from app.schemas.common import ApiModel, UserSummary


class PatientFields(ApiModel):
    user_id: Optional[int] = Field(None, description="Linked patient-role account")
    primary_doctor_id: Optional[int] = Field(None, description="Assigned doctor account")
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    contact_number: Optional[str] = Field(None, max_length=30)
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    emergency_contact_name: Optional[str] = Field(None, max_length=100)
    emergency_contact_phone: Optional[str] = Field(None, max_length=30)
    medical_history: Optional[str] = None
    notes: Optional[str] = None


class PatientCreate(PatientFields):
    first_name: str = Field(..., min_length=2, max_length=100)
    last_name: str = Field(..., min_length=2, max_length=100)

    @field_validator('first_name', 'last_name')
    @classmethod
    def strip_names(cls, v):
        v = v.strip()
        if len(v) < 2:
            raise ValueError('Name must be between 2 and 100 characters')
        return v


class PatientUpdate(PatientFields):
    # lengths are checked after the caller's writable fields are applied
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @field_validator('first_name', 'last_name')
    @classmethod
    def strip_names(cls, v):
        return v.strip() if v is not None else v


class PatientResponse(ApiModel):
    id: int
    user_id: Optional[int] = None
    primary_doctor_id: Optional[int] = None
    first_name: str
    last_name: str
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    contact_number: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    medical_history: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user: Optional[UserSummary] = None
    primary_doctor: Optional[UserSummary] = None

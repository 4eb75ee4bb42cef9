"""
Pydantic schemas for the admin endpoints
"""

from datetime import datetime
from typing import Dict, Optional

from app.schemas.patient import PatientResponse
from app.schemas.user import UserResponse
from app.schemas.common import ApiModel


class AdminUserResponse(UserResponse):
    """Account with its linked patient profile, if any"""
    patient_profile: Optional[PatientResponse] = None


class DashboardStatistics(ApiModel):
    total_users: int
    role_breakdown: Dict[str, int]
    total_patients: int
    scheduled_appointments: int
    records_documented: int


class AuditLogResponse(ApiModel):
    id: int
    event: str
    actor_id: Optional[int] = None
    target: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    detail: Optional[str] = None
    created_at: Optional[datetime] = None

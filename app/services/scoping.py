"""
Record scoping: which rows an authenticated actor can see

Resolve the scope first; ownership facts for detail checks come from it.
"""

import enum
from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import false
from sqlalchemy.orm import Query, Session

from app.auth.auth_handler import Actor
from app.auth.policy import Ownership, is_privileged
from app.models.patient import Patient
from app.models.user import Role


class ScopeKind(enum.Enum):
    ALL = "all"
    DOCTOR = "doctor"
    PATIENT = "patient"
    MISSING_PROFILE = "missing_profile"
    NONE = "none"


@dataclass(frozen=True)
class RecordScope:
    kind: ScopeKind
    actor_id: int
    profile_id: Optional[int] = None

    def require_profile(self) -> "RecordScope":
        """Patients without a profile get 404 instead of an empty result"""
        if self.kind is ScopeKind.MISSING_PROFILE:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Patient profile not found")
        return self

    def filter(self, query: Query, model) -> Query:
        """Narrow a query over ``model`` to the rows this scope may see"""
        if self.kind is ScopeKind.ALL:
            return query
        if self.kind is ScopeKind.PATIENT:
            if model is Patient:
                return query.filter(Patient.id == self.profile_id)
            return query.filter(model.patient_id == self.profile_id)
        if self.kind is ScopeKind.DOCTOR:
            # profiles are not row-filtered; detail access is checked per record
            if model is Patient:
                return query
            return query.filter(model.doctor_id == self.actor_id)
        return query.filter(false())

    def ownership_of_patient(self, patient: Patient) -> Ownership:
        return Ownership(
            own=self.profile_id is not None and patient.id == self.profile_id,
            assigned=patient.primary_doctor_id == self.actor_id,
            open=patient.primary_doctor_id is None,
        )

    def ownership_of(self, record) -> Ownership:
        """Ownership of an appointment or medical record"""
        return Ownership(
            own=self.profile_id is not None and record.patient_id == self.profile_id,
            assigned=record.doctor_id is not None and record.doctor_id == self.actor_id,
        )


class ScopeResolver:
    """Derives a RecordScope for an actor"""

    def __init__(self, db: Session):
        self.db = db

    def profile_for(self, actor: Actor) -> Optional[Patient]:
        return self.db.query(Patient).filter(Patient.user_id == actor.id).first()

    def resolve(self, actor: Actor) -> RecordScope:
        if is_privileged(actor.role):
            return RecordScope(ScopeKind.ALL, actor.id)

        if actor.role == Role.DOCTOR.value:
            return RecordScope(ScopeKind.DOCTOR, actor.id)

        if actor.role == Role.PATIENT.value:
            profile = self.profile_for(actor)
            if profile is None:
                return RecordScope(ScopeKind.MISSING_PROFILE, actor.id)
            return RecordScope(ScopeKind.PATIENT, actor.id, profile_id=profile.id)

        return RecordScope(ScopeKind.NONE, actor.id)


"""
Patient profile service
Creation, scoped reads, field-restricted updates and explicit cascade on delete
"""

import logging
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session, joinedload

from app.auth.auth_handler import Actor, enforce
from app.auth.policy import Action, Ownership, Resource, authorize
from app.models.appointment import Appointment
from app.models.medical_record import MedicalRecord
from app.models.patient import Patient
from app.schemas.common import column_values, length_error
from app.schemas.patient import PatientCreate, PatientUpdate
from app.services.references import (
    LINKED_ACCOUNT_MESSAGES,
    PRIMARY_DOCTOR_MESSAGES,
    check_doctor,
    check_patient_account,
    raise_for,
)
from app.services.scoping import ScopeKind, ScopeResolver
from app.utils.error_handler import DatabaseError

logger = logging.getLogger(__name__)


def patient_graph():
    return (
        joinedload(Patient.user),
        joinedload(Patient.primary_doctor),
    )


REQUIRED_COLUMNS = ("first_name", "last_name")
NAME_LENGTHS = {"first_name": (2, 100), "last_name": (2, 100)}


class PatientService:
    """Service for patient profile operations"""

    def __init__(self, db: Session):
        self.db = db
        self.scopes = ScopeResolver(db)

    def _load(self, patient_id: int) -> Optional[Patient]:
        return (
            self.db.query(Patient)
            .options(*patient_graph())
            .populate_existing()
            .filter(Patient.id == patient_id)
            .first()
        )

    def _get_or_404(self, patient_id: int) -> Patient:
        patient = self._load(patient_id)
        if not patient:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Patient not found")
        return patient

    async def create_patient(self, actor: Actor, data: PatientCreate) -> Patient:
        scope = self.scopes.resolve(actor)
        values = column_values(data)
        self_service = scope.kind in (ScopeKind.PATIENT, ScopeKind.MISSING_PROFILE)

        requested_user = values.get("user_id")
        decision = enforce(
            authorize(actor.role, Resource.PATIENT, Action.CREATE,
                      Ownership(own=requested_user in (None, actor.id))),
            actor,
        )
        values = decision.filter_fields(values)

        if self_service:
            if scope.kind is ScopeKind.PATIENT:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Profile already exists")
            values["user_id"] = actor.id
        elif values.get("user_id") is not None:
            raise_for(check_patient_account(self.db, values["user_id"]), LINKED_ACCOUNT_MESSAGES)

        if values.get("primary_doctor_id") is not None:
            raise_for(check_doctor(self.db, values["primary_doctor_id"]), PRIMARY_DOCTOR_MESSAGES)

        try:
            patient = Patient(**values)
            self.db.add(patient)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create patient: {e}")
            raise DatabaseError(f"Failed to create patient: {str(e)}", e)

        logger.info(f"Created patient {patient.id} by user {actor.id}")
        return self._load(patient.id)

    async def list_patients(self, actor: Actor) -> list[Patient]:
        scope = self.scopes.resolve(actor).require_profile()
        query = self.db.query(Patient).options(*patient_graph())
        return (
            scope.filter(query, Patient)
            .order_by(Patient.created_at.desc(), Patient.id.desc())
            .all()
        )

    async def get_patient(self, actor: Actor, patient_id: int) -> Patient:
        patient = self._get_or_404(patient_id)
        scope = self.scopes.resolve(actor)
        enforce(authorize(actor.role, Resource.PATIENT, Action.READ, scope.ownership_of_patient(patient)), actor)
        return patient

    async def update_patient(self, actor: Actor, patient_id: int, data: PatientUpdate) -> Patient:
        patient = self._get_or_404(patient_id)
        scope = self.scopes.resolve(actor)
        decision = enforce(
            authorize(actor.role, Resource.PATIENT, Action.UPDATE, scope.ownership_of_patient(patient)),
            actor,
        )

        # disallowed fields are dropped, not rejected
        updates = decision.filter_fields(column_values(data, exclude_none_for=REQUIRED_COLUMNS))
        problem = length_error(updates, NAME_LENGTHS)
        if problem:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=problem)

        if updates.get("user_id") is not None and updates["user_id"] != patient.user_id:
            raise_for(
                check_patient_account(self.db, updates["user_id"], current_profile_id=patient.id),
                LINKED_ACCOUNT_MESSAGES,
            )

        if updates.get("primary_doctor_id") is not None:
            raise_for(check_doctor(self.db, updates["primary_doctor_id"]), PRIMARY_DOCTOR_MESSAGES)

        try:
            for field, value in updates.items():
                setattr(patient, field, value)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update patient {patient_id}: {e}")
            raise DatabaseError(f"Failed to update patient: {str(e)}", e)

        logger.info(f"Updated patient {patient_id} by user {actor.id} (fields: {', '.join(sorted(updates)) or 'none'})")
        return self._load(patient_id)

    async def delete_patient(self, actor: Actor, patient_id: int) -> bool:
        patient = self._get_or_404(patient_id)
        scope = self.scopes.resolve(actor)
        enforce(
            authorize(actor.role, Resource.PATIENT, Action.DELETE, scope.ownership_of_patient(patient)),
            actor,
        )

        try:
            # a profile's appointments and records go with it
            self.db.query(Appointment).filter(Appointment.patient_id == patient_id).delete(synchronize_session=False)
            self.db.query(MedicalRecord).filter(MedicalRecord.patient_id == patient_id).delete(synchronize_session=False)
            self.db.delete(patient)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete patient {patient_id}: {e}")
            raise DatabaseError(f"Failed to delete patient: {str(e)}", e)

        logger.info(f"Deleted patient {patient_id} by user {actor.id}")
        return True

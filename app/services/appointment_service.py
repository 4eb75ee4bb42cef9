"""
Appointment service
"""

import logging
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session, joinedload

from app.auth.auth_handler import Actor, enforce
from app.auth.policy import Action, Ownership, Resource, authorize
from app.models.appointment import Appointment, AppointmentStatus
from app.models.patient import Patient
from app.schemas.appointment import AppointmentCreate, AppointmentUpdate
from app.schemas.common import column_values, length_error
from app.services.references import (
    DOCTOR_MESSAGES,
    PATIENT_MESSAGES,
    check_doctor,
    check_patient,
    raise_for,
)
from app.services.scoping import ScopeKind, ScopeResolver
from app.utils.error_handler import DatabaseError

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("patient_id", "doctor_id", "appointment_date", "status")
LOCATION_LENGTH = {"location": (0, 255)}


def appointment_graph():
    return (
        joinedload(Appointment.patient).joinedload(Patient.user),
        joinedload(Appointment.patient).joinedload(Patient.primary_doctor),
        joinedload(Appointment.doctor),
        joinedload(Appointment.created_by),
    )


class AppointmentService:
    """Service for appointment scheduling"""

    def __init__(self, db: Session):
        self.db = db
        self.scopes = ScopeResolver(db)

    def _load(self, appointment_id: int) -> Optional[Appointment]:
        return (
            self.db.query(Appointment)
            .options(*appointment_graph())
            .populate_existing()
            .filter(Appointment.id == appointment_id)
            .first()
        )

    def _get_or_404(self, appointment_id: int) -> Appointment:
        appointment = self._load(appointment_id)
        if not appointment:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
        return appointment

    async def create_appointment(self, actor: Actor, data: AppointmentCreate) -> Appointment:
        scope = self.scopes.resolve(actor)
        values = column_values(data)

        if scope.kind is ScopeKind.MISSING_PROFILE:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Create a patient profile before booking appointments"
            )
        if scope.kind is ScopeKind.PATIENT and values.get("patient_id") is None:
            values["patient_id"] = scope.profile_id
        if scope.kind is ScopeKind.DOCTOR and values.get("doctor_id") is None:
            values["doctor_id"] = actor.id

        raise_for(check_patient(self.db, values.get("patient_id")), PATIENT_MESSAGES)
        raise_for(check_doctor(self.db, values.get("doctor_id")), DOCTOR_MESSAGES)

        enforce(
            authorize(actor.role, Resource.APPOINTMENT, Action.CREATE, Ownership(
                own=scope.profile_id is not None and values["patient_id"] == scope.profile_id,
                assigned=values["doctor_id"] == actor.id,
            )),
            actor,
        )

        values["status"] = values.get("status") or AppointmentStatus.SCHEDULED.value
        values["created_by_id"] = actor.id

        try:
            appointment = Appointment(**values)
            self.db.add(appointment)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create appointment: {e}")
            raise DatabaseError(f"Failed to create appointment: {str(e)}", e)

        logger.info(f"Created appointment {appointment.id} for patient {appointment.patient_id}")
        return self._load(appointment.id)

    async def list_appointments(self, actor: Actor, status_filter: Optional[str] = None) -> list[Appointment]:
        scope = self.scopes.resolve(actor).require_profile()
        query = self.db.query(Appointment).options(*appointment_graph())
        if status_filter:
            query = query.filter(Appointment.status == status_filter)
        return (
            scope.filter(query, Appointment)
            .order_by(Appointment.appointment_date.asc(), Appointment.id.asc())
            .all()
        )

    async def get_appointment(self, actor: Actor, appointment_id: int) -> Appointment:
        appointment = self._get_or_404(appointment_id)
        scope = self.scopes.resolve(actor)
        enforce(authorize(actor.role, Resource.APPOINTMENT, Action.READ, scope.ownership_of(appointment)), actor)
        return appointment

    async def update_appointment(self, actor: Actor, appointment_id: int, data: AppointmentUpdate) -> Appointment:
        appointment = self._get_or_404(appointment_id)
        scope = self.scopes.resolve(actor)
        decision = enforce(
            authorize(actor.role, Resource.APPOINTMENT, Action.UPDATE, scope.ownership_of(appointment)),
            actor,
        )

        updates = decision.filter_fields(column_values(data, exclude_none_for=REQUIRED_COLUMNS))
        problem = length_error(updates, LOCATION_LENGTH)
        if problem:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=problem)

        if "patient_id" in updates:
            raise_for(check_patient(self.db, updates["patient_id"]), PATIENT_MESSAGES)
        if "doctor_id" in updates:
            raise_for(check_doctor(self.db, updates["doctor_id"]), DOCTOR_MESSAGES)

        try:
            for field, value in updates.items():
                setattr(appointment, field, value)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update appointment {appointment_id}: {e}")
            raise DatabaseError(f"Failed to update appointment: {str(e)}", e)

        logger.info(f"Updated appointment {appointment_id} by user {actor.id}")
        return self._load(appointment_id)

    async def delete_appointment(self, actor: Actor, appointment_id: int) -> bool:
        appointment = self._get_or_404(appointment_id)
        scope = self.scopes.resolve(actor)
        enforce(
            authorize(actor.role, Resource.APPOINTMENT, Action.DELETE, scope.ownership_of(appointment)),
            actor,
        )

        try:
            self.db.delete(appointment)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete appointment {appointment_id}: {e}")
            raise DatabaseError(f"Failed to delete appointment: {str(e)}", e)

        logger.info(f"Deleted appointment {appointment_id} by user {actor.id}")
        return True

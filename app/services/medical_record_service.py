"""
Medical record service
Records are written by clinical roles only; doctors act on what they authored
"""

import logging
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session, joinedload

from app.auth.auth_handler import Actor, enforce
from app.auth.policy import Action, Ownership, Resource, authorize
from app.models.medical_record import MedicalRecord
from app.models.patient import Patient
from app.schemas.common import column_values
from app.schemas.medical_record import MedicalRecordCreate, MedicalRecordUpdate
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

REQUIRED_COLUMNS = ("patient_id", "title")


def record_graph():
    return (
        joinedload(MedicalRecord.patient).joinedload(Patient.user),
        joinedload(MedicalRecord.patient).joinedload(Patient.primary_doctor),
        joinedload(MedicalRecord.doctor),
        joinedload(MedicalRecord.created_by),
    )


class MedicalRecordService:
    """Service for clinical documentation"""

    def __init__(self, db: Session):
        self.db = db
        self.scopes = ScopeResolver(db)

    def _load(self, record_id: int) -> Optional[MedicalRecord]:
        return (
            self.db.query(MedicalRecord)
            .options(*record_graph())
            .populate_existing()
            .filter(MedicalRecord.id == record_id)
            .first()
        )

    def _get_or_404(self, record_id: int) -> MedicalRecord:
        record = self._load(record_id)
        if not record:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Medical record not found")
        return record

    async def create_record(self, actor: Actor, data: MedicalRecordCreate) -> MedicalRecord:
        scope = self.scopes.resolve(actor)
        values = column_values(data)

        if scope.kind is ScopeKind.DOCTOR:
            # a doctor always documents as themself
            values["doctor_id"] = actor.id

        raise_for(check_doctor(self.db, values.get("doctor_id")), DOCTOR_MESSAGES)
        raise_for(check_patient(self.db, values.get("patient_id")), PATIENT_MESSAGES)

        enforce(
            authorize(actor.role, Resource.MEDICAL_RECORD, Action.CREATE,
                      Ownership(assigned=values["doctor_id"] == actor.id)),
            actor,
        )

        values["created_by_id"] = actor.id

        try:
            record = MedicalRecord(**values)
            self.db.add(record)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create medical record: {e}")
            raise DatabaseError(f"Failed to create medical record: {str(e)}", e)

        logger.info(f"Created medical record {record.id} for patient {record.patient_id}")
        return self._load(record.id)

    async def list_records(self, actor: Actor, patient_id: Optional[int] = None) -> list[MedicalRecord]:
        scope = self.scopes.resolve(actor).require_profile()
        query = self.db.query(MedicalRecord).options(*record_graph())
        if patient_id is not None:
            query = query.filter(MedicalRecord.patient_id == patient_id)
        return (
            scope.filter(query, MedicalRecord)
            .order_by(MedicalRecord.created_at.desc(), MedicalRecord.id.desc())
            .all()
        )

    async def get_record(self, actor: Actor, record_id: int) -> MedicalRecord:
        record = self._get_or_404(record_id)
        scope = self.scopes.resolve(actor)
        enforce(authorize(actor.role, Resource.MEDICAL_RECORD, Action.READ, scope.ownership_of(record)), actor)
        return record

    async def update_record(self, actor: Actor, record_id: int, data: MedicalRecordUpdate) -> MedicalRecord:
        record = self._get_or_404(record_id)
        scope = self.scopes.resolve(actor)
        decision = enforce(
            authorize(actor.role, Resource.MEDICAL_RECORD, Action.UPDATE, scope.ownership_of(record)),
            actor,
        )

        updates = decision.filter_fields(column_values(data, exclude_none_for=REQUIRED_COLUMNS))

        if updates.get("doctor_id") is not None:
            raise_for(check_doctor(self.db, updates["doctor_id"]), DOCTOR_MESSAGES)
        if "patient_id" in updates:
            raise_for(check_patient(self.db, updates["patient_id"]), PATIENT_MESSAGES)

        try:
            for field, value in updates.items():
                setattr(record, field, value)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update medical record {record_id}: {e}")
            raise DatabaseError(f"Failed to update medical record: {str(e)}", e)

        logger.info(f"Updated medical record {record_id} by user {actor.id}")
        return self._load(record_id)

    async def delete_record(self, actor: Actor, record_id: int) -> bool:
        record = self._get_or_404(record_id)
        scope = self.scopes.resolve(actor)
        enforce(
            authorize(actor.role, Resource.MEDICAL_RECORD, Action.DELETE, scope.ownership_of(record)),
            actor,
        )

        try:
            self.db.delete(record)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete medical record {record_id}: {e}")
            raise DatabaseError(f"Failed to delete medical record: {str(e)}", e)

        logger.info(f"Deleted medical record {record_id} by user {actor.id}")
        return True

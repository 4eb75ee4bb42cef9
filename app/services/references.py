"""
Foreign-reference checks shared by the entity services

Each check returns a ``ReferenceCheck`` value; callers decide which HTTP
error it becomes.
"""

import enum
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.models.patient import Patient
from app.models.user import Role, User


class ReferenceCheck(enum.Enum):
    OK = "ok"
    REQUIRED = "required"
    NOT_FOUND = "not_found"
    WRONG_ROLE = "wrong_role"
    PROFILE_EXISTS = "profile_exists"


def check_doctor(db: Session, doctor_id: Optional[int]) -> ReferenceCheck:
    if doctor_id is None:
        return ReferenceCheck.REQUIRED
    doctor = db.query(User).filter(User.id == doctor_id).first()
    if doctor is None:
        return ReferenceCheck.NOT_FOUND
    if doctor.role != Role.DOCTOR.value:
        return ReferenceCheck.WRONG_ROLE
    return ReferenceCheck.OK


def check_patient(db: Session, patient_id: Optional[int]) -> ReferenceCheck:
    if patient_id is None:
        return ReferenceCheck.REQUIRED
    exists = db.query(Patient.id).filter(Patient.id == patient_id).first()
    return ReferenceCheck.OK if exists else ReferenceCheck.NOT_FOUND


def check_patient_account(db: Session, user_id: Optional[int],
                          current_profile_id: Optional[int] = None) -> ReferenceCheck:
    """A profile may link only to a patient-role account without another profile"""
    if user_id is None:
        return ReferenceCheck.REQUIRED
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        return ReferenceCheck.NOT_FOUND
    if user.role != Role.PATIENT.value:
        return ReferenceCheck.WRONG_ROLE
    query = db.query(Patient.id).filter(Patient.user_id == user_id)
    if current_profile_id is not None:
        query = query.filter(Patient.id != current_profile_id)
    if query.first():
        return ReferenceCheck.PROFILE_EXISTS
    return ReferenceCheck.OK


DOCTOR_MESSAGES = {
    ReferenceCheck.REQUIRED: (status.HTTP_400_BAD_REQUEST, "Doctor is required"),
    ReferenceCheck.NOT_FOUND: (status.HTTP_404_NOT_FOUND, "Doctor not found"),
    ReferenceCheck.WRONG_ROLE: (status.HTTP_400_BAD_REQUEST, "Assigned doctor must have the doctor role"),
}

PRIMARY_DOCTOR_MESSAGES = {
    ReferenceCheck.NOT_FOUND: (status.HTTP_404_NOT_FOUND, "Primary doctor not found"),
    ReferenceCheck.WRONG_ROLE: (status.HTTP_400_BAD_REQUEST, "Assigned primary doctor must have the doctor role"),
}

PATIENT_MESSAGES = {
    ReferenceCheck.REQUIRED: (status.HTTP_400_BAD_REQUEST, "Patient is required"),
    ReferenceCheck.NOT_FOUND: (status.HTTP_404_NOT_FOUND, "Patient not found"),
}

LINKED_ACCOUNT_MESSAGES = {
    ReferenceCheck.NOT_FOUND: (status.HTTP_404_NOT_FOUND, "Linked user not found"),
    ReferenceCheck.WRONG_ROLE: (status.HTTP_400_BAD_REQUEST, "Linked user must have the patient role"),
    ReferenceCheck.PROFILE_EXISTS: (status.HTTP_400_BAD_REQUEST, "Linked user already has a patient profile"),
}


def raise_for(result: ReferenceCheck, messages: dict) -> None:
    """Turn a failed check into the HTTP error listed in ``messages``"""
    if result is ReferenceCheck.OK:
        return
    status_code, detail = messages.get(
        result, (status.HTTP_400_BAD_REQUEST, "Invalid reference")
    )
    raise HTTPException(status_code=status_code, detail=detail)

"""
Patient profile endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
import logging

from app.database import get_db
from app.auth.auth_handler import Actor, requires
from app.auth.policy import Action, Resource
from app.schemas.common import envelope
from app.schemas.patient import PatientCreate, PatientUpdate, PatientResponse
from app.services.patient_service import PatientService
from app.utils.rate_limit import limiter

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", status_code=201)
@limiter.limit("20/minute")
async def create_patient(
    request: Request,
    patient: PatientCreate,
    actor: Actor = Depends(requires(Resource.PATIENT, Action.CREATE)),
    db: Session = Depends(get_db)
):
    """Create a patient profile"""
    try:
        patient_service = PatientService(db)
        db_patient = await patient_service.create_patient(actor, patient)
        return envelope("Patient profile created", patient=PatientResponse.model_validate(db_patient))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to create patient: {e}")
        raise HTTPException(status_code=500, detail="Failed to create patient profile")


@router.get("")
@limiter.limit("30/minute")
async def list_patients(
    request: Request,
    actor: Actor = Depends(requires(Resource.PATIENT, Action.LIST)),
    db: Session = Depends(get_db)
):
    """List the patient profiles visible to the caller"""
    try:
        patient_service = PatientService(db)
        patients = await patient_service.list_patients(actor)
        return envelope(patients=[PatientResponse.model_validate(p) for p in patients])

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to list patients: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve patients")


@router.get("/{patient_id}")
@limiter.limit("30/minute")
async def get_patient(
    request: Request,
    patient_id: int,
    actor: Actor = Depends(requires(Resource.PATIENT, Action.READ)),
    db: Session = Depends(get_db)
):
    """Get a patient profile by ID"""
    try:
        patient_service = PatientService(db)
        db_patient = await patient_service.get_patient(actor, patient_id)
        return envelope(patient=PatientResponse.model_validate(db_patient))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to get patient {patient_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve patient")


@router.put("/{patient_id}")
@limiter.limit("20/minute")
async def update_patient(
    request: Request,
    patient_id: int,
    patient_update: PatientUpdate,
    actor: Actor = Depends(requires(Resource.PATIENT, Action.UPDATE)),
    db: Session = Depends(get_db)
):
    """Update a patient profile; fields outside the caller's allow-list are ignored"""
    try:
        patient_service = PatientService(db)
        db_patient = await patient_service.update_patient(actor, patient_id, patient_update)
        return envelope("Patient profile updated", patient=PatientResponse.model_validate(db_patient))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to update patient {patient_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update patient profile")


@router.delete("/{patient_id}")
@limiter.limit("10/minute")
async def delete_patient(
    request: Request,
    patient_id: int,
    actor: Actor = Depends(requires(Resource.PATIENT, Action.DELETE)),
    db: Session = Depends(get_db)
):
    """Delete a patient profile with its appointments and records"""
    try:
        patient_service = PatientService(db)
        await patient_service.delete_patient(actor, patient_id)
        return envelope("Patient profile deleted")

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to delete patient {patient_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete patient profile")

"""
Medical record endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session
from typing import Optional
import logging

from app.database import get_db
from app.auth.auth_handler import Actor, requires
from app.auth.policy import Action, Resource
from app.schemas.common import envelope
from app.schemas.medical_record import MedicalRecordCreate, MedicalRecordUpdate, MedicalRecordResponse
from app.services.medical_record_service import MedicalRecordService
from app.utils.rate_limit import limiter

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", status_code=201)
@limiter.limit("20/minute")
async def create_record(
    request: Request,
    record: MedicalRecordCreate,
    actor: Actor = Depends(requires(Resource.MEDICAL_RECORD, Action.CREATE)),
    db: Session = Depends(get_db)
):
    """Document a visit"""
    try:
        record_service = MedicalRecordService(db)
        db_record = await record_service.create_record(actor, record)
        return envelope("Medical record created", record=MedicalRecordResponse.model_validate(db_record))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to create medical record: {e}")
        raise HTTPException(status_code=500, detail="Failed to create medical record")


@router.get("")
@limiter.limit("30/minute")
async def list_records(
    request: Request,
    patient_id: Optional[int] = Query(None, alias="patientId", description="Filter by patient"),
    actor: Actor = Depends(requires(Resource.MEDICAL_RECORD, Action.LIST)),
    db: Session = Depends(get_db)
):
    """List the medical records visible to the caller, newest first"""
    try:
        record_service = MedicalRecordService(db)
        records = await record_service.list_records(actor, patient_id)
        return envelope(records=[MedicalRecordResponse.model_validate(r) for r in records])

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to list medical records: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve medical records")


@router.get("/{record_id}")
@limiter.limit("30/minute")
async def get_record(
    request: Request,
    record_id: int,
    actor: Actor = Depends(requires(Resource.MEDICAL_RECORD, Action.READ)),
    db: Session = Depends(get_db)
):
    """Get a medical record by ID"""
    try:
        record_service = MedicalRecordService(db)
        db_record = await record_service.get_record(actor, record_id)
        return envelope(record=MedicalRecordResponse.model_validate(db_record))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to get medical record {record_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve medical record")


@router.put("/{record_id}")
@limiter.limit("20/minute")
async def update_record(
    request: Request,
    record_id: int,
    record_update: MedicalRecordUpdate,
    actor: Actor = Depends(requires(Resource.MEDICAL_RECORD, Action.UPDATE)),
    db: Session = Depends(get_db)
):
    """Update a medical record"""
    try:
        record_service = MedicalRecordService(db)
        db_record = await record_service.update_record(actor, record_id, record_update)
        return envelope("Medical record updated", record=MedicalRecordResponse.model_validate(db_record))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to update medical record {record_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update medical record")


@router.delete("/{record_id}")
@limiter.limit("10/minute")
async def delete_record(
    request: Request,
    record_id: int,
    actor: Actor = Depends(requires(Resource.MEDICAL_RECORD, Action.DELETE)),
    db: Session = Depends(get_db)
):
    """Delete a medical record"""
    try:
        record_service = MedicalRecordService(db)
        await record_service.delete_record(actor, record_id)
        return envelope("Medical record deleted")

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to delete medical record {record_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete medical record")

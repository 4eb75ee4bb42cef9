"""
Appointment endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session
from typing import Optional
import logging

from app.database import get_db
from app.auth.auth_handler import Actor, requires
from app.auth.policy import Action, Resource
from app.models.appointment import AppointmentStatus
from app.schemas.appointment import AppointmentCreate, AppointmentUpdate, AppointmentResponse
from app.schemas.common import envelope
from app.services.appointment_service import AppointmentService
from app.utils.rate_limit import limiter

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", status_code=201)
@limiter.limit("20/minute")
async def create_appointment(
    request: Request,
    appointment: AppointmentCreate,
    actor: Actor = Depends(requires(Resource.APPOINTMENT, Action.CREATE)),
    db: Session = Depends(get_db)
):
    """Book an appointment"""
    try:
        appointment_service = AppointmentService(db)
        db_appointment = await appointment_service.create_appointment(actor, appointment)
        return envelope(
            "Appointment created",
            appointment=AppointmentResponse.model_validate(db_appointment)
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to create appointment: {e}")
        raise HTTPException(status_code=500, detail="Failed to create appointment")


@router.get("")
@limiter.limit("30/minute")
async def list_appointments(
    request: Request,
    status: Optional[AppointmentStatus] = Query(None, description="Filter by status"),
    actor: Actor = Depends(requires(Resource.APPOINTMENT, Action.LIST)),
    db: Session = Depends(get_db)
):
    """List the appointments visible to the caller, soonest first"""
    try:
        appointment_service = AppointmentService(db)
        appointments = await appointment_service.list_appointments(
            actor, status.value if status else None
        )
        return envelope(appointments=[AppointmentResponse.model_validate(a) for a in appointments])

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to list appointments: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve appointments")


@router.get("/{appointment_id}")
@limiter.limit("30/minute")
async def get_appointment(
    request: Request,
    appointment_id: int,
    actor: Actor = Depends(requires(Resource.APPOINTMENT, Action.READ)),
    db: Session = Depends(get_db)
):
    """Get an appointment by ID"""
    try:
        appointment_service = AppointmentService(db)
        db_appointment = await appointment_service.get_appointment(actor, appointment_id)
        return envelope(appointment=AppointmentResponse.model_validate(db_appointment))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to get appointment {appointment_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve appointment")


@router.put("/{appointment_id}")
@limiter.limit("20/minute")
async def update_appointment(
    request: Request,
    appointment_id: int,
    appointment_update: AppointmentUpdate,
    actor: Actor = Depends(requires(Resource.APPOINTMENT, Action.UPDATE)),
    db: Session = Depends(get_db)
):
    """Update an appointment"""
    try:
        appointment_service = AppointmentService(db)
        db_appointment = await appointment_service.update_appointment(actor, appointment_id, appointment_update)
        return envelope(
            "Appointment updated",
            appointment=AppointmentResponse.model_validate(db_appointment)
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to update appointment {appointment_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update appointment")


@router.delete("/{appointment_id}")
@limiter.limit("10/minute")
async def delete_appointment(
    request: Request,
    appointment_id: int,
    actor: Actor = Depends(requires(Resource.APPOINTMENT, Action.DELETE)),
    db: Session = Depends(get_db)
):
    """Delete an appointment"""
    try:
        appointment_service = AppointmentService(db)
        await appointment_service.delete_appointment(actor, appointment_id)
        return envelope("Appointment deleted")

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to delete appointment {appointment_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete appointment")

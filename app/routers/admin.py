"""
Administrative endpoints: dashboard, account list, account removal, audit trail
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session
import logging

from app.database import get_db
from app.auth.auth_handler import Actor, enforce, requires
from app.auth.policy import Action, Ownership, Resource, authorize
from app.schemas.admin import AdminUserResponse, AuditLogResponse, DashboardStatistics
from app.schemas.common import envelope
from app.schemas.patient import PatientResponse
from app.services import audit_logger as audit
from app.services.audit_logger import AuditLogger
from app.services.user_service import UserService
from app.utils.rate_limit import limiter

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/dashboard")
@limiter.limit("30/minute")
async def get_dashboard(
    request: Request,
    actor: Actor = Depends(requires(Resource.DASHBOARD, Action.READ)),
    db: Session = Depends(get_db)
):
    """Headline counts for the admin dashboard"""
    try:
        user_service = UserService(db)
        statistics = await user_service.dashboard_statistics()
        return envelope(statistics=DashboardStatistics(**statistics))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to build dashboard statistics: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve dashboard statistics")


@router.get("/users")
@limiter.limit("30/minute")
async def list_users(
    request: Request,
    actor: Actor = Depends(requires(Resource.ACCOUNT, Action.LIST)),
    db: Session = Depends(get_db)
):
    """Every account, newest first, with its patient profile"""
    try:
        user_service = UserService(db)
        rows = await user_service.list_users()

        users = []
        for user, profile in rows:
            entry = AdminUserResponse.model_validate(user)
            if profile is not None:
                entry.patient_profile = PatientResponse.model_validate(profile)
            users.append(entry)

        return envelope(users=users)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to list users: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve users")


@router.delete("/users/{user_id}")
@limiter.limit("10/minute")
async def delete_user(
    request: Request,
    user_id: int,
    actor: Actor = Depends(requires(Resource.ACCOUNT, Action.DELETE)),
    db: Session = Depends(get_db)
):
    """Delete an account; admins cannot delete themselves"""
    try:
        enforce(
            authorize(actor.role, Resource.ACCOUNT, Action.DELETE, Ownership(is_self=user_id == actor.id)),
            actor,
        )

        user_service = UserService(db)
        await user_service.delete_user(user_id)

        await AuditLogger(db).log_event(audit.ACCOUNT_DELETED, request, actor_id=actor.id, target=str(user_id))
        return envelope("User deleted successfully")

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to delete user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete user")


@router.get("/audit-log")
@limiter.limit("30/minute")
async def get_audit_log(
    request: Request,
    limit: int = Query(100, ge=1, le=500, description="Number of events"),
    actor: Actor = Depends(requires(Resource.ACCOUNT, Action.READ)),
    db: Session = Depends(get_db)
):
    """Most recent security events, newest first"""
    events = AuditLogger(db).recent_events(limit)
    return envelope(events=[AuditLogResponse.model_validate(event) for event in events])

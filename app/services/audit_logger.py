"""
Audit logging service for account and credential events
"""

import logging
from typing import Optional

from fastapi import Request
from sqlalchemy.orm import Session

from app.models.audit_log import AuditLog
from app.utils.error_handler import client_ip

logger = logging.getLogger(__name__)

REGISTER = "register"
LOGIN_SUCCESS = "login_success"
LOGIN_FAILURE = "login_failure"
PASSWORD_RESET_REQUESTED = "password_reset_requested"
PASSWORD_RESET_COMPLETED = "password_reset_completed"
PASSWORD_CHANGED = "password_changed"
ACCOUNT_DELETED = "account_deleted"


class AuditLogger:
    """Writes audit rows; failures never propagate to the caller"""

    def __init__(self, db: Session):
        self.db = db

    async def log_event(
        self,
        event: str,
        request: Optional[Request] = None,
        actor_id: Optional[int] = None,
        target: Optional[str] = None,
        detail: Optional[str] = None
    ) -> Optional[AuditLog]:
        try:
            entry = AuditLog(
                event=event,
                actor_id=actor_id,
                target=target,
                ip_address=client_ip(request) if request is not None else None,
                user_agent=request.headers.get("user-agent") if request is not None else None,
                detail=detail
            )

            self.db.add(entry)
            self.db.commit()
            self.db.refresh(entry)

            return entry

        except Exception as e:
            logger.error(f"Failed to write audit event '{event}': {e}")
            try:
                self.db.rollback()
            except Exception as rollback_error:
                logger.error(f"Audit rollback failed: {rollback_error}")
            return None

    def recent_events(self, limit: int = 100) -> list[AuditLog]:
        return (
            self.db.query(AuditLog)
            .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .limit(limit)
            .all()
        )

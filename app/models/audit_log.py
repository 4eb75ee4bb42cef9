"""
Audit log model for security-relevant account events
"""

from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.sql import func
from app.database import Base


class AuditLog(Base):
    """One row per login, registration, password or account change"""
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    event = Column(String(50), nullable=False, index=True)
    actor_id = Column(Integer, nullable=True)  # no FK: rows outlive deleted accounts
    target = Column(String(255), nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)
    detail = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<AuditLog(id={self.id}, event='{self.event}', actor_id={self.actor_id})>"

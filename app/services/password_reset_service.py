"""
Password reset token ledger

At most one unused token exists per account. Issuing a token retires the
previous ones; consuming a token retires every other token of the account.
"""

import enum
import hashlib
import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from app.auth.auth_handler import AuthHandler
from app.models.password_reset_token import PasswordResetToken
from app.models.user import User
from app.utils.error_handler import DatabaseError

logger = logging.getLogger(__name__)


class ResetOutcome(enum.Enum):
    OK = "ok"
    INVALID = "invalid"
    ACCOUNT_MISSING = "account_missing"


def digest_token(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


class PasswordResetService:
    """Issues and consumes one-time reset tokens"""

    def __init__(self, db: Session, auth_handler: Optional[AuthHandler] = None,
                 expire_minutes: Optional[int] = None):
        self.db = db
        self.auth_handler = auth_handler or AuthHandler()
        if expire_minutes is None:
            expire_minutes = self.auth_handler.settings.password_reset_expire_minutes
        self.expire_minutes = expire_minutes

    def find_account(self, email: Optional[str], username: Optional[str]) -> Optional[User]:
        """Email match wins over username match, as on login"""
        if email:
            user = self.db.query(User).filter(User.email == email.lower()).first()
            if user:
                return user
        if username:
            return self.db.query(User).filter(User.username == username.lower()).first()
        return None

    def invalidate_tokens(self, user_id: int, keep_id: Optional[int] = None) -> int:
        """Mark every unused token of the account as used; returns the count"""
        query = self.db.query(PasswordResetToken).filter(
            PasswordResetToken.user_id == user_id,
            PasswordResetToken.used.is_(False),
        )
        if keep_id is not None:
            query = query.filter(PasswordResetToken.id != keep_id)
        return query.update({PasswordResetToken.used: True}, synchronize_session=False)

    async def request_reset(self, email: Optional[str] = None,
                            username: Optional[str] = None) -> Optional[Tuple[User, str, datetime]]:
        """Issue a fresh token for the account, or None when no account matches

        Returns the account, the raw token and its expiry. Only the digest is stored.
        """
        user = self.find_account(email, username)
        if user is None:
            logger.info("Password reset requested for unknown identifier")
            return None

        raw_token = secrets.token_hex(32)
        expires_at = datetime.utcnow() + timedelta(minutes=self.expire_minutes)

        try:
            # invalidate before insert so two live tokens never coexist
            self.invalidate_tokens(user.id)
            self.db.add(PasswordResetToken(
                user_id=user.id,
                token=digest_token(raw_token),
                expires_at=expires_at,
                used=False,
            ))
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to issue reset token for user {user.id}: {e}")
            raise DatabaseError(f"Failed to issue reset token: {str(e)}", e)

        logger.info(f"Issued password reset token for user {user.id}")
        return user, raw_token, expires_at

    async def reset_password(self, raw_token: str, new_password: str) -> Tuple[ResetOutcome, Optional[User]]:
        stored = self.db.query(PasswordResetToken).filter(
            PasswordResetToken.token == digest_token(raw_token),
            PasswordResetToken.used.is_(False),
            PasswordResetToken.expires_at > datetime.utcnow(),
        ).first()

        if stored is None:
            return ResetOutcome.INVALID, None

        user = self.db.query(User).filter(User.id == stored.user_id).first()
        if user is None:
            return ResetOutcome.ACCOUNT_MISSING, None

        try:
            user.hashed_password = self.auth_handler.get_password_hash(new_password)
            user.updated_at = datetime.utcnow()
            stored.used = True
            self.invalidate_tokens(user.id, keep_id=stored.id)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to reset password for user {user.id}: {e}")
            raise DatabaseError(f"Failed to reset password: {str(e)}", e)

        logger.info(f"Password reset completed for user {user.id}")
        return ResetOutcome.OK, user

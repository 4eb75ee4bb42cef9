"""
User service for registration, authentication and account administration
Handles all account-related business logic
"""

from sqlalchemy.orm import Session
from sqlalchemy import or_, func
from sqlalchemy.exc import IntegrityError
from fastapi import HTTPException, status
from datetime import datetime
from typing import Optional
import logging

from app.models.appointment import Appointment, AppointmentStatus
from app.models.medical_record import MedicalRecord
from app.models.password_reset_token import PasswordResetToken
from app.models.patient import Patient
from app.models.user import User, Role
from app.schemas.user import UserCreate, UserLogin, PasswordChange
from app.auth.auth_handler import AuthHandler
from app.utils.error_handler import DatabaseError

logger = logging.getLogger(__name__)


class UserService:
    """Service for account management operations"""

    def __init__(self, db: Session, auth_handler: Optional[AuthHandler] = None):
        self.db = db
        self.auth_handler = auth_handler or AuthHandler()

    async def create_user(self, user_data: UserCreate) -> User:
        """Register a new account; role defaults to patient"""
        existing_user = self.db.query(User).filter(
            or_(
                User.username == user_data.username,
                User.email == user_data.email
            )
        ).first()

        if existing_user:
            field = "username" if existing_user.username == user_data.username else "email"
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{field} already exists"
            )

        try:
            db_user = User(
                username=user_data.username,
                email=user_data.email,
                hashed_password=self.auth_handler.get_password_hash(user_data.password),
                role=(user_data.role or Role.PATIENT).value
            )

            self.db.add(db_user)
            self.db.commit()
            self.db.refresh(db_user)

        except IntegrityError as e:
            # lost a race with a concurrent registration
            self.db.rollback()
            logger.warning(f"Duplicate account rejected: {e.orig}")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="username or email already exists"
            )
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create user: {e}")
            raise DatabaseError(f"Failed to create user account: {str(e)}", e)

        logger.info(f"Created new user: {db_user.username} ({db_user.role})")
        return db_user

    def find_account(self, email: Optional[str], username: Optional[str]) -> Optional[User]:
        """Look up an account by email first, then by username"""
        if email:
            user = self.db.query(User).filter(User.email == email).first()
            if user:
                return user
        if username:
            return self.db.query(User).filter(User.username == username).first()
        return None

    async def authenticate_user(self, login_data: UserLogin) -> Optional[User]:
        """Return the account when the credentials match, otherwise None"""
        user = self.find_account(login_data.email, login_data.username)

        if not user:
            logger.warning("Login attempt with non-existent account")
            return None

        if not self.auth_handler.verify_password(login_data.password, user.hashed_password):
            logger.warning(f"Failed login attempt for user: {user.username}")
            return None

        logger.info(f"Successful login for user: {user.username}")
        return user

    async def get_user_by_id(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    async def get_patient_profile(self, user: User) -> Optional[Patient]:
        if user.role != Role.PATIENT.value:
            return None
        return self.db.query(Patient).filter(Patient.user_id == user.id).first()

    async def change_password(self, user_id: int, password_data: PasswordChange) -> bool:
        """Rotate the password hash after checking the current password"""
        user = await self.get_user_by_id(user_id)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found"
            )

        if not self.auth_handler.verify_password(password_data.current_password, user.hashed_password):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Current password is incorrect"
            )

        try:
            user.hashed_password = self.auth_handler.get_password_hash(password_data.new_password)
            user.updated_at = datetime.utcnow()
            # outstanding reset tokens were issued against the old password
            self.db.query(PasswordResetToken).filter(
                PasswordResetToken.user_id == user.id,
                PasswordResetToken.used.is_(False)
            ).update({PasswordResetToken.used: True}, synchronize_session=False)
            self.db.commit()

        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to change password for user {user_id}: {e}")
            raise DatabaseError(f"Failed to change password: {str(e)}", e)

        logger.info(f"Password changed for user: {user.username}")
        return True

    async def list_users(self) -> list[tuple[User, Optional[Patient]]]:
        """Every account, newest first, with its linked patient profile"""
        rows = (
            self.db.query(User, Patient)
            .outerjoin(Patient, Patient.user_id == User.id)
            .order_by(User.created_at.desc(), User.id.desc())
            .all()
        )
        return [(user, profile) for user, profile in rows]

    async def delete_user(self, user_id: int) -> bool:
        """Delete an account and apply its cascade rules explicitly

        - patient profiles linked to it, or assigned to it, are kept and unlinked
        - appointments where it is the doctor are deleted
        - created-by references and record authorship are cleared
        - its reset tokens are deleted
        """
        user = await self.get_user_by_id(user_id)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found"
            )

        try:
            self.db.query(Patient).filter(Patient.user_id == user_id).update(
                {Patient.user_id: None}, synchronize_session=False)
            self.db.query(Patient).filter(Patient.primary_doctor_id == user_id).update(
                {Patient.primary_doctor_id: None}, synchronize_session=False)

            self.db.query(Appointment).filter(Appointment.doctor_id == user_id).delete(
                synchronize_session=False)
            self.db.query(Appointment).filter(Appointment.created_by_id == user_id).update(
                {Appointment.created_by_id: None}, synchronize_session=False)

            self.db.query(MedicalRecord).filter(MedicalRecord.doctor_id == user_id).update(
                {MedicalRecord.doctor_id: None}, synchronize_session=False)
            self.db.query(MedicalRecord).filter(MedicalRecord.created_by_id == user_id).update(
                {MedicalRecord.created_by_id: None}, synchronize_session=False)

            self.db.query(PasswordResetToken).filter(PasswordResetToken.user_id == user_id).delete(
                synchronize_session=False)

            self.db.delete(user)
            self.db.commit()

        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete user {user_id}: {e}")
            raise DatabaseError(f"Failed to delete user: {str(e)}", e)

        logger.info(f"Deleted user {user_id} ({user.username})")
        return True

    async def dashboard_statistics(self) -> dict:
        total_users = self.db.query(func.count(User.id)).scalar()

        role_breakdown = {role.value: 0 for role in Role}
        for role, count in self.db.query(User.role, func.count(User.id)).group_by(User.role).all():
            role_breakdown[role] = count

        total_patients = self.db.query(func.count(Patient.id)).scalar()
        scheduled_appointments = self.db.query(func.count(Appointment.id)).filter(
            Appointment.status == AppointmentStatus.SCHEDULED.value,
            Appointment.appointment_date >= datetime.utcnow()
        ).scalar()
        records_documented = self.db.query(func.count(MedicalRecord.id)).scalar()

        return {
            "total_users": total_users,
            "role_breakdown": role_breakdown,
            "total_patients": total_patients,
            "scheduled_appointments": scheduled_appointments,
            "records_documented": records_documented,
        }

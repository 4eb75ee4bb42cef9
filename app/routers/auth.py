"""
Authentication endpoints: registration, login, profile and password recovery
"""

from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session
import logging

from app.database import get_db
from app.models.user import User
from app.schemas.common import envelope
from app.schemas.patient import PatientResponse
from app.schemas.user import (
    UserCreate, UserLogin, PasswordChange, PasswordReset,
    PasswordResetRequest, UserResponse
)
from app.services import audit_logger as audit
from app.services.audit_logger import AuditLogger
from app.services.password_reset_service import PasswordResetService, ResetOutcome
from app.services.user_service import UserService
from app.auth.auth_handler import AuthHandler, get_auth_handler, get_current_user
from app.utils.rate_limit import limiter

logger = logging.getLogger(__name__)

router = APIRouter()

INVALID_CREDENTIALS = "Invalid email/username or password"
RESET_REQUESTED = "If the account exists, a password reset email has been sent."


@router.post("/register", status_code=201)
@limiter.limit("5/minute")  # Strict limit to prevent spam registrations
async def register(
    request: Request,
    user_data: UserCreate,
    db: Session = Depends(get_db),
    auth_handler: AuthHandler = Depends(get_auth_handler)
):
    """Register a new account and log it in"""
    try:
        user_service = UserService(db, auth_handler)
        new_user = await user_service.create_user(user_data)
        token = auth_handler.create_access_token(new_user)

        await AuditLogger(db).log_event(audit.REGISTER, request, actor_id=new_user.id, target=new_user.username)

        logger.info(f"New user registered: {new_user.username}")
        return envelope(
            "User registered successfully",
            user=UserResponse.model_validate(new_user),
            token=token
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Registration failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create user account"
        )


@router.post("/login")
@limiter.limit("10/minute")  # Prevent brute force attacks
async def login(
    request: Request,
    login_data: UserLogin,
    db: Session = Depends(get_db),
    auth_handler: AuthHandler = Depends(get_auth_handler)
):
    """Authenticate with email or username and return a bearer token"""
    try:
        user_service = UserService(db, auth_handler)
        audit_logger = AuditLogger(db)

        user = await user_service.authenticate_user(login_data)

        if not user:
            await audit_logger.log_event(
                audit.LOGIN_FAILURE, request,
                target=login_data.email or login_data.username
            )
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=INVALID_CREDENTIALS
            )

        token = auth_handler.create_access_token(user)
        await audit_logger.log_event(audit.LOGIN_SUCCESS, request, actor_id=user.id, target=user.username)

        return envelope(
            "Login successful",
            user=UserResponse.model_validate(user),
            token=token
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Login failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Login failed"
        )


@router.get("/profile")
@limiter.limit("30/minute")
async def get_profile(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Current account, plus the patient profile for patient accounts"""
    user_service = UserService(db)
    profile = await user_service.get_patient_profile(current_user)

    data = {"user": UserResponse.model_validate(current_user)}
    if profile is not None:
        data["patient_profile"] = PatientResponse.model_validate(profile)
    return envelope(**data)


@router.post("/forgot-password")
@limiter.limit("5/minute")
async def forgot_password(
    request: Request,
    reset_request: PasswordResetRequest,
    db: Session = Depends(get_db),
    auth_handler: AuthHandler = Depends(get_auth_handler)
):
    """Issue a reset token; the answer is the same whether or not the account exists"""
    try:
        reset_service = PasswordResetService(db, auth_handler)
        issued = await reset_service.request_reset(reset_request.email, reset_request.username)

        if issued is None:
            return envelope(RESET_REQUESTED)

        user, raw_token, expires_at = issued
        await AuditLogger(db).log_event(audit.PASSWORD_RESET_REQUESTED, request, actor_id=user.id)

        if not request.app.state.settings.expose_reset_token:
            return envelope(RESET_REQUESTED)

        # no mail delivery yet: the token goes back in the body
        return envelope(RESET_REQUESTED, reset_token=raw_token, expires_at=expires_at)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Forgot password failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process password reset request"
        )


@router.post("/reset-password")
@limiter.limit("5/minute")
async def reset_password(
    request: Request,
    reset_data: PasswordReset,
    db: Session = Depends(get_db),
    auth_handler: AuthHandler = Depends(get_auth_handler)
):
    """Consume a reset token and set a new password"""
    try:
        reset_service = PasswordResetService(db, auth_handler)
        outcome, user = await reset_service.reset_password(reset_data.token, reset_data.password)

        if outcome is ResetOutcome.INVALID:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Reset token is invalid or has expired"
            )
        if outcome is ResetOutcome.ACCOUNT_MISSING:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User associated with this token no longer exists"
            )

        await AuditLogger(db).log_event(audit.PASSWORD_RESET_COMPLETED, request, actor_id=user.id)
        return envelope("Password reset successful")

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Password reset failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to reset password"
        )


@router.post("/change-password")
@limiter.limit("5/minute")  # Strict limit for password changes
async def change_password(
    request: Request,
    password_data: PasswordChange,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    auth_handler: AuthHandler = Depends(get_auth_handler)
):
    """Change the current account's password"""
    try:
        user_service = UserService(db, auth_handler)
        await user_service.change_password(current_user.id, password_data)

        await AuditLogger(db).log_event(audit.PASSWORD_CHANGED, request, actor_id=current_user.id)
        return envelope("Password changed successfully")

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Password change failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to change password"
        )

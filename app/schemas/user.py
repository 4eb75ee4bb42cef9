"""
Pydantic schemas for account and credential operations
"""

from pydantic import BaseModel, Field, EmailStr, field_validator, model_validator
from typing import Optional
from datetime import datetime
import re

from app.models.user import Role
from app.schemas.common import ApiModel


class UserCreate(ApiModel):
    """Schema for registering an account"""
    username: str = Field(..., min_length=3, max_length=50, description="Username (3-50 characters)")
    email: EmailStr = Field(..., description="Valid email address")
    password: str = Field(..., min_length=6, max_length=100, description="Password (minimum 6 characters)")
    role: Optional[Role] = Field(None, description="Account role; defaults to patient")

    @field_validator('username')
    @classmethod
    def validate_username(cls, v):
        v = v.strip()
        if not re.match(r'^[a-zA-Z0-9_.-]+$', v):
            raise ValueError('Username can only contain letters, numbers, dots, underscores, and hyphens')
        return v.lower()

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return v.lower()


class UserLogin(BaseModel):
    """Schema for login; either identifier may be supplied"""
    email: Optional[str] = Field(None, description="Email address")
    username: Optional[str] = Field(None, description="Username")
    password: str = Field(..., min_length=1, description="Password")

    @field_validator('email', 'username')
    @classmethod
    def normalize_identifier(cls, v):
        if v is None:
            return v
        v = v.strip().lower()
        return v or None

    @model_validator(mode='after')
    def require_identifier(self):
        if not self.email and not self.username:
            raise ValueError('Email or username is required')
        return self


class PasswordResetRequest(BaseModel):
    """Schema for requesting a reset token"""
    email: Optional[str] = Field(None, description="Email address")
    username: Optional[str] = Field(None, description="Username")

    @field_validator('email', 'username')
    @classmethod
    def normalize_identifier(cls, v):
        if v is None:
            return v
        v = v.strip().lower()
        return v or None

    @model_validator(mode='after')
    def require_identifier(self):
        if not self.email and not self.username:
            raise ValueError('Please supply an email or username')
        return self


class PasswordReset(BaseModel):
    """Schema for consuming a reset token"""
    token: str = Field(..., min_length=1, description="Reset token issued by forgot-password")
    password: str = Field(..., min_length=6, max_length=100, description="New password")


class PasswordChange(ApiModel):
    """Schema for password change"""
    current_password: str = Field(..., description="Current password")
    new_password: str = Field(..., min_length=6, max_length=100, description="New password")


class UserResponse(ApiModel):
    """Schema for user responses (excludes the password hash)"""
    id: int
    username: str
    email: str
    role: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

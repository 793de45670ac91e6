"""
Pydantic schemas shared by every endpoint that returns a user.

WHY: Users are serialized from the ORM in one place so no endpoint can
accidentally expose password hashes or pending tokens.
"""

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from tasksetu.core.auth import PASSWORD_MAX_BYTES, password_too_long
from tasksetu.models.user import UserRole, UserStatus


PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = PASSWORD_MAX_BYTES


def validate_password_strength(value: str) -> str:
    """
    Password policy: at least 8 characters with a letter and a digit, and
    no more than 72 bytes once UTF-8 encoded.

    Raises:
        ValueError: Reported by pydantic as a 400 field error
    """
    if len(value) < PASSWORD_MIN_LENGTH:
        raise ValueError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
    if password_too_long(value):
        raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes")
    if not re.search(r"[A-Za-z]", value):
        raise ValueError("Password must contain at least one letter")
    if not re.search(r"\d", value):
        raise ValueError("Password must contain at least one number")
    return value


class UserResponse(BaseModel):
    """
    User response schema.

    Excludes the password hash and every token column.
    """

    id: int = Field(..., description="User ID")
    email: str = Field(..., description="User's email address")
    first_name: Optional[str] = Field(None, description="First name")
    last_name: Optional[str] = Field(None, description="Last name")
    full_name: Optional[str] = Field(None, description="First and last name")
    role: UserRole = Field(..., description="Canonical role")
    status: UserStatus = Field(..., description="invited, active or inactive")
    org_id: Optional[int] = Field(None, description="Organization ID (null for individuals and super admins)")
    email_verified: bool = Field(..., description="Whether the email address is verified")
    last_login_at: Optional[datetime] = Field(None, description="Last successful login")
    created_at: datetime = Field(..., description="Account creation timestamp")

    class Config:
        from_attributes = True  # Enable ORM mode for SQLAlchemy models
        json_schema_extra = {
            "example": {
                "id": 1,
                "email": "admin@acme.com",
                "first_name": "Asha",
                "last_name": "Rao",
                "full_name": "Asha Rao",
                "role": "org_admin",
                "status": "active",
                "org_id": 1,
                "email_verified": True,
                "last_login_at": "2025-10-12T10:30:00",
                "created_at": "2025-10-01T08:00:00",
            }
        }


class MemberResponse(UserResponse):
    """Member row for the users-detailed listing (adds invitation state)."""

    invited_at: Optional[datetime] = Field(None, description="When the invitation was sent")
    invited_by_id: Optional[int] = Field(None, description="Admin who sent the invitation")
    invite_token_expires_at: Optional[datetime] = Field(None, description="Invitation expiry")

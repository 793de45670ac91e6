"""
Pydantic schemas for authentication endpoints.

WHY: Schemas define request/response contracts, providing:
1. Automatic validation of request data
2. API documentation (OpenAPI/Swagger)
3. Clear separation between API and database models
"""

from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from tasksetu.core.auth import PASSWORD_MAX_BYTES, password_too_long
from tasksetu.schemas.organization import OrganizationResponse
from tasksetu.schemas.user import (
    PASSWORD_MAX_LENGTH,
    UserResponse,
    validate_password_strength,
)


# ============================================================================
# Login and sessions
# ============================================================================


class LoginRequest(BaseModel):
    """
    Login request schema.

    No strength rules here: a login only compares against the stored hash.
    The byte limit still applies because longer passwords are never stored.
    """

    email: EmailStr = Field(..., description="User's email address")
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LENGTH, description="User's password")

    @field_validator("password")
    @classmethod
    def password_length(cls, v: str) -> str:
        if password_too_long(v):
            raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes")
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "email": "admin@acme.com",
                "password": "Abc12345",
            }
        }


class TokenResponse(BaseModel):
    """
    Session token response schema.

    Returned by login and by invitation acceptance.
    """

    access_token: str = Field(..., description="Signed session token")
    token_type: str = Field(default="bearer", description="Token type (always 'bearer')")
    expires_in: int = Field(..., description="Token lifetime in seconds")
    user: UserResponse = Field(..., description="Authenticated user")

    class Config:
        json_schema_extra = {
            "example": {
                "access_token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
                "token_type": "bearer",
                "expires_in": 86400,
                "user": UserResponse.Config.json_schema_extra["example"],
            }
        }


class TokenVerifyResponse(BaseModel):
    """Identity behind a valid session token, read fresh from the store."""

    user_id: int
    email: str
    role: str
    org_id: Optional[int] = None


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    message: str = Field(..., description="Status message")


# ============================================================================
# Registration
# ============================================================================


class _PasswordMixin(BaseModel):
    password: str = Field(..., max_length=PASSWORD_MAX_LENGTH, description="Min 8 characters, a letter and a number")

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        return validate_password_strength(v)


class RegisterIndividualRequest(_PasswordMixin):
    """Self-registration without an organization."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr = Field(..., description="Must not be registered yet")

    class Config:
        json_schema_extra = {
            "example": {
                "first_name": "Ravi",
                "last_name": "Kumar",
                "email": "ravi@example.com",
                "password": "Abc12345",
            }
        }


class RegisterOrganizationRequest(RegisterIndividualRequest):
    """
    Register a new organization with its first org admin.

    The slug is derived from the name when omitted.
    """

    organization_name: str = Field(..., min_length=1, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=50, description="URL identifier, unique across tenants")

    class Config:
        json_schema_extra = {
            "example": {
                "organization_name": "Acme Corp",
                "slug": "acme-corp",
                "first_name": "Asha",
                "last_name": "Rao",
                "email": "admin@acme.com",
                "password": "Abc12345",
            }
        }


class RegisterJoinRequest(RegisterIndividualRequest):
    """Public signup into an organization that allows it."""

    slug: str = Field(..., min_length=1, max_length=50, description="Organization slug")


class RegisterResponse(BaseModel):
    """
    Registration response schema.

    No session is issued; the user verifies their email first.
    """

    message: str
    user: UserResponse
    organization: Optional[OrganizationResponse] = None


# ============================================================================
# Email Verification Schemas
# ============================================================================


class VerifyEmailRequest(BaseModel):
    token: str = Field(..., min_length=1, description="Verification token from email link")


class VerifyEmailResponse(BaseModel):
    message: str = Field(..., description="Status message")
    email_verified: bool = Field(..., description="Whether email is now verified")

    class Config:
        json_schema_extra = {
            "example": {
                "message": "Email verified successfully.",
                "email_verified": True,
            }
        }


class ResendVerificationRequest(BaseModel):
    email: EmailStr


# ============================================================================
# Invitation Schemas
# ============================================================================


class InvitationDetailsResponse(BaseModel):
    """What the accept-invite page shows before the user sets a password."""

    email: str
    role: str
    organization_name: str
    organization_slug: str
    invited_by: Optional[str] = None
    expires_at: Optional[str] = None


class AcceptInviteRequest(_PasswordMixin):
    """
    Accept an invitation by choosing a password.

    Names are optional; the admin may have left them empty.
    """

    token: str = Field(..., min_length=1, description="Invitation token from email link")
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)

    class Config:
        json_schema_extra = {
            "example": {
                "token": "Xy9...",
                "password": "Abc12345",
                "first_name": "Meera",
                "last_name": "Iyer",
            }
        }


# ============================================================================
# Password Reset Schemas
# ============================================================================


class ForgotPasswordRequest(BaseModel):
    """
    Request to initiate password reset.

    WHY: Generic response prevents user enumeration (don't reveal if email exists).
    """

    email: EmailStr = Field(..., description="Email address to send reset link to")

    class Config:
        json_schema_extra = {"example": {"email": "user@example.com"}}


class ValidateResetTokenRequest(BaseModel):
    token: str = Field(..., min_length=1)


class ValidateResetTokenResponse(BaseModel):
    valid: bool
    email: str


class ResetPasswordRequest(_PasswordMixin):
    """Request to reset password with token."""

    token: str = Field(..., min_length=1, description="Password reset token from email")

    class Config:
        json_schema_extra = {
            "example": {
                "token": "abc123xyz...",
                "password": "NewPassw0rd",
            }
        }

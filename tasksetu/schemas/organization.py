"""
Pydantic schemas for organization and membership endpoints.

WHY: Schemas define request/response contracts for tenant management
(org admins) and for the super admin company controls.
"""

from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, EmailStr, Field

from tasksetu.models.organization import OrganizationStatus, OrganizationType
from tasksetu.schemas.user import MemberResponse, UserResponse


class OrganizationResponse(BaseModel):
    """Organization response schema."""

    id: int = Field(..., description="Organization ID")
    name: str = Field(..., description="Organization name")
    slug: str = Field(..., description="Unique URL identifier")
    description: Optional[str] = Field(None, description="Organization description")
    org_type: OrganizationType
    status: OrganizationStatus
    allow_public_signup: bool
    require_email_verification: bool
    max_users: int = Field(..., description="Licensed seats")
    license_type: str
    created_at: datetime

    class Config:
        from_attributes = True  # Enable ORM mode for SQLAlchemy models
        json_schema_extra = {
            "example": {
                "id": 1,
                "name": "Acme Corp",
                "slug": "acme-corp",
                "description": None,
                "org_type": "company",
                "status": "active",
                "allow_public_signup": False,
                "require_email_verification": True,
                "max_users": 10,
                "license_type": "standard",
                "created_at": "2025-10-12T10:30:00",
            }
        }


class OrganizationSettingsUpdate(BaseModel):
    """
    Organization settings update request schema.

    WHY: Allows partial updates; the slug and seat counters are not editable here.
    """

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=1000)
    allow_public_signup: Optional[bool] = None
    require_email_verification: Optional[bool] = None

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Acme Corporation",
                "allow_public_signup": True,
            }
        }


class LicenseInfoResponse(BaseModel):
    """Seat usage: used = active + pending, available = max(total - used, 0)."""

    total: int
    used: int
    available: int
    active: int
    pending: int
    license_type: str
    can_add_user: bool


class OrganizationDetailResponse(BaseModel):
    organization: OrganizationResponse
    license: LicenseInfoResponse


class MembersResponse(BaseModel):
    """users-detailed listing with the seat summary."""

    users: List[MemberResponse]
    total: int
    license: LicenseInfoResponse


# ============================================================================
# Invitations and membership changes
# ============================================================================


class InviteEntry(BaseModel):
    """
    One invitation.

    roles accepts a single value or a list (the most privileged entry
    wins) and the legacy spellings "admin", "member" and "user". When the
    singular role is sent it takes precedence over roles.
    """

    email: EmailStr
    role: Optional[str] = None
    roles: Union[str, List[str]] = Field(default="employee")

    @property
    def requested_role(self) -> Union[str, List[str]]:
        return self.role or self.roles


class InviteUsersRequest(BaseModel):
    invites: List[InviteEntry] = Field(..., min_length=1, max_length=100)

    class Config:
        json_schema_extra = {
            "example": {
                "invites": [
                    {"email": "dev@acme.com", "roles": ["employee"]},
                    {"email": "lead@acme.com", "roles": ["org_admin"]},
                ]
            }
        }


class InviteErrorResponse(BaseModel):
    email: str
    error: str
    message: str


class InviteUsersResponse(BaseModel):
    success_count: int
    invited: List[UserResponse]
    errors: List[InviteErrorResponse]


class RoleChangeRequest(BaseModel):
    role: str = Field(..., description="org_admin or employee (aliases accepted)")


# ============================================================================
# Super admin
# ============================================================================


class CompanyResponse(OrganizationResponse):
    """Organization plus its seat usage, for the super admin list."""

    license: LicenseInfoResponse


class CompanyListResponse(BaseModel):
    companies: List[CompanyResponse]
    total: int
    skip: int
    limit: int


class CompanyStatusUpdate(BaseModel):
    status: OrganizationStatus


class CompanyLicenseUpdate(BaseModel):
    max_users: int = Field(..., ge=1, le=100000)
    license_type: Optional[str] = Field(default=None, min_length=1, max_length=50)

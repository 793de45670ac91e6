"""
Organization management API endpoints.

WHY: Org admins manage their own tenant here: settings, seats, and the
membership lifecycle of its users. Super admins can use the same endpoints
for any tenant by passing ?org_id=.

HOW: get_tenant_id resolves which tenant a request acts on; every service
call receives that id, never one taken from the request body.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from tasksetu.core.config import Settings
from tasksetu.core.deps import (
    get_email_service,
    get_settings_dep,
    get_tenant_id,
    require_org_admin,
)
from tasksetu.db.session import get_db
from tasksetu.models.user import User, UserStatus
from tasksetu.schemas.auth import MessageResponse
from tasksetu.schemas.organization import (
    InviteErrorResponse,
    InviteUsersRequest,
    InviteUsersResponse,
    LicenseInfoResponse,
    MembersResponse,
    OrganizationDetailResponse,
    OrganizationResponse,
    OrganizationSettingsUpdate,
    RoleChangeRequest,
)
from tasksetu.schemas.user import MemberResponse, UserResponse
from tasksetu.services.email import EmailService
from tasksetu.services.membership_service import InviteRequest, MembershipService
from tasksetu.services.organization_service import OrganizationService


router = APIRouter(prefix="/organization", tags=["organization"])


def get_organization_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
) -> OrganizationService:
    return OrganizationService(db, settings)


def get_membership_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
    email_service: EmailService = Depends(get_email_service),
) -> MembershipService:
    return MembershipService(db, settings, email_service)


# ============================================================================
# Organization details and settings
# ============================================================================


@router.get("", response_model=OrganizationDetailResponse, summary="Organization details")
async def get_organization(
    org_id: int = Depends(get_tenant_id),
    service: OrganizationService = Depends(get_organization_service),
) -> OrganizationDetailResponse:
    org = await service.get_organization(org_id)
    info = await service.get_license_info(org)
    return OrganizationDetailResponse(
        organization=OrganizationResponse.model_validate(org),
        license=LicenseInfoResponse(**info.to_dict()),
    )


@router.patch("/settings", response_model=OrganizationResponse, summary="Update settings")
async def update_settings(
    data: OrganizationSettingsUpdate,
    org_id: int = Depends(get_tenant_id),
    current_user: User = Depends(require_org_admin),
    service: OrganizationService = Depends(get_organization_service),
) -> OrganizationResponse:
    """Change name, description and signup settings. The slug is immutable."""
    org = await service.get_organization(org_id)
    org = await service.update_settings(org, current_user, data.model_dump(exclude_unset=True))
    return OrganizationResponse.model_validate(org)


@router.get("/license", response_model=LicenseInfoResponse, summary="Seat usage")
async def get_license(
    org_id: int = Depends(get_tenant_id),
    service: OrganizationService = Depends(get_organization_service),
) -> LicenseInfoResponse:
    org = await service.get_organization(org_id)
    info = await service.get_license_info(org)
    return LicenseInfoResponse(**info.to_dict())


@router.get("/users-detailed", response_model=MembersResponse, summary="List members")
async def list_users_detailed(
    status_filter: Optional[UserStatus] = Query(None, alias="status"),
    org_id: int = Depends(get_tenant_id),
    organizations: OrganizationService = Depends(get_organization_service),
    membership: MembershipService = Depends(get_membership_service),
) -> MembersResponse:
    """Every member including pending invitations, with the seat summary."""
    org = await organizations.get_organization(org_id)
    users = await membership.list_members(org_id, status=status_filter)
    info = await organizations.get_license_info(org)
    return MembersResponse(
        users=[MemberResponse.model_validate(u) for u in users],
        total=len(users),
        license=LicenseInfoResponse(**info.to_dict()),
    )


# ============================================================================
# Invitations
# ============================================================================


@router.post(
    "/invite-users",
    response_model=InviteUsersResponse,
    summary="Invite users",
)
async def invite_users(
    data: InviteUsersRequest,
    org_id: int = Depends(get_tenant_id),
    current_user: User = Depends(require_org_admin),
    membership: MembershipService = Depends(get_membership_service),
) -> InviteUsersResponse:
    """
    Invite a batch of users. Each entry succeeds or fails on its own; once
    the seats run out the remaining entries report SeatLimitExceeded.
    """
    result = await membership.invite_many(
        [InviteRequest(email=entry.email, roles=entry.requested_role) for entry in data.invites],
        org_id,
        current_user,
    )
    return InviteUsersResponse(
        success_count=result.success_count,
        invited=[UserResponse.model_validate(u) for u in result.invited],
        errors=[
            InviteErrorResponse(email=e.email, error=e.error, message=e.message)
            for e in result.errors
        ],
    )


@router.post("/resend-invite/{user_id}", response_model=MessageResponse, summary="Resend invitation")
async def resend_invite(
    user_id: int,
    org_id: int = Depends(get_tenant_id),
    current_user: User = Depends(require_org_admin),
    membership: MembershipService = Depends(get_membership_service),
) -> MessageResponse:
    user = await membership.resend_invite(user_id, org_id, current_user)
    return MessageResponse(message=f"Invitation resent to {user.email}")


@router.delete(
    "/revoke-invite/{user_id}",
    response_model=MessageResponse,
    status_code=status.HTTP_200_OK,
    summary="Revoke invitation",
)
async def revoke_invite(
    user_id: int,
    org_id: int = Depends(get_tenant_id),
    current_user: User = Depends(require_org_admin),
    membership: MembershipService = Depends(get_membership_service),
) -> MessageResponse:
    await membership.revoke_invite(user_id, org_id, current_user)
    return MessageResponse(message="Invitation revoked")


# ============================================================================
# Membership changes
# ============================================================================


@router.patch("/users/{user_id}/activate", response_model=UserResponse, summary="Reactivate user")
async def activate_user(
    user_id: int,
    org_id: int = Depends(get_tenant_id),
    current_user: User = Depends(require_org_admin),
    membership: MembershipService = Depends(get_membership_service),
) -> UserResponse:
    user = await membership.reactivate(user_id, org_id, current_user)
    return UserResponse.model_validate(user)


@router.patch("/users/{user_id}/deactivate", response_model=UserResponse, summary="Deactivate user")
async def deactivate_user(
    user_id: int,
    org_id: int = Depends(get_tenant_id),
    current_user: User = Depends(require_org_admin),
    membership: MembershipService = Depends(get_membership_service),
) -> UserResponse:
    user = await membership.deactivate(user_id, org_id, current_user)
    return UserResponse.model_validate(user)


@router.patch("/users/{user_id}/role", response_model=UserResponse, summary="Change role")
async def change_role(
    user_id: int,
    data: RoleChangeRequest,
    org_id: int = Depends(get_tenant_id),
    current_user: User = Depends(require_org_admin),
    membership: MembershipService = Depends(get_membership_service),
) -> UserResponse:
    user = await membership.change_role(user_id, org_id, data.role, current_user)
    return UserResponse.model_validate(user)

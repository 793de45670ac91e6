"""
FastAPI dependencies for authentication and authorization.

WHY: Every protected route runs the same pipeline:
1. Extract the bearer token (missing -> 401)
2. Verify signature and expiry (bad -> 403)
3. Re-fetch the user; claims in the token are never trusted for role or tenant
4. Refuse inactive users and members of suspended organizations
5. Apply the route's role and tenant predicates

Because step 3 runs on every request, deactivating a user or suspending a
tenant takes effect on the very next request even though the session token
itself stays valid until it expires.
"""

import logging
from typing import Iterable, Optional

from fastapi import Depends, Query, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from tasksetu.core.auth import TokenService
from tasksetu.core.config import Settings
from tasksetu.core.exceptions import (
    AccountInactiveError,
    AuthenticationError,
    InputError,
    InsufficientPermissionsError,
    TenantAccessDenied,
)
from tasksetu.dao.user import UserDAO
from tasksetu.db.session import get_db
from tasksetu.models.user import User, UserRole
from tasksetu.services.email import EmailService


logger = logging.getLogger(__name__)

# HTTP Bearer token security scheme
# WHY: auto_error=False so a missing header reaches get_current_user and is
# answered with our own 401 body instead of FastAPI's default 403.
security = HTTPBearer(auto_error=False)


# ============================================================================
# Application-scoped collaborators
# ============================================================================


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_email_service(request: Request) -> EmailService:
    return request.app.state.email_service


# ============================================================================
# Identity
# ============================================================================


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
    token_service: TokenService = Depends(get_token_service),
) -> User:
    """
    Get current authenticated user from the session token.

    Usage:
        @router.get("/protected")
        async def protected_route(user: User = Depends(get_current_user)):
            return {"user_id": user.id}

    Returns:
        The freshly loaded, active User

    Raises:
        AuthenticationError: No bearer token was sent (401)
        TokenInvalidError / TokenExpiredError: Token failed verification (403)
        AccountInactiveError: User missing, not active, or tenant suspended (403)
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Access token required")

    payload = token_service.verify_session_token(credentials.credentials)

    user = await UserDAO(db).get_by_id(payload["user_id"])
    if user is None:
        # WHY: User might have been deleted (revoked invite) after the token was issued
        raise AccountInactiveError(user_id=payload["user_id"])

    if not user.is_active:
        raise AccountInactiveError("User account is inactive", user_id=user.id)

    if user.organization is not None and not user.organization.is_active:
        raise AccountInactiveError("Your organization has been suspended", org_id=user.org_id)

    return user


# ============================================================================
# Role predicates
# ============================================================================


def _normalize_roles(roles: Iterable["str | UserRole"]) -> frozenset:
    return frozenset(UserRole.parse(role) for role in roles)


def require_roles(*roles: "str | UserRole"):
    """
    Factory function to create a role allow-list dependency.

    Legacy spellings ("admin", "member", "super_admin", ...) are accepted
    and normalised through the alias table.

    Usage:
        @router.get("/members")
        async def list_members(user: User = Depends(require_roles("admin", "superadmin"))):
            ...

    Raises:
        ValueError: At import time, if a role is unknown
    """
    allowed = _normalize_roles(roles)

    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            raise InsufficientPermissionsError(
                user_id=current_user.id,
                user_role=current_user.role.value,
                required_roles=sorted(role.value for role in allowed),
            )
        return current_user

    return role_checker


async def require_org_admin(
    current_user: User = Depends(get_current_user),
) -> User:
    """
    Require an organization admin (or a super admin acting on a tenant).

    Individual users get an explicit message since they have no tenant.
    """
    if current_user.role == UserRole.INDIVIDUAL:
        raise InsufficientPermissionsError(
            "Individual accounts do not belong to an organization",
            user_id=current_user.id,
        )
    if current_user.role not in (UserRole.ORG_ADMIN, UserRole.SUPERADMIN):
        raise InsufficientPermissionsError(
            "Organization admin access required",
            user_id=current_user.id,
            user_role=current_user.role.value,
        )
    return current_user


async def require_superadmin(
    current_user: User = Depends(get_current_user),
) -> User:
    if current_user.role != UserRole.SUPERADMIN:
        raise InsufficientPermissionsError(
            "Super admin access required",
            user_id=current_user.id,
            user_role=current_user.role.value,
        )
    return current_user


# ============================================================================
# Tenant predicates
# ============================================================================


def ensure_tenant_access(user: User, resource_org_id: Optional[int]) -> None:
    """
    Check that a resource belongs to the caller's tenant.

    Super admins bypass the check. Individual users never match a tenant
    resource, even one with a NULL org_id created by someone else; personal
    resources are checked by owner instead.

    Raises:
        TenantAccessDenied: If the tenants differ
    """
    if user.role == UserRole.SUPERADMIN:
        return
    if user.org_id is None or resource_org_id is None or user.org_id != resource_org_id:
        raise TenantAccessDenied(user_id=user.id, resource_org_id=resource_org_id)


def get_tenant_id(
    org_id: Optional[int] = Query(None, description="Target organization (super admin only)"),
    current_user: User = Depends(require_org_admin),
) -> int:
    """
    Resolve the tenant an organization-management request acts on.

    Org admins act on their own tenant; passing another tenant's id is
    rejected. Super admins have no tenant and must name one with ?org_id=.

    Raises:
        InputError: Super admin without org_id
        TenantAccessDenied: Org admin naming a different tenant
    """
    if current_user.role == UserRole.SUPERADMIN:
        if org_id is None:
            raise InputError("org_id query parameter is required for super admins", field="org_id")
        return org_id

    if org_id is not None and org_id != current_user.org_id:
        raise TenantAccessDenied(user_id=current_user.id, resource_org_id=org_id)
    return current_user.org_id

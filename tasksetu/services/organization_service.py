"""
Organization (tenant directory) service.

WHAT: Tenant creation, slug handling, settings, seat accounting and the
super admin controls (status, license).

WHY: Seat accounting is read by invitations, reactivation and public
signup. Computing it in one place keeps "used + available == total" true
for every caller.

HOW: Usage is counted from the users table on every call:
used = active members + pending invitations, available = max(total - used, 0).
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tasksetu.core.config import Settings
from tasksetu.core.exceptions import (
    BusinessRuleViolation,
    InputError,
    ResourceAlreadyExistsError,
    ResourceNotFoundError,
    SeatLimitExceeded,
)
from tasksetu.dao.organization import OrganizationDAO
from tasksetu.dao.user import UserDAO
from tasksetu.models.audit_log import AuditAction
from tasksetu.models.organization import (
    Organization,
    OrganizationStatus,
    OrganizationType,
    SLUG_MAX_LENGTH,
    SLUG_MIN_LENGTH,
    SLUG_PATTERN,
)
from tasksetu.models.user import User, UserStatus
from tasksetu.services.audit import AuditService


logger = logging.getLogger(__name__)

# Fields an org admin may change through PATCH /settings
EDITABLE_SETTINGS = ("name", "description", "allow_public_signup", "require_email_verification")


# ============================================================================
# Slugs
# ============================================================================


def slugify(name: str) -> str:
    """
    Derive a slug candidate from an organization name.

    Example:
        >>> slugify("Acme Corp, Inc.")
        'acme-corp-inc'
    """
    slug = re.sub(r"[^a-z0-9]+", "-", name.strip().lower()).strip("-")
    slug = slug[:SLUG_MAX_LENGTH].rstrip("-")
    if len(slug) < SLUG_MIN_LENGTH:
        slug = f"{slug}-org".strip("-")
    return slug


def validate_slug(slug: str) -> str:
    """
    Normalise and validate a user-supplied slug.

    Returns:
        The lowercase slug

    Raises:
        InputError: If the slug has the wrong length or characters
    """
    normalized = slug.strip().lower()
    if not SLUG_MIN_LENGTH <= len(normalized) <= SLUG_MAX_LENGTH:
        raise InputError(
            f"Slug must be between {SLUG_MIN_LENGTH} and {SLUG_MAX_LENGTH} characters",
            field="slug",
        )
    if not SLUG_PATTERN.match(normalized):
        raise InputError(
            "Slug may only contain lowercase letters, numbers and hyphens, "
            "and cannot start or end with a hyphen",
            field="slug",
        )
    return normalized


# ============================================================================
# Seat accounting
# ============================================================================


@dataclass(frozen=True)
class LicenseInfo:
    """
    Seat usage of one organization.

    Attributes:
        total: Licensed seats (Organization.max_users)
        active: Active members
        pending: Pending invitations (each reserves a seat)
        license_type: License label
    """

    total: int
    active: int
    pending: int
    license_type: str

    @property
    def used(self) -> int:
        return self.active + self.pending

    @property
    def available(self) -> int:
        return max(self.total - self.used, 0)

    @property
    def can_add_user(self) -> bool:
        return self.available > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "used": self.used,
            "available": self.available,
            "active": self.active,
            "pending": self.pending,
            "license_type": self.license_type,
            "can_add_user": self.can_add_user,
        }


class OrganizationService:
    """
    Tenant directory operations.

    Example:
        service = OrganizationService(db, settings)
        org = await service.create_organization("Acme Corp")
        info = await service.get_license_info(org)
    """

    def __init__(self, session: AsyncSession, settings: Settings):
        self.session = session
        self.settings = settings
        self.org_dao = OrganizationDAO(session)
        self.user_dao = UserDAO(session)
        self.audit = AuditService(session)

    # ========================================================================
    # Lookup and creation
    # ========================================================================

    async def get_organization(self, org_id: int) -> Organization:
        """
        Raises:
            ResourceNotFoundError: If the organization does not exist
        """
        org = await self.org_dao.get_by_id(org_id)
        if org is None:
            raise ResourceNotFoundError("Organization not found", org_id=org_id)
        return org

    async def generate_unique_slug(self, name: str) -> str:
        """
        Build a free slug from a name: "acme-corp", then "acme-corp-2", ...
        """
        base = slugify(name)
        candidate = base
        suffix = 2
        while await self.org_dao.slug_exists(candidate):
            tail = f"-{suffix}"
            candidate = f"{base[:SLUG_MAX_LENGTH - len(tail)].rstrip('-')}{tail}"
            suffix += 1
        return candidate

    async def create_organization(
        self,
        name: str,
        slug: Optional[str] = None,
        org_type: OrganizationType = OrganizationType.COMPANY,
        description: Optional[str] = None,
        max_users: Optional[int] = None,
    ) -> Organization:
        """
        Create a tenant.

        Args:
            name: Display name
            slug: Requested slug (generated from the name when omitted)
            org_type: company or team
            description: Optional description
            max_users: Licensed seats (defaults to DEFAULT_MAX_USERS)

        Returns:
            The new organization

        Raises:
            InputError: If the requested slug is malformed
            ResourceAlreadyExistsError: If the requested slug is taken
        """
        if slug:
            slug = validate_slug(slug)
            if await self.org_dao.slug_exists(slug):
                raise ResourceAlreadyExistsError(
                    "Organization slug is already taken",
                    resource_type="Organization",
                    slug=slug,
                )
        else:
            slug = await self.generate_unique_slug(name)

        org = await self.org_dao.create(
            name=name.strip(),
            slug=slug,
            org_type=org_type,
            description=description,
            status=OrganizationStatus.ACTIVE,
            max_users=max_users or self.settings.DEFAULT_MAX_USERS,
        )
        logger.info("Organization created org_id=%s slug=%s", org.id, org.slug)
        return org

    # ========================================================================
    # Seats
    # ========================================================================

    async def get_license_info(self, org: Organization) -> LicenseInfo:
        counts = await self.user_dao.count_by_status(org.id)
        return LicenseInfo(
            total=org.max_users,
            active=counts[UserStatus.ACTIVE],
            pending=counts[UserStatus.INVITED],
            license_type=org.license_type,
        )

    async def ensure_seat_available(self, org: Organization) -> LicenseInfo:
        """
        Raises:
            SeatLimitExceeded: If no seat is left
        """
        info = await self.get_license_info(org)
        if not info.can_add_user:
            raise SeatLimitExceeded(
                org_id=org.id,
                total=info.total,
                used=info.used,
            )
        return info

    # ========================================================================
    # Settings (org admin)
    # ========================================================================

    async def update_settings(
        self,
        org: Organization,
        actor: User,
        updates: Dict[str, Any],
    ) -> Organization:
        """
        Apply org admin settings changes.

        Only EDITABLE_SETTINGS are honoured; the slug and seat counters are
        never changed here.
        """
        changes = {}
        for field_name in EDITABLE_SETTINGS:
            if field_name not in updates or updates[field_name] is None:
                continue
            before = getattr(org, field_name)
            after = updates[field_name]
            if before != after:
                changes[field_name] = {"before": before, "after": after}

        if not changes:
            return org

        org = await self.org_dao.update(
            org.id, **{name: change["after"] for name, change in changes.items()}
        )
        await self.audit.log_organization_event(AuditAction.ORG_UPDATED, actor, org.id, changes)
        logger.info("Organization settings updated org_id=%s fields=%s", org.id, sorted(changes))
        return org

    # ========================================================================
    # Super admin controls
    # ========================================================================

    async def list_organizations(
        self,
        status: Optional[OrganizationStatus] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[tuple[Organization, LicenseInfo]]:
        orgs = await self.org_dao.list_organizations(status=status, search=search, skip=skip, limit=limit)
        return [(org, await self.get_license_info(org)) for org in orgs]

    async def set_status(
        self,
        org_id: int,
        status: OrganizationStatus,
        actor: User,
    ) -> Organization:
        """
        Suspend or re-activate a tenant.

        WHY: Suspension takes effect on the members' next request, because
        the authorization dependencies re-read the organization every time.
        """
        org = await self.get_organization(org_id)
        if org.status == status:
            return org

        before = org.status.value
        org = await self.org_dao.update(org.id, status=status)
        await self.audit.log_organization_event(
            AuditAction.ORG_STATUS_CHANGE,
            actor,
            org.id,
            {"status": {"before": before, "after": status.value}},
        )
        logger.info("Organization status changed org_id=%s status=%s", org.id, status.value)
        return org

    async def update_license(
        self,
        org_id: int,
        max_users: int,
        actor: User,
        license_type: Optional[str] = None,
    ) -> Organization:
        """
        Change the licensed seat count.

        Raises:
            BusinessRuleViolation: If the new total is below the seats in use
        """
        org = await self.get_organization(org_id)
        info = await self.get_license_info(org)
        if max_users < info.used:
            raise BusinessRuleViolation(
                f"Cannot reduce the license below the {info.used} seats in use",
                used=info.used,
                requested=max_users,
            )

        changes = {}
        if org.max_users != max_users:
            changes["max_users"] = {"before": org.max_users, "after": max_users}
        if license_type and license_type != org.license_type:
            changes["license_type"] = {"before": org.license_type, "after": license_type}
        if not changes:
            return org

        org = await self.org_dao.update(
            org.id, **{name: change["after"] for name, change in changes.items()}
        )
        await self.audit.log_organization_event(AuditAction.LICENSE_CHANGE, actor, org.id, changes)
        logger.info("License updated org_id=%s max_users=%s", org.id, org.max_users)
        return org

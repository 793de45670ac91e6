"""
User (membership) model.

WHY: A User row is both the login identity and the membership in one tenant.
Invitation and password-reset state are embedded on the row, so the whole
invited -> active -> inactive lifecycle is a set of conditional updates on a
single table.
"""

import enum
from typing import Iterable, Optional
from sqlalchemy import Column, Integer, String, Enum, ForeignKey, Boolean, DateTime
from sqlalchemy.orm import relationship

from tasksetu.models.base import Base, TimestampMixin, PrimaryKeyMixin, enum_values


class UserRole(str, enum.Enum):
    """
    Canonical role vocabulary.

    WHY: One enum, used everywhere inside the application. Legacy spellings
    are only accepted at the API boundary through LEGACY_ROLE_ALIASES.
    """

    SUPERADMIN = "superadmin"  # Platform operator, no tenant, bypasses tenant scoping
    ORG_ADMIN = "org_admin"  # Manages one organization's members and settings
    EMPLOYEE = "employee"  # Regular member of one organization
    INDIVIDUAL = "individual"  # Self-registered user without a tenant

    @classmethod
    def parse(cls, value: "str | UserRole") -> "UserRole":
        """
        Resolve a canonical value or a legacy alias to a role.

        Raises:
            ValueError: If the value is not a known role or alias
        """
        if isinstance(value, UserRole):
            return value
        key = str(value).strip().lower()
        key = LEGACY_ROLE_ALIASES.get(key, key)
        return cls(key)

    @classmethod
    def highest(cls, roles: Iterable["str | UserRole"]) -> "UserRole":
        """Pick the most privileged role of a list (invite payloads send lists)."""
        parsed = [cls.parse(role) for role in roles]
        if not parsed:
            raise ValueError("At least one role is required")
        return max(parsed, key=lambda role: ROLE_RANK[role])

    @property
    def is_tenant_role(self) -> bool:
        return self in TENANT_ROLES


# Legacy spellings seen in older clients and data
LEGACY_ROLE_ALIASES = {
    "admin": UserRole.ORG_ADMIN.value,
    "company_admin": UserRole.ORG_ADMIN.value,
    "orgadmin": UserRole.ORG_ADMIN.value,
    "member": UserRole.EMPLOYEE.value,
    "user": UserRole.EMPLOYEE.value,
    "super_admin": UserRole.SUPERADMIN.value,
}

ROLE_RANK = {
    UserRole.INDIVIDUAL: 0,
    UserRole.EMPLOYEE: 1,
    UserRole.ORG_ADMIN: 2,
    UserRole.SUPERADMIN: 3,
}

# Roles that must belong to an organization and can be granted by an org admin
TENANT_ROLES = frozenset({UserRole.ORG_ADMIN, UserRole.EMPLOYEE})


class UserStatus(str, enum.Enum):
    """
    Membership lifecycle state.

    invited -> active (invite accepted), active <-> inactive (admin action).
    Self-registered users start active.
    """

    INVITED = "invited"
    ACTIVE = "active"
    INACTIVE = "inactive"


class User(Base, PrimaryKeyMixin, TimestampMixin):
    """
    User model representing one person and their membership.

    Invariants kept by the lifecycle services:
    - hashed_password is NULL exactly while status is invited
    - invite_token is set only while status is invited
    - tenant roles always have org_id; superadmin and individual never do
    """

    __tablename__ = "users"

    # Identity
    # WHY: Stored lowercase; the DAO lowercases on every lookup as well.
    email = Column(String(255), unique=True, index=True, nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)

    # WHY: NULL while the invitation is pending; no password can match it.
    hashed_password = Column(String(255), nullable=True)

    role = Column(
        Enum(UserRole, name="user_role", values_callable=enum_values),
        nullable=False,
        default=UserRole.EMPLOYEE,
    )

    # Multi-tenancy
    # WHY: Nullable because super admins and individual users have no tenant.
    org_id = Column(Integer, ForeignKey("organizations.id"), nullable=True, index=True)

    status = Column(
        Enum(UserStatus, name="user_status", values_callable=enum_values),
        nullable=False,
        default=UserStatus.ACTIVE,
        index=True,
    )
    email_verified = Column(Boolean, default=False, nullable=False)

    # Invitation state
    invite_token = Column(String(128), unique=True, index=True, nullable=True)
    invite_token_expires_at = Column(DateTime, nullable=True)
    invited_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    invited_at = Column(DateTime, nullable=True)

    # Password reset state
    password_reset_token = Column(String(128), unique=True, index=True, nullable=True)
    password_reset_expires_at = Column(DateTime, nullable=True)

    # Email verification state
    email_verification_token = Column(String(128), unique=True, index=True, nullable=True)
    email_verification_expires_at = Column(DateTime, nullable=True)

    last_login_at = Column(DateTime, nullable=True)

    # Relationships
    organization = relationship("Organization", back_populates="users", lazy="joined")
    invited_by = relationship("User", remote_side="User.id", foreign_keys=[invited_by_id])

    @property
    def is_active(self) -> bool:
        """Derived from status so the two can never disagree."""
        return self.status == UserStatus.ACTIVE

    @property
    def is_pending(self) -> bool:
        return self.status == UserStatus.INVITED

    @property
    def full_name(self) -> Optional[str]:
        parts = [part for part in (self.first_name, self.last_name) if part]
        return " ".join(parts) if parts else None

    @property
    def display_name(self) -> str:
        """Name for emails; invited users may not have one yet."""
        return self.full_name or self.email

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role}, status={self.status})>"

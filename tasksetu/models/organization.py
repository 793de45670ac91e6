"""
Organization (tenant) model.

WHY: Organizations are the tenants of TaskSetu. Every membership, project and
team task is scoped to one, and the tenant row carries the settings and seat
limit the membership lifecycle enforces.
"""

import enum
import re
from sqlalchemy import Column, String, Text, Boolean, Integer, Enum
from sqlalchemy.orm import relationship

from tasksetu.models.base import Base, TimestampMixin, PrimaryKeyMixin, enum_values


# Slug rules: lowercase letters, digits and hyphens, no leading/trailing hyphen
SLUG_PATTERN = re.compile(r"^[a-z0-9](?:[a-z0-9-]*[a-z0-9])?$")
SLUG_MIN_LENGTH = 3
SLUG_MAX_LENGTH = 50


class OrganizationType(str, enum.Enum):
    """Kind of tenant, as chosen at registration."""

    COMPANY = "company"
    TEAM = "team"


class OrganizationStatus(str, enum.Enum):
    """
    Tenant status.

    WHY: Organizations are never hard-deleted. A super admin suspends a
    tenant instead, which blocks its members at the authorization layer.
    """

    ACTIVE = "active"
    SUSPENDED = "suspended"


class Organization(Base, PrimaryKeyMixin, TimestampMixin):
    """
    Organization model representing a tenant.

    Each organization has:
    - Identity (name, globally unique immutable slug)
    - Type and status
    - Signup settings (public signup, email verification requirement)
    - Seat counters (max_users licensed seats, license_type label)
    """

    __tablename__ = "organizations"

    name = Column(String(255), nullable=False, index=True)

    # WHY: slug is unique across all tenants and never updated after
    # creation; URLs and public signup refer to it.
    slug = Column(String(SLUG_MAX_LENGTH), nullable=False, unique=True, index=True)

    description = Column(Text, nullable=True)

    org_type = Column(
        Enum(OrganizationType, name="organization_type", values_callable=enum_values),
        nullable=False,
        default=OrganizationType.COMPANY,
    )
    status = Column(
        Enum(OrganizationStatus, name="organization_status", values_callable=enum_values),
        nullable=False,
        default=OrganizationStatus.ACTIVE,
        index=True,
    )

    # Signup settings
    allow_public_signup = Column(Boolean, nullable=False, default=False)
    require_email_verification = Column(Boolean, nullable=False, default=True)

    # Seat counters
    # WHY: Only the licensed total is stored. Usage is always counted from
    # the users table so the two can never drift.
    max_users = Column(Integer, nullable=False, default=10)
    license_type = Column(String(50), nullable=False, default="standard")

    users = relationship("User", back_populates="organization", lazy="raise")

    @property
    def is_active(self) -> bool:
        return self.status == OrganizationStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, slug={self.slug})>"

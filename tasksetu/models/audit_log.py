"""
Audit Log Model.

WHAT: SQLAlchemy model for storing security audit events.

WHY: Membership changes (invitations, activations, role changes, password
resets) are security relevant. Persisting them gives tenant admins and super
admins a trail of who changed whose access and from where.

HOW: Append-only table. Changes and extra context are JSON so new event
kinds need no migration.
"""

import enum
from sqlalchemy import Column, Integer, String, Enum, ForeignKey, Text, JSON
from sqlalchemy.orm import relationship

from tasksetu.models.base import Base, TimestampMixin, PrimaryKeyMixin, enum_values


class AuditAction(str, enum.Enum):
    """Auditable actions."""

    # Authentication events
    LOGIN_SUCCESS = "login_success"
    LOGIN_FAILURE = "login_failure"
    PASSWORD_RESET_REQUEST = "password_reset_request"
    PASSWORD_RESET_COMPLETE = "password_reset_complete"

    # Membership lifecycle
    ACCOUNT_CREATED = "account_created"
    EMAIL_VERIFIED = "email_verified"
    INVITE_SENT = "invite_sent"
    INVITE_RESENT = "invite_resent"
    INVITE_REVOKED = "invite_revoked"
    INVITE_ACCEPTED = "invite_accepted"
    ACCOUNT_ACTIVATED = "account_activated"
    ACCOUNT_DEACTIVATED = "account_deactivated"
    ROLE_CHANGE = "role_change"

    # Organization events
    ORG_CREATED = "org_created"
    ORG_UPDATED = "org_updated"
    ORG_STATUS_CHANGE = "org_status_change"
    LICENSE_CHANGE = "license_change"


class AuditLog(Base, PrimaryKeyMixin, TimestampMixin):
    """
    Immutable audit log entry.

    Fields:
    - actor_user_id: Who performed the action (nullable for anonymous attempts)
    - action: AuditAction
    - resource_type / resource_id: What was affected ("user", "organization")
    - org_id: Tenant context for per-organization queries
    - changes: Before/after values, e.g. {"role": {"before": ..., "after": ...}}
    - extra_data: Free-form context (never tokens or passwords)
    - ip_address / user_agent: Request context from RequestContextMiddleware
    """

    __tablename__ = "audit_logs"

    actor_user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    action = Column(
        Enum(AuditAction, name="audit_action", values_callable=enum_values),
        nullable=False,
        index=True,
    )
    resource_type = Column(String(100), nullable=False, index=True)
    resource_id = Column(Integer, nullable=True, index=True)
    org_id = Column(
        Integer,
        ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    changes = Column(JSON, nullable=True)
    # NOTE: 'metadata' is reserved by SQLAlchemy
    extra_data = Column(JSON, nullable=True)

    ip_address = Column(String(45), nullable=True)  # IPv6 max length
    user_agent = Column(Text, nullable=True)

    actor = relationship("User", foreign_keys=[actor_user_id])

    def __repr__(self) -> str:
        return (
            f"<AuditLog(id={self.id}, action={self.action}, "
            f"actor_user_id={self.actor_user_id}, resource_type={self.resource_type})>"
        )

"""
Database models package.

WHY: Importing every model here registers it on Base.metadata, which both
Alembic and the test suite's create_all rely on.
"""

from tasksetu.models.base import Base, TimestampMixin, PrimaryKeyMixin
from tasksetu.models.organization import Organization, OrganizationStatus, OrganizationType
from tasksetu.models.user import User, UserRole, UserStatus, LEGACY_ROLE_ALIASES
from tasksetu.models.audit_log import AuditLog, AuditAction
from tasksetu.models.project import Project, ProjectStatus
from tasksetu.models.task import Task, TaskComment, TaskStatus, TaskPriority

__all__ = [
    "Base",
    "TimestampMixin",
    "PrimaryKeyMixin",
    "Organization",
    "OrganizationStatus",
    "OrganizationType",
    "User",
    "UserRole",
    "UserStatus",
    "LEGACY_ROLE_ALIASES",
    "AuditLog",
    "AuditAction",
    "Project",
    "ProjectStatus",
    "Task",
    "TaskComment",
    "TaskStatus",
    "TaskPriority",
]

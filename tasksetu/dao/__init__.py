"""
Data Access Object (DAO) package.

WHY: DAOs provide a clean separation between database operations and business logic,
making the codebase more testable and maintainable.
"""

from tasksetu.dao.base import BaseDAO
from tasksetu.dao.user import UserDAO
from tasksetu.dao.organization import OrganizationDAO
from tasksetu.dao.audit_log import AuditLogDAO
from tasksetu.dao.project import ProjectDAO
from tasksetu.dao.task import TaskDAO, TaskCommentDAO

__all__ = [
    "BaseDAO",
    "UserDAO",
    "OrganizationDAO",
    "AuditLogDAO",
    "ProjectDAO",
    "TaskDAO",
    "TaskCommentDAO",
]

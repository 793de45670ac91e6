"""
Audit Log Data Access Object (DAO).

WHY: Membership and tenant changes must leave a trail. Entries are only
appended and read, never updated or deleted, so only create() is used
from BaseDAO.
"""

from typing import List, Optional
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tasksetu.dao.base import BaseDAO
from tasksetu.models.audit_log import AuditLog, AuditAction


class AuditLogDAO(BaseDAO[AuditLog]):
    """Read side of the audit trail; rows are written through create()."""

    def __init__(self, session: AsyncSession):
        super().__init__(AuditLog, session)

    @staticmethod
    def _filtered(
        query,
        org_id: Optional[int],
        action: Optional[AuditAction],
        resource_type: Optional[str],
        resource_id: Optional[int],
    ):
        if org_id is not None:
            query = query.where(AuditLog.org_id == org_id)
        if action is not None:
            query = query.where(AuditLog.action == action)
        if resource_type is not None:
            query = query.where(AuditLog.resource_type == resource_type)
        if resource_id is not None:
            query = query.where(AuditLog.resource_id == resource_id)
        return query

    async def list_logs(
        self,
        org_id: Optional[int] = None,
        action: Optional[AuditAction] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[AuditLog]:
        """
        Entries matching every given filter, newest first.

        Args:
            org_id: Tenant filter (failed logins have no org)
            action: Action filter
            resource_type: "user" or "organization"
            resource_id: ID of the affected record
            skip: Pagination offset
            limit: Maximum records to return
        """
        query = self._filtered(select(AuditLog), org_id, action, resource_type, resource_id)
        result = await self.session.execute(
            query.order_by(AuditLog.id.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all())

    async def count_logs(
        self,
        org_id: Optional[int] = None,
        action: Optional[AuditAction] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[int] = None,
    ) -> int:
        query = self._filtered(
            select(func.count(AuditLog.id)), org_id, action, resource_type, resource_id
        )
        result = await self.session.execute(query)
        return result.scalar_one()

"""
Project Data Access Object (DAO).

WHAT: Database operations for the Project model.

HOW: Extends BaseDAO with status filtering; every query takes org_id.
"""

from typing import List, Optional
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tasksetu.dao.base import BaseDAO
from tasksetu.models.project import Project, ProjectStatus


class ProjectDAO(BaseDAO[Project]):
    """Data Access Object for Project model."""

    def __init__(self, session: AsyncSession):
        """
        Initialize ProjectDAO.

        Args:
            session: Async database session
        """
        super().__init__(Project, session)

    async def list_for_org(
        self,
        org_id: int,
        status: Optional[ProjectStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Project]:
        """
        List projects of an organization, most recently updated first.

        Args:
            org_id: Organization ID
            status: Optional status filter
            skip: Pagination offset
            limit: Pagination limit
        """
        query = select(Project).where(Project.org_id == org_id)
        if status is not None:
            query = query.where(Project.status == status)

        result = await self.session.execute(
            query.order_by(Project.updated_at.desc(), Project.id.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all())

    async def count_for_org(self, org_id: int, status: Optional[ProjectStatus] = None) -> int:
        query = select(func.count(Project.id)).where(Project.org_id == org_id)
        if status is not None:
            query = query.where(Project.status == status)
        result = await self.session.execute(query)
        return result.scalar_one()

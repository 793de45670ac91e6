"""
Organization Data Access Object.

WHY: The tenant directory. Slug uniqueness is checked case-insensitively
here, and super admin listings are built from these queries.
"""

from typing import List, Optional
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from tasksetu.dao.base import BaseDAO
from tasksetu.models.organization import Organization, OrganizationStatus


class OrganizationDAO(BaseDAO[Organization]):
    """Data Access Object for Organization model."""

    def __init__(self, session: AsyncSession):
        super().__init__(Organization, session)

    async def get_by_slug(self, slug: str) -> Optional[Organization]:
        """
        Retrieve an organization by its slug.

        Args:
            slug: Organization slug (compared lowercase)

        Returns:
            Organization if found, None otherwise
        """
        result = await self.session.execute(
            select(Organization).where(func.lower(Organization.slug) == slug.strip().lower())
        )
        return result.scalar_one_or_none()

    async def slug_exists(self, slug: str) -> bool:
        result = await self.session.execute(
            select(Organization.id)
            .where(func.lower(Organization.slug) == slug.strip().lower())
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    @staticmethod
    def _filtered(query, status: Optional[OrganizationStatus], search: Optional[str]):
        if status is not None:
            query = query.where(Organization.status == status)
        if search:
            pattern = f"%{search.strip().lower()}%"
            query = query.where(
                func.lower(Organization.name).like(pattern)
                | func.lower(Organization.slug).like(pattern)
            )
        return query

    async def list_organizations(
        self,
        status: Optional[OrganizationStatus] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Organization]:
        """
        List tenants for the super admin console.

        Args:
            status: Optional status filter
            search: Optional case-insensitive match on name or slug
            skip: Pagination offset
            limit: Maximum records to return

        Returns:
            Organizations, newest first
        """
        query = self._filtered(select(Organization), status, search)
        query = query.order_by(Organization.id.desc()).offset(skip).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_organizations(
        self,
        status: Optional[OrganizationStatus] = None,
        search: Optional[str] = None,
    ) -> int:
        """Total matching the same filters as list_organizations()."""
        query = self._filtered(select(func.count(Organization.id)), status, search)
        result = await self.session.execute(query)
        return result.scalar_one()

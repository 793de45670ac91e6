"""
Task Data Access Object (DAO).

WHAT: Database operations for the Task model.

WHY: Tasks have two visibility scopes. Team tasks are scoped by org_id;
an individual user's personal tasks have no org_id and are scoped by
their creator. Both predicates live here.
"""

from typing import List, Optional
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tasksetu.dao.base import BaseDAO
from tasksetu.models.task import Task, TaskComment, TaskStatus


class TaskDAO(BaseDAO[Task]):
    """Data Access Object for Task model."""

    def __init__(self, session: AsyncSession):
        super().__init__(Task, session)

    def _scoped(
        self,
        query,
        org_id: Optional[int],
        owner_id: Optional[int],
        status: Optional[TaskStatus],
        project_id: Optional[int],
        assignee_id: Optional[int],
    ):
        if org_id is not None:
            query = query.where(Task.org_id == org_id)
        elif owner_id is not None:
            query = query.where(Task.org_id.is_(None), Task.created_by_id == owner_id)
        else:
            raise ValueError("A task listing needs an org_id or an owner_id scope")

        if status is not None:
            query = query.where(Task.status == status)
        if project_id is not None:
            query = query.where(Task.project_id == project_id)
        if assignee_id is not None:
            query = query.where(Task.assignee_id == assignee_id)
        return query

    async def list_tasks(
        self,
        org_id: Optional[int] = None,
        owner_id: Optional[int] = None,
        status: Optional[TaskStatus] = None,
        project_id: Optional[int] = None,
        assignee_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Task]:
        """
        List tasks within one visibility scope.

        Args:
            org_id: Tenant scope (team tasks)
            owner_id: Personal scope, used when org_id is None
            status: Optional status filter
            project_id: Optional project filter
            assignee_id: Optional assignee filter
            skip: Pagination offset
            limit: Pagination limit

        Returns:
            Tasks in the scope, newest first

        Raises:
            ValueError: If neither scope is given
        """
        query = self._scoped(select(Task), org_id, owner_id, status, project_id, assignee_id)
        result = await self.session.execute(
            query.order_by(Task.id.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all())

    async def count_tasks(
        self,
        org_id: Optional[int] = None,
        owner_id: Optional[int] = None,
        status: Optional[TaskStatus] = None,
        project_id: Optional[int] = None,
        assignee_id: Optional[int] = None,
    ) -> int:
        """Count tasks with the same scope and filters as list_tasks."""
        query = self._scoped(
            select(func.count(Task.id)), org_id, owner_id, status, project_id, assignee_id
        )
        result = await self.session.execute(query)
        return result.scalar_one()

    async def get_personal(self, task_id: int, owner_id: int) -> Optional[Task]:
        """Retrieve a personal (tenant-less) task owned by one user."""
        result = await self.session.execute(
            select(Task).where(
                Task.id == task_id,
                Task.org_id.is_(None),
                Task.created_by_id == owner_id,
            )
        )
        return result.scalar_one_or_none()


class TaskCommentDAO(BaseDAO[TaskComment]):
    """
    Data Access Object for TaskComment.

    Callers resolve the task through the caller's scope first; comments are
    only ever looked up by task.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(TaskComment, session)

    async def list_for_task(self, task_id: int, skip: int = 0, limit: int = 100) -> List[TaskComment]:
        """Comments on one task, oldest first."""
        result = await self.session.execute(
            select(TaskComment)
            .where(TaskComment.task_id == task_id)
            .order_by(TaskComment.id)
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_for_task(self, task_id: int) -> int:
        result = await self.session.execute(
            select(func.count(TaskComment.id)).where(TaskComment.task_id == task_id)
        )
        return result.scalar_one()

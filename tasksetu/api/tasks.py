"""
Task API endpoints.

WHAT: CRUD for tasks in two visibility scopes, plus the comment thread on
each task.

WHY: Tenant members work on team tasks owned by their organization; an
individual user (no tenant) only ever sees personal tasks they created.

HOW: Every lookup is resolved through the caller's scope first, then the
referenced project and assignee are checked against the same tenant.
"""

from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from tasksetu.core.deps import ensure_tenant_access, require_roles
from tasksetu.core.exceptions import (
    InputError,
    InsufficientPermissionsError,
    ResourceNotFoundError,
)
from tasksetu.db.session import get_db
from tasksetu.dao.project import ProjectDAO
from tasksetu.dao.task import TaskCommentDAO, TaskDAO
from tasksetu.dao.user import UserDAO
from tasksetu.models.task import Task, TaskStatus
from tasksetu.models.user import User, UserRole
from tasksetu.schemas.task import (
    CommentCreate,
    CommentListResponse,
    CommentResponse,
    TaskCreate,
    TaskListResponse,
    TaskResponse,
    TaskUpdate,
)


router = APIRouter(prefix="/tasks", tags=["tasks"])

require_task_user = require_roles(UserRole.ORG_ADMIN, UserRole.EMPLOYEE, UserRole.INDIVIDUAL)


def _is_personal(user: User) -> bool:
    return user.org_id is None


async def _get_task_for_user(task_id: int, user: User, db: AsyncSession) -> Task:
    """
    Raises:
        ResourceNotFoundError: No such task in the caller's personal scope
        TenantAccessDenied: Team task of another organization
    """
    task_dao = TaskDAO(db)
    if _is_personal(user):
        task = await task_dao.get_personal(task_id, user.id)
        if task is None:
            raise ResourceNotFoundError("Task not found", resource_type="Task", resource_id=task_id)
        return task

    task = await task_dao.get_by_id(task_id)
    if task is None:
        raise ResourceNotFoundError("Task not found", resource_type="Task", resource_id=task_id)
    ensure_tenant_access(user, task.org_id)
    return task


async def _check_references(
    user: User,
    db: AsyncSession,
    project_id: Optional[int],
    assignee_id: Optional[int],
) -> None:
    """
    Validate the project and assignee a task points at.

    Personal tasks have no project and can only be assigned to their owner.
    Team tasks reference a project of the same organization and an active
    member of it.

    Raises:
        InputError: Reference outside the caller's scope
    """
    if _is_personal(user):
        if project_id is not None:
            raise InputError("Personal tasks cannot belong to a project", field="project_id")
        if assignee_id is not None and assignee_id != user.id:
            raise InputError("Personal tasks can only be assigned to yourself", field="assignee_id")
        return

    if project_id is not None:
        project = await ProjectDAO(db).get_by_id_and_org(project_id, user.org_id)
        if project is None:
            raise InputError("Project not found in your organization", field="project_id")

    if assignee_id is not None:
        assignee = await UserDAO(db).get_by_id_and_org(assignee_id, user.org_id)
        if assignee is None or not assignee.is_active:
            raise InputError(
                "Assignee must be an active member of your organization",
                field="assignee_id",
            )


@router.post(
    "",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create task",
)
async def create_task(
    data: TaskCreate,
    current_user: User = Depends(require_task_user),
    db: AsyncSession = Depends(get_db),
) -> TaskResponse:
    await _check_references(current_user, db, data.project_id, data.assignee_id)
    task = await TaskDAO(db).create(
        title=data.title,
        description=data.description,
        priority=data.priority,
        due_date=data.due_date,
        project_id=data.project_id,
        assignee_id=data.assignee_id,
        org_id=current_user.org_id,
        created_by_id=current_user.id,
    )
    return TaskResponse.model_validate(task)


@router.get("", response_model=TaskListResponse, summary="List tasks")
async def list_tasks(
    status_filter: Optional[TaskStatus] = Query(None, alias="status"),
    project_id: Optional[int] = Query(None),
    assignee_id: Optional[int] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(require_task_user),
    db: AsyncSession = Depends(get_db),
) -> TaskListResponse:
    scope = (
        {"owner_id": current_user.id}
        if _is_personal(current_user)
        else {"org_id": current_user.org_id}
    )
    filters = {"status": status_filter, "project_id": project_id, "assignee_id": assignee_id}

    task_dao = TaskDAO(db)
    tasks = await task_dao.list_tasks(**scope, **filters, skip=skip, limit=limit)
    total = await task_dao.count_tasks(**scope, **filters)
    return TaskListResponse(
        items=[TaskResponse.model_validate(t) for t in tasks],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get("/{task_id}", response_model=TaskResponse, summary="Get task")
async def get_task(
    task_id: int,
    current_user: User = Depends(require_task_user),
    db: AsyncSession = Depends(get_db),
) -> TaskResponse:
    task = await _get_task_for_user(task_id, current_user, db)
    return TaskResponse.model_validate(task)


@router.patch("/{task_id}", response_model=TaskResponse, summary="Update task")
async def update_task(
    task_id: int,
    data: TaskUpdate,
    current_user: User = Depends(require_task_user),
    db: AsyncSession = Depends(get_db),
) -> TaskResponse:
    """
    Partial update.

    Moving a task to completed stamps completed_at; moving it back clears it.
    """
    task = await _get_task_for_user(task_id, current_user, db)
    updates = data.model_dump(exclude_unset=True)

    await _check_references(
        current_user, db, updates.get("project_id"), updates.get("assignee_id")
    )

    new_status = updates.get("status")
    if new_status is not None and new_status != task.status:
        updates["completed_at"] = datetime.utcnow() if new_status == TaskStatus.COMPLETED else None

    # Title, status and priority are NOT NULL
    for field_name in ("title", "status", "priority"):
        if field_name in updates and updates[field_name] is None:
            del updates[field_name]

    if updates:
        task = await TaskDAO(db).update(task.id, **updates)
    return TaskResponse.model_validate(task)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete task")
async def delete_task(
    task_id: int,
    current_user: User = Depends(require_task_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Delete a task (its creator or an org admin)."""
    task = await _get_task_for_user(task_id, current_user, db)
    if task.created_by_id != current_user.id and current_user.role != UserRole.ORG_ADMIN:
        raise InsufficientPermissionsError(
            "Only the task creator or an organization admin can delete it",
            user_id=current_user.id,
        )
    await TaskDAO(db).delete(task.id)


# ============================================================================
# Comments
# ============================================================================


async def _check_mentions(user: User, db: AsyncSession, mentions: list[int]) -> list[int]:
    """
    Deduplicate mentions and check each one is a colleague.

    Raises:
        InputError: Mention outside the task's organization
    """
    unique = list(dict.fromkeys(mentions))
    if _is_personal(user):
        if any(user_id != user.id for user_id in unique):
            raise InputError("Personal tasks have no members to mention", field="mentions")
        return unique

    user_dao = UserDAO(db)
    for user_id in unique:
        member = await user_dao.get_by_id_and_org(user_id, user.org_id)
        if member is None or not member.is_active:
            raise InputError(
                "Mentioned users must be active members of your organization",
                field="mentions",
            )
    return unique


@router.get("/{task_id}/comments", response_model=CommentListResponse, summary="List task comments")
async def list_comments(
    task_id: int,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(require_task_user),
    db: AsyncSession = Depends(get_db),
) -> CommentListResponse:
    task = await _get_task_for_user(task_id, current_user, db)
    comment_dao = TaskCommentDAO(db)
    comments = await comment_dao.list_for_task(task.id, skip=skip, limit=limit)
    return CommentListResponse(
        items=[CommentResponse.model_validate(c) for c in comments],
        total=await comment_dao.count_for_task(task.id),
        skip=skip,
        limit=limit,
    )


@router.post(
    "/{task_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Comment on a task",
)
async def add_comment(
    task_id: int,
    data: CommentCreate,
    current_user: User = Depends(require_task_user),
    db: AsyncSession = Depends(get_db),
) -> CommentResponse:
    """
    Anyone who can see the task can comment on it.

    Raises:
        ResourceNotFoundError (404): Task not in the caller's personal scope
        TenantAccessDenied (403): Task of another organization
        InputError (400): Mention outside the organization
    """
    task = await _get_task_for_user(task_id, current_user, db)
    mentions = await _check_mentions(current_user, db, data.mentions)
    comment = await TaskCommentDAO(db).create(
        task_id=task.id,
        author_id=current_user.id,
        content=data.content,
        mentions=mentions,
    )
    return CommentResponse.model_validate(comment)

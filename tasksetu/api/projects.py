"""
Project management API endpoints.

WHAT: RESTful API for project CRUD operations.

HOW: FastAPI router with:
- Tenant-scoped queries (org_id of the caller)
- RBAC (members create and edit, org admins delete)
- Pagination for list endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from tasksetu.core.deps import ensure_tenant_access, require_roles
from tasksetu.core.exceptions import InsufficientPermissionsError, ResourceNotFoundError
from tasksetu.db.session import get_db
from tasksetu.dao.project import ProjectDAO
from tasksetu.models.project import Project, ProjectStatus
from tasksetu.models.user import User, UserRole
from tasksetu.schemas.project import (
    ProjectCreate,
    ProjectListResponse,
    ProjectResponse,
    ProjectUpdate,
)


router = APIRouter(prefix="/projects", tags=["projects"])

# Projects only exist inside an organization
require_member = require_roles(UserRole.ORG_ADMIN, UserRole.EMPLOYEE)


async def _get_project_for_user(project_id: int, user: User, db: AsyncSession) -> Project:
    """
    Load a project and apply the tenant predicate.

    Raises:
        ResourceNotFoundError: No such project
        TenantAccessDenied: Project belongs to another organization
    """
    project = await ProjectDAO(db).get_by_id(project_id)
    if project is None:
        raise ResourceNotFoundError("Project not found", resource_type="Project", resource_id=project_id)
    ensure_tenant_access(user, project.org_id)
    return project


@router.post(
    "",
    response_model=ProjectResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create project",
)
async def create_project(
    data: ProjectCreate,
    current_user: User = Depends(require_member),
    db: AsyncSession = Depends(get_db),
) -> ProjectResponse:
    """Create a project in the caller's organization."""
    project = await ProjectDAO(db).create(
        name=data.name,
        description=data.description,
        org_id=current_user.org_id,
        created_by_id=current_user.id,
    )
    return ProjectResponse.model_validate(project)


@router.get(
    "",
    response_model=ProjectListResponse,
    summary="List projects",
)
async def list_projects(
    status_filter: Optional[ProjectStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(require_member),
    db: AsyncSession = Depends(get_db),
) -> ProjectListResponse:
    project_dao = ProjectDAO(db)
    projects = await project_dao.list_for_org(
        current_user.org_id, status=status_filter, skip=skip, limit=limit
    )
    total = await project_dao.count_for_org(current_user.org_id, status=status_filter)
    return ProjectListResponse(
        items=[ProjectResponse.model_validate(p) for p in projects],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get("/{project_id}", response_model=ProjectResponse, summary="Get project")
async def get_project(
    project_id: int,
    current_user: User = Depends(require_member),
    db: AsyncSession = Depends(get_db),
) -> ProjectResponse:
    project = await _get_project_for_user(project_id, current_user, db)
    return ProjectResponse.model_validate(project)


@router.patch("/{project_id}", response_model=ProjectResponse, summary="Update project")
async def update_project(
    project_id: int,
    data: ProjectUpdate,
    current_user: User = Depends(require_member),
    db: AsyncSession = Depends(get_db),
) -> ProjectResponse:
    """Partial update; only provided fields are modified."""
    project = await _get_project_for_user(project_id, current_user, db)
    updates = data.model_dump(exclude_unset=True, exclude_none=True)
    if updates:
        project = await ProjectDAO(db).update(project.id, **updates)
    return ProjectResponse.model_validate(project)


@router.delete(
    "/{project_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete project",
)
async def delete_project(
    project_id: int,
    current_user: User = Depends(require_member),
    db: AsyncSession = Depends(get_db),
) -> None:
    """
    Delete a project (org admin only). Its tasks are kept and lose the link.
    """
    project = await _get_project_for_user(project_id, current_user, db)
    if current_user.role != UserRole.ORG_ADMIN:
        raise InsufficientPermissionsError(
            "Only organization admins can delete projects",
            user_id=current_user.id,
        )
    await ProjectDAO(db).delete(project.id)

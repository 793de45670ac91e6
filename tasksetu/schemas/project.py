"""
Pydantic schemas for project endpoints.

WHAT: Request/response schemas for the tenant-scoped project API.

HOW: Uses Pydantic v2 with ORM mode for SQLAlchemy. Status values come
straight from the model enum.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from tasksetu.models.project import ProjectStatus


class ProjectCreate(BaseModel):
    """
    Project creation request schema.

    Projects start ACTIVE and always belong to the caller's organization.
    """

    name: str = Field(..., min_length=1, max_length=255, description="Project name")
    description: Optional[str] = Field(default=None, max_length=5000)

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Website relaunch",
                "description": "Q3 marketing site rebuild",
            }
        }


class ProjectUpdate(BaseModel):
    """Partial update - only provided fields are modified."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=5000)
    status: Optional[ProjectStatus] = None


class ProjectResponse(BaseModel):
    id: int = Field(..., description="Project ID")
    name: str
    description: Optional[str] = None
    status: ProjectStatus
    org_id: int = Field(..., description="Organization ID")
    created_by_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProjectListResponse(BaseModel):
    """
    Paginated project list response schema.

    WHY: Same list envelope as every other collection endpoint.
    """

    items: list[ProjectResponse] = Field(..., description="List of projects")
    total: int = Field(..., description="Total number of projects matching filters")
    skip: int = Field(..., description="Number of items skipped (offset)")
    limit: int = Field(..., description="Maximum items per page")

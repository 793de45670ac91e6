"""
Pydantic schemas for task endpoints.

Tasks created by tenant members belong to their organization; tasks
created by individual users are personal (org_id is null).
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from tasksetu.models.task import TaskPriority, TaskStatus


class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=10000)
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[datetime] = None
    project_id: Optional[int] = Field(default=None, description="Project in the same organization")
    assignee_id: Optional[int] = Field(default=None, description="Active member of the same organization")

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Draft launch email",
                "priority": "high",
                "due_date": "2025-11-01T17:00:00",
                "project_id": 3,
                "assignee_id": 7,
            }
        }


class TaskUpdate(BaseModel):
    """
    Partial update.

    Moving a task to COMPLETED stamps completed_at; moving it out clears it.
    """

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=10000)
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = None
    project_id: Optional[int] = None
    assignee_id: Optional[int] = None


class TaskResponse(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    status: TaskStatus
    priority: TaskPriority
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    project_id: Optional[int] = None
    assignee_id: Optional[int] = None
    org_id: Optional[int] = None
    created_by_id: int
    is_overdue: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TaskListResponse(BaseModel):
    items: list[TaskResponse]
    total: int
    skip: int
    limit: int


# ============================================================================
# Comments
# ============================================================================


class CommentCreate(BaseModel):
    """
    Comment creation request.

    Mentioned users must be active members of the task's organization.
    """

    content: str = Field(..., min_length=1, max_length=10000, description="Comment body")
    mentions: list[int] = Field(default_factory=list, max_length=50, description="User IDs mentioned")

    class Config:
        json_schema_extra = {
            "example": {
                "content": "Draft is ready for review",
                "mentions": [7],
            }
        }


class CommentResponse(BaseModel):
    id: int
    task_id: int
    author_id: int
    content: str
    mentions: list[int]
    created_at: datetime

    class Config:
        from_attributes = True


class CommentListResponse(BaseModel):
    items: list[CommentResponse]
    total: int
    skip: int
    limit: int

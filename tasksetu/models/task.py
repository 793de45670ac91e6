"""
Task model.

WHAT: A unit of work, either inside an organization (optionally within a
project, optionally assigned to a member) or personal to an individual user.

WHY: Tasks are the main tenant-scoped resource. org_id is NULL only for an
individual user's personal tasks, which are visible to their creator alone.

TaskComment holds the discussion on a task. Comments inherit the task's
visibility; they carry no org_id of their own.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, TYPE_CHECKING

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    JSON,
    DateTime,
    ForeignKey,
    Index,
    Enum as SQLEnum,
)
from sqlalchemy.orm import relationship, Mapped

from tasksetu.models.base import Base, TimestampMixin, PrimaryKeyMixin, enum_values

if TYPE_CHECKING:
    from tasksetu.models.project import Project


class TaskStatus(str, Enum):
    """Task workflow status."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskPriority(str, Enum):
    """Task priority level."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class Task(Base, PrimaryKeyMixin, TimestampMixin):
    """
    Task model.

    Attributes:
        title: Short summary
        description: Optional details
        status: TaskStatus
        priority: TaskPriority
        due_date: Optional deadline
        completed_at: Set when status becomes completed
        project_id: Optional project in the same organization
        assignee_id: Optional active member of the same organization
        org_id: Owning organization (NULL for personal tasks)
        created_by_id: Creator
    """

    __tablename__ = "tasks"

    title: Mapped[str] = Column(String(255), nullable=False)
    description: Mapped[Optional[str]] = Column(Text, nullable=True)
    status: Mapped[TaskStatus] = Column(
        SQLEnum(TaskStatus, name="task_status", values_callable=enum_values),
        nullable=False,
        default=TaskStatus.TODO,
        index=True,
    )
    priority: Mapped[TaskPriority] = Column(
        SQLEnum(TaskPriority, name="task_priority", values_callable=enum_values),
        nullable=False,
        default=TaskPriority.MEDIUM,
    )
    due_date: Mapped[Optional[datetime]] = Column(DateTime, nullable=True)
    completed_at: Mapped[Optional[datetime]] = Column(DateTime, nullable=True)

    project_id: Mapped[Optional[int]] = Column(
        Integer,
        ForeignKey("projects.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    assignee_id: Mapped[Optional[int]] = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    org_id: Mapped[Optional[int]] = Column(
        Integer,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    created_by_id: Mapped[int] = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    project: Mapped[Optional["Project"]] = relationship(
        "Project", back_populates="tasks", lazy="raise"
    )

    @property
    def is_overdue(self) -> bool:
        if not self.due_date or self.status in (TaskStatus.COMPLETED, TaskStatus.CANCELLED):
            return False
        return self.due_date < datetime.utcnow()

    def __repr__(self) -> str:
        return f"<Task(id={self.id}, title={self.title}, status={self.status})>"


class TaskComment(Base, PrimaryKeyMixin, TimestampMixin):
    """
    Comment on a task.

    Attributes:
        task_id: Task being discussed
        author_id: User who wrote the comment
        content: Comment body
        mentions: IDs of members mentioned in the comment
    """

    __tablename__ = "task_comments"

    task_id: Mapped[int] = Column(
        Integer,
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
    )
    author_id: Mapped[int] = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    content: Mapped[str] = Column(Text, nullable=False)
    mentions: Mapped[list[int]] = Column(JSON, nullable=False, default=list)

    __table_args__ = (
        Index("ix_task_comments_task_id", "task_id"),
        Index("ix_task_comments_author_id", "author_id"),
    )

    def __repr__(self) -> str:
        return f"<TaskComment(id={self.id}, task_id={self.task_id})>"

"""
Project model.

WHAT: A named container of tasks owned by one organization.

WHY: Projects are the tenant-scoped resource org admins curate; every read
and write goes through the tenant predicate on org_id.
"""

from enum import Enum
from typing import Optional, TYPE_CHECKING

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    ForeignKey,
    Enum as SQLEnum,
)
from sqlalchemy.orm import relationship, Mapped

from tasksetu.models.base import Base, TimestampMixin, PrimaryKeyMixin, enum_values

if TYPE_CHECKING:
    from tasksetu.models.task import Task


class ProjectStatus(str, Enum):
    """Project lifecycle status."""

    ACTIVE = "active"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class Project(Base, PrimaryKeyMixin, TimestampMixin):
    """
    Project owned by an organization.

    Attributes:
        name: Project name
        description: Optional details
        status: ProjectStatus
        org_id: Owning organization (required)
        created_by_id: Member who created it
    """

    __tablename__ = "projects"

    name: Mapped[str] = Column(String(255), nullable=False)
    description: Mapped[Optional[str]] = Column(Text, nullable=True)
    status: Mapped[ProjectStatus] = Column(
        SQLEnum(ProjectStatus, name="project_status", values_callable=enum_values),
        nullable=False,
        default=ProjectStatus.ACTIVE,
    )
    org_id: Mapped[int] = Column(
        Integer,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_by_id: Mapped[Optional[int]] = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    tasks: Mapped[list["Task"]] = relationship("Task", back_populates="project", lazy="raise")

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, name={self.name}, org_id={self.org_id})>"

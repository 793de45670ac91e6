"""
Pydantic schemas for the audit log viewer.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from tasksetu.models.audit_log import AuditAction


class AuditLogResponse(BaseModel):
    """Audit log entry for the super admin viewer."""

    id: int
    actor_user_id: Optional[int] = None
    action: AuditAction
    resource_type: str
    resource_id: Optional[int] = None
    org_id: Optional[int] = None
    changes: Optional[dict] = None
    extra_data: Optional[dict] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AuditLogListResponse(BaseModel):
    """Paginated audit log response."""

    items: List[AuditLogResponse]
    total: int
    skip: int
    limit: int

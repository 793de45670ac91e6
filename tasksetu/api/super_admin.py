"""
Super admin API endpoints.

WHAT: Platform-level company management: list, inspect, suspend and
re-license tenants, and browse the audit trail.

WHY: Super admins have no tenant of their own. Suspending a company blocks
all of its members on their next request; the license endpoint refuses to
shrink below the seats in use.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tasksetu.core.config import Settings
from tasksetu.core.deps import get_settings_dep, require_superadmin
from tasksetu.dao.audit_log import AuditLogDAO
from tasksetu.db.session import get_db
from tasksetu.models.audit_log import AuditAction
from tasksetu.models.organization import Organization, OrganizationStatus
from tasksetu.models.user import User
from tasksetu.schemas.audit_log import AuditLogListResponse, AuditLogResponse
from tasksetu.schemas.organization import (
    CompanyLicenseUpdate,
    CompanyListResponse,
    CompanyResponse,
    CompanyStatusUpdate,
    LicenseInfoResponse,
    OrganizationResponse,
)
from tasksetu.services.organization_service import LicenseInfo, OrganizationService


router = APIRouter(prefix="/super-admin", tags=["super-admin"])


def get_organization_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
) -> OrganizationService:
    return OrganizationService(db, settings)


def _company_response(org: Organization, info: LicenseInfo) -> CompanyResponse:
    return CompanyResponse(
        **OrganizationResponse.model_validate(org).model_dump(),
        license=LicenseInfoResponse(**info.to_dict()),
    )


@router.get("/companies", response_model=CompanyListResponse, summary="List companies")
async def list_companies(
    status_filter: Optional[OrganizationStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, max_length=255, description="Match on name or slug"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(require_superadmin),
    service: OrganizationService = Depends(get_organization_service),
) -> CompanyListResponse:
    rows = await service.list_organizations(status=status_filter, search=search, skip=skip, limit=limit)
    total = await service.org_dao.count_organizations(status=status_filter, search=search)
    return CompanyListResponse(
        companies=[_company_response(org, info) for org, info in rows],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get("/companies/{org_id}", response_model=CompanyResponse, summary="Company details")
async def get_company(
    org_id: int,
    current_user: User = Depends(require_superadmin),
    service: OrganizationService = Depends(get_organization_service),
) -> CompanyResponse:
    org = await service.get_organization(org_id)
    return _company_response(org, await service.get_license_info(org))


@router.patch(
    "/companies/{org_id}/status",
    response_model=CompanyResponse,
    summary="Suspend or reactivate a company",
)
async def update_company_status(
    org_id: int,
    data: CompanyStatusUpdate,
    current_user: User = Depends(require_superadmin),
    service: OrganizationService = Depends(get_organization_service),
) -> CompanyResponse:
    org = await service.set_status(org_id, data.status, current_user)
    return _company_response(org, await service.get_license_info(org))


@router.patch(
    "/companies/{org_id}/license",
    response_model=CompanyResponse,
    summary="Change a company's seat license",
)
async def update_company_license(
    org_id: int,
    data: CompanyLicenseUpdate,
    current_user: User = Depends(require_superadmin),
    service: OrganizationService = Depends(get_organization_service),
) -> CompanyResponse:
    """
    Raises:
        BusinessRuleViolation (422): max_users below the seats in use
    """
    org = await service.update_license(org_id, data.max_users, current_user, license_type=data.license_type)
    return _company_response(org, await service.get_license_info(org))


@router.get("/logs", response_model=AuditLogListResponse, summary="Browse the audit trail")
async def list_audit_logs(
    org_id: Optional[int] = Query(None, description="Filter by organization"),
    action: Optional[AuditAction] = Query(None, description="Filter by action type"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    current_user: User = Depends(require_superadmin),
    db: AsyncSession = Depends(get_db),
) -> AuditLogListResponse:
    """Newest first. An unknown action is rejected as a 400 validation error."""
    dao = AuditLogDAO(db)
    logs = await dao.list_logs(org_id=org_id, action=action, skip=skip, limit=limit)
    return AuditLogListResponse(
        items=[AuditLogResponse.model_validate(entry) for entry in logs],
        total=await dao.count_logs(org_id=org_id, action=action),
        skip=skip,
        limit=limit,
    )

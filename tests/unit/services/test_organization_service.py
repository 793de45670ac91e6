"""
Unit tests for OrganizationService.

WHY: Slugs are the public identity of a tenant and seat accounting is
read by every path that adds a member; both must be exact.
"""

import pytest

from tasksetu.core.exceptions import (
    BusinessRuleViolation,
    InputError,
    ResourceAlreadyExistsError,
    ResourceNotFoundError,
    SeatLimitExceeded,
)
from tasksetu.dao.audit_log import AuditLogDAO
from tasksetu.models.audit_log import AuditAction
from tasksetu.models.organization import OrganizationStatus
from tasksetu.models.user import UserStatus
from tasksetu.services.organization_service import (
    LicenseInfo,
    OrganizationService,
    slugify,
    validate_slug,
)
from tests.factories import OrganizationFactory, UserFactory


@pytest.fixture
def service(db_session, test_settings):
    return OrganizationService(db_session, test_settings)


class TestSlugs:
    @pytest.mark.parametrize(
        "name, slug",
        [
            ("Acme Corp", "acme-corp"),
            ("Acme Corp, Inc.", "acme-corp-inc"),
            ("  --Hello   World--  ", "hello-world"),
            ("AB", "ab-org"),
            ("x" * 80, "x" * 50),
        ],
    )
    def test_slugify(self, name, slug):
        assert slugify(name) == slug

    def test_validate_slug_lowercases(self):
        assert validate_slug(" Acme-Corp ") == "acme-corp"

    @pytest.mark.parametrize("slug", ["ab", "-acme", "acme-", "acme corp", "acme_corp", "a" * 51])
    def test_validate_slug_rejects(self, slug):
        with pytest.raises(InputError):
            validate_slug(slug)

    async def test_generate_unique_slug_appends_suffix(self, service, test_org):
        assert await service.generate_unique_slug("Acme Corp") == "acme-corp-2"

        await OrganizationFactory.create(service.session, slug="acme-corp-2")
        assert await service.generate_unique_slug("Acme Corp") == "acme-corp-3"

    async def test_create_with_taken_slug(self, service, test_org):
        with pytest.raises(ResourceAlreadyExistsError):
            await service.create_organization("Another Acme", slug="ACME-CORP")

    async def test_create_uses_default_seats(self, service, test_settings):
        org = await service.create_organization("Globex")

        assert org.slug == "globex"
        assert org.max_users == test_settings.DEFAULT_MAX_USERS
        assert org.status == OrganizationStatus.ACTIVE


class TestLicenseInfo:
    def test_arithmetic(self):
        info = LicenseInfo(total=5, active=3, pending=1, license_type="standard")

        assert info.used == 4
        assert info.available == 1
        assert info.can_add_user is True
        assert info.used + info.available == info.total

    def test_available_never_negative(self):
        """Seats can be oversubscribed by data imported before a license cut."""
        info = LicenseInfo(total=2, active=3, pending=0, license_type="standard")

        assert info.available == 0
        assert info.can_add_user is False

    async def test_inactive_members_do_not_use_seats(self, service, db_session, test_org, test_admin):
        await UserFactory.create(db_session, org=test_org, status=UserStatus.INACTIVE)
        await UserFactory.create_invited(db_session, test_org)

        info = await service.get_license_info(test_org)

        assert info.to_dict() == {
            "total": 10,
            "used": 2,
            "available": 8,
            "active": 1,
            "pending": 1,
            "license_type": "standard",
            "can_add_user": True,
        }

    async def test_ensure_seat_available(self, service, db_session):
        org = await OrganizationFactory.create(db_session, max_users=1)
        await UserFactory.create_admin(db_session, org=org)

        with pytest.raises(SeatLimitExceeded):
            await service.ensure_seat_available(org)


class TestSettings:
    async def test_update_settings_records_changes(self, service, db_session, test_org, test_admin):
        org = await service.update_settings(
            test_org,
            test_admin,
            {"name": "Acme Corporation", "allow_public_signup": True, "slug": "hijack"},
        )

        assert org.name == "Acme Corporation"
        assert org.allow_public_signup is True
        assert org.slug == "acme-corp"

        logs = await AuditLogDAO(db_session).list_logs(org_id=test_org.id, action=AuditAction.ORG_UPDATED)
        assert set(logs[0].changes) == {"name", "allow_public_signup"}

    async def test_noop_update_writes_nothing(self, service, db_session, test_org, test_admin):
        await service.update_settings(test_org, test_admin, {"name": "Acme Corp"})

        assert await AuditLogDAO(db_session).list_logs(org_id=test_org.id) == []


class TestSuperAdminControls:
    async def test_get_missing_organization(self, service):
        with pytest.raises(ResourceNotFoundError):
            await service.get_organization(9999)

    async def test_suspend_and_reactivate(self, service, db_session, test_org):
        superadmin = await UserFactory.create_superadmin(db_session)

        org = await service.set_status(test_org.id, OrganizationStatus.SUSPENDED, superadmin)
        assert org.is_active is False

        org = await service.set_status(test_org.id, OrganizationStatus.ACTIVE, superadmin)
        assert org.is_active is True

        logs = await AuditLogDAO(db_session).list_logs(org_id=test_org.id, action=AuditAction.ORG_STATUS_CHANGE)
        assert len(logs) == 2

    async def test_update_license_below_used_refused(self, service, db_session, test_org, test_admin, test_employee):
        superadmin = await UserFactory.create_superadmin(db_session)
        await UserFactory.create_invited(db_session, test_org)

        with pytest.raises(BusinessRuleViolation) as exc_info:
            await service.update_license(test_org.id, 2, superadmin)
        assert exc_info.value.context["used"] == 3

        org = await service.update_license(test_org.id, 3, superadmin, license_type="enterprise")
        assert org.max_users == 3
        assert org.license_type == "enterprise"

    async def test_list_organizations_includes_usage(self, service, db_session, test_org, test_admin):
        rows = await service.list_organizations()

        assert len(rows) == 1
        org, info = rows[0]
        assert org.id == test_org.id
        assert info.active == 1

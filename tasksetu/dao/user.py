"""
User Data Access Object.

WHY: UserDAO is the single membership store interface. Every lookup by
email, by token or by tenant goes through it, and the conditional updates
that consume invite and reset tokens live here so their guards are written
exactly once.
"""

from datetime import datetime
from typing import Optional, Dict, Any
from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from tasksetu.dao.base import BaseDAO
from tasksetu.models.user import User, UserRole, UserStatus


class UserDAO(BaseDAO[User]):
    """
    Data Access Object for User model.

    WHY: Token lookups always apply the same three guards (token equality,
    expiry in the future, expected status) so an expired or consumed token
    can never resolve through a side door.
    """

    def __init__(self, session: AsyncSession):
        """Initialize UserDAO with a session."""
        super().__init__(User, session)

    async def get_by_email(self, email: str) -> Optional[User]:
        """
        Retrieve user by email address.

        WHY: Email is the login identifier and is unique system-wide.
        Case-insensitive comparison prevents duplicate accounts with
        different casing (user@example.com vs USER@EXAMPLE.COM).

        Args:
            email: User's email address

        Returns:
            User instance if found, None otherwise
        """
        result = await self.session.execute(
            select(User).where(func.lower(User.email) == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def email_exists(self, email: str) -> bool:
        """Check if email is already registered anywhere in the system."""
        result = await self.session.execute(
            select(User.id).where(func.lower(User.email) == email.strip().lower()).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def _reload(self, user_id: int) -> Optional[User]:
        # WHY: populate_existing overwrites any copy already in the identity
        # map with the row the conditional UPDATE just wrote.
        result = await self.session.execute(
            select(User).where(User.id == user_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _conditional_update(self, *criteria, **values: Any) -> Optional[User]:
        """
        Run one guarded UPDATE ... RETURNING and reload the matched user.

        WHY: Check and write happen in a single statement, so two concurrent
        requests presenting the same token cannot both succeed.

        Returns:
            The updated user, or None when no row matched the guards
        """
        values["updated_at"] = datetime.utcnow()
        result = await self.session.execute(
            update(User)
            .where(*criteria)
            .values(**values)
            .returning(User.id)
            .execution_options(synchronize_session=False)
        )
        user_id = result.scalar_one_or_none()
        if user_id is None:
            return None
        return await self._reload(user_id)

    # ========================================================================
    # Invitation tokens
    # ========================================================================

    async def get_by_invite_token(self, token: str) -> Optional[User]:
        """
        Resolve a pending invitation by its token.

        Returns:
            The invited user while the token is unexpired and unused, else None
        """
        result = await self.session.execute(
            select(User).where(
                User.invite_token == token,
                User.status == UserStatus.INVITED,
                User.invite_token_expires_at > datetime.utcnow(),
            )
        )
        return result.scalar_one_or_none()

    async def consume_invite_token(
        self,
        token: str,
        hashed_password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> Optional[User]:
        """
        Accept an invitation atomically.

        WHAT: Activates the membership, sets the password, marks the email
        verified and clears the token, but only if the token still matches a
        pending, unexpired invitation.

        Args:
            token: Invite token from the email link
            hashed_password: Already hashed password
            first_name: Optional name supplied on acceptance
            last_name: Optional name supplied on acceptance

        Returns:
            The activated user, or None if the token did not resolve
        """
        values: Dict[str, Any] = {
            "hashed_password": hashed_password,
            "status": UserStatus.ACTIVE,
            "email_verified": True,
            "invite_token": None,
            "invite_token_expires_at": None,
        }
        if first_name:
            values["first_name"] = first_name
        if last_name:
            values["last_name"] = last_name

        return await self._conditional_update(
            User.invite_token == token,
            User.status == UserStatus.INVITED,
            User.invite_token_expires_at > datetime.utcnow(),
            **values,
        )

    # ========================================================================
    # Password reset tokens
    # ========================================================================

    async def get_by_reset_token(self, token: str) -> Optional[User]:
        """Resolve an unexpired password reset token without consuming it."""
        result = await self.session.execute(
            select(User).where(
                User.password_reset_token == token,
                User.status == UserStatus.ACTIVE,
                User.password_reset_expires_at > datetime.utcnow(),
            )
        )
        return result.scalar_one_or_none()

    async def consume_reset_token(self, token: str, hashed_password: str) -> Optional[User]:
        """
        Set a new password atomically and clear the reset token.

        Returns:
            The updated user, or None if the token was unknown, used or expired
        """
        return await self._conditional_update(
            User.password_reset_token == token,
            User.status == UserStatus.ACTIVE,
            User.password_reset_expires_at > datetime.utcnow(),
            hashed_password=hashed_password,
            password_reset_token=None,
            password_reset_expires_at=None,
        )

    # ========================================================================
    # Email verification tokens
    # ========================================================================

    async def consume_verification_token(self, token: str) -> Optional[User]:
        """Mark the email verified if the verification token is still valid."""
        return await self._conditional_update(
            User.email_verification_token == token,
            User.email_verification_expires_at > datetime.utcnow(),
            email_verified=True,
            email_verification_token=None,
            email_verification_expires_at=None,
        )

    # ========================================================================
    # Tenant membership queries
    # ========================================================================

    async def get_members(
        self,
        org_id: int,
        status: Optional[UserStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[User]:
        """
        List the members of one organization.

        Args:
            org_id: Organization ID
            status: Optional lifecycle filter
            skip: Pagination offset
            limit: Maximum records to return

        Returns:
            Users of the tenant, oldest first
        """
        query = select(User).where(User.org_id == org_id)
        if status is not None:
            query = query.where(User.status == status)

        query = query.order_by(User.id).offset(skip).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_by_status(self, org_id: int) -> Dict[UserStatus, int]:
        """
        Count an organization's members per lifecycle status.

        WHY: Seat usage is always derived from these counts rather than a
        stored counter.

        Returns:
            Mapping with an entry for every UserStatus (zero when absent)
        """
        result = await self.session.execute(
            select(User.status, func.count(User.id))
            .where(User.org_id == org_id)
            .group_by(User.status)
        )
        counts = {status: 0 for status in UserStatus}
        for status, total in result.all():
            counts[UserStatus(status)] = total
        return counts

    async def count_active_admins(self, org_id: int) -> int:
        """Count active org admins of a tenant (the last one is protected)."""
        result = await self.session.execute(
            select(func.count(User.id)).where(
                User.org_id == org_id,
                User.role == UserRole.ORG_ADMIN,
                User.status == UserStatus.ACTIVE,
            )
        )
        return result.scalar_one()

    async def record_login(self, user: User) -> User:
        """Stamp last_login_at on a freshly authenticated user."""
        user.last_login_at = datetime.utcnow()
        await self.session.flush()
        return user

"""
Command line tools.

WHAT: tasksetu-create-superadmin creates (or promotes) the platform
operator account.

WHY: Super admins cannot register through the API; the first one has to be
bootstrapped by someone with database access.

Usage:
    tasksetu-create-superadmin --email ops@tasksetu.com
    (prompts for the password; --password skips the prompt)
"""

import argparse
import asyncio
import getpass
import logging
import sys
from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from tasksetu.core.auth import configure_password_hashing, hash_password
from tasksetu.core.config import get_settings
from tasksetu.dao.user import UserDAO
from tasksetu.db.session import build_engine, build_session_factory
from tasksetu.models.user import UserRole, UserStatus
from tasksetu.schemas.user import validate_password_strength


logger = logging.getLogger(__name__)


async def create_superadmin(
    session: AsyncSession,
    email: str,
    password: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
) -> int:
    """
    Create a super admin, or promote an existing tenant-less account.

    The caller owns the transaction.

    Returns:
        The user id

    Raises:
        ValueError: If the email belongs to a tenant member
    """
    user_dao = UserDAO(session)
    existing = await user_dao.get_by_email(email)

    if existing is not None:
        if existing.org_id is not None:
            raise ValueError(f"{email} is a member of an organization and cannot be promoted")
        user = await user_dao.update(
            existing.id,
            role=UserRole.SUPERADMIN,
            status=UserStatus.ACTIVE,
            email_verified=True,
            hashed_password=hash_password(password),
        )
        logger.info("Promoted user_id=%s to superadmin", user.id)
        return user.id

    user = await user_dao.create(
        email=email.strip().lower(),
        hashed_password=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        role=UserRole.SUPERADMIN,
        org_id=None,
        status=UserStatus.ACTIVE,
        email_verified=True,
    )
    logger.info("Created superadmin user_id=%s", user.id)
    return user.id


async def _run(args: argparse.Namespace) -> int:
    settings = get_settings()
    configure_password_hashing(settings.BCRYPT_ROUNDS)
    engine = build_engine(settings)
    try:
        async with build_session_factory(engine)() as session:
            async with session.begin():
                return await create_superadmin(
                    session,
                    args.email,
                    args.password,
                    first_name=args.first_name,
                    last_name=args.last_name,
                )
    finally:
        await engine.dispose()


def create_superadmin_main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="tasksetu-create-superadmin",
        description="Create or promote a TaskSetu super admin account",
    )
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", help="Prompted for when omitted")
    parser.add_argument("--first-name", dest="first_name")
    parser.add_argument("--last-name", dest="last_name")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    if args.password is None:
        args.password = getpass.getpass("Password: ")
        if getpass.getpass("Repeat password: ") != args.password:
            print("error: passwords do not match", file=sys.stderr)
            return 1

    try:
        validate_password_strength(args.password)
        user_id = asyncio.run(_run(args))
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    print(f"Super admin ready (user id {user_id})")
    return 0


if __name__ == "__main__":
    sys.exit(create_superadmin_main())

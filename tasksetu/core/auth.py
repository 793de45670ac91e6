"""
Credential and token utilities.

WHY: This module is the only place that touches secrets:
1. Password hashing with bcrypt (salted, adaptive cost)
2. Signed, stateless session tokens (JWT) carrying identity claims
3. Opaque single-use capabilities for invitations, resets and verification

Session tokens are verified for signature and expiry only. Whether the user
still exists and is active is decided by the authorization dependencies,
which re-fetch the user on every request.
"""

import secrets
from datetime import datetime, timedelta
from typing import Dict, Any, Optional
from jose import jwt, JWTError
from passlib.context import CryptContext

from tasksetu.core.config import Settings
from tasksetu.core.exceptions import (
    TokenExpiredError,
    TokenInvalidError,
)


# Password hashing context
# WHY: bcrypt with cost 12 by default; create_app() re-applies
# Settings.BCRYPT_ROUNDS so deployments (and tests) can tune it.
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=12)

# bcrypt only reads the first 72 bytes of a password
PASSWORD_MAX_BYTES = 72

# Claims every session token must carry
SESSION_CLAIMS = ("user_id", "email", "role", "org_id")


def configure_password_hashing(rounds: int) -> None:
    """Apply the configured bcrypt cost factor to the shared context."""
    pwd_context.update(bcrypt__rounds=rounds)


# ============================================================================
# Password Hashing
# ============================================================================


def password_too_long(password: str) -> bool:
    """True when bcrypt would silently ignore part of the password."""
    return len(password.encode("utf-8")) > PASSWORD_MAX_BYTES


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password

    Returns:
        Hashed password (60 characters, includes salt and cost factor)

    Raises:
        ValueError: If the password is longer than PASSWORD_MAX_BYTES

    Example:
        >>> hashed = hash_password("Abc12345")
        >>> hashed.startswith("$2b$")
        True
    """
    if password_too_long(password):
        raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes")
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """
    Verify a password against its hash.

    WHY: Invited users have no hash yet; they must never be able to log in,
    so a missing hash verifies as False instead of raising. Over-long
    passwords are never stored, so they never verify either.

    Args:
        plain_password: Password provided by user
        hashed_password: Hashed password from database (may be None)

    Returns:
        True if password matches, False otherwise
    """
    if not hashed_password or password_too_long(plain_password):
        return False
    return pwd_context.verify(plain_password, hashed_password)


# ============================================================================
# Opaque Tokens
# ============================================================================


def generate_opaque_token(nbytes: int = 32) -> str:
    """
    Generate a high-entropy URL-safe random token.

    WHY: Invite, reset and verification tokens are capabilities that only
    mean something once looked up in the database. They are not signed and
    carry no data, so leaking the format reveals nothing.
    """
    return secrets.token_urlsafe(nbytes)


def issue_invite_token() -> str:
    """Opaque token bound to one pending membership."""
    return generate_opaque_token()


def issue_reset_token() -> str:
    """Opaque token bound to one password reset request."""
    return generate_opaque_token()


def issue_email_verification_token() -> str:
    """Opaque token proving ownership of an email address."""
    return generate_opaque_token()


# ============================================================================
# Session Tokens
# ============================================================================


class TokenService:
    """
    Issues and verifies signed session tokens.

    WHAT: JWT encode/decode bound to one Settings instance.

    WHY: The signing secret is process-wide configuration. Building this
    service once in create_app() and injecting it keeps the secret out of
    module globals and lets tests run with their own settings.

    HOW: python-jose HS256 by default; claims are user_id, email, role and
    org_id plus exp/iat/nbf.
    """

    def __init__(self, settings: Settings):
        self._secret = settings.JWT_SECRET
        self._algorithm = settings.JWT_ALGORITHM
        self._lifetime = timedelta(minutes=settings.JWT_EXPIRATION_MINUTES)

    @property
    def expires_in(self) -> int:
        """Token validity window in seconds (for login responses)."""
        return int(self._lifetime.total_seconds())

    def issue_session_token(
        self,
        user_id: int,
        email: str,
        role: str,
        org_id: Optional[int],
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """
        Create a signed session token.

        Args:
            user_id: User primary key
            email: User email
            role: Canonical role value
            org_id: Tenant id (None for super admins and individual users)
            expires_delta: Optional custom lifetime (tests use a negative one)

        Returns:
            JWT string
        """
        now = datetime.utcnow()
        to_encode: Dict[str, Any] = {
            "user_id": user_id,
            "email": email,
            "role": role,
            "org_id": org_id,
            "exp": now + (expires_delta if expires_delta is not None else self._lifetime),
            "iat": now,
            "nbf": now,
        }
        return jwt.encode(to_encode, self._secret, algorithm=self._algorithm)

    def verify_session_token(self, token: str) -> Dict[str, Any]:
        """
        Verify signature and expiry, and return the claims.

        Args:
            token: JWT token string

        Returns:
            Decoded claims

        Raises:
            TokenExpiredError: If token has expired
            TokenInvalidError: If token is malformed, badly signed or lacks claims
        """
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError()
        except JWTError as e:
            raise TokenInvalidError(reason=str(e))

        missing = [claim for claim in SESSION_CLAIMS if claim not in payload]
        if missing:
            raise TokenInvalidError(reason="missing claims", claims=missing)

        return payload

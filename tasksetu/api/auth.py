"""
Authentication API endpoints.

WHY: These endpoints provide the unauthenticated account flows:
1. Login, token verification and the current user
2. Self-registration (organization, individual, public join)
3. Email verification
4. Invitation lookup and acceptance
5. Password reset

Security:
- All authentication events are audit logged
- Rate limiting applied via RateLimitMiddleware (login, register, reset, accept-invite)
- Generic messages on forgot-password and resend-verification prevent user enumeration
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from tasksetu.core.auth import TokenService
from tasksetu.core.config import Settings
from tasksetu.core.deps import (
    get_current_user,
    get_email_service,
    get_settings_dep,
    get_token_service,
)
from tasksetu.core.exceptions import AuthenticationError, AuthorizationError
from tasksetu.db.session import get_db
from tasksetu.models.user import User
from tasksetu.schemas.auth import (
    AcceptInviteRequest,
    ForgotPasswordRequest,
    InvitationDetailsResponse,
    LoginRequest,
    MessageResponse,
    RegisterIndividualRequest,
    RegisterJoinRequest,
    RegisterOrganizationRequest,
    RegisterResponse,
    ResendVerificationRequest,
    ResetPasswordRequest,
    TokenResponse,
    TokenVerifyResponse,
    ValidateResetTokenRequest,
    ValidateResetTokenResponse,
    VerifyEmailRequest,
    VerifyEmailResponse,
)
from tasksetu.schemas.organization import OrganizationResponse
from tasksetu.schemas.user import UserResponse
from tasksetu.services.auth_service import AuthService, LoginResult
from tasksetu.services.email import EmailService
from tasksetu.services.membership_service import MembershipService


router = APIRouter(prefix="/auth", tags=["authentication"])

REGISTERED_MESSAGE = "Registration successful. Please check your email to verify your account."


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
    token_service: TokenService = Depends(get_token_service),
    email_service: EmailService = Depends(get_email_service),
) -> AuthService:
    return AuthService(db, settings, token_service, email_service)


def get_membership_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
    email_service: EmailService = Depends(get_email_service),
) -> MembershipService:
    return MembershipService(db, settings, email_service)


def _token_response(result: LoginResult) -> TokenResponse:
    return TokenResponse(
        access_token=result.access_token,
        token_type=result.token_type,
        expires_in=result.expires_in,
        user=UserResponse.model_validate(result.user),
    )


# ============================================================================
# Login and sessions
# ============================================================================


@router.post(
    "/login",
    response_model=TokenResponse,
    status_code=status.HTTP_200_OK,
    summary="Login user",
    description="Authenticate user with email and password, returns a session token",
)
async def login(
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    """
    Authenticate user and return a session token.

    Raises:
        AuthenticationError (401): Invalid credentials
        AccountInactiveError (403): Inactive account or suspended organization
        EmailNotVerifiedError (403): Email verification pending
    """
    try:
        result = await service.login(credentials.email, credentials.password)
    except (AuthenticationError, AuthorizationError):
        # Keep the failure audit entry; get_db rolls back on the re-raise
        await db.commit()
        raise
    return _token_response(result)


@router.get(
    "/verify",
    response_model=TokenVerifyResponse,
    summary="Verify session token",
)
async def verify_token(current_user: User = Depends(get_current_user)) -> TokenVerifyResponse:
    """Identity behind the bearer token, read fresh from the store."""
    return TokenVerifyResponse(
        user_id=current_user.id,
        email=current_user.email,
        role=current_user.role.value,
        org_id=current_user.org_id,
    )


@router.get("/me", response_model=UserResponse, summary="Current user")
async def me(current_user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(current_user)


# ============================================================================
# Registration
# ============================================================================


@router.post(
    "/register/organization",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register an organization",
)
async def register_organization(
    data: RegisterOrganizationRequest,
    service: AuthService = Depends(get_auth_service),
) -> RegisterResponse:
    """
    Create a tenant with its first org admin.

    Raises:
        ResourceAlreadyExistsError (409): Email or slug taken
        InputError (400): Malformed slug
    """
    user, org = await service.register_organization(
        organization_name=data.organization_name,
        email=data.email,
        password=data.password,
        first_name=data.first_name,
        last_name=data.last_name,
        slug=data.slug,
    )
    return RegisterResponse(
        message=REGISTERED_MESSAGE,
        user=UserResponse.model_validate(user),
        organization=OrganizationResponse.model_validate(org),
    )


@router.post(
    "/register/individual",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register an individual account",
)
async def register_individual(
    data: RegisterIndividualRequest,
    service: AuthService = Depends(get_auth_service),
) -> RegisterResponse:
    user = await service.register_individual(
        email=data.email,
        password=data.password,
        first_name=data.first_name,
        last_name=data.last_name,
    )
    return RegisterResponse(message=REGISTERED_MESSAGE, user=UserResponse.model_validate(user))


@router.post(
    "/register/join",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Join an organization with public signup",
)
async def register_join(
    data: RegisterJoinRequest,
    service: AuthService = Depends(get_auth_service),
) -> RegisterResponse:
    """
    Raises:
        ResourceNotFoundError (404): Unknown or suspended organization
        AuthorizationError (403): Public signup disabled
        SeatLimitExceeded (409): No seat left
    """
    user = await service.register_join(
        slug=data.slug,
        email=data.email,
        password=data.password,
        first_name=data.first_name,
        last_name=data.last_name,
    )
    return RegisterResponse(
        message=REGISTERED_MESSAGE,
        user=UserResponse.model_validate(user),
        organization=OrganizationResponse.model_validate(user.organization),
    )


# ============================================================================
# Email verification
# ============================================================================


@router.post("/verify-email", response_model=VerifyEmailResponse, summary="Verify email address")
async def verify_email(
    data: VerifyEmailRequest,
    service: AuthService = Depends(get_auth_service),
) -> VerifyEmailResponse:
    await service.verify_email(data.token)
    return VerifyEmailResponse(message="Email verified successfully.", email_verified=True)


@router.post(
    "/resend-verification",
    response_model=MessageResponse,
    summary="Resend the verification email",
)
async def resend_verification(
    data: ResendVerificationRequest,
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Same response whether or not the email is registered."""
    return MessageResponse(message=await service.resend_verification(data.email))


# ============================================================================
# Invitations
# ============================================================================


@router.get(
    "/invite/{token}",
    response_model=InvitationDetailsResponse,
    summary="Look up an invitation",
)
async def get_invitation(
    token: str,
    service: MembershipService = Depends(get_membership_service),
) -> InvitationDetailsResponse:
    """
    Raises:
        InvalidTokenError (404): Unknown, used or expired invitation
    """
    user = await service.resolve_invite_token(token)
    inviter = None
    if user.invited_by_id is not None:
        inviter_user = await service.user_dao.get_by_id(user.invited_by_id)
        inviter = inviter_user.display_name if inviter_user else None
    return InvitationDetailsResponse(
        email=user.email,
        role=user.role.value,
        organization_name=user.organization.name,
        organization_slug=user.organization.slug,
        invited_by=inviter,
        expires_at=user.invite_token_expires_at.isoformat() if user.invite_token_expires_at else None,
    )


@router.post(
    "/accept-invite",
    response_model=TokenResponse,
    summary="Accept an invitation",
)
async def accept_invite(
    data: AcceptInviteRequest,
    membership: MembershipService = Depends(get_membership_service),
    service: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    """
    Set a password, activate the membership and sign in.

    Raises:
        InvalidTokenError (404): Unknown, used or expired invitation
    """
    user = await membership.accept_invite(
        data.token,
        data.password,
        first_name=data.first_name,
        last_name=data.last_name,
    )
    return _token_response(service.issue_session(user))


# ============================================================================
# Password reset
# ============================================================================


@router.post("/forgot-password", response_model=MessageResponse, summary="Request a password reset")
async def forgot_password(
    data: ForgotPasswordRequest,
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Same response whether or not the email is registered."""
    return MessageResponse(message=await service.request_password_reset(data.email))


@router.post(
    "/validate-reset-token",
    response_model=ValidateResetTokenResponse,
    summary="Check a reset token",
)
async def validate_reset_token(
    data: ValidateResetTokenRequest,
    service: AuthService = Depends(get_auth_service),
) -> ValidateResetTokenResponse:
    user = await service.validate_reset_token(data.token)
    return ValidateResetTokenResponse(valid=True, email=user.email)


@router.post("/reset-password", response_model=MessageResponse, summary="Reset password")
async def reset_password(
    data: ResetPasswordRequest,
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """
    Raises:
        InvalidTokenError (404): Unknown, used or expired reset token
    """
    await service.reset_password(data.token, data.password)
    return MessageResponse(
        message="Password reset successfully. You can now log in with your new password."
    )

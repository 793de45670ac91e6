"""
Custom exception hierarchy for structured error handling.

WHY: Every failure the API reports maps to one class here, so status codes
and the JSON error body are decided in a single place:
1. Authentication vs authorization failures keep their distinct codes
2. Token failures (invite, reset, verification) share one generic message
3. Context kwargs help debugging while sensitive keys are filtered out

IMPORTANT: Raise these instead of HTTPException or bare Exception.
"""

from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Base exception class for all TaskSetu exceptions.

    WHY: A single base lets one FastAPI handler turn every domain error into
    the same response shape: {"error", "message", "status_code", "details"}.
    """

    status_code: int = 500
    default_message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        **context: Any,
    ):
        """
        Initialize exception with message and context.

        Args:
            message: Human-readable error message
            status_code: HTTP status code (overrides class default)
            **context: Additional context for debugging (filtered in to_dict)
        """
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize exception to dictionary for JSON response.

        Returns:
            Dictionary with error details (sensitive fields filtered out)
        """
        sensitive_fields = {"password", "token", "secret", "key", "api_key"}
        filtered_context = {
            k: v for k, v in self.context.items() if k.lower() not in sensitive_fields
        }

        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "status_code": self.status_code,
            "details": filtered_context if filtered_context else None,
        }


# ============================================================================
# Authentication & Authorization Exceptions
# ============================================================================


class AuthenticationError(AppException):
    """
    Raised when the caller has not proven who they are.

    Used for a missing bearer token and for failed logins.

    HTTP Status: 401 Unauthorized
    """

    status_code = 401
    default_message = "Authentication required"


class TokenInvalidError(AuthenticationError):
    """
    Raised when a session token is malformed or its signature does not verify.

    WHY: A presented-but-bad token is answered with 403, distinct from the
    401 returned when no token was sent at all.

    HTTP Status: 403 Forbidden
    """

    status_code = 403
    default_message = "Invalid or expired token"


class TokenExpiredError(TokenInvalidError):
    """
    Raised when a session token's exp claim is in the past.

    The message is shared with TokenInvalidError so clients cannot tell the
    two apart; the class name is kept for logs.

    HTTP Status: 403 Forbidden
    """


class AuthorizationError(AppException):
    """
    Raised when the caller is known but may not perform the action.

    HTTP Status: 403 Forbidden
    """

    status_code = 403
    default_message = "You do not have permission to perform this action"


class AccountInactiveError(AuthorizationError):
    """
    Raised when the token's user no longer exists, is not active, or belongs
    to a suspended organization.

    HTTP Status: 403 Forbidden
    """

    default_message = "Account is inactive or no longer exists"


class InsufficientPermissionsError(AuthorizationError):
    """Raised when the caller's role is not in the endpoint's allow-list."""

    default_message = "Insufficient permissions"


class TenantAccessDenied(AuthorizationError):
    """Raised when a resource belongs to a different organization than the caller."""

    default_message = "Access to this organization's resources is denied"


class EmailNotVerifiedError(AuthorizationError):
    """Raised at login when the account's email address is still unverified."""

    default_message = "Please verify your email address before logging in"


# ============================================================================
# Validation & Input Exceptions
# ============================================================================


class ValidationError(AppException):
    """
    Raised when input validation fails.

    HTTP Status: 400 Bad Request
    """

    status_code = 400
    default_message = "Validation failed"


class InputError(ValidationError):
    """Raised when a single input value is malformed (bad slug, unknown role)."""

    default_message = "Invalid input"


# ============================================================================
# Resource Exceptions
# ============================================================================


class ResourceNotFoundError(AppException):
    """
    Raised when a requested resource doesn't exist.

    HTTP Status: 404 Not Found
    """

    status_code = 404
    default_message = "Resource not found"


class InvalidTokenError(ResourceNotFoundError):
    """
    Raised when an invite, reset or verification token does not resolve.

    WHY: Unknown, expired and already-consumed tokens all produce the same
    response so the endpoint cannot be used to probe which tokens existed.

    HTTP Status: 404 Not Found
    """

    default_message = "Invalid or expired token"


class ResourceAlreadyExistsError(AppException):
    """
    Raised when attempting to create a resource that already exists.

    HTTP Status: 409 Conflict
    """

    status_code = 409
    default_message = "Resource already exists"


class SeatLimitExceeded(AppException):
    """
    Raised when an organization has no seat left for another member.

    HTTP Status: 409 Conflict
    """

    status_code = 409
    default_message = "License limit reached. Cannot add more users."


# ============================================================================
# Business Logic Exceptions
# ============================================================================


class BusinessRuleViolation(AppException):
    """
    Raised when a well-formed request breaks a membership rule
    (self-deactivation, removing the last organization admin).

    HTTP Status: 422 Unprocessable Entity
    """

    status_code = 422
    default_message = "Business rule violation"


class InvalidStateTransitionError(BusinessRuleViolation):
    """
    Raised when a membership is not in the state an operation requires,
    e.g. resending an invitation to a user who already accepted it.

    HTTP Status: 400 Bad Request
    """

    status_code = 400
    default_message = "Invalid state transition"


# ============================================================================
# External Service Exceptions
# ============================================================================


class ExternalServiceError(AppException):
    """
    Raised when a collaborator outside the process fails.

    HTTP Status: 502 Bad Gateway
    """

    status_code = 502
    default_message = "External service error"


class EmailServiceError(ExternalServiceError):
    """
    Raised when an email cannot be rendered or handed to the provider.

    Membership flows catch and log this; a failed email never rolls back an
    invitation or a password reset.
    """

    default_message = "Email service error"


# ============================================================================
# Infrastructure Exceptions
# ============================================================================


class DatabaseError(AppException):
    """
    Raised when the store rejects an operation unexpectedly.

    HTTP Status: 500 Internal Server Error
    """

    status_code = 500
    default_message = "Database error"


class RateLimitExceeded(AppException):
    """
    Raised when a client exceeds the request budget of an auth endpoint.

    HTTP Status: 429 Too Many Requests
    """

    status_code = 429
    default_message = "Rate limit exceeded"

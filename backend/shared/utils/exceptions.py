"""
Centralized HTTP exceptions for consistent error handling.

Every exception logs itself on construction and is rendered by the app's
exception handlers as {"success": false, "message": ..., "code"?, "errors"?}.

Usage:
    from shared.utils.exceptions import NotFoundError, ForbiddenError, ValidationError

    raise NotFoundError("Competition", competition_id)
    raise ForbiddenError("delete your own account")
    raise ValidationError("End date must be after start date")
"""

from typing import Any

from fastapi import HTTPException, status

from shared.config.logging import get_logger

logger = get_logger(__name__)


class AppException(HTTPException):
    """
    Base exception with automatic logging.

    `code` is a machine-readable discriminator (e.g. TOKEN_EXPIRED) and
    `errors` carries field-level details; both are optional and only
    included in the response body when set.
    """

    def __init__(
        self,
        status_code: int,
        detail: str,
        log_level: str = "warning",
        headers: dict[str, str] | None = None,
        code: str | None = None,
        errors: list[dict[str, str]] | None = None,
        **log_context: Any,
    ):
        log_fn = getattr(logger, log_level, logger.warning)
        log_fn(detail, status_code=status_code, code=code, **log_context)

        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.code = code
        self.errors = errors


# =============================================================================
# 400 Bad Request Errors
# =============================================================================


class ValidationError(AppException):
    """
    Input validation error (400).

    Usage:
        raise ValidationError("Competition is full")
        raise ValidationError("Validation failed", errors=[{"field": "email", "message": "..."}])
    """

    def __init__(self, detail: str, errors: list[dict[str, str]] | None = None, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            log_level="warning",
            errors=errors,
            **log_context,
        )


# =============================================================================
# 401 Unauthorized Errors
# =============================================================================


class AuthenticationError(AppException):
    """Missing or rejected credentials (401)."""

    def __init__(self, detail: str = "Not authorized", code: str | None = None, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            log_level="warning",
            code=code,
            **log_context,
        )


class TokenExpiredError(AuthenticationError):
    """Token signature is valid but its expiry has passed."""

    CODE = "TOKEN_EXPIRED"

    def __init__(self, detail: str = "Token expired, please refresh", **log_context: Any):
        super().__init__(detail, code=self.CODE, **log_context)


class InvalidTokenError(AuthenticationError):
    """Token is malformed, badly signed, or of the wrong type."""

    CODE = "TOKEN_INVALID"

    def __init__(self, detail: str = "Not authorized, invalid token", **log_context: Any):
        super().__init__(detail, code=self.CODE, **log_context)


# =============================================================================
# 403 Forbidden Errors
# =============================================================================


class ForbiddenError(AppException):
    """
    Authorization/permission error (403).

    Usage:
        raise ForbiddenError("access this room")
    """

    def __init__(self, action: str | None = None, detail: str | None = None, **log_context: Any):
        if detail is None:
            detail = f"Not authorized to {action}" if action else "Access denied"

        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            log_level="warning",
            action=action,
            **log_context,
        )


class InsufficientRoleError(ForbiddenError):
    """User doesn't have one of the required roles."""

    def __init__(self, role: str, required_roles: list[str], **log_context: Any):
        super().__init__(
            detail=f"Role '{role}' is not authorized to access this resource",
            role=role,
            required_roles=required_roles,
            **log_context,
        )


# =============================================================================
# 404 Not Found Errors
# =============================================================================


class NotFoundError(AppException):
    """
    Entity not found error (404).

    Usage:
        raise NotFoundError("Competition", competition_id)
    """

    def __init__(self, entity: str, entity_id: int | str | None = None, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{entity} not found",
            log_level="warning",
            entity=entity,
            entity_id=entity_id,
            **log_context,
        )


# =============================================================================
# 409 Conflict Errors
# =============================================================================


class ConflictError(AppException):
    """
    Resource conflict error (409).

    Usage:
        raise ConflictError("User already exists with this email")
    """

    def __init__(self, detail: str, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            log_level="warning",
            **log_context,
        )


# =============================================================================
# 500 / 502 / 503 Errors
# =============================================================================


class InternalError(AppException):
    """
    Internal server error (500).

    Usage:
        raise InternalError("Failed to persist message", room_id=room_id)
    """

    def __init__(self, detail: str = "Server error", **log_context: Any):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            log_level="error",
            **log_context,
        )


class ExternalServiceError(AppException):
    """External service error (502 or 503)."""

    def __init__(
        self,
        service: str,
        is_unavailable: bool = False,
        detail: str | None = None,
        retry_after: int | None = None,
        **log_context: Any,
    ):
        if is_unavailable:
            status_code = status.HTTP_503_SERVICE_UNAVAILABLE
            detail = detail or f"{service} is temporarily unavailable"
        else:
            status_code = status.HTTP_502_BAD_GATEWAY
            detail = detail or f"Error communicating with {service}"

        headers = {"Retry-After": str(retry_after)} if retry_after else None

        super().__init__(
            status_code=status_code,
            detail=detail,
            log_level="error",
            headers=headers,
            service=service,
            **log_context,
        )

"""
Authentication and authorization utilities.

- Access / refresh JWTs (HS256, distinct secrets, each with a unique jti)
- httpOnly cookie helpers
- FastAPI dependencies: current_user, require_roles
"""

from __future__ import annotations

import time
import uuid
from typing import TYPE_CHECKING, Any, Callable

import jwt
from fastapi import Cookie, Depends, Header, Response
from sqlalchemy.orm import Session

from shared.config.constants import Cookies, UserRole
from shared.config.logging import get_logger, mask_jti
from shared.config.settings import settings
from shared.infrastructure.db import get_db
from shared.utils.exceptions import (
    AuthenticationError,
    InsufficientRoleError,
    InvalidTokenError,
    TokenExpiredError,
)

if TYPE_CHECKING:
    from rest_api.models import User

logger = get_logger(__name__)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


# =============================================================================
# JWT Functions
# =============================================================================


def _secret_for(token_type: str) -> str:
    if token_type == REFRESH_TOKEN_TYPE:
        return settings.jwt_refresh_secret
    return settings.jwt_secret


def access_token_ttl() -> int:
    return settings.jwt_access_token_expire_minutes * 60


def refresh_token_ttl() -> int:
    return settings.jwt_refresh_token_expire_days * 24 * 60 * 60


def sign_jwt(
    user_id: int,
    token_type: str = ACCESS_TOKEN_TYPE,
    ttl_seconds: int | None = None,
    issued_at: int | None = None,
) -> str:
    """
    Sign a JWT for the given user.

    Args:
        user_id: Subject of the token.
        token_type: "access" or "refresh"; selects the secret and default lifetime.
        ttl_seconds: Token lifetime in seconds. Defaults to the configured expiry.
        issued_at: Override for the issue time (unix seconds).

    Returns:
        Signed JWT token string.
    """
    if ttl_seconds is None:
        ttl_seconds = refresh_token_ttl() if token_type == REFRESH_TOKEN_TYPE else access_token_ttl()

    now = issued_at if issued_at is not None else int(time.time())
    data = {
        "sub": str(user_id),
        "type": token_type,
        "iat": now,
        "exp": now + ttl_seconds,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(data, _secret_for(token_type), algorithm=settings.jwt_algorithm)


def sign_access_token(user_id: int) -> str:
    return sign_jwt(user_id, ACCESS_TOKEN_TYPE)


def sign_refresh_token(user_id: int) -> str:
    return sign_jwt(user_id, REFRESH_TOKEN_TYPE)


def verify_jwt(token: str, token_type: str = ACCESS_TOKEN_TYPE) -> dict[str, Any]:
    """
    Verify and decode a JWT of the expected type.

    Returns:
        Decoded token claims; `sub` is guaranteed to be an integer string.

    Raises:
        TokenExpiredError: Signature valid but token expired.
        InvalidTokenError: Anything else (bad signature, wrong type, malformed).
    """
    try:
        payload = jwt.decode(
            token,
            _secret_for(token_type),
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp", "iat", "type"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError(token_type=token_type)
    except jwt.InvalidTokenError as e:
        logger.warning("JWT validation failed", error=str(e), token_type=token_type)
        raise InvalidTokenError(token_type=token_type)

    if payload.get("type") != token_type:
        raise InvalidTokenError(
            token_type=token_type,
            reason="wrong token type",
            jti=mask_jti(payload.get("jti")),
        )

    try:
        int(payload["sub"])
    except (TypeError, ValueError):
        raise InvalidTokenError(token_type=token_type, reason="malformed subject")

    return payload


def verify_access_token(token: str) -> dict[str, Any]:
    return verify_jwt(token, ACCESS_TOKEN_TYPE)


def verify_refresh_token(token: str) -> dict[str, Any]:
    return verify_jwt(token, REFRESH_TOKEN_TYPE)


# =============================================================================
# Cookies
# =============================================================================


def _cookie_kwargs() -> dict[str, Any]:
    return {
        "httponly": True,
        "secure": settings.cookie_secure,
        "samesite": settings.cookie_samesite,
        "domain": settings.cookie_domain or None,
    }


def set_token_cookies(response: Response, access_token: str, refresh_token: str) -> None:
    """Set both auth cookies; the refresh cookie is only sent to the refresh endpoint."""
    response.set_cookie(
        key=Cookies.ACCESS_TOKEN,
        value=access_token,
        max_age=access_token_ttl(),
        path=Cookies.ACCESS_TOKEN_PATH,
        **_cookie_kwargs(),
    )
    response.set_cookie(
        key=Cookies.REFRESH_TOKEN,
        value=refresh_token,
        max_age=refresh_token_ttl(),
        path=Cookies.REFRESH_TOKEN_PATH,
        **_cookie_kwargs(),
    )


def clear_token_cookies(response: Response) -> None:
    response.delete_cookie(key=Cookies.ACCESS_TOKEN, path=Cookies.ACCESS_TOKEN_PATH, **_cookie_kwargs())
    response.delete_cookie(key=Cookies.REFRESH_TOKEN, path=Cookies.REFRESH_TOKEN_PATH, **_cookie_kwargs())


def issue_session(response: Response, user_id: int) -> str:
    """
    Issue a fresh access/refresh pair as cookies.

    Returns:
        The access token (also returned in response bodies).
    """
    access_token = sign_access_token(user_id)
    set_token_cookies(response, access_token, sign_refresh_token(user_id))
    return access_token


# =============================================================================
# Token extraction
# =============================================================================


def get_bearer_token(authorization: str | None) -> str | None:
    """Return the token from an `Authorization: Bearer <token>` header, if any."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def extract_token(authorization: str | None, cookie_token: str | None) -> str | None:
    """Prefer the bearer header, else fall back to the access token cookie."""
    return get_bearer_token(authorization) or cookie_token or None


def resolve_user(db: Session, token: str) -> "User":
    """
    Verify an access token and load its user.

    Raises:
        TokenExpiredError / InvalidTokenError: token rejected
        AuthenticationError: user no longer exists
    """
    # Import here to keep shared free of model imports at load time
    from rest_api.models import User

    payload = verify_access_token(token)
    user = db.get(User, int(payload["sub"]))
    if user is None:
        raise AuthenticationError("Not authorized, user not found", user_id=payload["sub"])
    return user


# =============================================================================
# FastAPI dependencies
# =============================================================================


def current_user(
    authorization: str | None = Header(default=None, alias="Authorization"),
    access_cookie: str | None = Cookie(default=None, alias=Cookies.ACCESS_TOKEN),
    db: Session = Depends(get_db),
) -> "User":
    """
    FastAPI dependency resolving the authenticated user.

    Usage:
        @router.get("/me")
        def me(user: User = Depends(current_user)):
            ...
    """
    token = extract_token(authorization, access_cookie)
    if not token:
        raise AuthenticationError("Not authorized, no token provided")
    return resolve_user(db, token)


def require_roles(*roles: UserRole | str) -> Callable[..., "User"]:
    """
    Build a dependency that authenticates and then checks role membership.

    Usage:
        @router.post("", dependencies=[Depends(require_roles(UserRole.ADMIN))])
        admin: User = Depends(require_roles(UserRole.ADMIN, UserRole.SUPPORT))
    """
    allowed = frozenset(UserRole(role).value for role in roles)

    def _guard(user: "User" = Depends(current_user)) -> "User":
        if user.role not in allowed:
            raise InsufficientRoleError(user.role, sorted(allowed), user_id=user.id)
        return user

    return _guard

"""
Authentication router.
Handles registration, login, session refresh, logout and Google OAuth.
"""

import secrets
from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, Cookie, Depends, Query, Request, Response, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from rest_api.models import User
from rest_api.services.domain import UserService
from rest_api.services.oauth import GoogleOAuthClient, OAuthExchangeError, get_google_client
from shared.config.constants import Cookies
from shared.config.logging import audit_auth_event
from shared.config.logging import auth_logger as logger
from shared.config.settings import settings
from shared.infrastructure.db import get_db
from shared.security.auth import (
    clear_token_cookies,
    current_user,
    issue_session,
    set_token_cookies,
    sign_access_token,
    sign_refresh_token,
    verify_refresh_token,
)
from shared.security.rate_limit import limiter
from shared.utils.exceptions import AuthenticationError, ExternalServiceError
from shared.utils.schemas import (
    AuthResponse,
    CurrentUserResponse,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    SuccessResponse,
    TokenRefreshResponse,
    UserOutput,
    UserProfileOutput,
)


router = APIRouter(prefix="/api/auth", tags=["auth"])


# =============================================================================
# OAuth state cookie
# =============================================================================


def _set_oauth_state_cookie(response: Response, state: str) -> None:
    # Lax so the cookie survives the top-level redirect back from Google
    response.set_cookie(
        key=Cookies.OAUTH_STATE,
        value=state,
        max_age=Cookies.OAUTH_STATE_MAX_AGE,
        path=Cookies.OAUTH_STATE_PATH,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="none" if settings.cookie_secure else "lax",
        domain=settings.cookie_domain or None,
    )


def _clear_oauth_state_cookie(response: Response) -> None:
    response.delete_cookie(
        key=Cookies.OAUTH_STATE,
        path=Cookies.OAUTH_STATE_PATH,
        domain=settings.cookie_domain or None,
    )


def _oauth_error_redirect(reason: str) -> RedirectResponse:
    logger.warning("OAUTH_FAILED", provider="google", reason=reason)
    response = RedirectResponse(f"{settings.frontend_url}/auth/oauth-error", status_code=status.HTTP_302_FOUND)
    _clear_oauth_state_cookie(response)
    return response


# =============================================================================
# Local accounts
# =============================================================================


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.login_rate_limit)
def register(
    request: Request,
    response: Response,
    body: RegisterRequest,
    db: Session = Depends(get_db),
) -> AuthResponse:
    """
    Create a local account and start a session.

    Sets `accessToken` and `refreshToken` cookies; the access token is also
    returned in the body for clients that send it as a bearer header.
    """
    user = UserService(db).register(body)
    access_token = issue_session(response, user.id)

    audit_auth_event("REGISTER", user_id=user.id, email=user.email, success=True)
    return AuthResponse(
        message="Registration successful",
        user=UserOutput.model_validate(user),
        access_token=access_token,
    )


@router.post("/login", response_model=AuthResponse)
@limiter.limit(settings.login_rate_limit)
def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    db: Session = Depends(get_db),
) -> AuthResponse:
    """
    Authenticate with email and password.

    OAuth-only accounts are told which provider to use; no hash comparison
    is attempted for them.
    """
    client_ip = request.client.host if request.client else None
    try:
        user = UserService(db).authenticate(body.email, body.password)
    except AuthenticationError as e:
        audit_auth_event(
            "LOGIN",
            email=body.email,
            success=False,
            reason=str(e.detail),
            ip_address=client_ip,
        )
        raise

    access_token = issue_session(response, user.id)
    audit_auth_event("LOGIN", user_id=user.id, email=user.email, success=True, ip_address=client_ip)
    return AuthResponse(
        message="Login successful",
        user=UserOutput.model_validate(user),
        access_token=access_token,
    )


@router.get("/me", response_model=CurrentUserResponse)
def me(user: User = Depends(current_user), db: Session = Depends(get_db)) -> CurrentUserResponse:
    """Current user with registered competitions populated."""
    profile = UserService(db).get_profile(user.id)
    return CurrentUserResponse(user=UserProfileOutput.model_validate(profile))


@router.post("/refresh-token", response_model=TokenRefreshResponse)
def refresh_token(
    response: Response,
    body: RefreshTokenRequest | None = None,
    refresh_cookie: str | None = Cookie(default=None, alias=Cookies.REFRESH_TOKEN),
    db: Session = Depends(get_db),
) -> TokenRefreshResponse:
    """
    Rotate the session.

    The refresh token comes from its cookie, else from the body. Both tokens
    are reissued on success.
    """
    token = refresh_cookie or (body.refresh_token if body else None)
    if not token:
        raise AuthenticationError("No refresh token provided")

    try:
        payload = verify_refresh_token(token)
    except AuthenticationError:
        raise AuthenticationError("Invalid or expired refresh token, please login again") from None

    user = db.get(User, int(payload["sub"]))
    if user is None:
        raise AuthenticationError("Not authorized, user not found", user_id=payload["sub"])

    access_token = issue_session(response, user.id)
    logger.info("TOKEN_REFRESHED", user_id=user.id)
    return TokenRefreshResponse(message="Token refreshed", access_token=access_token)


@router.post("/logout", response_model=SuccessResponse)
def logout(response: Response) -> SuccessResponse:
    """
    Clear both auth cookies.

    Tokens are not revoked server-side; an already issued access token stays
    valid until it expires.
    """
    clear_token_cookies(response)
    return SuccessResponse(message="Logged out successfully")


# =============================================================================
# Google OAuth
# =============================================================================


@router.get("/google")
def google_login(client: GoogleOAuthClient = Depends(get_google_client)) -> RedirectResponse:
    """Redirect to Google's consent screen with a fresh `state`."""
    if not client.configured:
        raise ExternalServiceError("Google OAuth", is_unavailable=True, detail="Google OAuth is not configured")

    state = secrets.token_urlsafe(32)
    response = RedirectResponse(client.build_authorize_url(state), status_code=status.HTTP_302_FOUND)
    _set_oauth_state_cookie(response, state)
    return response


@router.get("/google/callback")
async def google_callback(
    code: str | None = Query(default=None),
    state: str | None = Query(default=None),
    error: str | None = Query(default=None),
    state_cookie: str | None = Cookie(default=None, alias=Cookies.OAUTH_STATE),
    client: GoogleOAuthClient = Depends(get_google_client),
    db: Session = Depends(get_db),
) -> RedirectResponse:
    """
    Finish the authorization-code flow and hand the access token to the
    frontend via `{FRONTEND_URL}/auth/oauth-success?token=...`.
    """
    if error:
        return _oauth_error_redirect(error)
    if not code:
        return _oauth_error_redirect("missing_code")
    if not state or not state_cookie or not secrets.compare_digest(state, state_cookie):
        return _oauth_error_redirect("state_mismatch")

    try:
        profile = await client.exchange_code(code)
    except (httpx.HTTPError, OAuthExchangeError) as e:
        return _oauth_error_redirect(str(e) or type(e).__name__)

    user = UserService(db).resolve_oauth_user(profile)

    access_token = sign_access_token(user.id)
    response = RedirectResponse(
        f"{settings.frontend_url}/auth/oauth-success?{urlencode({'token': access_token})}",
        status_code=status.HTTP_302_FOUND,
    )
    set_token_cookies(response, access_token, sign_refresh_token(user.id))
    _clear_oauth_state_cookie(response)

    audit_auth_event("OAUTH_LOGIN", user_id=user.id, email=user.email, success=True, provider="google")
    return response

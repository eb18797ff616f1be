"""
Security module: Authentication, password hashing, rate limiting.
"""

from shared.security.auth import (
    sign_jwt,
    sign_access_token,
    sign_refresh_token,
    verify_jwt,
    verify_access_token,
    verify_refresh_token,
    set_token_cookies,
    clear_token_cookies,
    issue_session,
    get_bearer_token,
    extract_token,
    resolve_user,
    current_user,
    require_roles,
)
from shared.security.password import hash_password, verify_password
from shared.security.rate_limit import limiter, rate_limit_exceeded_handler

__all__ = [
    # auth
    "sign_jwt",
    "sign_access_token",
    "sign_refresh_token",
    "verify_jwt",
    "verify_access_token",
    "verify_refresh_token",
    "set_token_cookies",
    "clear_token_cookies",
    "issue_session",
    "get_bearer_token",
    "extract_token",
    "resolve_user",
    "current_user",
    "require_roles",
    # password
    "hash_password",
    "verify_password",
    # rate_limit
    "limiter",
    "rate_limit_exceeded_handler",
]

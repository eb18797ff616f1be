"""OAuth provider clients."""

from .google import (
    GOOGLE_AUTHORIZE_URL,
    GOOGLE_SCOPE,
    GOOGLE_TOKEN_URL,
    GOOGLE_USERINFO_URL,
    GoogleOAuthClient,
    OAuthExchangeError,
    close_google_client,
    get_google_client,
    google_oauth_client,
)

__all__ = [
    "GOOGLE_AUTHORIZE_URL",
    "GOOGLE_SCOPE",
    "GOOGLE_TOKEN_URL",
    "GOOGLE_USERINFO_URL",
    "GoogleOAuthClient",
    "OAuthExchangeError",
    "close_google_client",
    "get_google_client",
    "google_oauth_client",
]

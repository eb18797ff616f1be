"""
Google OAuth 2.0 authorization-code flow over httpx.
"""

import asyncio
from typing import Optional
from urllib.parse import urlencode

import httpx

from rest_api.services.domain.user_service import OAuthProfile
from shared.config.constants import OAuthProvider
from shared.config.logging import auth_logger as logger
from shared.config.settings import settings

GOOGLE_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"
GOOGLE_SCOPE = "openid email profile"


class OAuthExchangeError(Exception):
    """Code exchange or profile fetch did not yield a usable identity."""


class GoogleOAuthClient:
    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        redirect_uri: str | None = None,
        timeout: float = 10.0,
    ):
        self.client_id = client_id if client_id is not None else settings.google_client_id
        self.client_secret = client_secret if client_secret is not None else settings.google_client_secret
        self.redirect_uri = redirect_uri or settings.google_callback_url
        self.timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None
        self._client_lock = asyncio.Lock()

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None and not self._client.is_closed:
            return self._client

        async with self._client_lock:
            if self._client is None or self._client.is_closed:
                self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    def build_authorize_url(self, state: str) -> str:
        """Consent screen URL carrying our client id, callback and `state`."""
        query = urlencode({
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": GOOGLE_SCOPE,
            "state": state,
            "access_type": "online",
            "prompt": "select_account",
        })
        return f"{GOOGLE_AUTHORIZE_URL}?{query}"

    async def exchange_code(self, code: str) -> OAuthProfile:
        """
        Trade an authorization code for the caller's Google profile.

        Raises:
            httpx.HTTPError: transport failure or non-2xx response
            OAuthExchangeError: token or profile missing required fields
        """
        client = await self._get_client()

        token_response = await client.post(
            GOOGLE_TOKEN_URL,
            data={
                "code": code,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uri": self.redirect_uri,
                "grant_type": "authorization_code",
            },
        )
        token_response.raise_for_status()
        access_token = token_response.json().get("access_token")
        if not access_token:
            raise OAuthExchangeError("token response without access_token")

        profile_response = await client.get(
            GOOGLE_USERINFO_URL,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        profile_response.raise_for_status()
        info = profile_response.json()

        if not info.get("sub") or not info.get("email"):
            raise OAuthExchangeError("profile without sub or email")

        logger.debug("Google profile fetched", provider_id=info["sub"])
        return OAuthProfile(
            provider=OAuthProvider.GOOGLE,
            provider_id=str(info["sub"]),
            email=info["email"].lower(),
            name=info.get("name") or info["email"].split("@")[0],
            picture=info.get("picture"),
        )


# Global client instance
google_oauth_client = GoogleOAuthClient()


async def close_google_client() -> None:
    await google_oauth_client.close()


def get_google_client() -> GoogleOAuthClient:
    """FastAPI dependency returning the shared Google OAuth client."""
    return google_oauth_client

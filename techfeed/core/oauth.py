"""OAuth 2.0 authorization-code clients for Google and GitHub.

Each client builds the provider's authorize URL and turns a callback ``code``
into an :class:`OAuthIdentity`. Any transport, HTTP or payload problem is
reported as :class:`OAuthProviderError`; the route layer turns that into a
redirect back to the login page.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urlencode

import httpx

from techfeed.core.config import Settings
from techfeed.core.errors import OAuthProviderError
from techfeed.core.identity import OAuthIdentity, Provider, github_placeholder_email
from techfeed.core.logging import get_logger

logger = get_logger(__name__)


class OAuthClient:
    """Base authorization-code client. Subclasses fetch the user profile."""

    provider: Provider
    authorize_endpoint: str
    token_endpoint: str
    scopes: tuple[str, ...] = ()

    def __init__(
        self,
        client_id: str | None,
        client_secret: str | None,
        callback_url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.callback_url = callback_url
        self.timeout = timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret and self.callback_url)

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.callback_url,
            "response_type": "code",
            "scope": " ".join(self.scopes),
            "state": state,
        }
        params.update(self._extra_authorize_params())
        return f"{self.authorize_endpoint}?{urlencode(params)}"

    def _extra_authorize_params(self) -> dict[str, str]:
        return {}

    async def fetch_identity(self, code: str) -> OAuthIdentity:
        """Exchange *code* for an access token and load the provider profile."""
        if not self.configured:
            raise OAuthProviderError(f"{self.provider.value} login is not configured")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                access_token = await self._exchange_code(client, code)
                return await self._fetch_identity(client, access_token)
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "OAuth provider returned an error",
                provider=self.provider.value,
                status=exc.response.status_code,
                url=str(exc.request.url),
            )
            raise OAuthProviderError(
                f"{self.provider.value} responded with HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("OAuth provider unreachable", provider=self.provider.value, error=str(exc))
            raise OAuthProviderError(f"Could not reach {self.provider.value}") from exc
        except (ValueError, KeyError, TypeError) as exc:
            # json decode failures and unexpected payload shapes
            logger.warning("OAuth payload rejected", provider=self.provider.value, error=str(exc))
            raise OAuthProviderError(f"Unexpected response from {self.provider.value}") from exc

    async def _exchange_code(self, client: httpx.AsyncClient, code: str) -> str:
        resp = await client.post(
            self.token_endpoint,
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "code": code,
                "redirect_uri": self.callback_url,
                "grant_type": "authorization_code",
            },
            headers={"Accept": "application/json"},
        )
        resp.raise_for_status()
        data = resp.json()
        access_token = data.get("access_token")
        if not access_token:
            # GitHub reports bad codes with HTTP 200 + {"error": ...}
            detail = data.get("error_description") or data.get("error") or "no access token"
            raise OAuthProviderError(f"{self.provider.value} token exchange failed: {detail}")
        return access_token

    async def _fetch_identity(self, client: httpx.AsyncClient, access_token: str) -> OAuthIdentity:
        raise NotImplementedError


class GoogleOAuthClient(OAuthClient):
    provider = Provider.GOOGLE
    authorize_endpoint = "https://accounts.google.com/o/oauth2/v2/auth"
    token_endpoint = "https://oauth2.googleapis.com/token"
    userinfo_endpoint = "https://openidconnect.googleapis.com/v1/userinfo"
    scopes = ("openid", "email", "profile")

    async def _fetch_identity(self, client: httpx.AsyncClient, access_token: str) -> OAuthIdentity:
        resp = await client.get(
            self.userinfo_endpoint,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        resp.raise_for_status()
        profile: dict[str, Any] = resp.json()

        email = profile.get("email")
        if not email:
            raise OAuthProviderError("Google profile has no email address")
        return OAuthIdentity(
            provider=self.provider,
            provider_id=str(profile["sub"]),
            email=email,
            display_name=profile.get("name") or email,
        )


class GitHubOAuthClient(OAuthClient):
    provider = Provider.GITHUB
    authorize_endpoint = "https://github.com/login/oauth/authorize"
    token_endpoint = "https://github.com/login/oauth/access_token"
    api_base = "https://api.github.com"
    scopes = ("user:email",)

    def _extra_authorize_params(self) -> dict[str, str]:
        return {"allow_signup": "true"}

    async def _fetch_identity(self, client: httpx.AsyncClient, access_token: str) -> OAuthIdentity:
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        resp = await client.get(f"{self.api_base}/user", headers=headers)
        resp.raise_for_status()
        profile: dict[str, Any] = resp.json()
        username = profile["login"]

        email = await self._primary_email(client, headers) or profile.get("email")
        if not email:
            email = github_placeholder_email(username)

        return OAuthIdentity(
            provider=self.provider,
            provider_id=str(profile["id"]),
            email=email,
            display_name=username,
        )

    async def _primary_email(self, client: httpx.AsyncClient, headers: dict[str, str]) -> str | None:
        """Primary verified address from /user/emails; None when unavailable."""
        resp = await client.get(f"{self.api_base}/user/emails", headers=headers)
        if resp.status_code != 200:
            # Token lacks the user:email scope; fall back to the public profile
            return None
        emails = resp.json()
        if not isinstance(emails, list):
            return None
        for entry in emails:
            if isinstance(entry, dict) and entry.get("primary") and entry.get("verified"):
                return entry.get("email")
        return None


def build_oauth_clients(
    settings: Settings, transport: httpx.AsyncBaseTransport | None = None
) -> dict[Provider, OAuthClient]:
    return {
        Provider.GOOGLE: GoogleOAuthClient(
            settings.google_client_id,
            settings.google_client_secret,
            settings.google_callback_url,
            timeout=settings.oauth_timeout,
            transport=transport,
        ),
        Provider.GITHUB: GitHubOAuthClient(
            settings.github_client_id,
            settings.github_client_secret,
            settings.github_callback_url,
            timeout=settings.oauth_timeout,
            transport=transport,
        ),
    }

"""
OAuth token lifecycle helpers, one per identity provider.

``validate`` returns the stored access token while it is still valid and
otherwise performs the provider's refresh-grant exchange. Every failure of
that exchange is a ``TokenRefreshError``: it needs the user to reconnect,
not a retry.
"""
from abc import ABC, abstractmethod
from typing import Callable, List, Optional
import asyncio
import base64
import time

import httpx
from msal import ConfidentialClientApplication
from pydantic import BaseModel

from meeting_engine.config import settings
from meeting_engine.exceptions import TokenRefreshError
from meeting_engine.logging_config import get_logger
from meeting_engine.meeting.interfaces import TokenConfig
from meeting_engine.monitoring import record_error, token_refreshes_total

logger = get_logger(__name__)


class RefreshedToken(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None


def _now_millis() -> int:
    return int(time.time() * 1000)


class TokenLifecycleHelper(ABC):
    """Expiry check plus refresh-grant exchange for one provider."""

    provider: str = ""
    # A stored token with no expiry is refreshed once; every refresh records a finite expiry
    null_expiry_means_expired: bool = True

    def __init__(self, margin_seconds: int = 0, clock: Optional[Callable[[], int]] = None,
                 default_lifetime_seconds: Optional[int] = None):
        self.margin_seconds = margin_seconds
        self.default_lifetime_seconds = default_lifetime_seconds or settings.default_token_lifetime_seconds
        self._clock = clock or _now_millis

    def is_expired(self, token_config: TokenConfig) -> bool:
        if token_config.expiry_date is None:
            return self.null_expiry_means_expired
        return self._clock() + self.margin_seconds * 1000 >= token_config.expiry_date

    async def validate(self, token_config: TokenConfig) -> str:
        """
        Return a valid access token for ``token_config``.

        On refresh the config is updated in place (access token, expiry and,
        for rotating providers, refresh token) and flagged ``refreshed``.

        Raises:
            TokenRefreshError: no refresh token, or the exchange failed
        """
        if not self.is_expired(token_config):
            return token_config.access_token

        if not token_config.refresh_token:
            token_refreshes_total.labels(provider=self.provider, status="missing_refresh_token").inc()
            record_error("TokenRefreshError", f"{self.provider}_token_helper")
            raise TokenRefreshError(
                self.provider,
                f"{self.provider} access token expired and no refresh token is stored; reconnect the integration",
            )

        logger.info("token_refresh_started", provider=self.provider, integration_id=token_config.integration_id)
        try:
            refreshed = await self._refresh(token_config.refresh_token)
        except TokenRefreshError:
            token_refreshes_total.labels(provider=self.provider, status="failed").inc()
            record_error("TokenRefreshError", f"{self.provider}_token_helper")
            raise
        except Exception as e:
            token_refreshes_total.labels(provider=self.provider, status="failed").inc()
            record_error(type(e).__name__, f"{self.provider}_token_helper")
            logger.error("token_refresh_failed", provider=self.provider, error=str(e), error_type=type(e).__name__)
            raise TokenRefreshError(self.provider, f"{self.provider} token refresh failed: {e}") from e

        token_config.access_token = refreshed.access_token
        if refreshed.refresh_token:
            token_config.refresh_token = refreshed.refresh_token
        # A missing expires_in still gets a finite expiry so the next call does not refresh again
        expires_in = refreshed.expires_in or self.default_lifetime_seconds
        token_config.expiry_date = self._clock() + expires_in * 1000
        token_config.refreshed = True

        token_refreshes_total.labels(provider=self.provider, status="success").inc()
        logger.info(
            "token_refreshed",
            provider=self.provider,
            integration_id=token_config.integration_id,
            expires_in=expires_in,
        )
        return token_config.access_token

    @abstractmethod
    async def _refresh(self, refresh_token: str) -> RefreshedToken:
        """Exchange a refresh token at the provider's token endpoint."""


class _HttpRefreshHelper(TokenLifecycleHelper):
    """Shared response handling for form-post token endpoints."""

    def __init__(self, token_url: str, transport: Optional[httpx.AsyncBaseTransport] = None, **kwargs):
        super().__init__(**kwargs)
        self.token_url = token_url
        self._transport = transport

    def _parse(self, response: httpx.Response) -> RefreshedToken:
        try:
            data = response.json()
        except ValueError:
            data = {}
        if response.status_code >= 400 or "access_token" not in data:
            reason = data.get("error_description") or data.get("reason") or data.get("error") or response.text[:200]
            logger.warning(
                "token_refresh_rejected",
                provider=self.provider,
                status_code=response.status_code,
                reason=reason,
            )
            raise TokenRefreshError(self.provider, f"{self.provider} refused the refresh token: {reason}")
        return RefreshedToken(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expires_in=data.get("expires_in"),
        )


class ZoomTokenHelper(_HttpRefreshHelper):
    """Zoom user-level OAuth. Zoom rotates the refresh token on every exchange."""

    provider = "zoom"

    def __init__(self, client_id: str, client_secret: str, token_url: str = None, **kwargs):
        super().__init__(token_url or settings.zoom_token_url, **kwargs)
        self.client_id = client_id
        self.client_secret = client_secret

    async def _refresh(self, refresh_token: str) -> RefreshedToken:
        credentials = f"{self.client_id}:{self.client_secret}"
        encoded_credentials = base64.b64encode(credentials.encode()).decode()
        headers = {
            "Authorization": f"Basic {encoded_credentials}",
            "Content-Type": "application/x-www-form-urlencoded",
        }
        async with httpx.AsyncClient(timeout=settings.request_timeout_seconds, transport=self._transport) as client:
            response = await client.post(
                self.token_url,
                headers=headers,
                data={"grant_type": "refresh_token", "refresh_token": refresh_token},
            )
        return self._parse(response)


class GoogleTokenHelper(_HttpRefreshHelper):
    """Google OAuth2 refresh-token exchange."""

    provider = "google"

    def __init__(self, client_id: str, client_secret: str, token_url: str = None, **kwargs):
        super().__init__(token_url or settings.google_token_url, **kwargs)
        self.client_id = client_id
        self.client_secret = client_secret

    async def _refresh(self, refresh_token: str) -> RefreshedToken:
        async with httpx.AsyncClient(timeout=settings.request_timeout_seconds, transport=self._transport) as client:
            response = await client.post(
                self.token_url,
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "refresh_token": refresh_token,
                    "grant_type": "refresh_token",
                },
            )
        return self._parse(response)


class MicrosoftTokenHelper(TokenLifecycleHelper):
    """Microsoft identity platform refresh through MSAL."""

    provider = "microsoft"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        authority: str = None,
        scopes: List[str] = None,
        msal_app: Optional[ConfidentialClientApplication] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.client_id = client_id
        self.client_secret = client_secret
        self.authority = authority or settings.microsoft_authority
        self.scopes = scopes or settings.microsoft_scopes
        self._msal_app = msal_app

    def _get_msal_app(self) -> ConfidentialClientApplication:
        """Get or create the MSAL application instance."""
        if self._msal_app is None:
            self._msal_app = ConfidentialClientApplication(
                self.client_id,
                authority=self.authority,
                client_credential=self.client_secret,
            )
        return self._msal_app

    async def _refresh(self, refresh_token: str) -> RefreshedToken:
        msal_app = self._get_msal_app()
        # MSAL is synchronous; keep the event loop free while it talks to the token endpoint
        result = await asyncio.to_thread(
            msal_app.acquire_token_by_refresh_token,
            refresh_token,
            scopes=self.scopes,
        )
        if not result or "error" in result:
            result = result or {}
            raise TokenRefreshError(
                self.provider,
                f"microsoft refused the refresh token: {result.get('error')}: {result.get('error_description')}",
            )
        return RefreshedToken(
            access_token=result["access_token"],
            refresh_token=result.get("refresh_token"),
            expires_in=result.get("expires_in"),
        )


def build_token_helpers(
    transport: Optional[httpx.AsyncBaseTransport] = None,
    msal_app: Optional[ConfidentialClientApplication] = None,
) -> dict:
    """Token helpers for all three providers, configured from settings."""
    return {
        "zoom": ZoomTokenHelper(
            settings.zoom_client_id or "",
            settings.zoom_client_secret or "",
            margin_seconds=settings.zoom_token_margin_seconds,
            transport=transport,
        ),
        "google": GoogleTokenHelper(
            settings.google_client_id or "",
            settings.google_client_secret or "",
            margin_seconds=settings.google_token_margin_seconds,
            transport=transport,
        ),
        "microsoft": MicrosoftTokenHelper(
            settings.microsoft_client_id or "",
            settings.microsoft_client_secret or "",
            margin_seconds=settings.microsoft_token_margin_seconds,
            msal_app=msal_app,
        ),
    }

"""
HTTP plumbing shared by all vendor providers.

Translates ``httpx`` outcomes into the engine's exception taxonomy, applies
per-API rate limiting and records request metrics. Strategies never see raw
``httpx`` exceptions.
"""
from typing import Any, Dict, Optional
import time

import httpx

from meeting_engine.config import settings
from meeting_engine.exceptions import (
    ProviderOperationError,
    ProviderResourceNotFoundError,
    TokenRefreshError,
    TransientProviderError,
)
from meeting_engine.logging_config import get_logger
from meeting_engine.meeting.interfaces import TokenConfig
from meeting_engine.meeting.tokens import TokenLifecycleHelper
from meeting_engine.monitoring import provider_request_duration, provider_requests_total, record_error
from meeting_engine.rate_limiters import RateLimiters, rate_limiters as default_rate_limiters
from meeting_engine.utils import async_retry

logger = get_logger(__name__)


class HttpProviderMixin:
    """Authenticated JSON calls against one vendor API."""

    api_base: str = ""
    # Name used for rate limiting, metrics and error payloads
    api_name: str = ""

    def __init__(
        self,
        token_helper: TokenLifecycleHelper,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        limiters: Optional[RateLimiters] = None,
        timeout: Optional[float] = None,
    ):
        self.token_helper = token_helper
        self._transport = transport
        self._limiters = limiters or default_rate_limiters
        self._timeout = timeout or settings.request_timeout_seconds

    async def validate_and_refresh_token(self, token_config: TokenConfig) -> str:
        return await self.token_helper.validate(token_config)

    def _handle_http_error(self, response: httpx.Response, operation: str) -> None:
        """
        Raise the exception matching a failed response.

        Raises:
            TokenRefreshError: 401, the stored grant is no longer accepted
            ProviderResourceNotFoundError: 404 / 410
            TransientProviderError: 429 / 5xx
            ProviderOperationError: any other rejection
        """
        status_code = response.status_code
        provider_requests_total.labels(
            provider=self.api_name, operation=operation, status=f"error_{status_code}"
        ).inc()
        error_text = response.text[:500] if response.text else "No details"

        if status_code == 401:
            record_error("TokenRefreshError", f"{self.api_name}_provider")
            raise TokenRefreshError(self.api_name, f"{self.api_name} rejected the access token during {operation}")
        if status_code in (404, 410):
            logger.debug("provider_resource_not_found", provider=self.api_name, operation=operation)
            raise ProviderResourceNotFoundError(
                f"Resource not found: {operation}", self.api_name, operation, status_code
            )
        if status_code == 429 or status_code >= 500:
            retry_after = response.headers.get("Retry-After")
            record_error("TransientProviderError", f"{self.api_name}_provider")
            raise TransientProviderError(
                f"{self.api_name} {operation} failed with {status_code}: {error_text}",
                self.api_name,
                operation,
                status_code,
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
            )
        record_error("ProviderOperationError", f"{self.api_name}_provider")
        raise ProviderOperationError(
            f"{self.api_name} {operation} failed with {status_code}: {error_text}",
            self.api_name,
            operation,
            status_code,
        )

    async def _send(
        self,
        method: str,
        path: str,
        operation: str,
        access_token: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """Perform one request; returns the response only when it succeeded."""
        started = time.time()
        url = path if path.startswith("http") else f"{self.api_base}{path}"
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }
        try:
            async with self._limiters.for_provider(self.api_name):
                async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                    response = await client.request(method, url, headers=headers, json=json, params=params)
        except httpx.TimeoutException as e:
            record_error("TimeoutError", f"{self.api_name}_provider")
            logger.error("provider_api_timeout", provider=self.api_name, operation=operation, error=str(e))
            raise TransientProviderError(f"Timeout in {operation}", self.api_name, operation) from e
        except httpx.TransportError as e:
            record_error(type(e).__name__, f"{self.api_name}_provider")
            logger.error("provider_api_unreachable", provider=self.api_name, operation=operation, error=str(e))
            raise TransientProviderError(f"Network error in {operation}: {e}", self.api_name, operation) from e
        finally:
            provider_request_duration.labels(provider=self.api_name, operation=operation).observe(
                time.time() - started
            )

        if response.is_error:
            self._handle_http_error(response, operation)

        provider_requests_total.labels(provider=self.api_name, operation=operation, status="success").inc()
        return response

    @async_retry()
    async def _send_with_retry(self, *args: Any, **kwargs: Any) -> httpx.Response:
        """``_send`` with backoff on transient failures. Only for idempotent calls."""
        return await self._send(*args, **kwargs)

    @staticmethod
    def _json(response: httpx.Response) -> Dict[str, Any]:
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {}

"""
HTTP Client Utilities - async HTTP access to the bridge and discovery service.

Wraps a lazily created httpx.AsyncClient with a fixed per-call timeout,
connection pooling, relaxed certificate checks for the bridge's self-signed
certificate, and retries for connection-establishment failures only.

@.architecture
Incoming: core/hue/client.py, core/hue/setup.py --- {str url (absolute or relative to base_url), Dict[str, Any] json body}
Processing: request(), _send(), close(), _get_or_create_client() --- {5 jobs: client_management, connection_pooling, request_retry, timeout_enforcement, cleanup}
Outgoing: Hue bridge (https://{ip}/api/{username}), discovery.meethue.com --- {httpx.Response}
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

# A refused or timed-out connect never delivered the command, so it is safe
# to repeat. Anything after that point may have reached the bridge.
RETRYABLE_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout)


# =============================================================================
# Configuration
# =============================================================================

@dataclass
class HTTPClientConfig:
    """HTTP client configuration."""

    base_url: str = ""
    timeout: float = 10.0              # Whole-call budget
    verify: bool = False               # Bridges ship a self-signed certificate

    # Retry configuration
    connect_retries: int = 2
    retry_min_wait: float = 0.2
    retry_max_wait: float = 2.0

    # Connection pooling
    max_connections: int = 10
    max_keepalive_connections: int = 2
    keepalive_expiry: float = 5.0

    @classmethod
    def for_hub(cls, bridge_ip: str, username: str, **overrides: Any) -> 'HTTPClientConfig':
        """Config whose base URL is the bridge's v1 resource root."""
        return cls(base_url=f"https://{bridge_ip}/api/{username}", **overrides)


# =============================================================================
# HTTP Client Manager
# =============================================================================

class HTTPClient:
    """
    Async HTTP client with timeout enforcement and connect retries.

    A transport may be injected (e.g. httpx.MockTransport) to stand in for
    the bridge.
    """

    def __init__(
        self,
        config: Optional[HTTPClientConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or HTTPClientConfig()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._client_lock = asyncio.Lock()

    async def _get_or_create_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None or self._client.is_closed:
                limits = httpx.Limits(
                    max_connections=self.config.max_connections,
                    max_keepalive_connections=self.config.max_keepalive_connections,
                    keepalive_expiry=self.config.keepalive_expiry,
                )
                self._client = httpx.AsyncClient(
                    base_url=self.config.base_url,
                    timeout=httpx.Timeout(self.config.timeout),
                    limits=limits,
                    verify=self.config.verify,
                    transport=self._transport,
                )
                logger.debug(f"Created HTTP client for {self.config.base_url or 'absolute URLs'}")
            return self._client

    async def close(self) -> None:
        """Close HTTP client and release pooled connections."""
        async with self._client_lock:
            if self._client and not self._client.is_closed:
                await self._client.aclose()
                logger.debug("Closed HTTP client")
            self._client = None

    # =========================================================================
    # Request Methods
    # =========================================================================

    async def request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
        retry: bool = True,
    ) -> httpx.Response:
        """
        Make an HTTP request.

        Args:
            method: HTTP method
            url: Absolute URL or path relative to the configured base URL
            json: JSON body
            params: Query parameters
            timeout: Override the configured per-call timeout
            retry: Retry connection-establishment failures

        Returns:
            httpx.Response with a 2xx status

        Raises:
            httpx.TimeoutException: The call exceeded its timeout
            httpx.TransportError: The host could not be reached
            httpx.HTTPStatusError: Non-2xx response
        """
        client = await self._get_or_create_client()
        kwargs: Dict[str, Any] = {"json": json, "params": params}
        if timeout is not None:
            kwargs["timeout"] = timeout

        if not retry or self.config.connect_retries <= 0:
            return await self._send(client, method, url, **kwargs)

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.config.connect_retries + 1),
            wait=wait_exponential(min=self.config.retry_min_wait, max=self.config.retry_max_wait),
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._send(client, method, url, **kwargs)

    async def _send(self, client: httpx.AsyncClient, method: str, url: str, **kwargs) -> httpx.Response:
        response = await client.request(method, url, **kwargs)
        response.raise_for_status()
        return response

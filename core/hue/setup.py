"""
Bridge Setup

Credential bootstrap for a bridge the gateway is not yet configured for:
network discovery through the vendor's discovery service, and link-button
gated username issuance.

These calls target arbitrary addresses supplied by the operator rather than
the configured bridge, so they bypass the hub serializer.

@.architecture
Incoming: api/rest/endpoints/setup.py, core/tools/catalog.py --- {str bridge_ip, str app_name, str device_name}
Processing: discover_bridges(), create_auth_token() --- {2 jobs: discovery, token_issuance}
Outgoing: discovery.meethue.com, https://{bridge_ip}/api --- {List[Dict] bridges, str username, LinkButtonNotPressedError}
"""

from typing import Any, Dict, List, Optional

import httpx

from core.hue.errors import (
    HubApiError,
    HubError,
    HubTimeoutError,
    HubUnreachableError,
    ValidationError,
)
from monitoring import get_logger
from utils.http import HTTPClient, HTTPClientConfig

logger = get_logger(__name__)

DEFAULT_APP_NAME = "philips-hue-mcp"
DEFAULT_DEVICE_NAME = "claude-agent"


class BridgeSetup:
    """Discovery and token issuance against bridges given by address."""

    def __init__(
        self,
        discovery_url: str = "https://discovery.meethue.com/",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.discovery_url = discovery_url
        self._http = HTTPClient(HTTPClientConfig(timeout=timeout, verify=False), transport=transport)

    @classmethod
    def from_settings(cls, hub_settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "BridgeSetup":
        return cls(hub_settings.discovery_url, hub_settings.timeout_seconds, transport=transport)

    async def close(self) -> None:
        await self._http.close()

    async def _json(self, method: str, url: str, json: Any = None) -> Any:
        try:
            response = await self._http.request(method, url, json=json)
        except httpx.TimeoutException as exc:
            raise HubTimeoutError(f"No answer from {url} within {self._http.config.timeout}s") from exc
        except httpx.HTTPStatusError as exc:
            raise HubError(f"{url} answered HTTP {exc.response.status_code}") from exc
        except httpx.TransportError as exc:
            raise HubUnreachableError(f"Could not reach {url}: {exc}") from exc
        try:
            return response.json()
        except ValueError as exc:
            raise HubError(f"{url} returned a non-JSON body") from exc

    async def discover_bridges(self) -> List[Dict[str, Any]]:
        """
        Ask the discovery service for bridges on this network.

        Returns:
            Entries like {"id": "001788fffe...", "internalipaddress": "192.168.1.2", "port": 443};
            empty when none are registered
        """
        bridges = await self._json("GET", self.discovery_url)
        if not isinstance(bridges, list):
            raise HubError("Discovery service returned an unexpected body")
        logger.info(f"Discovery returned {len(bridges)} bridge(s)")
        return bridges

    async def create_auth_token(
        self,
        bridge_ip: str,
        app_name: Optional[str] = None,
        device_name: Optional[str] = None,
    ) -> str:
        """
        Request a new API username from a bridge.

        The bridge's link button must have been pressed within the last
        30 seconds.

        Args:
            bridge_ip: Bridge address
            app_name: Application part of the devicetype
            device_name: Device part of the devicetype

        Returns:
            The issued username

        Raises:
            ValidationError: If bridge_ip is empty
            LinkButtonNotPressedError: Bridge error type 101
            HubApiError: Any other bridge error
        """
        if not bridge_ip or not str(bridge_ip).strip():
            raise ValidationError("bridgeIp is required")

        devicetype = f"{app_name or DEFAULT_APP_NAME}#{device_name or DEFAULT_DEVICE_NAME}"
        result = await self._json("POST", f"https://{str(bridge_ip).strip()}/api", {"devicetype": devicetype})

        error = HubApiError.from_payload(result)
        if error is not None:
            raise error

        if isinstance(result, list) and result and isinstance(result[0], dict):
            username = (result[0].get("success") or {}).get("username")
            if username:
                logger.info(f"Issued username for {devicetype} on bridge {bridge_ip}")
                return username

        raise HubError(f"Unexpected response from bridge: {result!r}")

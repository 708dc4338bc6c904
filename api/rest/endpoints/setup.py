"""
Bridge Setup Endpoints

Discovery, token issuance and connection diagnostics. Discovery and token
issuance work without configured credentials; they talk to the discovery
service or an arbitrary bridge, not the configured hub.

@.architecture
Incoming: api/rest/router.py, REST clients (HTTP GET/POST) --- {HTTP requests to /api/bridges/*, /api/connection/test, AuthRequest JSON payload}
Processing: discover(), create_token(), test_connection() --- {3 jobs: bridge_discovery, token_issuance, connection_diagnostics}
Outgoing: core/hue/setup.py, core/hue/client.py, REST clients (HTTP) --- {DiscoveryResponse, AuthResponse, ConnectionResponse, 428/400/503 errors}
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from api.dependencies import get_bridge_setup, get_hub_client, get_settings, setup_request_context
from api.rest.schemas import AuthRequest, AuthResponse, ConnectionResponse, DiscoveryResponse
from config.settings import Settings
from core.hue.errors import LinkButtonNotPressedError
from core.hue.setup import BridgeSetup
from monitoring import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["setup"], dependencies=[Depends(setup_request_context)])

LINK_BUTTON_MESSAGE = "Link button not pressed. Press the button on the Hue bridge and retry within 30 seconds."


@router.get("/bridges/discover", response_model=DiscoveryResponse, response_model_exclude_none=True,
            summary="Discover bridges on the local network")
async def discover(setup: BridgeSetup = Depends(get_bridge_setup)) -> DiscoveryResponse:
    bridges = await setup.discover_bridges()
    if not bridges:
        return DiscoveryResponse(bridges=[], message="No Hue bridges found")
    return DiscoveryResponse(bridges=bridges)


@router.post("/bridges/auth", response_model=AuthResponse, summary="Create an auth token")
async def create_token(body: AuthRequest, setup: BridgeSetup = Depends(get_bridge_setup)) -> AuthResponse:
    """
    Ask a bridge for a new username.

    Answers 428 until the link button has been pressed, 400 when bridgeIp is
    missing.
    """
    try:
        username = await setup.create_auth_token(body.bridge_ip, body.app_name, body.device_name)
    except LinkButtonNotPressedError as e:
        raise LinkButtonNotPressedError(LINK_BUTTON_MESSAGE, address=e.address) from e
    return AuthResponse(username=username, bridgeIp=body.bridge_ip.strip())


@router.get("/connection/test", response_model=ConnectionResponse, summary="Test the bridge connection",
            responses={503: {"description": "Credentials not configured"}})
async def test_connection(settings: Settings = Depends(get_settings)):
    hub = get_hub_client()
    if not settings.hub.configured or hub is None:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "error": {
                    "code": status.HTTP_503_SERVICE_UNAVAILABLE,
                    "message": "Not configured",
                    "type": "HubNotConfiguredError",
                },
                "missing": {
                    "bridgeIp": not settings.hub.bridge_ip,
                    "username": not settings.hub.username,
                },
            },
        )
    count = await hub.ping()
    return ConnectionResponse(status="ok", bridgeIp=settings.hub.bridge_ip, lightCount=count)

"""
API Dependencies

FastAPI dependency injection functions for:
- Settings management
- Hub client access (with the configured-credentials guard)
- Bridge setup helper
- Session registry
- Background write dispatcher
- Request context setup

@.architecture
Incoming: app.py (lifespan), api/rest/endpoints/*.py --- {set_hub_client/set_bridge_setup/set_session_registry/set_dispatcher calls, Depends() injections from endpoints}
Processing: get_settings(), get_hub_client(), require_hub_client(), get_bridge_setup(), get_session_registry(), get_dispatcher(), setup_request_context() --- {4 jobs: dependency_injection, configuration_gating, context_setup, resource_management}
Outgoing: api/rest/endpoints/*.py, app.py, stream/gateway.py --- {Settings instance, HubClient instance, BridgeSetup instance, SessionRegistry instance, BackgroundDispatcher instance, request context dict}
"""

from typing import Optional
import uuid

from fastapi import Depends, Header, HTTPException, Request

from config.settings import Settings, get_settings as load_settings
from core.hue.client import HubClient
from core.hue.errors import HubNotConfiguredError
from core.hue.setup import BridgeSetup
from stream.registry import SessionRegistry
from api.rest.background import BackgroundDispatcher
from monitoring import get_logger, set_request_context

logger = get_logger(__name__)


# =============================================================================
# Settings Dependencies
# =============================================================================

_settings: Optional[Settings] = None


def set_settings(settings: Optional[Settings]) -> None:
    """Pin the settings instance the application was built with."""
    global _settings
    _settings = settings


def get_settings() -> Settings:
    """
    Get application settings.

    Returns the instance pinned by the application factory, or the cached
    settings loaded from config files and environment variables.
    """
    if _settings is not None:
        return _settings
    return load_settings()


# =============================================================================
# Hub Client Dependencies
# =============================================================================

_hub_client: Optional[HubClient] = None


def set_hub_client(client: Optional[HubClient]) -> None:
    """Set the global hub client instance."""
    global _hub_client
    _hub_client = client


def get_hub_client() -> Optional[HubClient]:
    """
    Get the hub client instance.

    Returns None when bridge credentials are not configured.
    """
    return _hub_client


def require_hub_client(settings: Settings = Depends(get_settings)) -> HubClient:
    """
    Get the hub client instance (required).

    Use this dependency on every route that talks to the hub.

    Raises:
        HubNotConfiguredError: Bridge IP or username unset (503)
    """
    if _hub_client is None or not settings.hub.configured:
        raise HubNotConfiguredError()
    return _hub_client


# =============================================================================
# Bridge Setup Dependencies
# =============================================================================

_bridge_setup: Optional[BridgeSetup] = None


def set_bridge_setup(setup: Optional[BridgeSetup]) -> None:
    """Set the global bridge setup helper."""
    global _bridge_setup
    _bridge_setup = setup


def get_bridge_setup() -> BridgeSetup:
    """
    Get the bridge setup helper.

    Raises:
        HTTPException: If the application has not finished starting
    """
    if _bridge_setup is None:
        logger.error("Bridge setup not initialized")
        raise HTTPException(status_code=503, detail="Bridge setup not available. Server is starting up.")
    return _bridge_setup


# =============================================================================
# Session Registry Dependencies
# =============================================================================

_session_registry: Optional[SessionRegistry] = None


def set_session_registry(registry: Optional[SessionRegistry]) -> None:
    """Set the global session registry."""
    global _session_registry
    _session_registry = registry


def get_session_registry() -> SessionRegistry:
    """
    Get the session registry.

    Also used as the stream gateway's registry provider.

    Raises:
        HTTPException: If the application has not finished starting
    """
    if _session_registry is None:
        logger.error("Session registry not initialized")
        raise HTTPException(status_code=503, detail="Session registry not available. Server is starting up.")
    return _session_registry


def get_optional_session_registry() -> Optional[SessionRegistry]:
    return _session_registry


# =============================================================================
# Background Dispatcher Dependencies
# =============================================================================

_dispatcher: Optional[BackgroundDispatcher] = None


def set_dispatcher(dispatcher: Optional[BackgroundDispatcher]) -> None:
    """Set the global background write dispatcher."""
    global _dispatcher
    _dispatcher = dispatcher


def get_dispatcher() -> BackgroundDispatcher:
    """
    Get the background write dispatcher.

    Raises:
        HTTPException: If the application has not finished starting
    """
    if _dispatcher is None:
        logger.error("Background dispatcher not initialized")
        raise HTTPException(status_code=503, detail="Dispatcher not available. Server is starting up.")
    return _dispatcher


# =============================================================================
# Request Context Dependencies
# =============================================================================

async def setup_request_context(
    request: Request,
    x_request_id: Optional[str] = Header(None),
) -> dict:
    """
    Setup request context for structured logging.

    Args:
        request: FastAPI request object
        x_request_id: Optional request ID from header

    Returns:
        dict: Request context information
    """
    request_id = x_request_id or uuid.uuid4().hex[:12]
    set_request_context(request_id=request_id)
    request.state.request_id = request_id

    return {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
    }


def reset_dependencies() -> None:
    """Clear every injected instance (shutdown and tests)."""
    set_settings(None)
    set_hub_client(None)
    set_bridge_setup(None)
    set_session_registry(None)
    set_dispatcher(None)

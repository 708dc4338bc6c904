"""
FastAPI Application Factory

Creates and configures the gateway application with:
- MCP streamable HTTP endpoint (stream gateway + session registry)
- REST API under /api
- Middleware (CORS, error handling, request metrics)
- Dependency injection setup
- Lifecycle management (lifespan)

@.architecture
Incoming: main.py, tests, config/settings.py, api/rest/router.py, stream/gateway.py, api/middleware/*.py --- {Settings object, optional httpx transports, APIRouter instances, middleware constructors}
Processing: create_app(), lifespan(), _build_components(), _shutdown_components() --- {6 jobs: application_creation, component_wiring, dependency_injection, middleware_registration, routing_registration, lifecycle_management}
Outgoing: main.py, MCP peers and REST clients (HTTP) --- {FastAPI application instance, HTTP/SSE responses}
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config.settings import Settings, get_settings
from api.rest.router import api_router
from api.rest.endpoints import health_router
from api.rest.background import BackgroundDispatcher
from api.middleware import (
    ErrorHandlerConfig,
    create_error_handler_middleware,
    register_exception_handlers,
)
from api.dependencies import (
    get_session_registry,
    reset_dependencies,
    set_bridge_setup,
    set_dispatcher,
    set_hub_client,
    set_session_registry,
    set_settings,
)
from core.hue import BridgeSetup, HubClient, RequestSerializer
from core.tools import ToolCatalog, create_tool_server
from stream import SessionRegistry, StreamGateway, make_transport_factory
from monitoring import configure_from_preset, get_logger

logger = get_logger(__name__)

PRESETS = {"production": "production", "test": "testing", "development": "development"}


@dataclass
class Components:
    """Long-lived objects created at startup."""
    hub: Optional[HubClient]
    setup: BridgeSetup
    catalog: ToolCatalog
    registry: SessionRegistry
    dispatcher: BackgroundDispatcher


def _build_components(
    settings: Settings,
    hub_transport: Optional[httpx.AsyncBaseTransport] = None,
    setup_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Components:
    hub = None
    if settings.hub.configured:
        hub = HubClient.from_settings(settings.hub, RequestSerializer("hub"), transport=hub_transport)
        logger.info(f"Hub client ready for bridge {settings.hub.bridge_ip}")
    else:
        logger.warning(f"Hub not configured (missing: {', '.join(settings.hub.missing)}); hub tools and routes answer 503")

    setup = BridgeSetup.from_settings(settings.hub, transport=setup_transport)
    catalog = ToolCatalog(hub, setup, settings.hub)
    server = create_tool_server(catalog, version=settings.app_version)
    registry = SessionRegistry(make_transport_factory(server, json_response=settings.stream.json_response))

    return Components(hub=hub, setup=setup, catalog=catalog, registry=registry, dispatcher=BackgroundDispatcher())


async def _shutdown_components(components: Components) -> None:
    try:
        await components.dispatcher.drain()
    except Exception as e:
        logger.error(f"Error draining background writes: {e}")

    if components.hub is not None:
        try:
            await components.hub.close()
            logger.info("Hub client closed")
        except Exception as e:
            logger.error(f"Error closing hub client: {e}")

    try:
        await components.setup.close()
    except Exception as e:
        logger.error(f"Error closing bridge setup client: {e}")


def create_app(
    settings: Optional[Settings] = None,
    hub_transport: Optional[httpx.AsyncBaseTransport] = None,
    setup_transport: Optional[httpx.AsyncBaseTransport] = None,
    configure_logging: bool = True,
) -> FastAPI:
    """
    Create and configure the gateway application.

    Args:
        settings: Settings to use instead of get_settings()
        hub_transport: httpx transport for bridge calls (tests pass a fake hub)
        setup_transport: httpx transport for discovery and token issuance
        configure_logging: Apply the logging preset for the environment

    Returns:
        FastAPI: Configured application instance
    """
    settings = settings or get_settings()

    if configure_logging:
        configure_from_preset(
            PRESETS.get(settings.environment, "development"),
            level=settings.monitoring.log_level,
            format_type=settings.monitoring.log_format,
        )

    logger.info(f"Creating {settings.app_name} application (environment: {settings.environment})")

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("=== Application Startup ===")
        components = _build_components(settings, hub_transport, setup_transport)

        set_settings(settings)
        set_hub_client(components.hub)
        set_bridge_setup(components.setup)
        set_session_registry(components.registry)
        set_dispatcher(components.dispatcher)
        app.state.components = components

        try:
            async with components.registry.run():
                logger.info("=== Startup Complete ===")
                yield
                logger.info("=== Application Shutdown ===")
        finally:
            await _shutdown_components(components)
            reset_dependencies()
            logger.info("=== Shutdown Complete ===")

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Philips Hue gateway: MCP streamable HTTP and REST",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        redirect_slashes=False,
        lifespan=lifespan,
    )

    # ==========================================================================
    # Middleware Configuration
    # ==========================================================================

    development = settings.environment == "development"

    middleware_class, middleware_kwargs = create_error_handler_middleware(
        development=development,
        passthrough_prefixes=[settings.stream.path],
    )
    app.add_middleware(middleware_class, **middleware_kwargs)

    # CORS outermost so preflights and error responses carry the headers
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.allowed_origins,
        allow_credentials=settings.server.cors_allow_credentials,
        allow_methods=settings.server.cors_allow_methods,
        allow_headers=settings.server.cors_allow_headers,
        expose_headers=settings.server.cors_expose_headers,
    )

    register_exception_handlers(app, ErrorHandlerConfig(
        include_traceback=development,
        sanitize_errors=not development,
    ))

    # ==========================================================================
    # Routes
    # ==========================================================================

    app.add_route(
        settings.stream.path,
        StreamGateway(get_session_registry),
        methods=["GET", "POST", "DELETE"],
        include_in_schema=False,
    )

    app.include_router(api_router)
    app.include_router(health_router)

    @app.get("/", include_in_schema=False)
    async def root():
        return JSONResponse({
            "status": "ok",
            "message": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "mcp": settings.stream.path,
            "docs": "/docs",
        })

    return app

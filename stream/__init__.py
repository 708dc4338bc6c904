"""
Stream Layer - MCP streamable HTTP sessions

Components:
- gateway.py: StreamGateway, the ASGI endpoint that routes requests to sessions
- registry.py: SessionRegistry, session id -> transport with create/route/retire
- transport.py: SessionTransport and the SDK-backed StreamableSessionTransport
- protocols.py: JSON-RPC envelopes, handshake detection, error codes

Usage:
    registry = SessionRegistry(make_transport_factory(server))
    app.add_route("/mcp", StreamGateway(lambda: registry), methods=["GET", "POST", "DELETE"])

    async with registry.run():
        ...
"""

from .gateway import StreamGateway
from .registry import Session, SessionRegistry, SessionStartError, SessionState
from .transport import SessionTransport, StreamableSessionTransport, make_transport_factory
from .protocols import (
    MCP_SESSION_ID_HEADER,
    PARSE_ERROR,
    INTERNAL_ERROR,
    SESSION_ERROR,
    NO_VALID_SESSION_MESSAGE,
    ProtocolError,
    InitializeMessage,
    error_envelope,
    is_initialize_request,
)

__all__ = [
    # Endpoint
    "StreamGateway",

    # Sessions
    "Session",
    "SessionRegistry",
    "SessionStartError",
    "SessionState",

    # Transports
    "SessionTransport",
    "StreamableSessionTransport",
    "make_transport_factory",

    # Protocol
    "MCP_SESSION_ID_HEADER",
    "PARSE_ERROR",
    "INTERNAL_ERROR",
    "SESSION_ERROR",
    "NO_VALID_SESSION_MESSAGE",
    "ProtocolError",
    "InitializeMessage",
    "error_envelope",
    "is_initialize_request",
]

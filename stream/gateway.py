"""
Stream Gateway - ASGI endpoint for MCP streamable HTTP

Decides, per request, which session transport serves it: an existing one
named by the Mcp-Session-Id header, a new one for a handshake, or none (the
request is rejected with a JSON-RPC error).

@.architecture
Incoming: app.py (route at settings.stream.path), MCP peers --- {POST/GET/DELETE with optional Mcp-Session-Id header, JSON-RPC bodies}
Processing: __call__(), _dispatch(), _open_and_forward(), _read_body(), _replay() --- {4 jobs: session_routing, handshake_detection, body_replay, error_reporting}
Outgoing: stream/registry.py, stream/transport.py, Peers --- {transport.handle_request(), JSON-RPC error responses 400/-32000, 400/-32700, 500/-32603}
"""

from typing import Callable, Optional
from uuid import uuid4

from starlette.datastructures import Headers
from starlette.responses import JSONResponse
from starlette.types import Message, Receive, Scope, Send

from monitoring import clear_request_context, counter, get_logger, set_request_context
from stream.protocols import (
    INTERNAL_ERROR,
    MCP_SESSION_ID_HEADER,
    NO_VALID_SESSION_MESSAGE,
    ProtocolError,
    error_envelope,
    is_initialize_request,
    parse_json_body,
)
from stream.registry import SessionRegistry

logger = get_logger(__name__)

stream_requests = counter(
    "hue_mcp_requests_total",
    "Requests received on the MCP endpoint",
    labels=["method", "route"],
)
protocol_errors = counter(
    "hue_mcp_protocol_errors_total",
    "MCP requests rejected before reaching a transport",
    labels=["code"],
)


async def _read_body(receive: Receive) -> bytes:
    chunks = []
    while True:
        message = await receive()
        if message["type"] == "http.disconnect":
            break
        chunks.append(message.get("body", b""))
        if not message.get("more_body", False):
            break
    return b"".join(chunks)


def _replay(body: bytes, receive: Receive) -> Receive:
    """Receive callable that yields the already-read body once, then defers to the server."""
    delivered = False

    async def replay() -> Message:
        nonlocal delivered
        if not delivered:
            delivered = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return replay


class StreamGateway:
    """
    ASGI application mounted at the MCP path.

    Args:
        registry_provider: Returns the live SessionRegistry at request time
    """

    def __init__(self, registry_provider: Callable[[], SessionRegistry]):
        self._registry_provider = registry_provider

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        response_started = False

        async def tracking_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        session_id = Headers(scope=scope).get(MCP_SESSION_ID_HEADER)
        set_request_context(request_id=uuid4().hex[:12], session_id=session_id)

        try:
            await self._dispatch(scope, receive, tracking_send, session_id)
        except ProtocolError as e:
            protocol_errors.inc(code=str(e.code))
            logger.warning(f"{scope['method']} rejected: {e.message}")
            if not response_started:
                await self._send_error(scope, receive, send, e.status_code, e.to_envelope())
        except Exception:
            logger.exception(f"Error handling {scope['method']} on MCP endpoint")
            if not response_started:
                await self._send_error(
                    scope, receive, send, 500, error_envelope(INTERNAL_ERROR, "Internal server error")
                )
        finally:
            clear_request_context()

    async def _dispatch(self, scope: Scope, receive: Receive, send: Send, session_id: Optional[str]) -> None:
        method = scope["method"]
        registry = self._registry_provider()

        session = registry.lookup(session_id)
        if session is not None:
            stream_requests.inc(method=method, route="session")
            await session.transport.handle_request(scope, receive, send)
            return

        # Only a header-less POST may open a session
        if method != "POST" or session_id:
            stream_requests.inc(method=method, route="rejected")
            raise ProtocolError(NO_VALID_SESSION_MESSAGE)

        body = await _read_body(receive)
        payload = parse_json_body(body)
        if not is_initialize_request(payload):
            stream_requests.inc(method=method, route="rejected")
            raise ProtocolError(NO_VALID_SESSION_MESSAGE)

        stream_requests.inc(method=method, route="handshake")
        await self._open_and_forward(registry, scope, _replay(body, receive), send)

    async def _open_and_forward(self, registry: SessionRegistry, scope: Scope, receive: Receive, send: Send) -> None:
        session = await registry.open_session()
        set_request_context(session_id=session.id)
        # The transport writes the Mcp-Session-Id response header
        await session.transport.handle_request(scope, receive, send)

    @staticmethod
    async def _send_error(scope: Scope, receive: Receive, send: Send, status_code: int, body: dict) -> None:
        response = JSONResponse(body, status_code=status_code)
        await response(scope, receive, send)

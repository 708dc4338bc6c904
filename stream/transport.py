"""
Session Transports

Binds one session id to a live MCP conversation: an mcp SDK streamable HTTP
transport plus the server loop reading from it.

@.architecture
Incoming: stream/registry.py (start, close), stream/gateway.py (handle_request) --- {anyio TaskGroup, ASGI scope/receive/send}
Processing: start(), _run(), handle_request(), close() --- {3 jobs: server_loop_lifecycle, request_delivery, closure_signalling}
Outgoing: mcp.server.streamable_http.StreamableHTTPServerTransport, mcp.server.lowlevel.Server, stream/registry.py (on_close callback) --- {JSON-RPC messages, SSE/JSON responses, session closure}
"""

from abc import ABC, abstractmethod
from typing import Callable

import anyio
from anyio.abc import TaskGroup, TaskStatus
from mcp.server.lowlevel import Server
from mcp.server.streamable_http import StreamableHTTPServerTransport
from starlette.types import Receive, Scope, Send

from monitoring import get_logger

logger = get_logger(__name__)

CloseCallback = Callable[[str], None]
TransportFactory = Callable[[str, CloseCallback], "SessionTransport"]


class SessionTransport(ABC):
    """
    Abstract per-session transport.

    Implementations must invoke the close callback exactly once they stop
    accepting requests, whatever the reason.
    """

    session_id: str

    @abstractmethod
    async def start(self, task_group: TaskGroup) -> None:
        """Start the session's background work; return once it can accept requests."""

    @abstractmethod
    async def handle_request(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Serve one HTTP request belonging to this session."""

    @abstractmethod
    async def close(self) -> None:
        """Terminate the session."""

    @property
    @abstractmethod
    def closed(self) -> bool:
        """True once the transport no longer accepts requests."""


class StreamableSessionTransport(SessionTransport):
    """
    SDK streamable HTTP transport with its server loop.

    The loop runs in the registry's task group. When it exits (peer DELETE,
    terminate(), stream failure) the close callback fires.
    """

    def __init__(
        self,
        session_id: str,
        server: Server,
        on_close: CloseCallback,
        json_response: bool = False,
    ):
        self.session_id = session_id
        self._server = server
        self._on_close = on_close
        self._http = StreamableHTTPServerTransport(
            mcp_session_id=session_id,
            is_json_response_enabled=json_response,
        )
        self._finished = False

    async def start(self, task_group: TaskGroup) -> None:
        await task_group.start(self._run)

    async def _run(self, *, task_status: TaskStatus = anyio.TASK_STATUS_IGNORED) -> None:
        try:
            async with self._http.connect() as (read_stream, write_stream):
                task_status.started()
                await self._server.run(
                    read_stream,
                    write_stream,
                    self._server.create_initialization_options(),
                )
        except Exception:
            logger.exception(f"Server loop for session {self.session_id} crashed")
        finally:
            self._finished = True
            self._on_close(self.session_id)

    async def handle_request(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self._http.handle_request(scope, receive, send)

    async def close(self) -> None:
        if not self._http.is_terminated:
            await self._http.terminate()

    @property
    def closed(self) -> bool:
        return self._finished or self._http.is_terminated


def make_transport_factory(server: Server, json_response: bool = False) -> TransportFactory:
    """Factory the registry calls for every new session."""

    def factory(session_id: str, on_close: CloseCallback) -> SessionTransport:
        return StreamableSessionTransport(session_id, server, on_close, json_response=json_response)

    return factory

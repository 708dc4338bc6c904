"""
Session Registry - MCP session lifecycle and routing

Owns the mapping from session id to live transport for the streamable HTTP
endpoint.

@.architecture
Incoming: stream/gateway.py, app.py (lifespan) --- {handshake requests needing a session, session ids from the Mcp-Session-Id header, shutdown}
Processing: run(), open_session(), lookup(), close_session(), close_all(), _on_transport_closed() --- {4 jobs: id_generation, registration, routing_lookup, retirement}
Outgoing: stream/transport.py, stream/gateway.py, app.py /health --- {Session objects bound to a SessionTransport, active session count}

Lifecycle per id: uninitialized -> active -> closed. Closed ids are retired
and never handed out again. The most recent RETIRED_ID_LIMIT retired ids are
remembered explicitly; older ones rely on uuid4 ids never repeating.

Every mutation of the mapping happens in synchronous code, so no other task
can observe a half-registered or half-removed session.
"""

import time
from collections import deque
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import AsyncIterator, Callable, Deque, Dict, List, Optional, Set
from uuid import uuid4

import anyio
from anyio.abc import TaskGroup

from monitoring import counter, gauge, get_logger
from stream.transport import SessionTransport, TransportFactory

logger = get_logger(__name__)

RETIRED_ID_LIMIT = 10_000

sessions_active = gauge(
    "hue_mcp_sessions_active",
    "MCP sessions currently registered",
)
sessions_opened = counter(
    "hue_mcp_sessions_opened_total",
    "MCP sessions created by a handshake",
)
sessions_closed = counter(
    "hue_mcp_sessions_closed_total",
    "MCP sessions retired",
    labels=["reason"],
)


class SessionStartError(RuntimeError):
    """Transport shut down before its session could be used."""


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    CLOSED = "closed"


@dataclass
class Session:
    """
    One peer conversation.

    Attributes:
        id: Server-generated identifier sent back as Mcp-Session-Id
        transport: Transport serving this session's requests
        state: Lifecycle state
    """
    id: str
    transport: SessionTransport
    state: SessionState = SessionState.UNINITIALIZED
    created_at: float = field(default_factory=time.time)
    last_seen: float = field(default_factory=time.time)

    def touch(self) -> None:
        self.last_seen = time.time()


class SessionRegistry:
    """
    Session id -> transport mapping with create / route / retire.

    Transport server loops run inside the task group opened by run(), which
    the application lifespan holds open for the life of the process.
    """

    def __init__(
        self,
        transport_factory: TransportFactory,
        id_factory: Callable[[], str] = lambda: uuid4().hex,
        retired_limit: int = RETIRED_ID_LIMIT,
    ):
        self._transport_factory = transport_factory
        self._id_factory = id_factory
        self._sessions: Dict[str, Session] = {}
        self._retired: Set[str] = set()
        self._retired_order: Deque[str] = deque()
        self._retired_limit = retired_limit
        self._task_group: Optional[TaskGroup] = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @asynccontextmanager
    async def run(self) -> AsyncIterator["SessionRegistry"]:
        """
        Hold the task group that session server loops run in.

        Usage:
            async with registry.run():
                ...serve requests...
        """
        if self._task_group is not None:
            raise RuntimeError("SessionRegistry is already running")

        async with anyio.create_task_group() as task_group:
            self._task_group = task_group
            logger.info("Session registry started")
            try:
                yield self
            finally:
                await self.close_all()
                self._task_group = None
                task_group.cancel_scope.cancel()
                logger.info("Session registry stopped")

    @property
    def running(self) -> bool:
        return self._task_group is not None

    # =========================================================================
    # Creation
    # =========================================================================

    def _new_id(self) -> str:
        while True:
            candidate = self._id_factory()
            if candidate not in self._sessions and candidate not in self._retired:
                return candidate
            logger.warning("Session id collision, drawing again")

    def _reserve(self) -> Session:
        session_id = self._new_id()
        transport = self._transport_factory(session_id, self._on_transport_closed)
        session = Session(id=session_id, transport=transport)
        self._sessions[session_id] = session
        return session

    async def open_session(self) -> Session:
        """
        Create, register and start a new session.

        Returns:
            The active session

        Raises:
            RuntimeError: If run() is not active
            SessionStartError: If the transport closed while starting
        """
        if self._task_group is None:
            raise RuntimeError("SessionRegistry is not running")

        session = self._reserve()
        try:
            await session.transport.start(self._task_group)
        except BaseException:
            self._retire(session.id, reason="start_failed")
            raise

        if session.state is not SessionState.UNINITIALIZED or session.transport.closed:
            self._retire(session.id, reason="start_failed")
            raise SessionStartError(f"Transport for session {session.id} closed during start")

        session.state = SessionState.ACTIVE
        sessions_opened.inc()
        sessions_active.set(len(self._sessions))
        logger.info(f"Session opened: {session.id}")
        return session

    # =========================================================================
    # Routing
    # =========================================================================

    def lookup(self, session_id: Optional[str]) -> Optional[Session]:
        """Active session for an id, or None for missing, unknown or closed ids."""
        if not session_id:
            return None
        session = self._sessions.get(session_id)
        if session is None or session.state is not SessionState.ACTIVE:
            return None
        if session.transport.closed:
            self._retire(session_id, reason="transport_closed")
            return None
        session.touch()
        return session

    def get(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def __contains__(self, session_id: str) -> bool:
        return self.lookup(session_id) is not None

    def __len__(self) -> int:
        return len(self._sessions)

    @property
    def active_count(self) -> int:
        return sum(1 for s in self._sessions.values() if s.state is SessionState.ACTIVE)

    def session_ids(self) -> List[str]:
        return list(self._sessions.keys())

    def is_retired(self, session_id: str) -> bool:
        return session_id in self._retired

    # =========================================================================
    # Retirement
    # =========================================================================

    def _retire(self, session_id: str, reason: str) -> Optional[Session]:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return None
        was_active = session.state is SessionState.ACTIVE
        session.state = SessionState.CLOSED
        self._remember_retired(session_id)
        sessions_active.set(len(self._sessions))
        if was_active:
            sessions_closed.inc(reason=reason)
        logger.info(f"Session closed: {session_id} ({reason})")
        return session

    def _remember_retired(self, session_id: str) -> None:
        self._retired.add(session_id)
        self._retired_order.append(session_id)
        while len(self._retired_order) > self._retired_limit:
            self._retired.discard(self._retired_order.popleft())

    def _on_transport_closed(self, session_id: str) -> None:
        self._retire(session_id, reason="transport_closed")

    async def close_session(self, session_id: str) -> bool:
        """
        Retire a session and terminate its transport.

        Returns:
            False if the id was not registered
        """
        session = self._retire(session_id, reason="closed")
        if session is None:
            return False
        await session.transport.close()
        return True

    async def close_all(self) -> None:
        """Close every session (shutdown)."""
        for session_id in list(self._sessions.keys()):
            try:
                await self.close_session(session_id)
            except Exception as e:
                logger.warning(f"Error closing session {session_id}: {e}")

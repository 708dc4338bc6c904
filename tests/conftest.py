"""
Pytest Configuration and Shared Fixtures

Provides a fake Hue bridge (httpx.MockTransport), settings, hub client and
FastAPI app fixtures for unit, integration and e2e tests.
"""

import asyncio
import json
import os
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator, AsyncIterator, Dict, List, Optional, Tuple

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from starlette.requests import Request
from starlette.responses import JSONResponse

# Test environment setup
os.environ["HUE_GATEWAY_ENVIRONMENT"] = "test"
for _name in ("HUE_BRIDGE_IP", "HUE_USERNAME", "HUE_GATEWAY_CONFIG"):
    os.environ.pop(_name, None)

from app import create_app
from api.dependencies import (
    reset_dependencies,
    set_bridge_setup,
    set_dispatcher,
    set_hub_client,
    set_settings,
)
from api.rest.background import BackgroundDispatcher
from config.settings import HubSettings, Settings, reload_settings
from core.hue import BridgeSetup, HubClient, RequestSerializer
from stream.transport import SessionTransport

BRIDGE_IP = "10.0.0.2"
USERNAME = "test-user"


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests that test individual components"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that test component interactions"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests that test complete workflows"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take significant time to run"
    )


# =============================================================================
# Fake Bridge
# =============================================================================

@dataclass
class HubCall:
    method: str
    path: str
    body: Any
    started: float
    finished: float = 0.0


def _default_lights() -> Dict[str, Any]:
    return {
        "1": {"name": "Desk", "type": "Extended color light",
              "state": {"on": True, "bri": 200, "colormode": "xy", "xy": [0.4, 0.4], "ct": 300, "reachable": True}},
        "2": {"name": "Ceiling", "type": "Color temperature light",
              "state": {"on": False, "bri": 1, "colormode": "ct", "ct": 454, "reachable": True}},
        "3": {"name": "Hall", "type": "Dimmable light",
              "state": {"on": False, "bri": 120, "reachable": False}},
    }


def _default_groups() -> Dict[str, Any]:
    return {
        "1": {"name": "Office", "type": "Room", "lights": ["1"], "action": {"on": True, "bri": 200}},
        "2": {"name": "Downstairs", "type": "Zone", "lights": ["2", "3"], "action": {"on": False}},
        "3": {"name": "TV area", "type": "Entertainment", "lights": ["1", "2"], "action": {"on": False, "bri": 10}},
    }


def _default_scenes() -> Dict[str, Any]:
    return {
        "abc": {"name": "Focus", "type": "GroupScene", "group": "1", "lights": ["1"]},
        "def": {"name": "Night", "type": "LightScene", "lights": ["2", "3"]},
    }


@dataclass
class FakeHub:
    """
    In-memory Hue API v1 bridge.

    Records every call with start/finish times and the peak number of calls in
    flight, so tests can assert the serializer never overlaps hub requests.
    """
    delay: float = 0.0
    lights: Dict[str, Any] = field(default_factory=_default_lights)
    groups: Dict[str, Any] = field(default_factory=_default_groups)
    scenes: Dict[str, Any] = field(default_factory=_default_scenes)
    calls: List[HubCall] = field(default_factory=list)
    failures: Dict[Tuple[str, str], Any] = field(default_factory=dict)
    in_flight: int = 0
    max_in_flight: int = 0
    next_scene_id: str = "new-scene-1"

    @property
    def prefix(self) -> str:
        return f"/api/{USERNAME}"

    def fail(self, method: str, path: str, outcome: Any) -> None:
        """Make the next (method, path) call raise an exception or return a payload."""
        self.failures[(method, path)] = outcome

    def writes(self) -> List[HubCall]:
        return [call for call in self.calls if call.method != "GET"]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    async def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path[len(self.prefix):] if request.url.path.startswith(self.prefix) else request.url.path
        body = json.loads(request.content) if request.content else None
        call = HubCall(request.method, path, body, started=time.monotonic())
        self.calls.append(call)

        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            outcome = self.failures.pop((request.method, path), None)
            if isinstance(outcome, Exception):
                raise outcome
            payload = outcome if outcome is not None else self._route(request.method, path, body)
            return httpx.Response(200, json=payload)
        finally:
            self.in_flight -= 1
            call.finished = time.monotonic()

    def _route(self, method: str, path: str, body: Any) -> Any:
        parts = [part for part in path.split("/") if part]
        if not parts:
            return {"lights": self.lights, "groups": self.groups}
        collection = {"lights": self.lights, "groups": self.groups, "scenes": self.scenes}.get(parts[0])
        if collection is None:
            return _error(4, path, f"method, {method}, not available for resource, {path}")

        if len(parts) == 1:
            if method == "GET":
                return collection
            if method == "POST" and parts[0] == "scenes":
                self.scenes[self.next_scene_id] = dict(body or {})
                return [{"success": {"id": self.next_scene_id}}]

        resource_id = parts[1] if len(parts) > 1 else None
        all_lights_action = parts[0] == "groups" and resource_id == "0" and len(parts) == 3
        if resource_id not in collection and not all_lights_action:
            return _error(3, path, f"resource, {path}, not available")

        if len(parts) == 2:
            if method == "GET":
                return collection[resource_id]
            if method == "DELETE":
                del collection[resource_id]
                return [{"success": f"/{parts[0]}/{resource_id} deleted"}]

        if len(parts) == 3 and method == "PUT":
            return [{"success": {f"{path}/{key}": value}} for key, value in (body or {}).items()]

        return _error(4, path, f"method, {method}, not available for resource, {path}")


def _error(error_type: int, address: str, description: str) -> List[Dict[str, Any]]:
    return [{"error": {"type": error_type, "address": address, "description": description}}]


@dataclass
class FakeSetupService:
    """Discovery service plus the bridge's token endpoint."""
    bridges: List[Dict[str, Any]] = field(
        default_factory=lambda: [{"id": "001788fffe000001", "internalipaddress": BRIDGE_IP, "port": 443}]
    )
    link_pressed: bool = False
    requests: List[httpx.Request] = field(default_factory=list)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == "discovery.meethue.com":
            return httpx.Response(200, json=self.bridges)
        if request.method == "POST" and request.url.path == "/api":
            if not self.link_pressed:
                return httpx.Response(200, json=_error(101, "", "link button not pressed"))
            return httpx.Response(200, json=[{"success": {"username": "issued-username"}}])
        return httpx.Response(404, json={"error": "not found"})


# =============================================================================
# Settings Fixtures
# =============================================================================

@pytest.fixture
def hub_settings() -> HubSettings:
    return HubSettings(bridge_ip=BRIDGE_IP, username=USERNAME, timeout_seconds=2.0, connect_retries=0)


@pytest.fixture
def test_settings(hub_settings: HubSettings) -> Settings:
    """Settings for a configured gateway."""
    return Settings(environment="test", hub=hub_settings)


@pytest.fixture
def unconfigured_settings() -> Settings:
    return Settings(environment="test", hub=HubSettings(connect_retries=0))


@pytest.fixture(autouse=True)
def reset_settings():
    """Reset settings and injected dependencies after each test."""
    yield
    reset_dependencies()
    reload_settings()


# =============================================================================
# Hub Fixtures
# =============================================================================

@pytest.fixture
def fake_hub() -> FakeHub:
    return FakeHub()


@pytest.fixture
def fake_setup() -> FakeSetupService:
    return FakeSetupService()


@pytest_asyncio.fixture
async def hub_client(hub_settings: HubSettings, fake_hub: FakeHub) -> AsyncGenerator[HubClient, None]:
    """HubClient talking to the fake bridge through its own serializer."""
    client = HubClient.from_settings(hub_settings, RequestSerializer("test"), transport=fake_hub.transport())
    yield client
    await client.close()


@pytest_asyncio.fixture
async def bridge_setup(hub_settings: HubSettings, fake_setup: FakeSetupService) -> AsyncGenerator[BridgeSetup, None]:
    setup = BridgeSetup.from_settings(hub_settings, transport=fake_setup.transport())
    yield setup
    await setup.close()


# =============================================================================
# FastAPI App Fixtures
# =============================================================================

@pytest_asyncio.fixture
async def dispatcher() -> AsyncGenerator[BackgroundDispatcher, None]:
    dispatcher = BackgroundDispatcher()
    yield dispatcher
    await dispatcher.drain()


@pytest_asyncio.fixture
async def app(test_settings, hub_client, bridge_setup, dispatcher) -> AsyncGenerator[FastAPI, None]:
    """
    App with REST dependencies injected directly.

    The lifespan does not run under ASGITransport, so no session registry
    exists here; stream tests use running_app().
    """
    app = create_app(test_settings, configure_logging=False)

    set_settings(test_settings)
    set_hub_client(hub_client)
    set_bridge_setup(bridge_setup)
    set_dispatcher(dispatcher)

    yield app

    reset_dependencies()


@pytest_asyncio.fixture
async def unconfigured_app(unconfigured_settings, bridge_setup, dispatcher) -> AsyncGenerator[FastAPI, None]:
    app = create_app(unconfigured_settings, configure_logging=False)

    set_settings(unconfigured_settings)
    set_hub_client(None)
    set_bridge_setup(bridge_setup)
    set_dispatcher(dispatcher)

    yield app

    reset_dependencies()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def unconfigured_client(unconfigured_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=unconfigured_app), base_url="http://test") as ac:
        yield ac


@asynccontextmanager
async def running_app(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """
    Run the app's lifespan and yield a client for it.

    Must be entered and exited inside one test body: the session registry's
    task group is bound to the task that opens it.
    """
    async with app.router.lifespan_context(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac


async def wait_for(predicate, timeout: float = 2.0, interval: float = 0.01) -> None:
    """Poll until predicate() is true (background writes settle after the response)."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(interval)


# =============================================================================
# Fake Session Transports
# =============================================================================

class FakeSessionTransport(SessionTransport):
    """
    Answers every request with a JSON body naming its session.

    With a gate set, handle_request signals `entered` and then waits on the
    gate before answering.
    """

    def __init__(
        self,
        session_id: str,
        on_close,
        fail_start: bool = False,
        fail_requests: bool = False,
        close_on_start: bool = False,
        gate: Optional[asyncio.Event] = None,
    ):
        self.session_id = session_id
        self._on_close = on_close
        self.fail_start = fail_start
        self.fail_requests = fail_requests
        self.close_on_start = close_on_start
        self.gate = gate
        self.entered = asyncio.Event()
        self.started = False
        self.requests: List[Tuple[str, bytes]] = []
        self._closed = False

    async def start(self, task_group) -> None:
        if self.fail_start:
            raise RuntimeError("transport failed to start")
        self.started = True
        if self.close_on_start:
            await self.close()

    async def handle_request(self, scope, receive, send) -> None:
        body = await Request(scope, receive).body()
        self.requests.append((scope["method"], body))
        if self.fail_requests:
            raise RuntimeError("transport fault")
        if self.gate is not None:
            self.entered.set()
            await self.gate.wait()
        response = JSONResponse(
            {"jsonrpc": "2.0", "id": 1, "result": {"session": self.session_id}},
            headers={"mcp-session-id": self.session_id},
        )
        await response(scope, receive, send)

    async def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._on_close(self.session_id)

    @property
    def closed(self) -> bool:
        return self._closed


@dataclass
class FakeTransportFactory:
    """TransportFactory that records what it built."""
    fail_start: bool = False
    fail_requests: bool = False
    close_on_start: bool = False
    gate: Optional[asyncio.Event] = None
    built: List[FakeSessionTransport] = field(default_factory=list)

    def __call__(self, session_id: str, on_close) -> FakeSessionTransport:
        transport = FakeSessionTransport(
            session_id, on_close, self.fail_start, self.fail_requests, self.close_on_start, self.gate
        )
        self.built.append(transport)
        return transport


INITIALIZE_REQUEST = {
    "jsonrpc": "2.0",
    "id": 1,
    "method": "initialize",
    "params": {
        "protocolVersion": "2025-03-26",
        "capabilities": {},
        "clientInfo": {"name": "pytest", "version": "1.0"},
    },
}

"""
Health & Metrics Endpoints

@.architecture
Incoming: app.py (root-level routes), REST clients, load balancers, Prometheus --- {HTTP GET /health, /metrics}
Processing: health_check(), metrics() --- {2 jobs: health_reporting, metrics_exposition}
Outgoing: REST clients (HTTP) --- {HealthResponse JSON, Prometheus text exposition}
"""

import time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from api.dependencies import get_hub_client, get_optional_session_registry, get_settings
from config.settings import Settings
from monitoring import get_registry

router = APIRouter(tags=["health"])

# Track startup time
START_TIME = time.time()


class HealthResponse(BaseModel):
    status: str
    timestamp: float
    uptime_seconds: float
    version: str
    configured: bool
    active_sessions: int
    serializer_depth: Optional[int] = None


@router.get("/health", response_model=HealthResponse, summary="Simple health check")
async def health_check(settings: Settings = Depends(get_settings)) -> HealthResponse:
    """
    Liveness plus the gateway's moving parts.

    Never touches the bridge; use /api/connection/test for that.
    """
    registry = get_optional_session_registry()
    hub = get_hub_client()
    return HealthResponse(
        status="ok",
        timestamp=time.time(),
        uptime_seconds=time.time() - START_TIME,
        version=settings.app_version,
        configured=settings.hub.configured,
        active_sessions=registry.active_count if registry is not None else 0,
        serializer_depth=hub.serializer.depth if hub is not None else None,
    )


@router.get("/metrics", response_class=PlainTextResponse, summary="Prometheus metrics")
async def metrics(settings: Settings = Depends(get_settings)) -> PlainTextResponse:
    if not settings.monitoring.metrics_enabled:
        raise HTTPException(status_code=404, detail="Metrics are disabled")
    return PlainTextResponse(get_registry().export_prometheus(), media_type="text/plain; version=0.0.4")

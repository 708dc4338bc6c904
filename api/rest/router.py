"""
REST API Router

Aggregates the Hue endpoint routers under /api.

@.architecture
Incoming: app.py, api/rest/endpoints/*.py --- {app.include_router() call, 5 endpoint router instances}
Processing: api_router.include_router() for 5 endpoints --- {1 job: router_aggregation}
Outgoing: app.py, api/rest/endpoints/*.py --- {APIRouter with /api prefix, HTTP request routing to endpoints}
"""

from fastapi import APIRouter

from .endpoints import (
    lights_router,
    rooms_router,
    scenes_router,
    house_router,
    setup_router,
)

api_router = APIRouter(prefix="/api")

# Lights (/api/lights)
api_router.include_router(lights_router)

# Rooms and groups (/api/rooms, /api/groups)
api_router.include_router(rooms_router)

# Scenes (/api/scenes)
api_router.include_router(scenes_router)

# House-wide (/api/all)
api_router.include_router(house_router)

# Setup (/api/bridges, /api/connection); reachable without credentials
api_router.include_router(setup_router)

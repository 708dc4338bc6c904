"""
REST Endpoints

FastAPI routers for the Hue REST surface.
"""

from .lights import router as lights_router
from .rooms import router as rooms_router
from .scenes import router as scenes_router
from .house import router as house_router
from .setup import router as setup_router
from .health import router as health_router

__all__ = [
    "lights_router",
    "rooms_router",
    "scenes_router",
    "house_router",
    "setup_router",
    "health_router",
]

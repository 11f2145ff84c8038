"""
API routers for SMART Vitals.
"""

from smart_vitals.routers.health import router as health_router
from smart_vitals.routers.launch import router as launch_router
from smart_vitals.routers.observations import router as observations_router

__all__ = [
    "health_router",
    "launch_router",
    "observations_router",
]

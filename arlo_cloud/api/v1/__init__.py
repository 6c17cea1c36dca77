"""API v1 routes."""
from fastapi import APIRouter

from arlo_cloud.api.v1.devices import router as devices_router
from arlo_cloud.api.v1.events import router as events_router

# Create main API router
api_router = APIRouter(prefix="/api/v1")

api_router.include_router(devices_router)
api_router.include_router(events_router)

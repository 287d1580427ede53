from fastapi import APIRouter

from hotspot_service.api.health.router import router as health_router
from hotspot_service.api.hotspot.router import router as hotspot_router

# V1 API router
v1_router = APIRouter(prefix="/v1")
v1_router.include_router(hotspot_router)

# Main API router
api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(v1_router)

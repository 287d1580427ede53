"""Health check endpoints for monitoring."""

from datetime import datetime, timezone
from typing import Literal

from fastapi import APIRouter, Request
from pydantic import BaseModel

from hotspot_service.api.core.dependencies import HotspotCacheDep
from hotspot_service.redis.client import is_redis_healthy


router = APIRouter(prefix="/health", tags=["health"])


class HealthCheckResult(BaseModel):
    service: str
    status: Literal["healthy", "unhealthy", "degraded"]
    connected: bool
    details: dict = {}


class OverallHealthStatus(BaseModel):
    status: Literal["healthy", "degraded", "unhealthy"]
    services: dict[str, HealthCheckResult]
    timestamp: str


@router.get("")
async def health_check(request: Request, cache: HotspotCacheDep) -> OverallHealthStatus:
    """Report cache connectivity; a missing cache only degrades the service."""
    redis_ok = await is_redis_healthy(cache.redis_client)

    services = {
        "redis": HealthCheckResult(
            service="redis",
            status="healthy" if redis_ok else "degraded",
            connected=redis_ok,
        ),
        "store": HealthCheckResult(
            service="store",
            status="healthy",
            connected=True,
            details={"backend": request.app.state.store_backend},
        ),
    }

    return OverallHealthStatus(
        status="healthy" if redis_ok else "degraded",
        services=services,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@router.get("/liveness")
async def liveness_check():
    """Simple liveness check - indicates if service is running."""
    return {"status": "alive", "service": "hotspot-service"}

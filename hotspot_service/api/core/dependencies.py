from typing import Annotated

from fastapi import Depends, Header, Request, status

from hotspot_service.api.core.exceptions.base import HotspotException
from hotspot_service.api.core.messages import MessageCode
from hotspot_service.cache.geo_cache import HotspotCache
from hotspot_service.services.geospatial.service import GeospatialService
from hotspot_service.services.hotspot.service import HotspotService


async def get_hotspot_service(request: Request) -> HotspotService:
    """Get hotspot lifecycle service from app state."""
    return request.app.state.hotspot_service


async def get_geospatial_service(request: Request) -> GeospatialService:
    """Get geospatial search service from app state."""
    return request.app.state.geospatial_service


async def get_hotspot_cache(request: Request) -> HotspotCache:
    return request.app.state.cache


async def get_current_user_id(
    x_user_id: Annotated[str | None, Header()] = None,
) -> str:
    """Caller identity, resolved upstream and forwarded as ``X-User-Id``."""
    if not x_user_id:
        raise HotspotException(
            MessageCode.AUTH_REQUIRED,
            status.HTTP_401_UNAUTHORIZED,
            {"description": "X-User-Id header is required"},
        )
    return x_user_id


HotspotServiceDep = Annotated[HotspotService, Depends(get_hotspot_service)]
GeospatialServiceDep = Annotated[GeospatialService, Depends(get_geospatial_service)]
HotspotCacheDep = Annotated[HotspotCache, Depends(get_hotspot_cache)]
CurrentUserIdDep = Annotated[str, Depends(get_current_user_id)]

from datetime import datetime

from fastapi import APIRouter, Query, status

from hotspot_service.api.core.dependencies import (
    CurrentUserIdDep,
    GeospatialServiceDep,
    HotspotServiceDep,
)
from hotspot_service.api.core.messages import APIResponse, MessageCode
from hotspot_service.api.hotspot.schemas import (
    CacheStatsResponse,
    HotspotListResponse,
    HotspotResponse,
    HotspotSearchAPIResponse,
    OptimizedSearchAPIResponse,
)
from hotspot_service.modules.hotspot.models import (
    ClusteringMode,
    CreateHotspotRequest,
    HotspotCategory,
    HotspotSearchRequest,
    OptimizedSearchRequest,
    UpdateHotspotRequest,
)

router = APIRouter(prefix="/hotspots", tags=["hotspots"])

NEARBY_RADIUS_KM = 5.0
NEARBY_LIMIT = 10


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=HotspotResponse)
async def create_hotspot(
    body: CreateHotspotRequest,
    user_id: CurrentUserIdDep,
    hotspot_service: HotspotServiceDep,
) -> HotspotResponse:
    hotspot = await hotspot_service.create_hotspot(user_id, body)
    return APIResponse.success(message_code=MessageCode.HOTSPOT_CREATED, data=hotspot)


@router.get("/mine", response_model=HotspotListResponse)
async def list_my_hotspots(
    user_id: CurrentUserIdDep,
    hotspot_service: HotspotServiceDep,
) -> HotspotListResponse:
    hotspots = await hotspot_service.list_user_hotspots(user_id)
    return APIResponse.success(data=hotspots)


@router.get("/search", response_model=HotspotSearchAPIResponse)
async def search_hotspots(
    hotspot_service: HotspotServiceDep,
    latitude: float = Query(ge=-90, le=90),
    longitude: float = Query(ge=-180, le=180),
    radius_km: float = Query(default=10.0, gt=0),
    category: HotspotCategory | None = None,
    is_active: bool | None = None,
    has_available_spots: bool | None = None,
    tags: list[str] = Query(default=[]),
    start_time: datetime | None = None,
    end_time: datetime | None = None,
    limit: int = Query(default=20, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
) -> HotspotSearchAPIResponse:
    """Radius search over every stored hotspot, nearest first."""
    request = HotspotSearchRequest(
        latitude=latitude,
        longitude=longitude,
        radius_km=radius_km,
        category=category,
        is_active=is_active,
        has_available_spots=has_available_spots,
        tags=tags,
        start_time=start_time,
        end_time=end_time,
        limit=limit,
        offset=offset,
    )
    results = await hotspot_service.search_hotspots(request)
    return APIResponse.success(message_code=MessageCode.SEARCH_COMPLETED, data=results)


@router.get("/nearby", response_model=HotspotSearchAPIResponse)
async def nearby_hotspots(
    hotspot_service: HotspotServiceDep,
    latitude: float = Query(ge=-90, le=90),
    longitude: float = Query(ge=-180, le=180),
) -> HotspotSearchAPIResponse:
    """The closest active hotspots within walking distance."""
    request = HotspotSearchRequest(
        latitude=latitude,
        longitude=longitude,
        radius_km=NEARBY_RADIUS_KM,
        is_active=True,
        limit=NEARBY_LIMIT,
    )
    results = await hotspot_service.search_hotspots(request)
    return APIResponse.success(message_code=MessageCode.SEARCH_COMPLETED, data=results)


@router.post("/search/optimized", response_model=OptimizedSearchAPIResponse)
async def search_hotspots_optimized(
    body: OptimizedSearchRequest,
    geospatial_service: GeospatialServiceDep,
) -> OptimizedSearchAPIResponse:
    """Map search with caching, geo indexing and optional clustering.

    Clients that say nothing about clustering get ``auto``.
    """
    if (
        "mode" not in body.clustering.model_fields_set
        and body.geospatial_query.clustering_mode == ClusteringMode.NONE
    ):
        body.clustering.mode = ClusteringMode.AUTO
    result = await geospatial_service.search_optimized(body)
    return APIResponse.success(message_code=MessageCode.SEARCH_COMPLETED, data=result)


@router.get("/cache/stats", response_model=CacheStatsResponse)
async def get_cache_stats(
    geospatial_service: GeospatialServiceDep,
) -> CacheStatsResponse:
    stats = await geospatial_service.cache_stats()
    return APIResponse.success(data=stats)


@router.get("/{hotspot_id}", response_model=HotspotResponse)
async def get_hotspot(
    hotspot_id: str,
    hotspot_service: HotspotServiceDep,
) -> HotspotResponse:
    hotspot = await hotspot_service.get_hotspot(hotspot_id)
    return APIResponse.success(data=hotspot)


@router.put("/{hotspot_id}", response_model=HotspotResponse)
async def update_hotspot(
    hotspot_id: str,
    body: UpdateHotspotRequest,
    user_id: CurrentUserIdDep,
    hotspot_service: HotspotServiceDep,
) -> HotspotResponse:
    hotspot = await hotspot_service.update_hotspot(user_id, hotspot_id, body)
    return APIResponse.success(message_code=MessageCode.HOTSPOT_UPDATED, data=hotspot)


@router.delete("/{hotspot_id}")
async def delete_hotspot(
    hotspot_id: str,
    user_id: CurrentUserIdDep,
    hotspot_service: HotspotServiceDep,
) -> APIResponse[None]:
    await hotspot_service.delete_hotspot(user_id, hotspot_id)
    return APIResponse.success(message_code=MessageCode.HOTSPOT_DELETED)


@router.post("/{hotspot_id}/join", response_model=HotspotResponse)
async def join_hotspot(
    hotspot_id: str,
    user_id: CurrentUserIdDep,
    hotspot_service: HotspotServiceDep,
) -> HotspotResponse:
    hotspot = await hotspot_service.join_hotspot(user_id, hotspot_id)
    return APIResponse.success(message_code=MessageCode.HOTSPOT_JOINED, data=hotspot)


@router.post("/{hotspot_id}/leave", response_model=HotspotResponse)
async def leave_hotspot(
    hotspot_id: str,
    user_id: CurrentUserIdDep,
    hotspot_service: HotspotServiceDep,
) -> HotspotResponse:
    hotspot = await hotspot_service.leave_hotspot(user_id, hotspot_id)
    return APIResponse.success(message_code=MessageCode.HOTSPOT_LEFT, data=hotspot)

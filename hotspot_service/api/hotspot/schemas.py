"""Hotspot API schemas."""

from hotspot_service.api.core.messages import APIResponse
from hotspot_service.modules.hotspot.models import (
    CacheStats,
    Hotspot,
    HotspotSearchResponse,
    OptimizedSearchResult,
)

HotspotResponse = APIResponse[Hotspot]
HotspotListResponse = APIResponse[list[Hotspot]]
HotspotSearchAPIResponse = APIResponse[HotspotSearchResponse]
OptimizedSearchAPIResponse = APIResponse[OptimizedSearchResult]
CacheStatsResponse = APIResponse[CacheStats]

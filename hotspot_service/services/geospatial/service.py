"""Geospatial search orchestration: cache, geo index, store, clustering."""

import base64
import binascii
import hashlib
import time
from dataclasses import dataclass

from fastapi import status

from hotspot_service.api.core.exceptions.base import HotspotException
from hotspot_service.api.core.messages import MessageCode
from hotspot_service.cache.geo_cache import HotspotCache
from hotspot_service.core.base import BaseService
from hotspot_service.modules.geo.distance import (
    bounding_box_contains,
    distance_between,
    radius_for_bounding_box,
)
from hotspot_service.modules.geo.models import BoundingBox, Location
from hotspot_service.modules.hotspot.clustering import cluster_hotspots
from hotspot_service.modules.hotspot.filters import apply_filters
from hotspot_service.modules.hotspot.models import (
    CacheStats,
    Cluster,
    ClusterCacheEntry,
    ClusterConfig,
    ClusteringMode,
    HotspotSearchResponse,
    HotspotWithDistance,
    OptimizedSearchRequest,
    OptimizedSearchResult,
    Pagination,
    RegionCacheEntry,
    SearchFilters,
)
from hotspot_service.modules.hotspot.store import RecordStore
from hotspot_service.services.hotspot.service import HotspotService
from hotspot_service.utils.settings.geo import ClusteringSettings, GeoSettings


def encode_page_token(offset: int) -> str:
    return base64.urlsafe_b64encode(f"offset:{offset}".encode()).decode()


def decode_page_token(token: str) -> int | None:
    try:
        decoded = base64.urlsafe_b64decode(token.encode()).decode()
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None
    prefix, _, value = decoded.partition(":")
    if prefix != "offset" or not value.isdigit():
        return None
    return int(value)


@dataclass
class NormalizedQuery:
    center: Location
    radius_km: float
    bounding_box: BoundingBox | None
    zoom_level: int
    max_results: int
    offset: int
    limit: int
    clustering: ClusterConfig
    filters: SearchFilters

    def variant(self) -> str:
        """Digest of everything besides the region that shapes the answer."""
        parts = [
            self.filters.model_dump_json(),
            self.clustering.model_dump_json(),
            self.bounding_box.model_dump_json() if self.bounding_box else "",
            f"{self.offset}:{self.limit}:{self.max_results}",
        ]
        return hashlib.sha1("|".join(parts).encode()).hexdigest()[:16]


class GeospatialService(BaseService):
    """Answers map searches, preferring the cache tier and the geo index.

    Cache problems never fail a search; record store failures do.
    """

    def __init__(
        self,
        store: RecordStore,
        cache: HotspotCache,
        hotspot_service: HotspotService | None = None,
        settings: GeoSettings | None = None,
        clustering_settings: ClusteringSettings | None = None,
    ):
        super().__init__(store, cache)
        self.hotspot_service = hotspot_service or HotspotService(store, cache)
        self.settings = settings or GeoSettings()
        self.clustering_settings = clustering_settings or ClusteringSettings()

    # === Request normalization ===

    def _limit(self, limit: int) -> int:
        if limit <= 0:
            return self.settings.DEFAULT_LIMIT
        return min(limit, self.settings.MAX_LIMIT)

    def normalize(self, request: OptimizedSearchRequest) -> NormalizedQuery:
        query = request.geospatial_query
        center, radius = query.center, query.radius_km

        if center is None:
            if query.bounding_box is None:
                raise HotspotException(
                    MessageCode.INVALID_QUERY,
                    status.HTTP_400_BAD_REQUEST,
                    {"description": "center coordinates are required"},
                )
            center, box_radius = radius_for_bounding_box(query.bounding_box)
            if radius <= 0:
                radius = box_radius

        if radius <= 0:
            radius = self.settings.DEFAULT_RADIUS_KM

        zoom = query.zoom_level if query.zoom_level > 0 else self.settings.DEFAULT_ZOOM_LEVEL

        offset = max(request.pagination.offset, 0)
        if request.pagination.page_token:
            token_offset = decode_page_token(request.pagination.page_token)
            if token_offset is not None:
                offset = token_offset

        config = request.clustering
        mode = config.mode
        if mode == ClusteringMode.NONE and query.clustering_mode != ClusteringMode.NONE:
            mode = query.clustering_mode
        clustering = config.model_copy(
            update={
                "mode": mode,
                "zoom_level": config.zoom_level if config.zoom_level > 0 else zoom,
                "min_cluster_size": config.min_cluster_size
                if config.min_cluster_size >= 1
                else self.settings.DEFAULT_MIN_CLUSTER_SIZE,
                "max_cluster_size": config.max_cluster_size
                if config.max_cluster_size >= 1
                else self.settings.DEFAULT_MAX_CLUSTER_SIZE,
            }
        )

        return NormalizedQuery(
            center=center,
            radius_km=radius,
            bounding_box=query.bounding_box,
            zoom_level=zoom,
            max_results=query.max_results
            if query.max_results > 0
            else self.settings.GEO_INDEX_MAX_RESULTS,
            offset=offset,
            limit=self._limit(request.pagination.limit),
            clustering=clustering,
            filters=request.filters,
        )

    # === Candidate retrieval ===

    async def _indexed_candidates(self, q: NormalizedQuery) -> list[HotspotWithDistance] | None:
        """Matches via the geo index, or None when the index has nothing."""
        ids = await self.cache.nearby_ids(q.center, q.radius_km, q.max_results)
        if not ids:
            return None

        hotspots = apply_filters(await self.store.get_many(ids), q.filters)
        results = [
            HotspotWithDistance(hotspot=h, distance_km=distance_between(q.center, h.location))
            for h in hotspots
        ]
        # The index is approximate; enforce the radius exactly
        results = [r for r in results if r.distance_km <= q.radius_km]
        results.sort(key=lambda r: r.distance_km)
        return results

    async def find_matches(self, q: NormalizedQuery) -> tuple[list[HotspotWithDistance], str]:
        query_type = "geo_index"
        results = await self._indexed_candidates(q)
        if results is None:
            # Cache down and empty index look the same: scan the store
            query_type = "full_scan"
            results = await self.hotspot_service.scan_nearby(
                q.center, q.radius_km, q.filters
            )

        if q.bounding_box is not None:
            results = [
                r for r in results if bounding_box_contains(q.bounding_box, r.hotspot.location)
            ]
        return results, query_type

    # === Public operations ===

    @staticmethod
    def _present_clusters(clusters: list[Cluster], config: ClusterConfig) -> list[Cluster]:
        if config.include_hotspot_details:
            return clusters
        return [c.model_copy(update={"hotspot_ids": None}) for c in clusters]

    def _log_query(
        self,
        query_type: str,
        q: NormalizedQuery,
        started: float,
        result_count: int,
        cache_hit: bool,
    ) -> int:
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        self.logger.info(
            "geospatial_search",
            query_type=query_type,
            query_time_ms=elapsed_ms,
            result_count=result_count,
            cache_hit=cache_hit,
            zoom_level=q.zoom_level,
            radius_km=q.radius_km,
        )
        return elapsed_ms

    async def search_optimized(self, request: OptimizedSearchRequest) -> OptimizedSearchResult:
        """Map search returning individual hotspots or clusters.

        Steps: cache lookup, geo index candidates (or a full scan), filters,
        exact radius check, pagination, optional clustering, cache write.
        """
        started = time.perf_counter()
        q = self.normalize(request)
        variant = q.variant()
        clustered = q.clustering.mode != ClusteringMode.NONE

        if self.cache.is_available():
            if clustered:
                cached = await self.cache.get_cluster_results(
                    q.center, q.radius_km, q.zoom_level, variant
                )
                if cached is not None:
                    clusters = self._present_clusters(cached.clusters, q.clustering)
                    return OptimizedSearchResult(
                        clusters=clusters,
                        total_count=cached.total_count,
                        cluster_count=len(clusters),
                        has_more=cached.has_more,
                        next_page_token=cached.next_page_token,
                        query_time_ms=self._log_query("cache", q, started, len(clusters), True),
                        cache_hit=True,
                        zoom_level=q.zoom_level,
                    )
            else:
                cached = await self.cache.get_region_results(q.center, q.radius_km, variant)
                if cached is not None:
                    return OptimizedSearchResult(
                        individual_hotspots=cached.hotspots,
                        total_count=cached.total_count,
                        has_more=cached.has_more,
                        next_page_token=cached.next_page_token,
                        query_time_ms=self._log_query(
                            "cache", q, started, len(cached.hotspots), True
                        ),
                        cache_hit=True,
                        zoom_level=q.zoom_level,
                    )

        matches, query_type = await self.find_matches(q)

        total = len(matches)
        start = min(q.offset, total)
        end = min(start + q.limit, total)
        page = matches[start:end]
        has_more = q.offset + q.limit < total
        next_page_token = encode_page_token(q.offset + q.limit) if has_more else None

        clusters: list[Cluster] = []
        individual: list[HotspotWithDistance] = []
        if clustered and len(page) > q.clustering.min_cluster_size:
            clusters = cluster_hotspots(page, q.clustering, self.clustering_settings)
            await self.cache.cache_cluster_results(
                q.center,
                q.radius_km,
                q.zoom_level,
                ClusterCacheEntry(
                    clusters=clusters,
                    total_count=total,
                    has_more=has_more,
                    next_page_token=next_page_token,
                ),
                self.settings.CLUSTER_CACHE_TTL,
                variant,
            )
        else:
            individual = page
            await self.cache.cache_region_results(
                q.center,
                q.radius_km,
                RegionCacheEntry(
                    hotspots=page,
                    total_count=total,
                    has_more=has_more,
                    next_page_token=next_page_token,
                ),
                self.settings.REGION_CACHE_TTL,
                variant,
            )

        clusters = self._present_clusters(clusters, q.clustering)
        return OptimizedSearchResult(
            clusters=clusters,
            individual_hotspots=individual,
            total_count=total,
            cluster_count=len(clusters),
            has_more=has_more,
            next_page_token=next_page_token,
            query_time_ms=self._log_query(query_type, q, started, len(page), False),
            cache_hit=False,
            zoom_level=q.zoom_level,
        )

    async def search(
        self,
        center: Location,
        radius_km: float,
        filters: SearchFilters | None = None,
        pagination: Pagination | None = None,
    ) -> HotspotSearchResponse:
        """Direct, unclustered, uncached radius search."""
        filters = filters or SearchFilters()
        pagination = pagination or Pagination()
        if radius_km <= 0:
            radius_km = self.settings.DEFAULT_RADIUS_KM
        limit = self._limit(pagination.limit)
        offset = max(pagination.offset, 0)

        results = await self.hotspot_service.scan_nearby(center, radius_km, filters)

        total = len(results)
        start = min(offset, total)
        end = min(start + limit, total)
        return HotspotSearchResponse(
            hotspots=results[start:end],
            total=total,
            has_more=offset + limit < total,
        )

    async def cache_stats(self) -> CacheStats:
        return await self.cache.stats()

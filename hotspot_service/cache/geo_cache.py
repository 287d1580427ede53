"""Redis-backed region/cluster cache and geospatial index for hotspots."""

import redis.asyncio as redis
from pydantic import ValidationError
from redis.exceptions import RedisError

from hotspot_service.modules.geo.models import Location
from hotspot_service.modules.hotspot.models import (
    CacheStats,
    ClusterCacheEntry,
    Hotspot,
    RegionCacheEntry,
)
from hotspot_service.redis.client import create_redis_client
from hotspot_service.utils.logger import get_logger
from hotspot_service.utils.settings.geo import GeoSettings
from hotspot_service.utils.settings.redis import RedisSettings

logger = get_logger(__name__)

GEO_INDEX_KEY = "hotspots:geo"
REGION_PREFIX = "hotspots:region"
CLUSTER_PREFIX = "hotspots:clusters"

_CACHE_ERRORS = (RedisError, OSError)


def region_base(center: Location, radius_km: float) -> str:
    """Rounded region identifier shared by region and cluster keys.

    Coordinates are rounded to 4 decimals and the radius to 1 so that
    near-identical queries share an entry.
    """
    # + 0.0 turns -0.0 into 0.0 so keys agree across the equator and meridian
    lat = round(center.latitude, 4) + 0.0
    lon = round(center.longitude, 4) + 0.0
    return f"{lat:.4f},{lon:.4f}:{radius_km:.1f}"


def region_key(center: Location, radius_km: float, variant: str = "") -> str:
    key = f"{REGION_PREFIX}:{region_base(center, radius_km)}"
    return f"{key}:{variant}" if variant else key


def cluster_key(
    center: Location, radius_km: float, zoom_level: int, variant: str = ""
) -> str:
    key = f"{CLUSTER_PREFIX}:{region_base(center, radius_km)}:z{zoom_level}"
    return f"{key}:{variant}" if variant else key


class HotspotCache:
    """Best-effort accelerator in front of the record store.

    Every method is safe to call when Redis is unreachable: failures are
    logged and reported as a miss or a no-op, never raised.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None,
        settings: GeoSettings | None = None,
    ):
        self.redis_client = redis_client
        self.settings = settings or GeoSettings()

    @classmethod
    async def connect(
        cls,
        redis_settings: RedisSettings | None = None,
        geo_settings: GeoSettings | None = None,
    ) -> "HotspotCache":
        """Connect and ping; an unreachable server yields a disabled cache."""
        redis_settings = redis_settings or RedisSettings()
        if not redis_settings.REDIS_ENABLED:
            logger.info("Redis disabled by configuration, running without cache")
            return cls(None, geo_settings)

        client = create_redis_client(redis_settings)
        try:
            await client.ping()
        except _CACHE_ERRORS as e:
            logger.warning(
                f"Redis connection to {redis_settings.REDIS_URL} failed: {e}. "
                "Running without cache."
            )
            await client.aclose()
            return cls(None, geo_settings)

        logger.info(f"Redis connected at {redis_settings.REDIS_URL}")
        return cls(client, geo_settings)

    def is_available(self) -> bool:
        return self.redis_client is not None

    async def close(self) -> None:
        if self.redis_client is not None:
            await self.redis_client.aclose()
            self.redis_client = None

    # === Region and cluster results ===

    async def _set(self, key: str, payload: str, ttl: int) -> bool:
        if not self.is_available():
            return False
        try:
            await self.redis_client.setex(key, ttl, payload)
            return True
        except _CACHE_ERRORS as e:
            logger.warning(f"Failed to set cache key '{key}': {e}")
            return False

    async def _get(self, key: str) -> str | None:
        if not self.is_available():
            return None
        try:
            return await self.redis_client.get(key)
        except _CACHE_ERRORS as e:
            logger.warning(f"Failed to get cache key '{key}': {e}")
            return None

    async def cache_region_results(
        self,
        center: Location,
        radius_km: float,
        entry: RegionCacheEntry,
        ttl: int | None = None,
        variant: str = "",
    ) -> bool:
        key = region_key(center, radius_km, variant)
        ttl = ttl or self.settings.REGION_CACHE_TTL
        return await self._set(key, entry.model_dump_json(), ttl)

    async def get_region_results(
        self, center: Location, radius_km: float, variant: str = ""
    ) -> RegionCacheEntry | None:
        """Cached entry, or None on a miss. An empty entry is still a hit."""
        key = region_key(center, radius_km, variant)
        raw = await self._get(key)
        if raw is None:
            return None
        try:
            return RegionCacheEntry.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable cache entry '{key}': {e}")
            return None

    async def cache_cluster_results(
        self,
        center: Location,
        radius_km: float,
        zoom_level: int,
        entry: ClusterCacheEntry,
        ttl: int | None = None,
        variant: str = "",
    ) -> bool:
        key = cluster_key(center, radius_km, zoom_level, variant)
        ttl = ttl or self.settings.CLUSTER_CACHE_TTL
        return await self._set(key, entry.model_dump_json(), ttl)

    async def get_cluster_results(
        self, center: Location, radius_km: float, zoom_level: int, variant: str = ""
    ) -> ClusterCacheEntry | None:
        key = cluster_key(center, radius_km, zoom_level, variant)
        raw = await self._get(key)
        if raw is None:
            return None
        try:
            return ClusterCacheEntry.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable cache entry '{key}': {e}")
            return None

    # === Geospatial index ===

    async def add_to_geo_index(self, hotspot_id: str, location: Location) -> bool:
        if not self.is_available():
            return False
        try:
            await self.redis_client.geoadd(
                GEO_INDEX_KEY, (location.longitude, location.latitude, hotspot_id)
            )
            return True
        except _CACHE_ERRORS as e:
            logger.warning(f"Failed to index hotspot {hotspot_id}: {e}")
            return False

    async def remove_from_geo_index(self, hotspot_id: str) -> bool:
        if not self.is_available():
            return False
        try:
            await self.redis_client.zrem(GEO_INDEX_KEY, hotspot_id)
            return True
        except _CACHE_ERRORS as e:
            logger.warning(f"Failed to remove hotspot {hotspot_id} from geo index: {e}")
            return False

    async def nearby_ids(
        self, center: Location, radius_km: float, max_count: int | None = None
    ) -> list[str]:
        """Hotspot IDs within ``radius_km`` of ``center``, nearest first."""
        if not self.is_available():
            return []
        try:
            ids = await self.redis_client.geosearch(
                GEO_INDEX_KEY,
                longitude=center.longitude,
                latitude=center.latitude,
                radius=radius_km,
                unit="km",
                sort="ASC",
                count=max_count or self.settings.GEO_INDEX_MAX_RESULTS,
            )
        except _CACHE_ERRORS as e:
            logger.warning(f"Geo index query failed: {e}")
            return []
        return list(ids)

    # === Invalidation ===

    async def invalidate_region(self, center: Location, radius_km: float) -> int:
        """Drop the region entry and its cluster entries for every zoom level.

        Deleting missing keys is a no-op, so repeated calls are safe.
        """
        if not self.is_available():
            return 0

        base = region_base(center, radius_km)
        keys = [region_key(center, radius_km)]
        keys.extend(
            cluster_key(center, radius_km, zoom)
            for zoom in range(1, self.settings.MAX_ZOOM_LEVEL + 1)
        )
        try:
            # Variant entries (filtered or paginated queries) of this region
            keys.extend(await self.redis_client.keys(f"{REGION_PREFIX}:{base}:*"))
            keys.extend(await self.redis_client.keys(f"{CLUSTER_PREFIX}:{base}:z*"))
            deleted = await self.redis_client.delete(*set(keys))
        except _CACHE_ERRORS as e:
            logger.warning(f"Failed to invalidate region {base}: {e}")
            return 0

        if deleted:
            logger.debug(f"Invalidated {deleted} cache entries for region {base}")
        return deleted

    async def invalidate_for_entity(self, hotspot: Hotspot) -> int:
        """Unindex ``hotspot`` and sweep fixed radii around its location.

        Approximate: a cached query centered elsewhere that still covers the
        hotspot survives until its TTL expires.
        """
        if not self.is_available():
            return 0

        await self.remove_from_geo_index(hotspot.id)
        deleted = 0
        for radius in self.settings.INVALIDATION_RADII_KM:
            deleted += await self.invalidate_region(hotspot.location, radius)

        logger.info(f"Invalidated {deleted} cache entries for hotspot {hotspot.id}")
        return deleted

    # === Diagnostics ===

    async def stats(self) -> CacheStats:
        if not self.is_available():
            return CacheStats(available=False)
        try:
            total_keys = await self.redis_client.dbsize()
            memory = await self.redis_client.info("memory")
        except _CACHE_ERRORS as e:
            logger.warning(f"Failed to read cache stats: {e}")
            return CacheStats(available=True)
        return CacheStats(
            available=True,
            total_keys=total_keys,
            approx_memory=memory.get("used_memory"),
        )

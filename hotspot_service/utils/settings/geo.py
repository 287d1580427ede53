"""Geospatial search and clustering tuning."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class GeoSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Cache TTLs in seconds
    REGION_CACHE_TTL: int = 300
    CLUSTER_CACHE_TTL: int = 300

    # Query defaults substituted for missing or invalid parameters
    DEFAULT_RADIUS_KM: float = 10.0
    DEFAULT_ZOOM_LEVEL: int = 10
    DEFAULT_LIMIT: int = 50
    MAX_LIMIT: int = 1000
    DEFAULT_MIN_CLUSTER_SIZE: int = 2
    DEFAULT_MAX_CLUSTER_SIZE: int = 50

    GEO_INDEX_MAX_RESULTS: int = 1000

    # Radii swept around a mutated hotspot; the exact set of cached queries
    # that could contain it is unknown.
    INVALIDATION_RADII_KM: list[float] = [1.0, 5.0, 10.0, 25.0, 50.0]
    MAX_ZOOM_LEVEL: int = 20


class ClusteringSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="CLUSTERING_", extra="ignore"
    )

    # Zoom bands: <= 5, <= 10, <= 15, above
    ZOOM_BANDS: list[int] = [5, 10, 15]
    GRID_SIZES_KM: list[float] = [50.0, 10.0, 2.0, 0.5]
    DISTANCE_THRESHOLDS_KM: list[float] = [25.0, 5.0, 1.0, 0.2]

    # Auto mode: distance below the first, grid below the second, else k-means
    AUTO_DISTANCE_MAX_POINTS: int = 20
    AUTO_GRID_MAX_POINTS: int = 100

    KMEANS_MAX_ITERATIONS: int = 10
    KMEANS_TOLERANCE_DEG: float = 0.0001
    KMEANS_HIGH_ZOOM: int = 15
    KMEANS_LOW_ZOOM: int = 10

    def band_index(self, zoom_level: int) -> int:
        for index, upper in enumerate(self.ZOOM_BANDS):
            if zoom_level <= upper:
                return index
        return len(self.ZOOM_BANDS)

    def grid_size_for_zoom(self, zoom_level: int) -> float:
        return self.GRID_SIZES_KM[self.band_index(zoom_level)]

    def distance_threshold_for_zoom(self, zoom_level: int) -> float:
        return self.DISTANCE_THRESHOLDS_KM[self.band_index(zoom_level)]


__all__ = ["GeoSettings", "ClusteringSettings"]

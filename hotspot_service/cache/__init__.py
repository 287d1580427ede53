from .geo_cache import (
    GEO_INDEX_KEY,
    HotspotCache,
    cluster_key,
    region_key,
)

__all__ = [
    "GEO_INDEX_KEY",
    "HotspotCache",
    "cluster_key",
    "region_key",
]

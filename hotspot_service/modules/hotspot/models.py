"""Hotspot domain models."""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated
from uuid import uuid4

from pydantic import AfterValidator, BaseModel, Field, model_validator

from hotspot_service.modules.geo.models import BoundingBox, Location

MAX_TAGS = 10


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC; aware ones are converted to it."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UTCDatetime = Annotated[datetime, AfterValidator(as_utc)]


class HotspotCategory(str, Enum):
    CAFE = "cafe"
    RESTAURANT = "restaurant"
    PARK = "park"
    GYM = "gym"
    LIBRARY = "library"
    BEACH = "beach"
    BAR = "bar"
    EVENT = "event"
    STUDY = "study"
    SPORTS = "sports"
    SHOPPING = "shopping"
    ENTERTAINMENT = "entertainment"
    OTHER = "other"


class ClusteringMode(str, Enum):
    NONE = "none"
    GRID = "grid"
    DISTANCE = "distance"
    KMEANS = "kmeans"
    AUTO = "auto"


class Address(BaseModel):
    street: str = ""
    city: str
    region: str = ""
    country: str
    postal_code: str = ""


class Hotspot(BaseModel):
    """A meetup location and its membership."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    name: str
    description: str = ""
    category: HotspotCategory
    location: Location
    address: Address | None = None
    created_by: str
    created_by_nickname: str | None = None
    max_capacity: int = Field(default=0, ge=0)  # 0 means unlimited
    current_occupancy: int = Field(default=0, ge=0)
    is_active: bool = True
    is_public: bool = True
    tags: list[str] = Field(default_factory=list, max_length=MAX_TAGS)
    scheduled_time: UTCDatetime | None = None
    end_time: UTCDatetime | None = None
    image_url: str | None = None
    attendees: list[str] = Field(default_factory=list)
    created_at: UTCDatetime = Field(default_factory=utc_now)
    updated_at: UTCDatetime = Field(default_factory=utc_now)

    @model_validator(mode="after")
    def _check_schedule(self) -> "Hotspot":
        if self.scheduled_time and self.end_time and self.end_time < self.scheduled_time:
            raise ValueError("end_time cannot be before scheduled_time")
        return self

    @property
    def is_full(self) -> bool:
        return self.max_capacity > 0 and self.current_occupancy >= self.max_capacity


class HotspotWithDistance(BaseModel):
    hotspot: Hotspot
    distance_km: float


class Cluster(BaseModel):
    """Aggregate of nearby hotspots computed for one zoom level."""

    id: str
    center: Location
    bounding_box: BoundingBox
    hotspot_count: int
    total_occupancy: int
    max_capacity: int
    categories: list[HotspotCategory]
    zoom_level: int
    radius_km: float
    hotspot_ids: list[str] | None = None


# === Query models ===


class TimeFilter(BaseModel):
    start_time: UTCDatetime | None = None
    end_time: UTCDatetime | None = None


class GeospatialQuery(BaseModel):
    center: Location | None = None
    radius_km: float = 0.0
    bounding_box: BoundingBox | None = None
    zoom_level: int = 0
    clustering_mode: ClusteringMode = ClusteringMode.NONE
    max_results: int = 0


class SearchFilters(BaseModel):
    categories: list[HotspotCategory] = Field(default_factory=list)
    is_active: bool | None = None
    has_available_spots: bool | None = None
    tags: list[str] = Field(default_factory=list)
    min_capacity: int | None = None
    max_capacity: int | None = None
    time_filter: TimeFilter | None = None
    created_by: str | None = None
    is_public: bool | None = None


class Pagination(BaseModel):
    limit: int = 0
    offset: int = 0
    page_token: str | None = None


class ClusterConfig(BaseModel):
    mode: ClusteringMode = ClusteringMode.NONE
    min_cluster_size: int = 0
    max_cluster_size: int = 0
    grid_size_km: float | None = None
    zoom_level: int = 0
    include_hotspot_details: bool = False


class OptimizedSearchRequest(BaseModel):
    geospatial_query: GeospatialQuery
    filters: SearchFilters = Field(default_factory=SearchFilters)
    pagination: Pagination = Field(default_factory=Pagination)
    clustering: ClusterConfig = Field(default_factory=ClusterConfig)


class HotspotSearchRequest(BaseModel):
    """Direct (unclustered) search over the record store."""

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    radius_km: float = 10.0
    category: HotspotCategory | None = None
    is_active: bool | None = None
    has_available_spots: bool | None = None
    tags: list[str] = Field(default_factory=list)
    start_time: UTCDatetime | None = None
    end_time: UTCDatetime | None = None
    limit: int = 20
    offset: int = Field(default=0, ge=0)

    def to_filters(self) -> SearchFilters:
        time_filter = None
        if self.start_time or self.end_time:
            time_filter = TimeFilter(start_time=self.start_time, end_time=self.end_time)
        return SearchFilters(
            categories=[self.category] if self.category else [],
            is_active=self.is_active,
            has_available_spots=self.has_available_spots,
            tags=self.tags,
            time_filter=time_filter,
        )


# === Result models ===


class HotspotSearchResponse(BaseModel):
    hotspots: list[HotspotWithDistance]
    total: int
    has_more: bool


class OptimizedSearchResult(BaseModel):
    clusters: list[Cluster] = Field(default_factory=list)
    individual_hotspots: list[HotspotWithDistance] = Field(default_factory=list)
    total_count: int = 0
    cluster_count: int = 0
    has_more: bool = False
    next_page_token: str | None = None
    query_time_ms: int = 0
    cache_hit: bool = False
    zoom_level: int


class RegionCacheEntry(BaseModel):
    hotspots: list[HotspotWithDistance]
    total_count: int
    has_more: bool = False
    next_page_token: str | None = None
    cached_at: datetime = Field(default_factory=utc_now)


class ClusterCacheEntry(BaseModel):
    clusters: list[Cluster]
    total_count: int
    has_more: bool = False
    next_page_token: str | None = None
    cached_at: datetime = Field(default_factory=utc_now)


class CacheStats(BaseModel):
    available: bool
    total_keys: int | None = None
    approx_memory: int | None = None


# === Mutation requests ===


class CreateHotspotRequest(BaseModel):
    name: str = Field(min_length=3, max_length=100)
    description: str = Field(default="", max_length=500)
    category: HotspotCategory
    location: Location
    address: Address | None = None
    max_capacity: int = Field(default=0, ge=0, le=1000)
    is_public: bool = True
    tags: list[str] = Field(default_factory=list, max_length=MAX_TAGS)
    scheduled_time: UTCDatetime | None = None
    end_time: UTCDatetime | None = None
    image_url: str | None = None
    nickname: str | None = None


class UpdateHotspotRequest(BaseModel):
    name: str | None = Field(default=None, min_length=3, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    category: HotspotCategory | None = None
    location: Location | None = None
    address: Address | None = None
    max_capacity: int | None = Field(default=None, ge=0, le=1000)
    is_public: bool | None = None
    tags: list[str] | None = Field(default=None, max_length=MAX_TAGS)
    scheduled_time: UTCDatetime | None = None
    end_time: UTCDatetime | None = None
    image_url: str | None = None
    is_active: bool | None = None

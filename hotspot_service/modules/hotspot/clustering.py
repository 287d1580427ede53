"""Spatial clustering of hotspots for low-zoom map rendering."""

import math
from typing import Protocol

from hotspot_service.modules.geo.distance import grid_key, haversine_km
from hotspot_service.modules.geo.models import BoundingBox, Location
from hotspot_service.modules.hotspot.models import (
    Cluster,
    ClusterConfig,
    ClusteringMode,
    HotspotCategory,
    HotspotWithDistance,
)
from hotspot_service.utils.settings.geo import ClusteringSettings


def _point_distance(a: HotspotWithDistance, b: HotspotWithDistance) -> float:
    return haversine_km(
        a.hotspot.location.latitude,
        a.hotspot.location.longitude,
        b.hotspot.location.latitude,
        b.hotspot.location.longitude,
    )


def build_cluster(
    points: list[HotspotWithDistance], cluster_id: str, zoom_level: int
) -> Cluster:
    """Summarise a group of hotspots as a single cluster.

    The center is the arithmetic mean of member coordinates, not a spatial
    median; the radius is the farthest member from that center.
    """
    if not points:
        raise ValueError("cannot build a cluster from an empty group")

    lats = [p.hotspot.location.latitude for p in points]
    lons = [p.hotspot.location.longitude for p in points]
    center_lat = sum(lats) / len(points)
    center_lon = sum(lons) / len(points)

    categories: list[HotspotCategory] = []
    for p in points:
        if p.hotspot.category not in categories:
            categories.append(p.hotspot.category)

    radius = max(
        haversine_km(center_lat, center_lon, lat, lon) for lat, lon in zip(lats, lons)
    )

    return Cluster(
        id=cluster_id,
        center=Location(latitude=center_lat, longitude=center_lon),
        bounding_box=BoundingBox(
            north_east=Location(latitude=max(lats), longitude=max(lons)),
            south_west=Location(latitude=min(lats), longitude=min(lons)),
        ),
        hotspot_count=len(points),
        total_occupancy=sum(p.hotspot.current_occupancy for p in points),
        max_capacity=sum(p.hotspot.max_capacity for p in points),
        categories=categories,
        zoom_level=zoom_level,
        radius_km=radius,
        hotspot_ids=[p.hotspot.id for p in points],
    )


class Clusterer(Protocol):
    def cluster(
        self, points: list[HotspotWithDistance], config: ClusterConfig
    ) -> list[Cluster]: ...


class GridClusterer:
    """One cluster per occupied grid cell."""

    def __init__(self, settings: ClusteringSettings):
        self.settings = settings

    def grid_size(self, config: ClusterConfig) -> float:
        if config.grid_size_km and config.grid_size_km > 0:
            return config.grid_size_km
        return self.settings.grid_size_for_zoom(config.zoom_level)

    def cluster(
        self, points: list[HotspotWithDistance], config: ClusterConfig
    ) -> list[Cluster]:
        size = self.grid_size(config)
        cells: dict[str, list[HotspotWithDistance]] = {}
        for point in points:
            cells.setdefault(grid_key(point.hotspot.location, size), []).append(point)

        clusters = []
        for members in cells.values():
            if len(members) >= config.min_cluster_size:
                clusters.append(
                    build_cluster(members, f"grid_{len(clusters)}", config.zoom_level)
                )
        return clusters


class DistanceClusterer:
    """Greedy single-pass agglomeration around seed points.

    Output depends on input order.
    """

    def __init__(self, settings: ClusteringSettings):
        self.settings = settings

    def cluster(
        self, points: list[HotspotWithDistance], config: ClusterConfig
    ) -> list[Cluster]:
        threshold = self.settings.distance_threshold_for_zoom(config.zoom_level)
        max_size = config.max_cluster_size if config.max_cluster_size > 0 else len(points)
        used = [False] * len(points)
        clusters = []

        for i, seed in enumerate(points):
            if used[i]:
                continue
            used[i] = True
            members = [seed]

            for j, other in enumerate(points):
                if used[j]:
                    continue
                if len(members) >= max_size:
                    break
                if _point_distance(seed, other) <= threshold:
                    members.append(other)
                    used[j] = True

            if len(members) >= config.min_cluster_size:
                clusters.append(
                    build_cluster(members, f"dist_{len(clusters)}", config.zoom_level)
                )
        return clusters


class KMeansClusterer:
    """Lloyd's algorithm with farthest-point seeding and a hard iteration cap."""

    def __init__(self, settings: ClusteringSettings):
        self.settings = settings

    def optimal_k(self, n: int, zoom_level: int) -> int:
        k = int(math.sqrt(n / 2))
        if zoom_level > self.settings.KMEANS_HIGH_ZOOM:
            k *= 2
        elif zoom_level < self.settings.KMEANS_LOW_ZOOM:
            k //= 2
        k = max(k, 2)
        return min(k, n // 3)

    @staticmethod
    def _nearest(lat: float, lon: float, centroids: list[tuple[float, float]]) -> int:
        best, best_dist = 0, math.inf
        for index, (clat, clon) in enumerate(centroids):
            dist = haversine_km(lat, lon, clat, clon)
            if dist < best_dist:
                best, best_dist = index, dist
        return best

    @staticmethod
    def seed_centroids(
        coords: list[tuple[float, float]], k: int
    ) -> list[tuple[float, float]]:
        centroids = [coords[0]]
        while len(centroids) < k:
            farthest, max_dist = coords[0], 0.0
            for lat, lon in coords:
                dist = min(haversine_km(lat, lon, clat, clon) for clat, clon in centroids)
                if dist > max_dist:
                    farthest, max_dist = (lat, lon), dist
            centroids.append(farthest)
        return centroids

    def cluster(
        self, points: list[HotspotWithDistance], config: ClusterConfig
    ) -> list[Cluster]:
        n = len(points)
        k = self.optimal_k(n, config.zoom_level)
        if k <= 1 or n < config.min_cluster_size:
            return []

        coords = [
            (p.hotspot.location.latitude, p.hotspot.location.longitude) for p in points
        ]
        centroids = self.seed_centroids(coords, k)
        tolerance = self.settings.KMEANS_TOLERANCE_DEG

        for _ in range(self.settings.KMEANS_MAX_ITERATIONS):
            sums = [[0.0, 0.0, 0] for _ in range(k)]
            for lat, lon in coords:
                acc = sums[self._nearest(lat, lon, centroids)]
                acc[0] += lat
                acc[1] += lon
                acc[2] += 1

            converged = True
            for index, (sum_lat, sum_lon, count) in enumerate(sums):
                if not count:
                    continue
                new_lat, new_lon = sum_lat / count, sum_lon / count
                old_lat, old_lon = centroids[index]
                if abs(new_lat - old_lat) > tolerance or abs(new_lon - old_lon) > tolerance:
                    converged = False
                centroids[index] = (new_lat, new_lon)

            if converged:
                break

        groups: list[list[HotspotWithDistance]] = [[] for _ in range(k)]
        for point, (lat, lon) in zip(points, coords):
            groups[self._nearest(lat, lon, centroids)].append(point)

        return [
            build_cluster(group, f"kmeans_{index}", config.zoom_level)
            for index, group in enumerate(groups)
            if group and len(group) >= config.min_cluster_size
        ]


class AutoClusterer:
    """Pick a strategy by volume: distance, then grid, then k-means."""

    def __init__(self, settings: ClusteringSettings):
        self.settings = settings
        self.distance = DistanceClusterer(settings)
        self.grid = GridClusterer(settings)
        self.kmeans = KMeansClusterer(settings)

    def select(self, n: int) -> Clusterer:
        if n < self.settings.AUTO_DISTANCE_MAX_POINTS:
            return self.distance
        if n < self.settings.AUTO_GRID_MAX_POINTS:
            return self.grid
        return self.kmeans

    def cluster(
        self, points: list[HotspotWithDistance], config: ClusterConfig
    ) -> list[Cluster]:
        return self.select(len(points)).cluster(points, config)


def build_clusterers(settings: ClusteringSettings) -> dict[ClusteringMode, Clusterer]:
    return {
        ClusteringMode.GRID: GridClusterer(settings),
        ClusteringMode.DISTANCE: DistanceClusterer(settings),
        ClusteringMode.KMEANS: KMeansClusterer(settings),
        ClusteringMode.AUTO: AutoClusterer(settings),
    }


def cluster_hotspots(
    points: list[HotspotWithDistance],
    config: ClusterConfig,
    settings: ClusteringSettings | None = None,
) -> list[Cluster]:
    """Cluster ``points`` with the strategy named by ``config.mode``."""
    if config.mode == ClusteringMode.NONE or not points:
        return []
    clusterer = build_clusterers(settings or ClusteringSettings())[config.mode]
    return clusterer.cluster(points, config)

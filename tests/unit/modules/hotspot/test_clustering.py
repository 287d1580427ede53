"""Tests for hotspot clustering strategies."""

import random

import pytest

from hotspot_service.modules.geo.models import Location
from hotspot_service.modules.hotspot.clustering import (
    AutoClusterer,
    DistanceClusterer,
    GridClusterer,
    KMeansClusterer,
    build_cluster,
    cluster_hotspots,
)
from hotspot_service.modules.hotspot.models import (
    ClusterConfig,
    ClusteringMode,
    HotspotCategory,
    HotspotWithDistance,
)
from hotspot_service.utils.settings.geo import ClusteringSettings

from tests.factories import HotspotFactory


def make_point(lat: float, lon: float, **kwargs) -> HotspotWithDistance:
    hotspot = HotspotFactory(location=Location(latitude=lat, longitude=lon), **kwargs)
    return HotspotWithDistance(hotspot=hotspot, distance_km=0.0)


def scattered_points(n: int, seed: int = 7) -> list[HotspotWithDistance]:
    rng = random.Random(seed)
    return [
        make_point(rng.uniform(40.0, 41.0), rng.uniform(-74.5, -73.5)) for _ in range(n)
    ]


def member_ids(clusters) -> list[str]:
    return [hotspot_id for c in clusters for hotspot_id in c.hotspot_ids]


@pytest.fixture
def settings() -> ClusteringSettings:
    return ClusteringSettings()


class TestBuildCluster:
    def test_empty_group_rejected(self):
        with pytest.raises(ValueError):
            build_cluster([], "grid_0", 10)

    def test_summary(self):
        points = [
            make_point(0.0, 0.0, category=HotspotCategory.CAFE, max_capacity=10),
            make_point(0.0, 0.002, category=HotspotCategory.PARK, max_capacity=5),
            make_point(0.002, 0.0, category=HotspotCategory.CAFE),
        ]
        cluster = build_cluster(points, "grid_0", 12)

        assert cluster.hotspot_count == 3
        assert cluster.total_occupancy == 3
        assert cluster.max_capacity == 15
        assert cluster.categories == [HotspotCategory.CAFE, HotspotCategory.PARK]
        assert cluster.center.latitude == pytest.approx(0.002 / 3)
        assert cluster.center.longitude == pytest.approx(0.002 / 3)
        assert cluster.bounding_box.north_east == Location(latitude=0.002, longitude=0.002)
        assert cluster.bounding_box.south_west == Location(latitude=0.0, longitude=0.0)
        assert cluster.radius_km > 0
        assert cluster.zoom_level == 12


class TestGridClusterer:
    def test_close_points_share_cell_and_singletons_dropped(self, settings):
        points = [make_point(0, 0), make_point(0, 0.001), make_point(10, 10)]
        config = ClusterConfig(
            mode=ClusteringMode.GRID, min_cluster_size=2, grid_size_km=5, zoom_level=10
        )

        clusters = GridClusterer(settings).cluster(points, config)

        assert len(clusters) == 1
        assert set(clusters[0].hotspot_ids) == {points[0].hotspot.id, points[1].hotspot.id}
        assert clusters[0].id == "grid_0"

    def test_grid_size_follows_zoom(self, settings):
        clusterer = GridClusterer(settings)
        assert clusterer.grid_size(ClusterConfig(zoom_level=3)) == 50.0
        assert clusterer.grid_size(ClusterConfig(zoom_level=10)) == 10.0
        assert clusterer.grid_size(ClusterConfig(zoom_level=15)) == 2.0
        assert clusterer.grid_size(ClusterConfig(zoom_level=18)) == 0.5
        assert clusterer.grid_size(ClusterConfig(zoom_level=18, grid_size_km=3)) == 3


class TestDistanceClusterer:
    def test_seed_order_decides_membership(self, settings):
        # Zoom 10 threshold is 5 km
        points = [make_point(0, 0), make_point(0, 0.03), make_point(0, 0.06)]
        config = ClusterConfig(
            mode=ClusteringMode.DISTANCE, min_cluster_size=2, zoom_level=10
        )

        clusters = DistanceClusterer(settings).cluster(points, config)

        assert len(clusters) == 1
        assert clusters[0].hotspot_ids == [points[0].hotspot.id, points[1].hotspot.id]

    def test_max_cluster_size_caps_members(self, settings):
        points = [make_point(0, 0.0001 * i) for i in range(6)]
        config = ClusterConfig(
            mode=ClusteringMode.DISTANCE,
            min_cluster_size=2,
            max_cluster_size=4,
            zoom_level=10,
        )

        clusters = DistanceClusterer(settings).cluster(points, config)

        assert [c.hotspot_count for c in clusters] == [4, 2]


class TestKMeansClusterer:
    def test_optimal_k(self, settings):
        clusterer = KMeansClusterer(settings)
        assert clusterer.optimal_k(150, 12) == 8
        assert clusterer.optimal_k(150, 16) == 16
        assert clusterer.optimal_k(150, 5) == 4
        assert clusterer.optimal_k(6, 12) == 2
        assert clusterer.optimal_k(3, 12) == 1

    def test_scattered_points_within_bounds(self, settings):
        points = scattered_points(150)
        config = ClusterConfig(
            mode=ClusteringMode.KMEANS, min_cluster_size=2, zoom_level=12
        )

        clusters = KMeansClusterer(settings).cluster(points, config)

        assert 2 <= len(clusters) <= 150 // 3
        assert all(c.id.startswith("kmeans_") for c in clusters)
        ids = member_ids(clusters)
        assert len(ids) == len(set(ids))

    def test_too_few_points(self, settings):
        config = ClusterConfig(mode=ClusteringMode.KMEANS, min_cluster_size=2, zoom_level=12)
        assert KMeansClusterer(settings).cluster(scattered_points(4), config) == []

    def test_coincident_points_terminate(self, settings):
        points = [make_point(1, 1) for _ in range(30)]
        config = ClusterConfig(mode=ClusteringMode.KMEANS, min_cluster_size=2, zoom_level=12)

        clusters = KMeansClusterer(settings).cluster(points, config)

        assert sum(c.hotspot_count for c in clusters) == 30


class TestAutoClusterer:
    def test_strategy_selection(self, settings):
        auto = AutoClusterer(settings)
        assert isinstance(auto.select(19), DistanceClusterer)
        assert isinstance(auto.select(20), GridClusterer)
        assert isinstance(auto.select(99), GridClusterer)
        assert isinstance(auto.select(100), KMeansClusterer)


class TestClusterHotspots:
    @pytest.mark.parametrize(
        "mode", [ClusteringMode.GRID, ClusteringMode.DISTANCE, ClusteringMode.AUTO]
    )
    def test_membership_conserved_and_min_size_enforced(self, mode, settings):
        points = scattered_points(60, seed=3)
        config = ClusterConfig(mode=mode, min_cluster_size=3, zoom_level=8)

        clusters = cluster_hotspots(points, config, settings)

        ids = member_ids(clusters)
        assert len(ids) == len(set(ids))
        assert set(ids) <= {p.hotspot.id for p in points}
        assert all(c.hotspot_count >= 3 for c in clusters)

    def test_none_mode_and_empty_input(self, settings):
        points = scattered_points(10)
        assert cluster_hotspots(points, ClusterConfig(mode=ClusteringMode.NONE)) == []
        assert cluster_hotspots([], ClusterConfig(mode=ClusteringMode.GRID)) == []

    def test_thresholds_are_configurable(self):
        points = [make_point(0, 0), make_point(0, 0.03)]
        config = ClusterConfig(mode=ClusteringMode.DISTANCE, min_cluster_size=2, zoom_level=10)

        tight = ClusteringSettings(DISTANCE_THRESHOLDS_KM=[25.0, 1.0, 1.0, 0.2])

        assert len(cluster_hotspots(points, config)) == 1
        assert cluster_hotspots(points, config, tight) == []

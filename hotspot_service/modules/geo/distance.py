"""Distance and grid helpers on a spherical Earth."""

import math

from hotspot_service.modules.geo.models import BoundingBox, Location

EARTH_RADIUS_KM = 6371.0

# Length of one degree of latitude; used to express grid cells in degrees.
KM_PER_DEGREE = 111.32


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in km."""
    lat1_r, lat2_r = math.radians(lat1), math.radians(lat2)
    dlat, dlon = math.radians(lat2 - lat1), math.radians(lon2 - lon1)
    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def distance_between(a: Location, b: Location) -> float:
    return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude)


def grid_key(location: Location, grid_size_km: float) -> str:
    """Key of the grid cell containing ``location``.

    The cell edge is converted from km to degrees and both coordinates are
    floored to a multiple of it, so every point in a cell shares its key.
    """
    cell = grid_size_km / KM_PER_DEGREE
    grid_lat = math.floor(location.latitude / cell) * cell
    grid_lon = math.floor(location.longitude / cell) * cell
    return f"{grid_lat:.4f},{grid_lon:.4f}"


def bounding_box_contains(box: BoundingBox, location: Location) -> bool:
    """Inclusive containment check on both axes."""
    return (
        box.south_west.latitude <= location.latitude <= box.north_east.latitude
        and box.south_west.longitude
        <= location.longitude
        <= box.north_east.longitude
    )


def radius_for_bounding_box(box: BoundingBox) -> tuple[Location, float]:
    """Center of ``box`` and the radius reaching its farthest corner."""
    center = Location(
        latitude=(box.north_east.latitude + box.south_west.latitude) / 2,
        longitude=(box.north_east.longitude + box.south_west.longitude) / 2,
    )
    radius = max(
        distance_between(center, box.north_east),
        distance_between(center, box.south_west),
        haversine_km(
            center.latitude,
            center.longitude,
            box.north_east.latitude,
            box.south_west.longitude,
        ),
        haversine_km(
            center.latitude,
            center.longitude,
            box.south_west.latitude,
            box.north_east.longitude,
        ),
    )
    return center, radius

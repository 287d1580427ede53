"""Geographic primitives."""

from pydantic import BaseModel, Field


class Location(BaseModel):
    """WGS84 coordinate pair."""

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class BoundingBox(BaseModel):
    """Axis-aligned rectangle on the map."""

    north_east: Location
    south_west: Location

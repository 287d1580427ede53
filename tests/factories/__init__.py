"""Test factories for hotspot models."""

from .hotspots import HotspotFactory, location_offset

__all__ = [
    "HotspotFactory",
    "location_offset",
]

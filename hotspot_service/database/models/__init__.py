"""Database models for the hotspot service."""

from .base import Base
from .hotspots import HotspotRecord

__all__ = [
    "Base",
    "HotspotRecord",
]

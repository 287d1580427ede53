from hotspot_service.cache.geo_cache import HotspotCache
from hotspot_service.modules.hotspot.store import RecordStore
from hotspot_service.utils.logger import get_logger


class BaseService:
    """Base service class with store and cache dependency injection."""

    def __init__(self, store: RecordStore, cache: HotspotCache):
        self.store = store
        self.cache = cache
        self.logger = get_logger(self.__class__.__name__)

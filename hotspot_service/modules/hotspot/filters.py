"""Search filter predicate shared by the indexed and full-scan paths."""

from hotspot_service.modules.hotspot.models import Hotspot, SearchFilters


def matches_filters(hotspot: Hotspot, filters: SearchFilters) -> bool:
    if filters.categories and hotspot.category not in filters.categories:
        return False

    if filters.is_active is not None and hotspot.is_active != filters.is_active:
        return False

    if filters.has_available_spots and hotspot.is_full:
        return False

    if filters.min_capacity is not None and hotspot.max_capacity < filters.min_capacity:
        return False
    if filters.max_capacity is not None and hotspot.max_capacity > filters.max_capacity:
        return False

    if filters.is_public is not None and hotspot.is_public != filters.is_public:
        return False

    if filters.created_by and hotspot.created_by != filters.created_by:
        return False

    # At least one shared tag
    if filters.tags and not set(filters.tags) & set(hotspot.tags):
        return False

    time_filter = filters.time_filter
    if time_filter is not None:
        if (
            time_filter.start_time
            and hotspot.scheduled_time
            and hotspot.scheduled_time < time_filter.start_time
        ):
            return False
        if (
            time_filter.end_time
            and hotspot.end_time
            and hotspot.end_time > time_filter.end_time
        ):
            return False

    return True


def apply_filters(hotspots: list[Hotspot], filters: SearchFilters) -> list[Hotspot]:
    return [h for h in hotspots if matches_filters(h, filters)]

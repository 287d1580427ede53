"""Hotspot lifecycle: creation, membership, updates and full-scan search."""

from fastapi import status

from hotspot_service.api.core.exceptions.base import HotspotException
from hotspot_service.api.core.messages import MessageCode
from hotspot_service.core.base import BaseService
from hotspot_service.modules.geo.distance import distance_between
from hotspot_service.modules.geo.models import Location
from hotspot_service.modules.hotspot.filters import matches_filters
from hotspot_service.modules.hotspot.models import (
    CreateHotspotRequest,
    Hotspot,
    HotspotSearchRequest,
    HotspotSearchResponse,
    HotspotWithDistance,
    SearchFilters,
    UpdateHotspotRequest,
    utc_now,
)


def _check_schedule(scheduled_time, end_time) -> None:
    if scheduled_time and end_time and end_time < scheduled_time:
        raise HotspotException(
            MessageCode.HOTSPOT_INVALID_SCHEDULE, status.HTTP_400_BAD_REQUEST
        )


class HotspotService(BaseService):
    """Owns hotspot mutations and keeps the cache tier in step with them."""

    async def _sync_cache(self, previous: Hotspot | None, current: Hotspot | None) -> None:
        """Invalidate regions around the old and new location, then re-index."""
        if previous is not None:
            await self.cache.invalidate_for_entity(previous)
        if current is None:
            return
        if previous is None or previous.location != current.location:
            await self.cache.invalidate_for_entity(current)
        await self.cache.add_to_geo_index(current.id, current.location)

    @staticmethod
    def _require_owner(hotspot: Hotspot, user_id: str) -> None:
        if hotspot.created_by != user_id:
            raise HotspotException(
                MessageCode.HOTSPOT_FORBIDDEN,
                status.HTTP_403_FORBIDDEN,
                {"hotspot_id": hotspot.id},
            )

    async def create_hotspot(
        self, user_id: str, request: CreateHotspotRequest
    ) -> Hotspot:
        _check_schedule(request.scheduled_time, request.end_time)

        now = utc_now()
        hotspot = Hotspot(
            name=request.name,
            description=request.description,
            category=request.category,
            location=request.location,
            address=request.address,
            created_by=user_id,
            created_by_nickname=request.nickname,
            max_capacity=request.max_capacity,
            is_public=request.is_public,
            tags=request.tags,
            scheduled_time=request.scheduled_time,
            end_time=request.end_time,
            image_url=request.image_url,
            # Creator is the first attendee
            attendees=[user_id],
            current_occupancy=1,
            created_at=now,
            updated_at=now,
        )
        await self.store.put(hotspot)
        await self._sync_cache(None, hotspot)

        self.logger.info(f"Created hotspot {hotspot.id} for user {user_id}")
        return hotspot

    async def get_hotspot(self, hotspot_id: str) -> Hotspot:
        return await self.store.get(hotspot_id)

    async def list_user_hotspots(self, user_id: str) -> list[Hotspot]:
        return await self.store.list_by_owner(user_id)

    async def update_hotspot(
        self, user_id: str, hotspot_id: str, request: UpdateHotspotRequest
    ) -> Hotspot:
        previous = await self.store.get(hotspot_id)
        self._require_owner(previous, user_id)

        changes = request.model_dump(exclude_unset=True, exclude_none=True)
        if "max_capacity" in changes and 0 < changes["max_capacity"] < previous.current_occupancy:
            raise HotspotException(
                MessageCode.HOTSPOT_CAPACITY_BELOW_OCCUPANCY,
                status.HTTP_400_BAD_REQUEST,
                {"current_occupancy": previous.current_occupancy},
            )

        _check_schedule(
            changes.get("scheduled_time", previous.scheduled_time),
            changes.get("end_time", previous.end_time),
        )

        if changes.get("is_active") and not previous.attendees:
            # Reactivating an abandoned hotspot brings its owner back in
            changes["attendees"] = [user_id]
            changes["current_occupancy"] = 1

        updated = Hotspot.model_validate(
            {**previous.model_dump(), **changes, "updated_at": utc_now()}
        )
        await self.store.put(updated)
        await self._sync_cache(previous, updated)

        self.logger.info(f"Updated hotspot {hotspot_id}: {sorted(changes)}")
        return updated

    async def delete_hotspot(self, user_id: str, hotspot_id: str) -> None:
        hotspot = await self.store.get(hotspot_id)
        self._require_owner(hotspot, user_id)

        await self.store.delete(hotspot_id)
        # Also drops the geo index entry
        await self.cache.invalidate_for_entity(hotspot)

        self.logger.info(f"Deleted hotspot {hotspot_id}")

    async def join_hotspot(self, user_id: str, hotspot_id: str) -> Hotspot:
        hotspot = await self.store.get(hotspot_id)

        if not hotspot.is_active:
            raise HotspotException(
                MessageCode.HOTSPOT_INACTIVE, status.HTTP_409_CONFLICT
            )
        if user_id in hotspot.attendees:
            raise HotspotException(
                MessageCode.HOTSPOT_ALREADY_MEMBER, status.HTTP_409_CONFLICT
            )
        if hotspot.is_full:
            raise HotspotException(MessageCode.HOTSPOT_FULL, status.HTTP_409_CONFLICT)

        attendees = [*hotspot.attendees, user_id]
        updated = hotspot.model_copy(
            update={
                "attendees": attendees,
                "current_occupancy": len(attendees),
                "updated_at": utc_now(),
            }
        )
        await self.store.put(updated)
        await self._sync_cache(hotspot, updated)
        return updated

    async def leave_hotspot(self, user_id: str, hotspot_id: str) -> Hotspot:
        """Remove ``user_id``; ownership passes to the earliest remaining
        attendee and the last one out deactivates the hotspot."""
        hotspot = await self.store.get(hotspot_id)

        if user_id not in hotspot.attendees:
            raise HotspotException(
                MessageCode.HOTSPOT_NOT_MEMBER, status.HTTP_409_CONFLICT
            )

        attendees = [a for a in hotspot.attendees if a != user_id]
        update = {
            "attendees": attendees,
            "current_occupancy": len(attendees),
            "updated_at": utc_now(),
        }
        if hotspot.created_by == user_id and attendees:
            update["created_by"] = attendees[0]
            update["created_by_nickname"] = None
        if not attendees:
            update["is_active"] = False

        updated = hotspot.model_copy(update=update)
        await self.store.put(updated)
        await self._sync_cache(hotspot, updated)

        if not updated.is_active:
            self.logger.info(f"Hotspot {hotspot_id} deactivated, no attendees left")
        return updated

    # === Full-scan search ===

    async def scan_nearby(
        self, center: Location, radius_km: float, filters: SearchFilters
    ) -> list[HotspotWithDistance]:
        """Brute-force radius search over every record, nearest first."""
        results = []
        for hotspot in await self.store.scan():
            distance = distance_between(center, hotspot.location)
            if distance > radius_km:
                continue
            if not matches_filters(hotspot, filters):
                continue
            results.append(HotspotWithDistance(hotspot=hotspot, distance_km=distance))

        results.sort(key=lambda r: r.distance_km)
        return results

    async def search_hotspots(self, request: HotspotSearchRequest) -> HotspotSearchResponse:
        center = Location(latitude=request.latitude, longitude=request.longitude)
        results = await self.scan_nearby(center, request.radius_km, request.to_filters())

        total = len(results)
        start = min(request.offset, total)
        end = min(start + request.limit, total)
        return HotspotSearchResponse(
            hotspots=results[start:end],
            total=total,
            has_more=end < total,
        )
